"""Primitive identifier types and a generational slot map for engine components."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

__all__ = ["PhaseId", "ListenerId", "TaskId", "SlotMap"]


@dataclass(frozen=True, order=True)
class PhaseId:
    """Identifies one phase of the engine's cycle; a value from 0 to 255."""

    value: int

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise TypeError(f"phase id must be an integer, got {self.value!r}")
        if not 0 <= self.value <= 255:
            raise ValueError(f"phase id must be between 0 and 255, got {self.value}")

    def __index__(self) -> int:
        return self.value


@dataclass(frozen=True, order=True, repr=False)
class _SlotKey:
    index: int
    version: int

    def __str__(self) -> str:
        return f"{self.index}v{self.version}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self})"


class ListenerId(_SlotKey):
    """Identifies a registered listener; a removed listener's id is never valid again."""


class TaskId(_SlotKey):
    """Identifies a stateful task such as a lifecycle loop."""


K = TypeVar("K", bound=_SlotKey)
V = TypeVar("V")


@dataclass
class _Slot:
    version: int
    value: Any = None
    occupied: bool = False


class SlotMap(Generic[K, V]):
    """Stores values under generational keys so stale keys never match new entries."""

    def __init__(self, key_type: type[K] = ListenerId) -> None:  # type: ignore[assignment]
        self._key_type = key_type
        self._slots: list[_Slot] = []
        self._free: list[int] = []
        self._len = 0

    def insert(self, value: V) -> K:
        """Store ``value`` and return its new key."""
        return self.insert_with_key(lambda _key: value)

    def insert_with_key(self, factory: Callable[[K], V]) -> K:
        """Store the value ``factory`` builds from the key it is about to get."""
        if self._free:
            index = self._free[-1]
            version = self._slots[index].version + 1
        else:
            index = len(self._slots)
            version = 1
        key = self._key_type(index, version)
        value = factory(key)
        if self._free:
            self._free.pop()
            slot = self._slots[index]
            slot.version, slot.value, slot.occupied = version, value, True
        else:
            self._slots.append(_Slot(version, value, True))
        self._len += 1
        return key

    def _lookup(self, key: object) -> _Slot | None:
        if not isinstance(key, self._key_type):
            return None
        if not 0 <= key.index < len(self._slots):
            return None
        slot = self._slots[key.index]
        if not slot.occupied or slot.version != key.version:
            return None
        return slot

    def remove(self, key: K) -> V | None:
        """Remove the entry under ``key`` and return its value, or None if absent."""
        slot = self._lookup(key)
        if slot is None:
            return None
        value = slot.value
        slot.value = None
        slot.occupied = False
        self._free.append(key.index)
        self._len -= 1
        return value

    def get(self, key: K) -> V | None:
        """Return the value under ``key``, or None if the key is not live."""
        slot = self._lookup(key)
        return None if slot is None else slot.value

    def items(self) -> Iterator[tuple[K, V]]:
        """Yield live ``(key, value)`` pairs in slot order."""
        for index, slot in enumerate(self._slots):
            if slot.occupied:
                yield self._key_type(index, slot.version), slot.value

    def __len__(self) -> int:
        return self._len

    def __contains__(self, key: object) -> bool:
        return self._lookup(key) is not None

    def __iter__(self) -> Iterator[K]:
        for key, _value in self.items():
            yield key
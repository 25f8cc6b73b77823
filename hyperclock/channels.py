"""A bounded multi-consumer broadcast channel for asyncio."""

from __future__ import annotations

import asyncio
import weakref
from collections import deque
from typing import Any, Generic, TypeVar

__all__ = ["ChannelClosed", "Lagged", "Broadcast", "Receiver"]

T = TypeVar("T")


class ChannelClosed(Exception):
    """The channel is closed and no more values will arrive."""


class Lagged(Exception):
    """The receiver fell behind and the oldest values were dropped."""

    def __init__(self, skipped: int) -> None:
        super().__init__(f"receiver lagged behind by {skipped} values")
        self.skipped = skipped


class Broadcast(Generic[T]):
    """Delivers every sent value to every receiver subscribed at the time of sending.

    Each receiver keeps at most ``capacity`` pending values; older ones are
    dropped and reported through :class:`Lagged`.
    """

    def __init__(self, capacity: int) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._receivers: weakref.WeakSet[Receiver[T]] = weakref.WeakSet()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self) -> Receiver[T]:
        """Return a receiver for values sent from now on."""
        receiver: Receiver[T] = Receiver(self)
        self._receivers.add(receiver)
        return receiver

    def send(self, value: T) -> int:
        """Deliver ``value`` and return how many receivers it reached."""
        if self._closed:
            raise ChannelClosed("cannot send on a closed channel")
        receivers = list(self._receivers)
        for receiver in receivers:
            receiver._push(value)
        return len(receivers)

    def close(self) -> None:
        """Close the channel; receivers drain what is pending, then stop."""
        self._closed = True
        for receiver in list(self._receivers):
            receiver._ready.set()


class Receiver(Generic[T]):
    """One subscriber's view of a :class:`Broadcast` channel."""

    def __init__(self, channel: Broadcast[T]) -> None:
        self._channel = channel
        self._queue: deque[Any] = deque()
        self._missed = 0
        self._ready = asyncio.Event()

    def _push(self, value: T) -> None:
        if len(self._queue) >= self._channel.capacity:
            self._queue.popleft()
            self._missed += 1
        self._queue.append(value)
        self._ready.set()

    def try_recv(self) -> T:
        """Return the next value without waiting.

        Raises :class:`Lagged` after values were dropped, :class:`ChannelClosed`
        once the channel is closed and drained, and ``asyncio.QueueEmpty`` when
        nothing is pending.
        """
        if self._missed:
            skipped, self._missed = self._missed, 0
            raise Lagged(skipped)
        if self._queue:
            return self._queue.popleft()
        if self._channel.closed:
            raise ChannelClosed("channel closed")
        raise asyncio.QueueEmpty

    async def recv(self) -> T:
        """Wait for the next value."""
        while True:
            try:
                return self.try_recv()
            except asyncio.QueueEmpty:
                pass
            self._ready.clear()
            await self._ready.wait()

    def __aiter__(self) -> Receiver[T]:
        return self

    async def __anext__(self) -> T:
        """Yield values until the channel closes, skipping over lag reports."""
        while True:
            try:
                return await self.recv()
            except Lagged:
                continue
            except ChannelClosed:
                raise StopAsyncIteration from None
"""Multi-step, stateful automations such as lifecycle loops."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from contextlib import suppress
from dataclasses import dataclass

from .channels import Broadcast, ChannelClosed
from .common import ListenerId, TaskId
from .events import (
    AutomationEvent,
    LifecycleCompleted,
    LifecycleLooped,
    LifecycleStepAdvanced,
)

__all__ = ["LifecycleStep", "RepetitionPolicy", "LifecycleLoop"]

LifecycleStep = Callable[[], object]

_MODES = ("run_once", "run_n_times", "repeat")


@dataclass(frozen=True)
class RepetitionPolicy:
    """How often a lifecycle loop runs through its steps."""

    mode: str
    count: int | None = None

    def __post_init__(self) -> None:
        if self.mode not in _MODES:
            raise ValueError(f"unknown repetition mode {self.mode!r}")
        if self.mode == "run_n_times":
            if isinstance(self.count, bool) or not isinstance(self.count, int):
                raise TypeError(f"repetition count must be an integer, got {self.count!r}")
            if self.count < 0:
                raise ValueError("repetition count must not be negative")
        elif self.count is not None:
            raise ValueError(f"mode {self.mode!r} takes no count")

    @classmethod
    def run_once(cls) -> RepetitionPolicy:
        """Run through the steps once, then complete."""
        return cls("run_once")

    @classmethod
    def run_n_times(cls, count: int) -> RepetitionPolicy:
        """Run through the steps ``count`` times, then complete."""
        return cls("run_n_times", count)

    @classmethod
    def repeat(cls) -> RepetitionPolicy:
        """Repeat the steps indefinitely."""
        return cls("repeat")

    def is_finished(self, run_count: int) -> bool:
        """Whether a loop that has completed ``run_count`` runs is done."""
        if self.mode == "run_once":
            return True
        if self.mode == "run_n_times":
            assert self.count is not None
            return run_count >= self.count
        return False


def _emit(channel: Broadcast[AutomationEvent], event: AutomationEvent) -> None:
    with suppress(ChannelClosed):
        channel.send(event)


class LifecycleLoop:
    """Runs a sequence of steps in order, one step per advance."""

    def __init__(
        self,
        id: TaskId,
        listener_id: ListenerId,
        steps: Iterable[LifecycleStep],
        repetition_policy: RepetitionPolicy,
    ) -> None:
        self.id = id
        self.listener_id = listener_id
        self.steps: list[LifecycleStep] = list(steps)
        self.repetition_policy = repetition_policy
        self.current_step = 0
        self.run_count = 0

    def advance(self, automation_events: Broadcast[AutomationEvent]) -> bool:
        """Run the current step; return True once the loop is complete."""
        if not self.steps:
            return True

        self.steps[self.current_step]()
        _emit(automation_events, LifecycleStepAdvanced(id=self.id, step_index=self.current_step))
        self.current_step += 1

        if self.current_step >= len(self.steps):
            self.run_count += 1
            self.current_step = 0
            if self.repetition_policy.is_finished(self.run_count):
                _emit(automation_events, LifecycleCompleted(id=self.id))
                return True
            _emit(automation_events, LifecycleLooped(id=self.id))
        return False
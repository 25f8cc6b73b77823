"""Watchers that react to phases, ticks and conditions."""

from __future__ import annotations

import time
from collections.abc import Callable
from contextlib import suppress
from datetime import date, datetime, timezone

from .channels import Broadcast, ChannelClosed
from .clock import TickEvent
from .common import PhaseId
from .config import GongConfig
from .events import DateChanged, GongEvent, HolidayReached

__all__ = ["ConditionCheck", "IntervalWatcher", "GongWatcher", "ConditionalWatcher"]

ConditionCheck = Callable[[], bool]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class IntervalWatcher:
    """Runs its logic during one phase whenever ``interval`` seconds have passed."""

    def __init__(
        self,
        phase_to_watch: PhaseId,
        interval: float,
        task_logic: Callable[[], object],
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.phase_to_watch = phase_to_watch
        self.interval = interval
        self.task_logic = task_logic
        self._clock = clock
        self.last_fired = clock()

    def process_phase(self, current_phase: PhaseId) -> bool:
        """Run the logic if this is the watched phase and the interval elapsed."""
        if current_phase != self.phase_to_watch:
            return False
        if self._clock() - self.last_fired < self.interval:
            return False
        self.task_logic()
        self.last_fired = self._clock()
        return True


class GongWatcher:
    """Announces calendar changes and holidays in the configured timezone."""

    def __init__(self, config: GongConfig, now: Callable[[], datetime] = _utc_now) -> None:
        self.config = config
        self._now = now
        self.last_known_date = self._local_date()

    def _local_date(self) -> date:
        return self._now().astimezone(self.config.timezone).date()

    def process_tick(self, tick: TickEvent, gong_events: Broadcast[GongEvent]) -> None:
        """Send gong events if the local date changed since the last tick."""
        current = self._local_date()
        if current == self.last_known_date:
            return
        with suppress(ChannelClosed):
            gong_events.send(DateChanged(new_date=current))
            for holiday in self.config.holidays:
                if holiday.date == current:
                    gong_events.send(HolidayReached(name=holiday.name, date=holiday.date))
        self.last_known_date = current


class ConditionalWatcher:
    """Runs its logic whenever its condition holds."""

    def __init__(
        self,
        condition: ConditionCheck,
        task_logic: Callable[[], object],
        is_one_shot: bool,
    ) -> None:
        self.condition = condition
        self.task_logic = task_logic
        self.is_one_shot = is_one_shot

    def check_and_fire(self) -> bool:
        """Run the logic if the condition is true; return whether it was."""
        if self.condition():
            self.task_logic()
            return True
        return False
"""Event types broadcast by the engine."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date, time
from typing import Any

from .clock import TickEvent
from .common import ListenerId, PhaseId, TaskId

__all__ = [
    "PhaseEvent",
    "EngineStarted",
    "EngineShutdown",
    "ListenerAdded",
    "ListenerRemoved",
    "SystemEvent",
    "TimeOfDay",
    "WorkdayMilestone",
    "DateChanged",
    "TimeOfDayReached",
    "WorkdayMilestoneReached",
    "HolidayReached",
    "GongEvent",
    "TaskScheduled",
    "TaskFired",
    "TaskCompleted",
    "TaskEvent",
    "LifecycleStarted",
    "LifecycleStepAdvanced",
    "LifecycleCompleted",
    "LifecycleLooped",
    "AutomationEvent",
    "ConditionalEvent",
    "UserEvent",
]


@dataclass(frozen=True)
class PhaseEvent:
    """Fired for each configured phase within one tick."""

    phase: PhaseId
    tick: TickEvent


@dataclass(frozen=True)
class EngineStarted:
    """The engine's run loop began; ``timestamp`` is a monotonic time."""

    timestamp: float


@dataclass(frozen=True)
class EngineShutdown:
    """The engine's run loop is about to exit."""


@dataclass(frozen=True)
class ListenerAdded:
    """A listener was registered."""

    id: ListenerId


@dataclass(frozen=True)
class ListenerRemoved:
    """A listener was removed."""

    id: ListenerId


SystemEvent = EngineStarted | EngineShutdown | ListenerAdded | ListenerRemoved


class TimeOfDay(enum.Enum):
    """Named times of day."""

    NOON = "noon"
    MIDNIGHT = "midnight"


@dataclass(frozen=True)
class WorkdayMilestone:
    """A labelled time of the working day."""

    label: str
    time: time


@dataclass(frozen=True)
class DateChanged:
    """The calendar date changed."""

    new_date: date


@dataclass(frozen=True)
class TimeOfDayReached:
    """A named time of day was reached."""

    time_of_day: TimeOfDay


@dataclass(frozen=True)
class WorkdayMilestoneReached:
    """A workday milestone was reached."""

    milestone: WorkdayMilestone


@dataclass(frozen=True)
class HolidayReached:
    """A configured holiday began."""

    name: str
    date: date


GongEvent = DateChanged | TimeOfDayReached | WorkdayMilestoneReached | HolidayReached


@dataclass(frozen=True)
class TaskScheduled:
    """A task was registered."""

    id: TaskId


@dataclass(frozen=True)
class TaskFired:
    """A listener's logic ran on the given tick."""

    listener_id: ListenerId
    tick: TickEvent


@dataclass(frozen=True)
class TaskCompleted:
    """A finite task finished all its runs."""

    id: TaskId


TaskEvent = TaskScheduled | TaskFired | TaskCompleted


@dataclass(frozen=True)
class LifecycleStarted:
    """A lifecycle loop was started."""

    id: TaskId


@dataclass(frozen=True)
class LifecycleStepAdvanced:
    """A lifecycle loop ran the step at ``step_index``."""

    id: TaskId
    step_index: int


@dataclass(frozen=True)
class LifecycleCompleted:
    """A finite lifecycle loop finished all steps and repetitions."""

    id: TaskId


@dataclass(frozen=True)
class LifecycleLooped:
    """A repeating lifecycle loop finished its last step and started over."""

    id: TaskId


AutomationEvent = LifecycleStarted | LifecycleStepAdvanced | LifecycleCompleted | LifecycleLooped


@dataclass(frozen=True)
class ConditionalEvent:
    """A registered condition was met at ``timestamp`` (monotonic time)."""

    condition_id: ListenerId
    timestamp: float


@dataclass(frozen=True, repr=False)
class UserEvent:
    """An application-defined event carrying an arbitrary payload."""

    name: str
    payload: Any = field(default=None)

    def __repr__(self) -> str:
        return f"UserEvent(name={self.name!r}, payload=...)"
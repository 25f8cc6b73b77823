"""A demonstration run of the engine with watchers, conditions and a lifecycle loop."""

from __future__ import annotations

import argparse
import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import date
from typing import Any

from .channels import Receiver
from .common import ListenerId, PhaseId, TaskId
from .config import ClockResolution, GongConfig, Holiday, HyperclockConfig, PhaseConfig
from .engine import HyperclockEngine
from .tasks import RepetitionPolicy

__all__ = ["build_config", "spawn_event_listeners", "register_test_components", "main"]

logger = logging.getLogger(__name__)


@dataclass
class _Counter:
    value: int = 0

    def increment(self) -> int:
        self.value += 1
        return self.value


@dataclass(frozen=True)
class _DemoHandles:
    counter: _Counter
    interval_id: ListenerId
    repeating_condition_id: ListenerId
    one_shot_condition_id: ListenerId
    lifecycle_id: TaskId


def build_config() -> HyperclockConfig:
    """A medium-speed configuration with a logic and a rendering phase."""
    return HyperclockConfig(
        resolution=ClockResolution.medium(),
        phases=[PhaseConfig(PhaseId(0), "logic"), PhaseConfig(PhaseId(1), "rendering")],
        gong_config=GongConfig(holidays=[Holiday("New Year's Day", date(2026, 1, 1))]),
    )


async def _log_stream(
    receiver: Receiver[Any], message: str, describe: Callable[[Any], object]
) -> None:
    async for event in receiver:
        logger.info(message, describe(event))


def spawn_event_listeners(engine: HyperclockEngine) -> list[asyncio.Task[None]]:
    """Start tasks that log the system, task, automation and conditional streams."""
    streams: list[tuple[Receiver[Any], str, Callable[[Any], object]]] = [
        (engine.subscribe_system_events(), "[SYSTEM] => %r", lambda event: event),
        (engine.subscribe_task_events(), "[TASK] => %r", lambda event: event),
        (engine.subscribe_automation_events(), "[AUTOMATION] => %r", lambda event: event),
        (
            engine.subscribe_conditional_events(),
            "[CONDITIONAL] => Condition met: %r",
            lambda event: event.condition_id,
        ),
    ]
    return [
        asyncio.create_task(_log_stream(receiver, message, describe))
        for receiver, message, describe in streams
    ]


def register_test_components(engine: HyperclockEngine) -> _DemoHandles:
    """Register an interval counter, two conditions on it and a lifecycle loop."""
    counter = _Counter()

    def count() -> None:
        logger.info("[INTERVAL TASK] Counter is now: %d", counter.increment())

    interval_id = engine.on_interval(PhaseId(0), 2.0, count)

    repeating_id = engine.on_conditional(
        lambda: counter.value >= 3,
        lambda: logger.info("[REPEATING CONDITIONAL] Condition 'counter >= 3' is TRUE."),
        False,
    )
    one_shot_id = engine.on_conditional(
        lambda: counter.value == 5,
        lambda: logger.info("[ONE-SHOT CONDITIONAL] Fired! This task will now be removed."),
        True,
    )

    steps = [
        lambda: logger.info("[LIFECYCLE] => Step 1: Initializing..."),
        lambda: logger.info("[LIFECYCLE] => Step 2: Processing..."),
        lambda: logger.info("[LIFECYCLE] => Step 3: Finalizing cycle."),
    ]
    lifecycle_id = engine.add_lifecycle_loop(
        PhaseId(0), 1.0, steps, RepetitionPolicy.run_n_times(2)
    )
    return _DemoHandles(counter, interval_id, repeating_id, one_shot_id, lifecycle_id)


async def _run(duration: float | None) -> None:
    engine = HyperclockEngine(build_config())
    listeners = spawn_event_listeners(engine)
    register_test_components(engine)
    shutdown: asyncio.Event | None = None
    if duration is not None:
        shutdown = asyncio.Event()
        asyncio.get_running_loop().call_later(duration, shutdown.set)
    try:
        await engine.run(shutdown)
        await asyncio.sleep(0)
    finally:
        for task in listeners:
            task.cancel()
        await asyncio.gather(*listeners, return_exceptions=True)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the demonstration until Ctrl+C, or for ``--duration`` seconds."""
    parser = argparse.ArgumentParser(description="Run the engine with demonstration components.")
    parser.add_argument(
        "--duration",
        type=float,
        default=None,
        help="stop after this many seconds instead of waiting for Ctrl+C",
    )
    args = parser.parse_args(argv)
    if args.duration is not None and args.duration < 0:
        parser.error("--duration must not be negative")
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    try:
        asyncio.run(_run(args.duration))
    except KeyboardInterrupt:
        pass
    return 0
"""The engine that turns clock ticks into phases, watcher firings and automation."""

from __future__ import annotations

import asyncio
import logging
import signal
import time
from collections.abc import Callable, Iterable
from contextlib import suppress
from datetime import timedelta
from typing import Any, TypeVar

from termcolor import colored

from .channels import Broadcast, ChannelClosed, Lagged, Receiver
from .clock import SystemClock, TickEvent
from .common import ListenerId, PhaseId, SlotMap, TaskId
from .config import ENGINE_NAME, HyperclockConfig
from .events import (
    AutomationEvent,
    ConditionalEvent,
    EngineShutdown,
    EngineStarted,
    GongEvent,
    LifecycleStarted,
    ListenerAdded,
    ListenerRemoved,
    PhaseEvent,
    SystemEvent,
    TaskEvent,
    TaskFired,
    UserEvent,
)
from .tasks import LifecycleLoop, LifecycleStep, RepetitionPolicy
from .watchers import ConditionalWatcher, GongWatcher, IntervalWatcher

__all__ = ["HyperclockEngine"]

logger = logging.getLogger(__name__)

_CHANNEL_CAPACITY = 256
_EVENT_CAPACITY = 64

T = TypeVar("T")


def _emit(channel: Broadcast[T], event: T) -> None:
    with suppress(ChannelClosed):
        channel.send(event)


def _seconds(interval: float | timedelta) -> float:
    seconds = interval.total_seconds() if isinstance(interval, timedelta) else float(interval)
    if seconds < 0:
        raise ValueError("interval must not be negative")
    return seconds


class HyperclockEngine:
    """Holds the configuration, the registered watchers and tasks, and the event channels.

    ``clock`` supplies monotonic seconds for interval timing and timestamps;
    ``now`` supplies the current aware datetime for calendar events.
    """

    def __init__(
        self,
        config: HyperclockConfig,
        *,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], Any] | None = None,
    ) -> None:
        self.config = config
        self._clock = clock

        self._tick_sender: Broadcast[TickEvent] = Broadcast(_CHANNEL_CAPACITY)
        self._phase_sender: Broadcast[PhaseEvent] = Broadcast(_CHANNEL_CAPACITY)
        self._system_sender: Broadcast[SystemEvent] = Broadcast(_EVENT_CAPACITY)
        self._gong_sender: Broadcast[GongEvent] = Broadcast(_EVENT_CAPACITY)
        self._task_sender: Broadcast[TaskEvent] = Broadcast(_EVENT_CAPACITY)
        self._automation_sender: Broadcast[AutomationEvent] = Broadcast(_EVENT_CAPACITY)
        self._conditional_sender: Broadcast[ConditionalEvent] = Broadcast(_EVENT_CAPACITY)
        self._user_sender: Broadcast[UserEvent] = Broadcast(_EVENT_CAPACITY)

        self._interval_watchers: SlotMap[ListenerId, IntervalWatcher] = SlotMap(ListenerId)
        self._conditional_watchers: SlotMap[ListenerId, ConditionalWatcher] = SlotMap(ListenerId)
        self._gong_watchers: SlotMap[ListenerId, GongWatcher] = SlotMap(ListenerId)
        self._lifecycle_loops: SlotMap[TaskId, LifecycleLoop] = SlotMap(TaskId)
        self._lifecycle_triggers: dict[ListenerId, TaskId] = {}

        gong = (
            GongWatcher(config.gong_config)
            if now is None
            else GongWatcher(config.gong_config, now=now)
        )
        self._gong_watchers.insert(gong)

    # ----------------------------------------------------------------- running

    async def run(self, shutdown: asyncio.Event | None = None) -> None:
        """Run the clock and dispatcher until ``shutdown`` is set.

        Without an event, the engine runs until interrupted with Ctrl+C.
        """
        name = colored(ENGINE_NAME, "cyan")
        logger.info("%s starting up...", name)
        loop = asyncio.get_running_loop()
        stop = shutdown if shutdown is not None else asyncio.Event()
        handles_signal = False
        if shutdown is None:
            try:
                loop.add_signal_handler(signal.SIGINT, stop.set)
                handles_signal = True
            except (NotImplementedError, RuntimeError):
                handles_signal = False

        clock = SystemClock(self.config.resolution, self._tick_sender)
        dispatcher = asyncio.create_task(self._dispatcher_loop(stop))
        ticker = asyncio.create_task(clock.run(stop))
        logger.info(
            "%s running at %s. Press Ctrl+C to shut down.", name, self.config.resolution
        )
        try:
            await stop.wait()
            logger.info("Shutdown signal received. Broadcasting to all tasks...")
            await asyncio.gather(ticker, dispatcher)
        finally:
            for task in (ticker, dispatcher):
                task.cancel()
            if handles_signal:
                loop.remove_signal_handler(signal.SIGINT)
        _emit(self._system_sender, EngineShutdown())
        logger.info("%s has shut down.", name)

    async def _dispatcher_loop(self, stop: asyncio.Event) -> None:
        tick_rx = self._tick_sender.subscribe()
        task_rx = self._task_sender.subscribe()
        _emit(self._system_sender, EngineStarted(timestamp=self._clock()))

        stop_waiter = asyncio.create_task(stop.wait())
        pending: dict[str, asyncio.Task[Any] | None] = {"tick": None, "task": None}
        receivers: dict[str, Receiver[Any]] = {"tick": tick_rx, "task": task_rx}
        try:
            while True:
                for key, receiver in receivers.items():
                    if pending[key] is None:
                        pending[key] = asyncio.create_task(receiver.recv())
                waiting = {stop_waiter, *(t for t in pending.values() if t is not None)}
                done, _ = await asyncio.wait(waiting, return_when=asyncio.FIRST_COMPLETED)
                if stop_waiter in done:
                    break
                # Ticks take precedence over task events when both are ready.
                for key in ("tick", "task"):
                    job = pending[key]
                    if job is None or job not in done:
                        continue
                    pending[key] = None
                    try:
                        value = job.result()
                    except Lagged:
                        break
                    except ChannelClosed:
                        del receivers[key]
                        break
                    if key == "tick":
                        self.handle_tick(value)
                    else:
                        self.handle_task_event(value)
                    break
                if not receivers:
                    await stop_waiter
                    break
        finally:
            stop_waiter.cancel()
            for job in pending.values():
                if job is not None:
                    job.cancel()

    def handle_tick(self, tick: TickEvent) -> None:
        """Process one tick: conditions, calendar, then every configured phase in order."""
        self._process_tick_watchers(tick)
        for phase_config in self.config.phases:
            phase_event = PhaseEvent(phase=phase_config.id, tick=tick)
            self._process_phase_watchers(phase_event)
            _emit(self._phase_sender, phase_event)

    def handle_task_event(self, event: TaskEvent) -> None:
        """Advance the lifecycle loop driven by a fired interval listener, if any."""
        if isinstance(event, TaskFired):
            self._process_lifecycle_trigger(event.listener_id)

    def _process_phase_watchers(self, phase_event: PhaseEvent) -> None:
        for listener_id, watcher in list(self._interval_watchers.items()):
            if watcher.process_phase(phase_event.phase):
                _emit(self._task_sender, TaskFired(listener_id=listener_id, tick=phase_event.tick))

    def _process_tick_watchers(self, tick: TickEvent) -> None:
        fired_one_shots: list[ListenerId] = []
        for listener_id, watcher in list(self._conditional_watchers.items()):
            if watcher.check_and_fire():
                _emit(
                    self._conditional_sender,
                    ConditionalEvent(condition_id=listener_id, timestamp=tick.timestamp),
                )
                if watcher.is_one_shot:
                    fired_one_shots.append(listener_id)
        for listener_id in fired_one_shots:
            if self._conditional_watchers.remove(listener_id) is not None:
                _emit(self._system_sender, ListenerRemoved(id=listener_id))
        for _listener_id, gong in list(self._gong_watchers.items()):
            gong.process_tick(tick, self._gong_sender)

    def _process_lifecycle_trigger(self, interval_listener_id: ListenerId) -> None:
        lifecycle_id = self._lifecycle_triggers.get(interval_listener_id)
        if lifecycle_id is None:
            return
        lifecycle = self._lifecycle_loops.get(lifecycle_id)
        if lifecycle is None or not lifecycle.advance(self._automation_sender):
            return
        removed = self._lifecycle_loops.remove(lifecycle_id)
        if removed is not None:
            self.remove_interval_listener(removed.listener_id)
            self._lifecycle_triggers.pop(removed.listener_id, None)

    # ------------------------------------------------------------- registration

    def on_interval(
        self,
        phase_to_watch: PhaseId,
        interval: float | timedelta,
        task_logic: Callable[[], object],
    ) -> ListenerId:
        """Run ``task_logic`` during ``phase_to_watch`` each time ``interval`` elapses."""
        watcher = IntervalWatcher(
            phase_to_watch, _seconds(interval), task_logic, clock=self._clock
        )
        listener_id = self._interval_watchers.insert(watcher)
        _emit(self._system_sender, ListenerAdded(id=listener_id))
        return listener_id

    def on_conditional(
        self,
        condition: Callable[[], bool],
        task_logic: Callable[[], object],
        is_one_shot: bool,
    ) -> ListenerId:
        """Run ``task_logic`` on every tick where ``condition`` holds."""
        watcher = ConditionalWatcher(condition, task_logic, is_one_shot)
        listener_id = self._conditional_watchers.insert(watcher)
        _emit(self._system_sender, ListenerAdded(id=listener_id))
        return listener_id

    def add_lifecycle_loop(
        self,
        phase_to_watch: PhaseId,
        interval: float | timedelta,
        steps: Iterable[LifecycleStep],
        repetition_policy: RepetitionPolicy,
    ) -> TaskId:
        """Add a loop that runs one of ``steps`` each time ``interval`` elapses."""
        steps = list(steps)
        listener_id = self.on_interval(phase_to_watch, interval, lambda: None)

        def build(key: TaskId) -> LifecycleLoop:
            _emit(self._automation_sender, LifecycleStarted(id=key))
            return LifecycleLoop(key, listener_id, steps, repetition_policy)

        lifecycle_id = self._lifecycle_loops.insert_with_key(build)
        self._lifecycle_triggers[listener_id] = lifecycle_id
        return lifecycle_id

    def remove_interval_listener(self, id: ListenerId) -> bool:
        """Remove an interval listener; return whether it existed."""
        removed = self._interval_watchers.remove(id) is not None
        if removed:
            _emit(self._system_sender, ListenerRemoved(id=id))
        return removed

    def remove_conditional_listener(self, id: ListenerId) -> bool:
        """Remove a conditional listener; return whether it existed."""
        removed = self._conditional_watchers.remove(id) is not None
        if removed:
            _emit(self._system_sender, ListenerRemoved(id=id))
        return removed

    def remove_lifecycle_loop(self, id: TaskId) -> bool:
        """Remove a lifecycle loop and the interval listener that drives it."""
        removed = self._lifecycle_loops.remove(id)
        if removed is None:
            return False
        self.remove_interval_listener(removed.listener_id)
        self._lifecycle_triggers.pop(removed.listener_id, None)
        return True

    # ---------------------------------------------------------------- streams

    def subscribe_tick_events(self) -> Receiver[TickEvent]:
        """Receive every raw tick, before phase processing."""
        return self._tick_sender.subscribe()

    def subscribe_system_events(self) -> Receiver[SystemEvent]:
        return self._system_sender.subscribe()

    def subscribe_phase_events(self) -> Receiver[PhaseEvent]:
        return self._phase_sender.subscribe()

    def subscribe_gong_events(self) -> Receiver[GongEvent]:
        return self._gong_sender.subscribe()

    def subscribe_task_events(self) -> Receiver[TaskEvent]:
        return self._task_sender.subscribe()

    def subscribe_automation_events(self) -> Receiver[AutomationEvent]:
        return self._automation_sender.subscribe()

    def subscribe_conditional_events(self) -> Receiver[ConditionalEvent]:
        return self._conditional_sender.subscribe()

    def subscribe_user_events(self) -> Receiver[UserEvent]:
        return self._user_sender.subscribe()

    def broadcast_user_event(self, event: UserEvent) -> None:
        """Send a custom event to every user-event subscriber."""
        _emit(self._user_sender, event)
import asyncio
from datetime import date, datetime, timedelta, timezone

from hyperclock.channels import Broadcast
from hyperclock.clock import TickEvent
from hyperclock.common import PhaseId
from hyperclock.config import GongConfig, Holiday
from hyperclock.events import DateChanged, HolidayReached
from hyperclock.watchers import ConditionalWatcher, GongWatcher, IntervalWatcher

TICK = TickEvent(tick_count=1, timestamp=0.0)


class FakeClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


def drain(receiver):
    events = []
    while True:
        try:
            events.append(receiver.try_recv())
        except asyncio.QueueEmpty:
            return events


def test_interval_ignores_other_phase():
    clock = FakeClock(0.0)
    calls = []
    watcher = IntervalWatcher(PhaseId(0), 2.0, lambda: calls.append(1), clock=clock)
    clock.now = 100.0
    assert watcher.process_phase(PhaseId(1)) is False
    assert calls == []


def test_interval_waits_for_elapsed_time():
    clock = FakeClock(10.0)
    calls = []
    watcher = IntervalWatcher(PhaseId(0), 2.0, lambda: calls.append(1), clock=clock)
    clock.now = 11.0
    assert watcher.process_phase(PhaseId(0)) is False
    clock.now = 12.0
    assert watcher.process_phase(PhaseId(0)) is True
    assert calls == [1]
    assert watcher.last_fired == 12.0


def test_interval_resets_after_firing():
    clock = FakeClock(0.0)
    calls = []
    watcher = IntervalWatcher(PhaseId(0), 1.0, lambda: calls.append(1), clock=clock)
    clock.now = 1.0
    assert watcher.process_phase(PhaseId(0)) is True
    assert watcher.process_phase(PhaseId(0)) is False
    clock.now = 2.0
    assert watcher.process_phase(PhaseId(0)) is True
    assert len(calls) == 2


def test_conditional_fires_only_when_true():
    state = {"ready": False}
    calls = []
    watcher = ConditionalWatcher(lambda: state["ready"], lambda: calls.append(1), True)
    assert watcher.check_and_fire() is False
    assert calls == []
    state["ready"] = True
    assert watcher.check_and_fire() is True
    assert calls == [1]
    assert watcher.is_one_shot is True


def test_gong_same_date_sends_nothing():
    clock = FakeClock(datetime(2026, 1, 1, 1, 0, tzinfo=timezone.utc))
    watcher = GongWatcher(GongConfig(), now=clock)
    channel = Broadcast(8)
    rx = channel.subscribe()
    clock.now = datetime(2026, 1, 1, 23, 0, tzinfo=timezone.utc)
    watcher.process_tick(TICK, channel)
    assert drain(rx) == []


def test_gong_date_change_and_holiday():
    config = GongConfig(holidays=[Holiday("New Year's Day", date(2026, 1, 1))])
    clock = FakeClock(datetime(2025, 12, 31, 23, 0, tzinfo=timezone.utc))
    watcher = GongWatcher(config, now=clock)
    channel = Broadcast(8)
    rx = channel.subscribe()
    clock.now = datetime(2026, 1, 1, 0, 5, tzinfo=timezone.utc)
    watcher.process_tick(TICK, channel)
    assert drain(rx) == [
        DateChanged(date(2026, 1, 1)),
        HolidayReached("New Year's Day", date(2026, 1, 1)),
    ]
    assert watcher.last_known_date == date(2026, 1, 1)
    watcher.process_tick(TICK, channel)
    assert drain(rx) == []


def test_gong_uses_configured_timezone():
    tz = timezone(timedelta(hours=-5))
    clock = FakeClock(datetime(2026, 1, 1, 3, 0, tzinfo=timezone.utc))
    watcher = GongWatcher(GongConfig(timezone=tz), now=clock)
    assert watcher.last_known_date == date(2025, 12, 31)
    channel = Broadcast(8)
    rx = channel.subscribe()
    clock.now = datetime(2026, 1, 1, 6, 0, tzinfo=timezone.utc)
    watcher.process_tick(TICK, channel)
    assert drain(rx) == [DateChanged(date(2026, 1, 1))]


def test_gong_tolerates_closed_channel():
    clock = FakeClock(datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc))
    watcher = GongWatcher(GongConfig(), now=clock)
    channel = Broadcast(8)
    channel.close()
    clock.now = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)
    watcher.process_tick(TICK, channel)
    assert watcher.last_known_date == date(2026, 3, 2)
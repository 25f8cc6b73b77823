import asyncio

import pytest

from hyperclock.channels import Broadcast
from hyperclock.clock import SystemClock, TickEvent
from hyperclock.config import ClockResolution


@pytest.mark.asyncio
async def test_ticks_count_up_from_one():
    channel = Broadcast(16)
    receiver = channel.subscribe()
    shutdown = asyncio.Event()
    clock = SystemClock(ClockResolution.custom(200), channel)
    task = asyncio.create_task(clock.run(shutdown))
    ticks = [await asyncio.wait_for(receiver.recv(), 2) for _ in range(3)]
    shutdown.set()
    await asyncio.wait_for(task, 2)
    assert [t.tick_count for t in ticks] == [1, 2, 3]
    stamps = [t.timestamp for t in ticks]
    assert stamps == sorted(stamps)
    assert all(isinstance(t, TickEvent) for t in ticks)


@pytest.mark.asyncio
async def test_shutdown_before_start_emits_nothing():
    channel = Broadcast(4)
    receiver = channel.subscribe()
    shutdown = asyncio.Event()
    shutdown.set()
    await asyncio.wait_for(SystemClock(ClockResolution.custom(200), channel).run(shutdown), 1)
    with pytest.raises(asyncio.QueueEmpty):
        receiver.try_recv()


@pytest.mark.asyncio
async def test_zero_rate_never_ticks_but_stops_on_shutdown():
    channel = Broadcast(4)
    receiver = channel.subscribe()
    shutdown = asyncio.Event()
    task = asyncio.create_task(SystemClock(ClockResolution.custom(0), channel).run(shutdown))
    await asyncio.sleep(0.05)
    assert not task.done()
    shutdown.set()
    await asyncio.wait_for(task, 1)
    with pytest.raises(asyncio.QueueEmpty):
        receiver.try_recv()


@pytest.mark.asyncio
async def test_clock_stops_when_channel_closes():
    channel = Broadcast(4)
    channel.close()
    shutdown = asyncio.Event()
    await asyncio.wait_for(SystemClock(ClockResolution.custom(200), channel).run(shutdown), 2)
    assert not shutdown.is_set()


@pytest.mark.asyncio
async def test_ticks_stop_after_shutdown():
    channel = Broadcast(64)
    receiver = channel.subscribe()
    shutdown = asyncio.Event()
    task = asyncio.create_task(SystemClock(ClockResolution.custom(200), channel).run(shutdown))
    await asyncio.wait_for(receiver.recv(), 2)
    shutdown.set()
    await asyncio.wait_for(task, 2)
    drained = []
    while True:
        try:
            drained.append(receiver.try_recv())
        except asyncio.QueueEmpty:
            break
    await asyncio.sleep(0.05)
    with pytest.raises(asyncio.QueueEmpty):
        receiver.try_recv()
    assert all(t.tick_count >= 2 for t in drained)
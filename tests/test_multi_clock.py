import asyncio

import pytest

from hyperclock.multi_clock import CounterClock, main


def _increment(clock):
    clock.buffer += 1


@pytest.mark.asyncio
async def test_run_stops_after_max_ticks():
    clock = CounterClock("prime", 0.001, 0.0)
    ran = await clock.run(_increment, 4)
    assert ran == 4
    assert clock.buffer == 4


@pytest.mark.asyncio
async def test_zero_ticks_never_calls_back():
    clock = CounterClock("prime", 0.001, 0.0)
    ran = await clock.run(_increment, 0)
    assert ran == 0
    assert clock.buffer == 0


@pytest.mark.asyncio
async def test_negative_max_ticks_rejected():
    with pytest.raises(ValueError):
        await CounterClock("prime", 0.001, 0.0).run(_increment, -1)


def test_negative_interval_rejected():
    with pytest.raises(ValueError):
        CounterClock("prime", -0.5, 0.0)


@pytest.mark.asyncio
async def test_ticks_respect_offset_and_interval():
    loop = asyncio.get_running_loop()
    times = []
    clock = CounterClock("lookahead", 0.02, 0.05)
    start = loop.time()
    ran = await clock.run(lambda _c: times.append(loop.time()), 3)
    assert ran == 3
    assert len(times) == 3
    offsets = [moment - start for moment in times]
    earliest = [0.05 + i * 0.02 - 0.01 for i in range(3)]
    assert [off >= low for off, low in zip(offsets, earliest)] == [True, True, True]
    assert times == sorted(times)


@pytest.mark.asyncio
async def test_run_without_limit_keeps_going_until_cancelled():
    clock = CounterClock("memory", 0.001, 0.0)
    task = asyncio.create_task(clock.run(_increment))
    await asyncio.sleep(0.03)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert clock.buffer >= 1


def test_main_prints_every_clock(capsys):
    assert main(["--period", "0.001", "--ticks", "2"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 6
    for name in ("prime", "lookahead", "memory"):
        assert f"{name} tick: buffer = 1" in lines
        assert f"{name} tick: buffer = 2" in lines
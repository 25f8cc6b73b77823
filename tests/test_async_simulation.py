import random

import pytest

from hyperclock.async_simulation import Job, Scheduler, SimulationState, run_async_simulation
from hyperclock.simulation import Bias


@pytest.mark.asyncio
async def test_same_seed_gives_same_buffers():
    first = await run_async_simulation(12, 0, Bias.even(), random.Random(7))
    second = await run_async_simulation(12, 0, Bias.even(), random.Random(7))
    assert first.future == second.future
    assert first.prime == second.prime
    assert first.memory == second.memory


@pytest.mark.asyncio
async def test_buffer_shapes_and_ranges():
    state = await run_async_simulation(8, 0, Bias.odd(), random.Random(3))
    assert len(state.future) == 10
    assert state.future[0] is None
    assert all(v is not None and 0 <= v <= 9 for v in state.future[1:])
    assert all(v is not None and 0 <= v <= 9 for v in state.prime[:8])
    assert state.prime[8] is None
    assert state.memory[7] is None and state.memory[8] is None


@pytest.mark.asyncio
async def test_no_bias_echoes_every_prime():
    state = await run_async_simulation(10, 0, Bias.none(), random.Random(11))
    assert state.memory[:9] == state.prime[1:10]


@pytest.mark.asyncio
@pytest.mark.parametrize("seed", [1, 2, 3, 4])
async def test_even_bias_echo_rule(seed):
    state = await run_async_simulation(15, 0, Bias.even(), random.Random(seed))
    for t in range(1, 15):
        if state.prime[t] % 2 == 0:
            assert state.memory[t - 1] == state.prime[t]
        else:
            assert state.memory[t - 1] is None


@pytest.mark.asyncio
async def test_unique_bias_echo_rule():
    state = await run_async_simulation(20, 0, Bias.unique(), random.Random(5))
    for t in range(1, 20):
        if state.prime[t] != state.prime[t - 1]:
            assert state.memory[t - 1] == state.prime[t]
        else:
            assert state.memory[t - 1] is None


@pytest.mark.asyncio
async def test_output_lines(capsys):
    await run_async_simulation(6, 0, Bias.even(), random.Random(9))
    out = capsys.readouterr().out
    lines = out.splitlines()
    assert sum(line.startswith("[future  ]") for line in lines) == 7
    assert sum(line.startswith("[prime   ]") for line in lines) == 6
    assert sum(line.startswith("[report  ]") for line in lines) == 6
    assert "Final buffers:" in lines
    header = lines.index("t  | future | prime | memory")
    rows = lines[header + 1 :]
    assert len(rows) == 6
    assert rows[0].startswith(" 0 |")


@pytest.mark.asyncio
async def test_zero_ticks_still_predicts_once(capsys):
    state = await run_async_simulation(0, 0, Bias.even(), random.Random(1))
    assert state.future[1] is not None
    assert state.prime == [None]
    lines = capsys.readouterr().out.splitlines()
    assert lines[-1] == "t  | future | prime | memory"


def test_negative_ticks_rejected():
    with pytest.raises(ValueError):
        SimulationState(-1, Bias.even())


def test_negative_job_interval_rejected():
    with pytest.raises(ValueError):
        Job(-1.0, 0.0, lambda: False)


@pytest.mark.asyncio
async def test_scheduler_orders_by_due_time_and_removes_finished_jobs():
    order = []

    def make(name, runs):
        remaining = [runs]

        def callback():
            if remaining[0] == 0:
                return False
            remaining[0] -= 1
            order.append(name)
            return True

        return callback

    scheduler = Scheduler()
    scheduler.add_job(Job(0.02, 0.0, make("a", 3)))
    scheduler.add_job(Job(0.02, 0.01, make("b", 3)))
    await scheduler.run()
    assert order == ["a", "b", "a", "b", "a", "b"]
    assert scheduler.jobs == []


@pytest.mark.asyncio
async def test_empty_scheduler_returns():
    scheduler = Scheduler()
    await scheduler.run()
    assert scheduler.jobs == []
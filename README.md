# hyperclock

An event-driven, phased time engine built on `asyncio`.

A `SystemClock` produces `TickEvent`s at a configured rate. On every tick the
`HyperclockEngine` checks its conditional and calendar watchers, then walks
through the configured sequence of phases, running interval watchers and
broadcasting typed events. Your code registers watchers and subscribes to the
event streams it cares about.

## Installation

```
pip install .
```

For the test suite:

```
pip install .[test]
pytest
```

## Using the engine

```python
import asyncio
from hyperclock.config import HyperclockConfig
from hyperclock.common import PhaseId
from hyperclock.engine import HyperclockEngine

async def main():
    engine = HyperclockEngine(HyperclockConfig.default())
    engine.on_interval(PhaseId(0), 5.0, lambda: print("5 seconds passed in phase 0"))
    shutdown = asyncio.Event()
    asyncio.get_running_loop().call_later(12, shutdown.set)
    await engine.run(shutdown)

asyncio.run(main())
```

`HyperclockEngine.run(shutdown=None)` runs until the given `asyncio.Event` is
set; without one it runs until Ctrl+C. Registration and removal methods are
ordinary (non-async) calls:

- `on_interval(phase, interval, logic)` runs `logic` during `phase` each time
  `interval` (seconds or a `timedelta`) has elapsed; returns a `ListenerId`.
- `on_conditional(condition, logic, is_one_shot)` runs `logic` on every tick
  where `condition()` is true; a one-shot watcher is removed after it fires.
- `add_lifecycle_loop(phase, interval, steps, policy)` runs one step per
  interval, governed by `RepetitionPolicy.run_once()`, `run_n_times(n)` or
  `repeat()`; returns a `TaskId`.
- `remove_interval_listener`, `remove_conditional_listener` and
  `remove_lifecycle_loop` return whether something was removed.
- `handle_tick(tick)` and `handle_task_event(event)` process a single event
  without the clock, which is handy for driving the engine by hand.

### Event streams

Each `subscribe_*_events` method (`tick`, `phase`, `system`, `gong`, `task`,
`automation`, `conditional`, `user`) returns a `hyperclock.channels.Receiver`.
Use `await receiver.recv()`, `receiver.try_recv()` or `async for`. A receiver
keeps a bounded backlog; if it falls behind, `recv()` raises `Lagged` and then
continues with the newest values. `broadcast_user_event(UserEvent(name, payload))`
sends an event of your own.

Identifiers are issued by `hyperclock.common.SlotMap`: a removed listener's
`ListenerId` never matches a later one.

## Configuration

Build a configuration with `HyperclockConfig.default()` (low resolution, one
phase), `HyperclockConfig.from_dict(...)`, or read TOML with
`hyperclock.config.load_config(path)`:

```toml
resolution = "medium"          # ultra, high, medium, low
# resolution = { custom = { ticks_per_second = 10 } }

[[phases]]
id = 0
label = "logic"

[[phases]]
id = 1
label = "rendering"

[gong_config]
timezone = "UTC"
holidays = [{ name = "New Year's Day", date = 2026-01-01 }]
```

`ClockResolution` presets run at 120, 60, 30 and 1 ticks per second; a custom
rate of 0 never ticks. Phase ids range from 0 to 255.

## Commands

- `hyperdev [--duration S]` runs the engine with two phases, a 2-second
  counter, two conditions on that counter and a three-step lifecycle loop run
  twice, logging every system, task, automation and conditional event. Without
  `--duration` it runs until Ctrl+C.
- `hypershell` starts the engine in the background and opens a prompt. Commands:
  `add interval <S>`, `list`, `remove interval <H>`, `start ticks`,
  `stop ticks`, `help` and `exit`. Set `QUIET_MODE` in the environment to skip
  the banner.
- `hyperclock-sim [--ticks N] [--seed N] [--bias even|odd|unique|none]` runs
  the three-buffer (future, prime, memory) simulation (10 ticks, even bias by
  default) and prints the buffers.
- `hyperclock-superclock [--period S] [--duration S]` runs lookahead, prime and
  memory clocks over one shared state until Ctrl+C or the duration ends.
- `hyperclock-multiclock [--period S] [--ticks N]` runs three independent
  counting clocks.

## The buffer simulations as a library

```python
import random
from hyperclock.simulation import Bias, Simulation

sim = Simulation(Bias.even(), random.Random(1))
sim.run_ticks(10)
print(sim.format_buffers())
```

`DecayingMirror` produces the future values: repeating the previous value is
likely at first, the chance decaying through 80, 70, 60 and 50 percent.
`hyperclock.async_simulation.run_async_simulation(max_ticks, period, bias, rng)`
runs the same scheme as three offset jobs on a `Scheduler`, prints each step
and the final buffers, and returns the `SimulationState`.

## What it does not do

- Calendar watching only reports date changes (`DateChanged`) and configured
  holidays (`HolidayReached`). `TimeOfDayReached` and `WorkdayMilestoneReached`
  exist as types, and `workday_milestones` is read from the configuration, but
  the engine never emits those events.
- `TaskScheduled` and `TaskCompleted` are defined but not emitted; lifecycle
  progress is reported through the automation stream instead.
- Nothing is persisted: watchers and loops live only as long as the engine.
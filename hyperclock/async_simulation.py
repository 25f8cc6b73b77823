"""The three-buffer simulation driven by offset jobs on a common tick interval.

The future job predicts values one tick ahead, the prime job runs one interval
later and chooses a value using the prediction, and the memory job runs
another interval later to report what was echoed.
"""

from __future__ import annotations

import asyncio
import random
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import timedelta

from .simulation import Bias, DecayingMirror

__all__ = ["SimulationState", "Job", "Scheduler", "run_async_simulation"]


def _debug(value: int | None) -> str:
    return "None" if value is None else f"Some({value})"


def _seconds(value: float | timedelta) -> float:
    seconds = value.total_seconds() if isinstance(value, timedelta) else float(value)
    if seconds < 0:
        raise ValueError("durations must not be negative")
    return seconds


@dataclass
class SimulationState:
    """Buffers shared by the scheduled jobs.

    ``future[t + 1]`` holds the prediction for tick ``t``, ``prime[t]`` the value
    chosen at ``t`` and ``memory[t]`` an echo of ``prime[t + 1]`` when it
    satisfies the bias.
    """

    max_ticks: int
    bias: Bias
    rng: random.Random = field(default_factory=random.Random)
    decaying: DecayingMirror = field(init=False)
    future: list[int | None] = field(init=False)
    prime: list[int | None] = field(init=False)
    memory: list[int | None] = field(init=False)
    future_tick: int = field(init=False, default=0)
    prime_tick: int = field(init=False, default=0)
    memory_tick: int = field(init=False, default=0)

    def __post_init__(self) -> None:
        if self.max_ticks < 0:
            raise ValueError("max_ticks must not be negative")
        self.decaying = DecayingMirror(self.rng)
        self.future = [None] * (self.max_ticks + 2)
        self.prime = [None] * (self.max_ticks + 1)
        self.memory = [None] * (self.max_ticks + 1)

    def _future_job(self) -> bool:
        if self.future_tick > self.max_ticks:
            return False
        predicted = self.decaying.next()
        if self.future_tick + 1 < len(self.future):
            self.future[self.future_tick + 1] = predicted
        print(f"[future  ] t={self.future_tick} predicted {predicted}")
        self.future_tick += 1
        return True

    def _choose(self, candidate: int, predicted: int, prev_prime: int | None) -> int:
        if candidate == predicted:
            return candidate
        candidate_valid = self.bias.check(candidate, prev_prime)
        future_valid = self.bias.check(predicted, prev_prime)
        if candidate_valid:
            return candidate
        if future_valid:
            return predicted if self.rng.random() < 0.75 else candidate
        return candidate if self.rng.random() < 0.5 else predicted

    def _prime_job(self) -> bool:
        if self.prime_tick >= self.max_ticks:
            return False
        t = self.prime_tick
        predicted = self.future[t + 1]
        if predicted is None:
            raise RuntimeError("prediction missing")
        candidate = self.rng.randrange(10)
        prev_prime = self.prime[t - 1] if t > 0 else None
        chosen = self._choose(candidate, predicted, prev_prime)
        self.prime[t] = chosen
        print(f"[prime   ] t={t} prime {chosen} (pred={predicted}, cand={candidate})")
        if t > 0 and self.bias.check(chosen, prev_prime):
            self.memory[t - 1] = chosen
            print(f"[memory  ] t={t - 1} echo {chosen}")
        self.prime_tick += 1
        return True

    def _memory_job(self) -> bool:
        if self.memory_tick >= self.max_ticks:
            return False
        t = self.memory_tick
        value = self.memory[t]
        print(f"[report  ] t={t} memory={'None' if value is None else value}")
        self.memory_tick += 1
        return True

    def _format_buffers(self) -> str:
        lines = ["t  | future | prime | memory"]
        for t in range(self.max_ticks):
            future = self.future[t + 1] if t + 1 < len(self.future) else None
            lines.append(
                f"{t:2} |   {_debug(future)}   |  {_debug(self.prime[t])}  |   "
                f"{_debug(self.memory[t])}"
            )
        return "\n".join(lines)


@dataclass(eq=False)
class Job:
    """A callback run every ``interval`` seconds, first after ``offset`` seconds.

    The callback returns True to keep running and False to be removed.
    """

    interval: float
    offset: float
    callback: Callable[[], bool]
    next_run: float = field(init=False)

    def __post_init__(self) -> None:
        self.interval = _seconds(self.interval)
        self.offset = _seconds(self.offset)
        self.next_run = time.monotonic() + self.offset


class Scheduler:
    """Runs jobs in order of their next due time until every job has finished."""

    def __init__(self) -> None:
        self.jobs: list[Job] = []

    def add_job(self, job: Job) -> None:
        self.jobs.append(job)

    async def run(self) -> None:
        """Run due jobs one at a time; return once no jobs remain."""
        while self.jobs:
            job = min(self.jobs, key=lambda j: j.next_run)
            await asyncio.sleep(max(0.0, job.next_run - time.monotonic()))
            if job.callback():
                job.next_run += job.interval
            else:
                self.jobs.remove(job)


async def run_async_simulation(
    max_ticks: int,
    period: float | timedelta,
    bias: Bias,
    rng: random.Random | None = None,
) -> SimulationState:
    """Run the simulation for ``max_ticks`` prime ticks, print the buffers and return them."""
    seconds = _seconds(period)
    state = SimulationState(max_ticks, bias, rng if rng is not None else random.Random())

    scheduler = Scheduler()
    scheduler.add_job(Job(seconds, 0.0, state._future_job))
    scheduler.add_job(Job(seconds, seconds, state._prime_job))
    scheduler.add_job(Job(seconds, seconds * 2, state._memory_job))
    await scheduler.run()

    print("\nFinal buffers:")
    print(state._format_buffers())
    return state
"""Independent counting clocks with equal periods and different start offsets."""

from __future__ import annotations

import argparse
import asyncio
from collections.abc import Callable, Sequence
from dataclasses import dataclass

__all__ = ["CounterClock", "main"]


@dataclass
class CounterClock:
    """A clock ticking every ``interval`` seconds after ``offset``, with a counter buffer."""

    name: str
    interval: float
    offset: float
    buffer: int = 0

    def __post_init__(self) -> None:
        if self.interval < 0 or self.offset < 0:
            raise ValueError("interval and offset must not be negative")

    async def run(
        self, callback: Callable[[CounterClock], object], max_ticks: int | None = None
    ) -> int:
        """Call ``callback(self)`` on each tick; stop after ``max_ticks`` if given.

        Returns the number of ticks run.
        """
        if max_ticks is not None and max_ticks < 0:
            raise ValueError("max_ticks must not be negative")
        loop = asyncio.get_running_loop()
        next_tick = loop.time() + self.offset
        ticks = 0
        while max_ticks is None or ticks < max_ticks:
            await asyncio.sleep(max(0.0, next_tick - loop.time()))
            callback(self)
            ticks += 1
            next_tick += self.interval
        return ticks


def _count_tick(clock: CounterClock) -> None:
    clock.buffer += 1
    print(f"{clock.name} tick: buffer = {clock.buffer}")


async def _run(period: float, ticks: int | None) -> None:
    clocks = [
        CounterClock("prime", period, 0.0),
        CounterClock("lookahead", period, period),
        CounterClock("memory", period, 0.0),
    ]
    await asyncio.gather(*(clock.run(_count_tick, ticks) for clock in clocks))


def main(argv: Sequence[str] | None = None) -> int:
    """Run the prime, lookahead and memory clocks until Ctrl+C or ``--ticks`` ticks."""
    parser = argparse.ArgumentParser(description="Run three offset counting clocks.")
    parser.add_argument("--period", type=float, default=1.0)
    parser.add_argument("--ticks", type=int, default=None)
    args = parser.parse_args(argv)
    if args.period < 0:
        parser.error("--period must not be negative")
    if args.ticks is not None and args.ticks < 0:
        parser.error("--ticks must not be negative")
    try:
        asyncio.run(_run(args.period, args.ticks))
    except KeyboardInterrupt:
        pass
    return 0
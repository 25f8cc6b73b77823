"""Concurrent offset clocks sharing state and stopping on a shutdown signal."""

from __future__ import annotations

import argparse
import asyncio
import signal
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

__all__ = ["SharedState", "TemporalClock", "Engine", "main"]


@dataclass
class SharedState:
    """Buffers every clock can read and write."""

    lookahead_buffer: int = 0
    prime_buffer: int = 0
    memory_buffer: int = 0


async def _stopped_within(shutdown: asyncio.Event, delay: float) -> bool:
    if shutdown.is_set():
        return True
    if delay <= 0:
        await asyncio.sleep(0)
        return shutdown.is_set()
    try:
        await asyncio.wait_for(shutdown.wait(), delay)
    except TimeoutError:
        return False
    return True


@dataclass(frozen=True)
class TemporalClock:
    """A clock ticking every ``interval`` seconds, starting ``offset`` seconds from now."""

    name: str
    interval: float
    offset: float

    def __post_init__(self) -> None:
        if self.interval < 0 or self.offset < 0:
            raise ValueError("interval and offset must not be negative")

    def spawn_task(
        self,
        callback: Callable[[str], Awaitable[object]],
        shutdown: asyncio.Event,
    ) -> asyncio.Task[None]:
        """Start the clock loop; it awaits ``callback(name)`` each tick until shutdown."""
        loop = asyncio.get_running_loop()
        start = loop.time() + self.offset

        async def run() -> None:
            print(f"[{self.name}] Clock task started.")
            next_tick = start
            while not await _stopped_within(shutdown, next_tick - loop.time()):
                await callback(self.name)
                next_tick += self.interval
            print(f"[{self.name}] Shutting down...")

        return asyncio.create_task(run())


class Engine:
    """Runs the lookahead, prime and memory clocks over one shared state."""

    def __init__(self) -> None:
        self.state = SharedState()
        self._lock = asyncio.Lock()

    async def _lookahead(self, _name: str) -> None:
        async with self._lock:
            self.state.lookahead_buffer += 1
            print(f"[Lookahead] Tick. New buffer value: {self.state.lookahead_buffer}")

    async def _prime(self, _name: str) -> None:
        async with self._lock:
            future_value = self.state.lookahead_buffer
            print(f"[Prime] Tick. Read lookahead value: {future_value}. Applying logic...")
            self.state.prime_buffer = future_value

    async def _memory(self, _name: str) -> None:
        async with self._lock:
            prime_value = self.state.prime_buffer
            print(f"[Memory] Tick. Read prime value: {prime_value}. Storing in memory...")
            self.state.memory_buffer = prime_value

    async def run(self, shutdown: asyncio.Event | None = None, period: float = 2.0) -> None:
        """Run the clocks until ``shutdown`` is set, or until Ctrl+C without one."""
        if period < 0:
            raise ValueError("period must not be negative")
        print("Engine starting... Press Ctrl+C to exit.")
        loop = asyncio.get_running_loop()
        stop = shutdown if shutdown is not None else asyncio.Event()
        handles_signal = False
        if shutdown is None:
            try:
                loop.add_signal_handler(signal.SIGINT, stop.set)
                handles_signal = True
            except (NotImplementedError, RuntimeError):
                handles_signal = False

        clocks = [
            (TemporalClock("Lookahead", period, period), self._lookahead),
            (TemporalClock("Prime", period, 0.0), self._prime),
            (TemporalClock("Memory", period, 0.0), self._memory),
        ]
        tasks = [clock.spawn_task(callback, stop) for clock, callback in clocks]
        try:
            await stop.wait()
            print("\nShutdown signal received. Broadcasting to all tasks...")
            await asyncio.gather(*tasks)
        finally:
            for task in tasks:
                task.cancel()
            if handles_signal:
                loop.remove_signal_handler(signal.SIGINT)
        print("Engine stopped.")


async def _run(period: float, duration: float | None) -> None:
    shutdown: asyncio.Event | None = None
    if duration is not None:
        shutdown = asyncio.Event()
        asyncio.get_running_loop().call_later(duration, shutdown.set)
    await Engine().run(shutdown, period)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the engine until Ctrl+C, or for ``--duration`` seconds."""
    parser = argparse.ArgumentParser(description="Run three offset clocks over shared state.")
    parser.add_argument("--period", type=float, default=2.0)
    parser.add_argument("--duration", type=float, default=None)
    args = parser.parse_args(argv)
    if args.period < 0:
        parser.error("--period must not be negative")
    if args.duration is not None and args.duration < 0:
        parser.error("--duration must not be negative")
    try:
        asyncio.run(_run(args.period, args.duration))
    except KeyboardInterrupt:
        pass
    return 0
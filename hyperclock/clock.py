"""The system clock and the raw tick events it emits."""

from __future__ import annotations

import asyncio
import logging
import math
import time
from dataclasses import dataclass

from .channels import Broadcast, ChannelClosed
from .config import ClockResolution

__all__ = ["TickEvent", "SystemClock"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TickEvent:
    """A raw tick: its number since the clock started and its monotonic time."""

    tick_count: int
    timestamp: float


class SystemClock:
    """Emits :class:`TickEvent` values at the configured resolution."""

    def __init__(self, resolution: ClockResolution, tick_sender: Broadcast[TickEvent]) -> None:
        self.resolution = resolution
        self.tick_sender = tick_sender

    async def run(self, shutdown: asyncio.Event) -> None:
        """Tick until ``shutdown`` is set or the tick channel closes.

        Missed deadlines are caught up in a burst, as a fixed-rate timer would.
        """
        period = self.resolution.to_duration()
        if math.isinf(period):
            await shutdown.wait()
            return

        loop = asyncio.get_running_loop()
        deadline = loop.time() + period
        tick_count = 0
        while not shutdown.is_set():
            delay = deadline - loop.time()
            if delay > 0:
                try:
                    await asyncio.wait_for(shutdown.wait(), timeout=delay)
                except TimeoutError:
                    pass
                else:
                    break
            else:
                await asyncio.sleep(0)
                if shutdown.is_set():
                    break

            tick_count += 1
            event = TickEvent(tick_count=tick_count, timestamp=time.monotonic())
            try:
                delivered = self.tick_sender.send(event)
            except ChannelClosed:
                return
            if delivered == 0:
                logger.warning(
                    "No active subscribers for TickEvent. This may be normal during startup/shutdown."
                )
            deadline += period
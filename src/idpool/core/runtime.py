"""Cycle rollover driver.

Sleeps until each cycle boundary, then rolls the allocator over and loads the
bucket map of the new cycle.  The allocator itself never schedules anything;
this loop is one possible trigger and can be replaced by cron, a service
scheduler or a manual call to :meth:`CycleRunner.advance`.
"""

from __future__ import annotations

import logging
from datetime import datetime

import anyio
import anyio.to_thread

from idpool.core.allocator import Allocator

logger = logging.getLogger(__name__)


class CycleRunner:
    """Drives rollover for an :class:`Allocator` at every cycle boundary."""

    def __init__(self, allocator: Allocator) -> None:
        self._allocator = allocator
        self._shutdown: anyio.Event | None = None
        self._stopping = False
        self.cycles_completed = 0

    # -- Public API -------------------------------------------------------

    async def run(self) -> None:
        """Advance at each boundary until :meth:`stop` is called.

        Errors from rollover or load are logged and re-raised; the loop does
        not retry.
        """
        self._shutdown = anyio.Event()
        if self._stopping:
            return

        logger.info("Cycle runner started")
        last_start = self._allocator.cycle_start(0)
        while not self._shutdown.is_set():
            # never re-enter a cycle already advanced to, even if woken early
            next_start = max(
                self._allocator.cycle_start(1),
                last_start + self._allocator.clock.cycle_duration,
            )
            delay = max((next_start - self._allocator.clock.now()).total_seconds(), 0.0)
            logger.debug("Next cycle at %s (in %.3fs)", next_start.isoformat(), delay)

            with anyio.move_on_after(delay):
                await self._shutdown.wait()
            if self._shutdown.is_set():
                break

            await self.advance(next_start)
            last_start = next_start

        logger.info("Cycle runner stopped after %d cycles", self.cycles_completed)

    async def advance(self, start: datetime | None = None) -> None:
        """Roll the pool over and load the cycle beginning at *start*.

        *start* defaults to the start of the current cycle.
        """
        if start is None:
            start = self._allocator.cycle_start(0)
        try:
            await anyio.to_thread.run_sync(self._allocator.rollover)
            await anyio.to_thread.run_sync(self._allocator.load, start)
        except Exception:
            logger.exception("Cycle advance to %s failed", start.isoformat())
            raise
        self.cycles_completed += 1

    def stop(self) -> None:
        """Request the run loop to exit.  Safe to call before :meth:`run`."""
        self._stopping = True
        if self._shutdown is not None:
            self._shutdown.set()

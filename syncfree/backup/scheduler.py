"""Recurring backup timer."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from syncfree.errors import BackupInProgressError

logger = logging.getLogger(__name__)


class BackupScheduler:
    """Holds at most one recurring timer that triggers backups.

    Each firing starts the backup as its own task, so cancelling the timer
    never interrupts a backup that is already running.
    """

    def __init__(self, run: Callable[[], Awaitable[object]], seconds_per_minute: float = 60.0) -> None:
        self._run = run
        self._seconds_per_minute = seconds_per_minute
        self._timer: asyncio.Task[None] | None = None
        self._in_flight: set[asyncio.Task[None]] = set()
        self.frequency_minutes: int | None = None

    @property
    def active(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def reconfigure(self, enabled: bool, frequency_minutes: int) -> None:
        """Cancel any existing timer, then start a new one if enabled."""
        self.cancel()

        if not enabled:
            logger.info("Automatic backups disabled")
            return

        interval = frequency_minutes * self._seconds_per_minute
        self.frequency_minutes = frequency_minutes
        self._timer = asyncio.create_task(self._tick(interval))
        logger.info(f"Automatic backups configured for every {frequency_minutes} minutes")

    def cancel(self) -> None:
        """Stop the timer. In-flight backups keep running."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self.frequency_minutes = None

    async def shutdown(self) -> None:
        """Stop the timer and wait for in-flight scheduled backups."""
        timer = self._timer
        self.cancel()
        if timer is not None:
            try:
                await timer
            except asyncio.CancelledError:
                pass

        if self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)
        logger.info("Backup scheduler stopped")

    async def _tick(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            task = asyncio.create_task(self._fire())
            self._in_flight.add(task)
            task.add_done_callback(self._in_flight.discard)

    async def _fire(self) -> None:
        logger.info("Timer fired: starting scheduled backup")
        try:
            await self._run()
        except BackupInProgressError:
            logger.info("Skipping scheduled backup: another backup is still running")
        except Exception:
            logger.exception("Scheduled backup failed")

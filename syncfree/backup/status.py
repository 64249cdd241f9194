"""Passive status text reflecting the current backup run."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)

IDLE_TEXT = "SyncFree Ready"
IN_PROGRESS_TEXT = "SyncFree: Backup in progress..."
COMPLETE_TEXT = "SyncFree: Backup complete"
FAILED_TEXT = "SyncFree: Backup failed"

# Seconds the completion message stays visible
REVERT_AFTER = 5.0


class BackupStatus:
    """Status line with an automatic revert to idle after success."""

    def __init__(
        self,
        revert_after: float = REVERT_AFTER,
        on_change: Callable[[str], None] | None = None,
    ) -> None:
        self.text = IDLE_TEXT
        self.revert_after = revert_after
        self._on_change = on_change
        self._revert: asyncio.TimerHandle | None = None

    def set(self, text: str) -> None:
        self._cancel_revert()
        self._update(text)

    def in_progress(self) -> None:
        self.set(IN_PROGRESS_TEXT)

    def succeeded(self) -> None:
        self.set(COMPLETE_TEXT)
        loop = asyncio.get_running_loop()
        self._revert = loop.call_later(self.revert_after, self._update, IDLE_TEXT)

    def failed(self, error: BaseException) -> None:
        self.set(f"{FAILED_TEXT}: {error}")

    def _cancel_revert(self) -> None:
        if self._revert is not None:
            self._revert.cancel()
            self._revert = None

    def _update(self, text: str) -> None:
        self.text = text
        if self._on_change is not None:
            self._on_change(text)

"""Backup orchestrator: filter -> archive -> upload for one run."""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING

from syncfree.backup.archive import ARCHIVE_CONTENT_TYPE, ArchiveResult, build_archive
from syncfree.backup.filter import filter_files
from syncfree.backup.status import BackupStatus
from syncfree.errors import ArchiveError, BackupInProgressError

if TYPE_CHECKING:
    from syncfree.config import SettingsStore
    from syncfree.storage.r2 import R2StorageClient
    from syncfree.vault import FileStore

logger = logging.getLogger(__name__)

BACKUP_FILE_PREFIX = "obsidian-backup-"
DOTENV_FILENAME = ".env"


class RunStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class BackupRun:
    """Outcome of one backup invocation (not persisted)."""

    started_at: datetime
    key: str = ""
    status: RunStatus = RunStatus.IN_PROGRESS
    error: str | None = None
    file_count: int = 0
    size: int = 0


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 UTC timestamp with milliseconds, safe for object keys.

    2024-01-02T03:04:05.678Z -> 2024-01-02T03-04-05-678Z
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    iso = moment.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return re.sub(r"[:.]", "-", iso)


def build_object_key(backup_path: str, moment: datetime) -> str:
    """Object key for a backup taken at ``moment``.

    ``backup_path`` is an optional prefix; runs of '/' collapse to one.
    """
    filename = f"{BACKUP_FILE_PREFIX}{format_timestamp(moment)}.zip"
    backup_path = backup_path.strip()
    if not backup_path:
        return filename
    return re.sub(r"/+", "/", f"{backup_path}/{filename}")


def _utcnow() -> datetime:
    return datetime.now(UTC)


class BackupOrchestrator:
    """Coordinates one backup run at a time."""

    def __init__(
        self,
        store: SettingsStore,
        storage: R2StorageClient,
        vault: FileStore,
        status: BackupStatus | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self.storage = storage
        self.vault = vault
        self.status = status or BackupStatus()
        self._clock = clock
        self._running = False
        self.last_run: BackupRun | None = None

    @property
    def running(self) -> bool:
        return self._running

    def private_paths(self) -> set[str]:
        """Vault paths that never go into an archive, whatever the exclusions say.

        The settings document holds the credential set, and ``.env`` may hold
        SYNCFREE_* overrides. Both live in the vault when SyncFree runs from
        the vault directory.
        """
        private = {DOTENV_FILENAME}
        settings_entry = self.vault.relative_path(self._store.path)
        if settings_entry:
            private.add(settings_entry)
        return private

    def collect_files(self) -> list[str]:
        """Vault paths eligible for backup under the current exclusions."""
        try:
            paths = self.vault.list_files()
        except OSError as e:
            raise ArchiveError(f"Failed to list vault files: {e}") from e
        private = self.private_paths()
        return filter_files((path for path in paths if path not in private), self._store.settings.exclude_folders)

    def _build_archive(self) -> ArchiveResult:
        return build_archive(self.collect_files(), self.vault.read_bytes)

    async def run_backup(self) -> BackupRun:
        """Run a full backup.

        Raises:
            BackupInProgressError: Another run has not finished yet
            ConfigurationError / ConnectivityError: Precondition check failed
            ArchiveError: A vault file could not be read
            UploadError: The upload failed
        """
        # Checked and set with no await in between.
        if self._running:
            raise BackupInProgressError("A backup is already in progress")
        self._running = True

        run = BackupRun(started_at=self._clock())
        try:
            await asyncio.to_thread(self.storage.test_connection)
            self.status.in_progress()

            run.key = build_object_key(self._store.settings.backup_path, run.started_at)
            logger.info(f"Starting backup to {run.key}")

            archive = await asyncio.to_thread(self._build_archive)
            run.file_count = archive.file_count
            run.size = archive.compressed_size

            await asyncio.to_thread(self.storage.put_object, run.key, archive.data, ARCHIVE_CONTENT_TYPE)
        except Exception as e:
            run.status = RunStatus.FAILED
            run.error = str(e)
            self.status.failed(e)
            logger.error(f"Backup failed: {e}")
            raise
        else:
            run.status = RunStatus.SUCCEEDED
            self.status.succeeded()
            logger.info(f"Backup complete: {run.file_count} file(s), {run.size:,} bytes", extra={"object_key": run.key})
        finally:
            self._running = False
            self.last_run = run

        return run

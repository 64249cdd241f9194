"""SyncFree application: wires the components behind the user-facing triggers.

Triggers raise SyncFree errors to the caller; turning them into notices is the
surface's job (see ``syncfree.cli``).
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

from syncfree.auth.cloudflare import CloudflareApi
from syncfree.auth.flow import CallbackMessage, FlowState, TokenExchangeFlow
from syncfree.backup.orchestrator import BackupOrchestrator, BackupRun
from syncfree.backup.scheduler import BackupScheduler
from syncfree.backup.status import BackupStatus
from syncfree.config import SettingsStore, SyncFreeSettings
from syncfree.storage.credentials import CREDENTIAL_FIELDS, CredentialStore
from syncfree.storage.r2 import R2StorageClient
from syncfree.vault import FileStore, LocalVault

logger = logging.getLogger(__name__)

SCHEDULE_FIELDS = ("enable_auto_backup", "backup_frequency")


class SyncFreeApp:
    """Owns settings, credentials, the storage client and the backup machinery."""

    def __init__(
        self,
        store: SettingsStore,
        vault: FileStore | None = None,
        api: CloudflareApi | None = None,
        opener: Callable[[str], object] | None = None,
        status: BackupStatus | None = None,
        seconds_per_minute: float = 60.0,
    ) -> None:
        self.store = store
        settings = store.settings

        self.credentials = CredentialStore(store)
        self.storage = R2StorageClient(self.credentials, settings.network)
        self.vault = vault or LocalVault(Path(settings.vault_path))
        self.orchestrator = BackupOrchestrator(store, self.storage, self.vault, status=status)
        self.scheduler = BackupScheduler(self.orchestrator.run_backup, seconds_per_minute=seconds_per_minute)

        api = api or CloudflareApi(settings.oauth.api_base_url, timeout=settings.network.api_timeout)
        flow_kwargs: dict[str, Any] = {}
        if opener is not None:
            flow_kwargs["opener"] = opener
        self.flow = TokenExchangeFlow(store, self.credentials, api, settings.oauth, **flow_kwargs)

    @classmethod
    def from_path(cls, path: str | Path | None = None, **kwargs: Any) -> SyncFreeApp:
        """Load settings from a document and build the app."""
        store = SettingsStore(path)
        store.load()
        return cls(store, **kwargs)

    @property
    def settings(self) -> SyncFreeSettings:
        return self.store.settings

    @property
    def status(self) -> BackupStatus:
        return self.orchestrator.status

    # ── lifecycle ───────────────────────────────────────────────────────

    def start(self) -> None:
        """Arm the scheduler from the current settings. Needs a running loop."""
        self._configure_schedule()

    async def shutdown(self) -> None:
        await self.scheduler.shutdown()

    def _configure_schedule(self) -> None:
        self.scheduler.reconfigure(self.settings.enable_auto_backup, self.settings.backup_frequency)

    # ── settings ────────────────────────────────────────────────────────

    def update_settings(self, **changes: Any) -> SyncFreeSettings:
        """Persist setting changes.

        Credential fields go through the credential store so the storage
        client is invalidated. The scheduler is reconfigured when it is
        running and a schedule field changed.
        """
        credential_changes = {k: changes.pop(k) for k in list(changes) if k in CREDENTIAL_FIELDS}
        if credential_changes:
            self.credentials.update(**credential_changes)
        if changes:
            self.store.update(**changes)

        if self._loop_running() and any(field in changes for field in SCHEDULE_FIELDS):
            self._configure_schedule()
        return self.settings

    @staticmethod
    def _loop_running() -> bool:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return False
        return True

    # ── triggers ────────────────────────────────────────────────────────

    async def backup_now(self) -> BackupRun:
        return await self.orchestrator.run_backup()

    async def test_connection(self) -> None:
        await asyncio.to_thread(self.storage.test_connection)

    async def refresh_buckets(self) -> list[str]:
        """Fetch the bucket list into settings.

        Issues a key pair from the bearer token first when none is stored.
        """
        if not self.credentials.has_key_pair():
            await self.flow.issue_keys()

        buckets = await asyncio.to_thread(self.storage.list_buckets)
        self.store.update(available_buckets=buckets)
        if not buckets:
            logger.warning("No R2 buckets found in your account. Please create a bucket first.")
        return buckets

    def connect(self) -> str:
        """Start a token exchange. Returns the authorization URL."""
        return self.flow.start()

    async def handle_callback(self, message: CallbackMessage) -> FlowState | None:
        """Feed a callback to the flow; refresh buckets once keys are issued."""
        state = await self.flow.handle_callback(message)
        if state == FlowState.KEYS_ISSUED:
            await self.refresh_buckets()
        return state

    def disconnect(self) -> None:
        """Forget the Cloudflare connection and all credentials."""
        self.credentials.clear()
        logger.info("Disconnected from Cloudflare account")

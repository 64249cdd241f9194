"""Configuration for SyncFree.

Usage:
    from syncfree.config import SettingsStore

    store = SettingsStore()
    settings = store.load()
    settings.bucket_name        # "my-obsidian-backups"
    store.update(backup_frequency=120)
"""

from __future__ import annotations

from syncfree.config._loader import CONFIG_FILENAME, SettingsStore, find_config_file
from syncfree.config._sections import NetworkSettings, OAuthSettings
from syncfree.config._settings import (
    DEFAULT_EXCLUDE_FOLDERS,
    MAX_BACKUP_FREQUENCY,
    MIN_BACKUP_FREQUENCY,
    SyncFreeSettings,
)

__all__ = [
    "CONFIG_FILENAME",
    "DEFAULT_EXCLUDE_FOLDERS",
    "MAX_BACKUP_FREQUENCY",
    "MIN_BACKUP_FREQUENCY",
    "NetworkSettings",
    "OAuthSettings",
    "SettingsStore",
    "SyncFreeSettings",
    "find_config_file",
]

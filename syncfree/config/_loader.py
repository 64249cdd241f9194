"""Settings document discovery, loading and saving."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from syncfree.config._settings import SyncFreeSettings
from syncfree.errors import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "syncfree.yaml"

# Field name -> key used in the persisted document.
DOCUMENT_KEYS: dict[str, str] = {
    "account_id": "accountId",
    "access_key_id": "accessKeyId",
    "secret_access_key": "secretAccessKey",
    "auth_token": "authToken",
    "bucket_name": "bucketName",
    "backup_path": "backupPath",
    "available_buckets": "availableBuckets",
    "vault_path": "vaultPath",
    "exclude_folders": "excludeFolders",
    "enable_auto_backup": "enableAutoBackup",
    "backup_frequency": "backupFrequency",
    "oauth_state": "oauthState",
    "oauth": "oauth",
    "network": "network",
}
_FIELD_NAMES = {key: name for name, key in DOCUMENT_KEYS.items()}


def find_config_file() -> Path | None:
    """Find syncfree.yaml using search order:
    1. SYNCFREE_CONFIG env var (explicit path)
    2. ./syncfree.yaml (CWD)
    3. ./syncfree.yml (CWD alt)
    4. ~/.syncfree/syncfree.yaml (user home)
    """
    explicit = os.environ.get("SYNCFREE_CONFIG")
    if explicit:
        return Path(explicit)

    candidates = [
        Path.cwd() / CONFIG_FILENAME,
        Path.cwd() / "syncfree.yml",
        Path.home() / ".syncfree" / CONFIG_FILENAME,
    ]
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    return None


def document_to_fields(document: dict[str, Any]) -> dict[str, Any]:
    """Translate persisted keys to model field names, dropping unknown keys."""
    fields: dict[str, Any] = {}
    for key, value in document.items():
        name = _FIELD_NAMES.get(key, key)
        if name in SyncFreeSettings.model_fields and value is not None:
            fields[name] = value
    return fields


def fields_to_document(settings: SyncFreeSettings) -> dict[str, Any]:
    """Dump settings using the persisted key names."""
    data = settings.model_dump(mode="json")
    return {DOCUMENT_KEYS[name]: value for name, value in data.items() if name in DOCUMENT_KEYS}


class SettingsStore:
    """Owns the settings singleton and its backing YAML document.

    Settings are loaded merged over defaults and written back after every
    mutation.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        if path is None:
            path = find_config_file() or Path.cwd() / CONFIG_FILENAME
        self.path = Path(path)
        self.settings = SyncFreeSettings()

    def load(self) -> SyncFreeSettings:
        """Read the document (if any) and merge it over defaults."""
        document: dict[str, Any] = {}
        if self.path.is_file():
            with open(self.path) as f:
                data = yaml.safe_load(f)
            if isinstance(data, dict):
                document = data
            elif data is not None:
                logger.warning(f"Ignoring malformed settings document {self.path}")

        try:
            self.settings = SyncFreeSettings(**document_to_fields(document))
        except ValidationError as e:
            raise ConfigurationError(f"Invalid settings in {self.path}: {e}") from e

        logger.debug(f"Loaded settings from {self.path}")
        return self.settings

    def save(self) -> None:
        """Write the current settings to the document."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            yaml.safe_dump(fields_to_document(self.settings), f, sort_keys=False)
        logger.debug(f"Saved settings to {self.path}")

    def update(self, **changes: Any) -> SyncFreeSettings:
        """Apply field changes, validate them and persist.

        Raises:
            ConfigurationError: Unknown field or invalid value
        """
        unknown = [name for name in changes if name not in SyncFreeSettings.model_fields]
        if unknown:
            raise ConfigurationError(f"Unknown setting: {', '.join(unknown)}")

        # Validate the whole change set before touching the live settings.
        try:
            candidate = SyncFreeSettings.model_validate({**self.settings.model_dump(), **changes})
        except ValidationError as e:
            raise ConfigurationError(f"Invalid settings: {e}") from e

        for name in changes:
            setattr(self.settings, name, getattr(candidate, name))
        self.save()
        return self.settings

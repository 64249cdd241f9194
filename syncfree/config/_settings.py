"""Root SyncFreeSettings model."""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from syncfree.backup.filter import parse_exclude_patterns
from syncfree.config._sections import NetworkSettings, OAuthSettings

MIN_BACKUP_FREQUENCY = 15
MAX_BACKUP_FREQUENCY = 1440

DEFAULT_EXCLUDE_FOLDERS = ".git,.obsidian/plugins,node_modules"


class SyncFreeSettings(BaseSettings):
    model_config = {
        "env_prefix": "SYNCFREE_",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
        "extra": "ignore",
        "validate_assignment": True,
    }

    # Credentials
    account_id: str = ""
    access_key_id: str = ""
    secret_access_key: str = ""
    auth_token: str = ""

    # Target
    bucket_name: str = ""
    backup_path: str = ""
    available_buckets: list[str] = Field(default_factory=list)

    # Behavior
    vault_path: str = "."
    exclude_folders: str = DEFAULT_EXCLUDE_FOLDERS
    enable_auto_backup: bool = False
    backup_frequency: int = 60  # minutes

    # Pending token exchange
    oauth_state: str = ""

    oauth: OAuthSettings = Field(default_factory=OAuthSettings)
    network: NetworkSettings = Field(default_factory=NetworkSettings)

    @field_validator("backup_frequency")
    @classmethod
    def _clamp_frequency(cls, value: int) -> int:
        return max(MIN_BACKUP_FREQUENCY, min(MAX_BACKUP_FREQUENCY, value))

    @property
    def exclude_patterns(self) -> list[str]:
        """Exclusion prefixes parsed from the raw comma-separated setting."""
        return parse_exclude_patterns(self.exclude_folders)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Values read from the settings document arrive as init kwargs.
        return (
            env_settings,
            init_settings,
        )

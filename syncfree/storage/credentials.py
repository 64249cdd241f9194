"""Credential store: the single active credential set.

Every mutation persists the settings document and bumps ``generation``.
Anything derived from the credentials (the storage client) records the
generation it was built from and must be rebuilt once it changes.
"""

from __future__ import annotations

import logging

from syncfree.config import SettingsStore, SyncFreeSettings

logger = logging.getLogger(__name__)

CREDENTIAL_FIELDS = ("account_id", "access_key_id", "secret_access_key", "auth_token", "bucket_name")


class CredentialStore:
    """Holds the account id, key pair, bearer token and bucket name."""

    def __init__(self, store: SettingsStore) -> None:
        self._store = store
        self.generation = 0

    @property
    def settings(self) -> SyncFreeSettings:
        return self._store.settings

    @property
    def account_id(self) -> str:
        return self.settings.account_id

    @property
    def access_key_id(self) -> str:
        return self.settings.access_key_id

    @property
    def secret_access_key(self) -> str:
        return self.settings.secret_access_key

    @property
    def bearer_token(self) -> str:
        return self.settings.auth_token

    @property
    def bucket_name(self) -> str:
        return self.settings.bucket_name

    def has_key_pair(self) -> bool:
        return bool(self.access_key_id and self.secret_access_key)

    def has_bearer_token(self) -> bool:
        return bool(self.bearer_token)

    def has_usable_credentials(self) -> bool:
        """True only when account id, key pair and bucket are all set.

        A bearer token alone is not usable for the S3 protocol; it has to be
        exchanged for a key pair first.
        """
        return bool(self.account_id and self.has_key_pair() and self.bucket_name)

    def set_keys(self, access_key_id: str, secret_access_key: str) -> None:
        self._apply(access_key_id=access_key_id, secret_access_key=secret_access_key)

    def set_bearer_token(self, token: str) -> None:
        self._apply(auth_token=token)

    def set_account_id(self, account_id: str) -> None:
        self._apply(account_id=account_id)

    def set_bucket(self, bucket_name: str) -> None:
        self._apply(bucket_name=bucket_name)

    def update(self, **fields: str) -> None:
        """Set several credential fields at once (manual entry)."""
        unknown = set(fields) - set(CREDENTIAL_FIELDS)
        if unknown:
            raise ValueError(f"Not credential fields: {', '.join(sorted(unknown))}")
        self._apply(**fields)

    def clear(self) -> None:
        """Forget the whole credential set and the cached bucket list."""
        self._apply(
            account_id="",
            access_key_id="",
            secret_access_key="",
            auth_token="",
            available_buckets=[],
        )
        logger.info("Credentials cleared")

    def invalidate(self) -> None:
        """Mark derived state stale without changing any value."""
        self.generation += 1

    def _apply(self, **fields: object) -> None:
        # Invalidate before persisting so no reader can pair new values with an old client.
        self.invalidate()
        self._store.update(**fields)
        logger.debug(f"Credentials updated: {', '.join(sorted(fields))} (generation {self.generation})")

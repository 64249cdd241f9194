"""Exception types raised by SyncFree components."""

from __future__ import annotations


class SyncFreeError(Exception):
    """Base class for all SyncFree errors."""


class ConfigurationError(SyncFreeError):
    """A required setting is missing or blank."""


class ConnectivityError(SyncFreeError):
    """Talking to the object store failed (network or auth)."""


class UploadError(SyncFreeError):
    """The archive upload itself failed."""


class ArchiveError(SyncFreeError):
    """The archive could not be built."""


class BackupInProgressError(SyncFreeError):
    """A backup run is already in flight."""


class AuthorizationError(SyncFreeError):
    """Base class for token exchange failures."""


class CsrfMismatchError(AuthorizationError):
    """The callback echoed a state value that does not match the pending nonce."""


class NoAccountError(AuthorizationError):
    """The bearer token does not give access to any account."""


class TokenExchangeError(AuthorizationError):
    """The account API rejected a request or could not be reached."""

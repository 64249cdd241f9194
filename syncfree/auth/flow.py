"""Token exchange flow: browser login -> bearer token -> R2 key pair.

The flow is an explicit state machine with a single pending-exchange slot::

    IDLE -> AUTHORIZATION_REQUESTED -> AWAITING_CALLBACK
         -> VERIFIED -> ACCOUNT_RESOLVED -> KEYS_ISSUED
         (any step) -> FAILED

Callbacks arrive out-of-band as ``CallbackMessage`` objects. Only messages
from the trusted origin are considered, and only while an exchange is
pending. The stored nonce is cleared whatever the outcome.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import webbrowser
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING
from urllib.parse import urlencode

from syncfree.errors import AuthorizationError, CsrfMismatchError, TokenExchangeError

if TYPE_CHECKING:
    from syncfree.auth.cloudflare import CloudflareApi
    from syncfree.config import OAuthSettings, SettingsStore
    from syncfree.storage.credentials import CredentialStore

logger = logging.getLogger(__name__)


class FlowState(str, Enum):
    """States of a token exchange attempt."""

    IDLE = "idle"
    AUTHORIZATION_REQUESTED = "authorization_requested"
    AWAITING_CALLBACK = "awaiting_callback"
    VERIFIED = "verified"
    ACCOUNT_RESOLVED = "account_resolved"
    KEYS_ISSUED = "keys_issued"
    FAILED = "failed"


TERMINAL_STATES = frozenset({FlowState.KEYS_ISSUED, FlowState.FAILED})


@dataclass
class CallbackMessage:
    """A message posted back by the authorization redirect page."""

    origin: str
    token: str = ""
    state: str = ""


class TokenExchangeFlow:
    """Runs one authorization round-trip at a time."""

    def __init__(
        self,
        store: SettingsStore,
        credentials: CredentialStore,
        api: CloudflareApi,
        oauth: OAuthSettings,
        opener: Callable[[str], object] = webbrowser.open,
    ) -> None:
        self._store = store
        self._credentials = credentials
        self._api = api
        self._oauth = oauth
        self._opener = opener
        self.state = FlowState.IDLE
        self.error: Exception | None = None
        self._done = asyncio.Event()

    @property
    def pending(self) -> bool:
        return self.state == FlowState.AWAITING_CALLBACK

    def authorization_url(self, nonce: str) -> str:
        params = {
            "client_id": self._oauth.client_id,
            "redirect_uri": self._oauth.redirect_uri,
            "response_type": "token",
            "scope": self._oauth.scope,
            "state": nonce,
        }
        return f"{self._oauth.authorize_url}?{urlencode(params)}"

    def start(self) -> str:
        """Begin a new exchange, replacing any pending one.

        Returns:
            The authorization URL that was opened
        """
        if self.pending:
            logger.info("Replacing pending token exchange")

        self.error = None
        self._done = asyncio.Event()
        self._set_state(FlowState.AUTHORIZATION_REQUESTED)

        nonce = secrets.token_urlsafe(24)
        self._store.update(oauth_state=nonce)

        url = self.authorization_url(nonce)
        if not self._opener(url):
            logger.warning("Could not open a browser; open the authorization URL manually")
        self._set_state(FlowState.AWAITING_CALLBACK)
        return url

    async def handle_callback(self, message: CallbackMessage) -> FlowState | None:
        """Process a callback message.

        Returns:
            The terminal state, or None when the message was ignored

        Raises:
            CsrfMismatchError: The echoed state does not match the nonce
            NoAccountError: The token sees no accounts
            TokenExchangeError: An account API call failed
        """
        if message.origin != self._oauth.trusted_origin:
            logger.debug(f"Ignoring callback from untrusted origin {message.origin!r}")
            return None
        if not self.pending:
            logger.warning("Ignoring callback: no token exchange is pending")
            return None

        expected = self._store.settings.oauth_state
        try:
            if not expected or message.state != expected:
                raise CsrfMismatchError("OAuth state mismatch. Authentication failed.")
            self._set_state(FlowState.VERIFIED)
            if not message.token:
                raise TokenExchangeError("Callback did not carry a token")

            self._credentials.set_bearer_token(message.token)
            self._clear_nonce()

            account_id = await self._api.resolve_account_id(message.token)
            self._credentials.set_account_id(account_id)
            self._set_state(FlowState.ACCOUNT_RESOLVED)

            await self.issue_keys()
            self._set_state(FlowState.KEYS_ISSUED)
            logger.info(f"Connected to Cloudflare account {account_id}")
        except Exception as e:
            self.error = e
            self._set_state(FlowState.FAILED)
            logger.error(f"Token exchange failed: {e}")
            raise
        finally:
            self._clear_nonce()
            self._done.set()

        return self.state

    async def issue_keys(self) -> None:
        """Exchange the stored bearer token for a read+write R2 key pair.

        The bearer token is kept for later re-issuance.
        """
        creds = self._credentials
        if not creds.has_bearer_token() or not creds.account_id:
            raise AuthorizationError("Not properly authenticated with Cloudflare")

        keys = await self._api.create_r2_token(creds.bearer_token, creds.account_id, self._oauth.token_name)
        creds.set_keys(keys.access_key_id, keys.secret_access_key)
        logger.info("R2 API tokens created successfully")

    async def wait(self, timeout: float | None = None) -> FlowState:
        """Wait for the pending exchange to reach a terminal state.

        Raises:
            asyncio.TimeoutError: No callback arrived in time
            AuthorizationError: The exchange failed
        """
        await asyncio.wait_for(self._done.wait(), timeout)
        if self.state == FlowState.FAILED and self.error is not None:
            raise self.error
        return self.state

    def _clear_nonce(self) -> None:
        if self._store.settings.oauth_state:
            self._store.update(oauth_state="")

    def _set_state(self, state: FlowState) -> None:
        logger.debug(f"Token exchange: {self.state.value} -> {state.value}")
        self.state = state

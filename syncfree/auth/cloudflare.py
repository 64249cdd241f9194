"""Cloudflare account API calls used by the token exchange."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from syncfree.errors import NoAccountError, TokenExchangeError

logger = logging.getLogger(__name__)


@dataclass
class IssuedKeys:
    """An R2 access key pair issued from a bearer token."""

    access_key_id: str
    secret_access_key: str


class CloudflareApi:
    """Thin async client for the Cloudflare v4 REST API."""

    def __init__(
        self,
        base_url: str = "https://api.cloudflare.com/client/v4",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self, token: str) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
            headers={
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/json",
            },
        )

    async def _request(self, token: str, method: str, path: str, **kwargs) -> dict:
        try:
            async with self._client(token) as client:
                resp = await client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise TokenExchangeError(f"Cloudflare API request failed: {e}") from e

        if resp.status_code != 200:
            logger.error(f"Cloudflare API {method} {path} failed: {resp.status_code} {resp.text[:200]}")
            raise TokenExchangeError(f"Cloudflare API error: {resp.status_code}")

        try:
            return resp.json()
        except ValueError as e:
            raise TokenExchangeError(f"Cloudflare API returned invalid JSON for {path}") from e

    async def resolve_account_id(self, token: str) -> str:
        """Return the first account id the token can see.

        Raises:
            NoAccountError: The token sees no accounts
            TokenExchangeError: The request failed
        """
        data = await self._request(token, "GET", "/accounts")
        accounts = data.get("result") or []
        if not accounts:
            raise NoAccountError("No Cloudflare accounts found")
        if len(accounts) > 1:
            logger.info(f"Token sees {len(accounts)} accounts, using the first")
        return accounts[0]["id"]

    async def create_r2_token(self, token: str, account_id: str, name: str) -> IssuedKeys:
        """Issue a long-lived R2 key pair with read and write permissions."""
        data = await self._request(
            token,
            "POST",
            f"/accounts/{account_id}/r2/tokens",
            json={"name": name, "permissions": {"read": True, "write": True}},
        )
        result = data.get("result") or {}
        key_id = result.get("key_id")
        secret = result.get("secret")
        if not key_id or not secret:
            raise TokenExchangeError("Cloudflare did not return an R2 key pair")
        return IssuedKeys(access_key_id=key_id, secret_access_key=secret)

"""Cloudflare R2 storage client (S3-compatible)."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from syncfree.errors import ConfigurationError, ConnectivityError, UploadError

if TYPE_CHECKING:
    from syncfree.config import NetworkSettings
    from syncfree.storage.credentials import CredentialStore

logger = logging.getLogger(__name__)

R2_ENDPOINT_TEMPLATE = "https://{account_id}.r2.cloudflarestorage.com"
R2_REGION = "auto"


def endpoint_for(account_id: str) -> str:
    """Return the R2 S3 endpoint for an account."""
    return R2_ENDPOINT_TEMPLATE.format(account_id=account_id)


class R2StorageClient:
    """Lazily built, credential-bound handle to the R2 S3 API.

    The boto3 client is cached together with the credential generation it
    was created from. A stale client is discarded, never mutated.
    """

    def __init__(self, credentials: CredentialStore, network: NetworkSettings | None = None) -> None:
        self.credentials = credentials
        self._network = network
        self._client: Any = None
        self._built_for: tuple[int, str, str, str] | None = None

    @property
    def client(self) -> Any:
        """The boto3 S3 client for the current credentials."""
        current = self._credential_fingerprint()
        if self._client is None or self._built_for != current:
            self._client = self._build_client()
            self._built_for = current
        return self._client

    def _credential_fingerprint(self) -> tuple[int, str, str, str]:
        creds = self.credentials
        return (creds.generation, creds.account_id, creds.access_key_id, creds.secret_access_key)

    def _build_client(self) -> Any:
        creds = self.credentials
        endpoint = endpoint_for(creds.account_id)
        logger.debug(f"Building S3 client for {endpoint}")

        config_kwargs: dict[str, Any] = {"retries": {"total_max_attempts": 1, "mode": "standard"}}
        if self._network is not None:
            config_kwargs["connect_timeout"] = self._network.connect_timeout
            config_kwargs["read_timeout"] = self._network.read_timeout

        return boto3.client(
            "s3",
            endpoint_url=endpoint,
            aws_access_key_id=creds.access_key_id,
            aws_secret_access_key=creds.secret_access_key,
            region_name=R2_REGION,
            config=BotoConfig(**config_kwargs),
        )

    def _require(self, *names: str) -> None:
        labels = {
            "account_id": "account ID",
            "access_key_id": "access key ID",
            "secret_access_key": "secret access key",
            "bucket_name": "bucket name",
        }
        missing = [labels[name] for name in names if not getattr(self.credentials, name)]
        if missing:
            raise ConfigurationError(f"Please configure all required R2 settings first (missing: {', '.join(missing)})")

    def test_connection(self) -> None:
        """Check that the configured bucket exists and is reachable.

        Raises:
            ConfigurationError: A required setting is blank
            ConnectivityError: The HeadBucket call failed
        """
        self._require("account_id", "access_key_id", "secret_access_key", "bucket_name")
        bucket = self.credentials.bucket_name
        try:
            self.client.head_bucket(Bucket=bucket)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"R2 connection test failed: {e}")
            raise ConnectivityError(f"Cannot access bucket {bucket!r}: {e}") from e
        logger.info(f"R2 connection OK: {endpoint_for(self.credentials.account_id)} / {bucket}")

    def list_buckets(self) -> list[str]:
        """Return the names of all buckets the key pair can see."""
        self._require("account_id", "access_key_id", "secret_access_key")
        try:
            response = self.client.list_buckets()
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to list buckets: {e}")
            raise ConnectivityError(f"Failed to list buckets: {e}") from e
        return [bucket["Name"] for bucket in response.get("Buckets") or [] if bucket.get("Name")]

    def put_object(self, key: str, body: bytes, content_type: str) -> None:
        """Upload one object to the configured bucket. No retries.

        Raises:
            UploadError: Transport, authorization or size-limit failure
        """
        bucket = self.credentials.bucket_name
        try:
            self.client.put_object(Bucket=bucket, Key=key, Body=body, ContentType=content_type)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Upload of {key} failed: {e}")
            raise UploadError(f"Upload to r2://{bucket}/{key} failed: {e}") from e
        logger.info(f"Uploaded {len(body):,} bytes to r2://{bucket}/{key}")

"""Tests for the R2 storage client."""

from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from syncfree.config import NetworkSettings
from syncfree.errors import ConfigurationError, ConnectivityError, UploadError
from syncfree.storage.credentials import CredentialStore
from syncfree.storage.r2 import R2StorageClient, endpoint_for


def _client_error(code: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": "denied"}}, operation)


@pytest.fixture
def boto_factory():
    with patch("syncfree.storage.r2.boto3.client", side_effect=lambda *a, **k: MagicMock()) as factory:
        yield factory


@pytest.fixture
def credentials(configured_store):
    return CredentialStore(configured_store)


@pytest.fixture
def storage(credentials, boto_factory):
    return R2StorageClient(credentials, NetworkSettings())


class TestClientConstruction:
    """Tests for the cached boto3 client."""

    def test_endpoint(self):
        assert endpoint_for("abc") == "https://abc.r2.cloudflarestorage.com"

    def test_client_built_lazily_with_r2_settings(self, storage, boto_factory):
        boto_factory.assert_not_called()
        storage.client

        args, kwargs = boto_factory.call_args
        assert args == ("s3",)
        assert kwargs["endpoint_url"] == "https://abc.r2.cloudflarestorage.com"
        assert kwargs["aws_access_key_id"] == "K"
        assert kwargs["aws_secret_access_key"] == "S"
        assert kwargs["region_name"] == "auto"

    def test_client_cached_until_credentials_change(self, storage, credentials, boto_factory):
        first = storage.client
        assert storage.client is first

        credentials.set_keys("K2", "S2")

        second = storage.client
        assert second is not first
        assert boto_factory.call_count == 2
        assert boto_factory.call_args.kwargs["aws_access_key_id"] == "K2"

    def test_invalidate_forces_rebuild(self, storage, credentials):
        first = storage.client
        credentials.invalidate()
        assert storage.client is not first

    def test_direct_settings_edit_forces_rebuild(self, storage, configured_store):
        first = storage.client
        configured_store.update(account_id="other")
        assert storage.client is not first


class TestTestConnection:
    def test_head_bucket(self, storage):
        storage.test_connection()
        storage.client.head_bucket.assert_called_once_with(Bucket="b")

    @pytest.mark.parametrize("field", ["account_id", "access_key_id", "secret_access_key", "bucket_name"])
    def test_missing_setting(self, storage, configured_store, boto_factory, field):
        configured_store.update(**{field: ""})

        with pytest.raises(ConfigurationError, match="Please configure all required R2 settings"):
            storage.test_connection()
        boto_factory.assert_not_called()

    def test_client_error(self, storage):
        storage.client.head_bucket.side_effect = _client_error("404", "HeadBucket")
        with pytest.raises(ConnectivityError, match="'b'"):
            storage.test_connection()

    def test_transport_error(self, storage):
        storage.client.head_bucket.side_effect = EndpointConnectionError(endpoint_url="https://abc.r2.cloudflarestorage.com")
        with pytest.raises(ConnectivityError):
            storage.test_connection()


class TestListBuckets:
    def test_names(self, storage):
        storage.client.list_buckets.return_value = {"Buckets": [{"Name": "a"}, {"Name": "b"}]}
        assert storage.list_buckets() == ["a", "b"]

    def test_empty(self, storage):
        storage.client.list_buckets.return_value = {"Buckets": []}
        assert storage.list_buckets() == []

    def test_missing_bucket_key(self, storage):
        storage.client.list_buckets.return_value = {}
        assert storage.list_buckets() == []

    def test_entries_without_name_skipped(self, storage):
        storage.client.list_buckets.return_value = {"Buckets": [{"Name": "a"}, {}, {"Name": ""}, {"Name": "b"}]}
        assert storage.list_buckets() == ["a", "b"]

    def test_bucket_name_not_required(self, storage, configured_store):
        configured_store.update(bucket_name="")
        storage.client.list_buckets.return_value = {"Buckets": [{"Name": "a"}]}
        assert storage.list_buckets() == ["a"]

    def test_error(self, storage):
        storage.client.list_buckets.side_effect = _client_error("AccessDenied", "ListBuckets")
        with pytest.raises(ConnectivityError):
            storage.list_buckets()


class TestPutObject:
    def test_upload(self, storage):
        storage.put_object("k.zip", b"data", "application/zip")
        storage.client.put_object.assert_called_once_with(
            Bucket="b", Key="k.zip", Body=b"data", ContentType="application/zip"
        )

    def test_error(self, storage):
        storage.client.put_object.side_effect = _client_error("EntityTooLarge", "PutObject")
        with pytest.raises(UploadError, match="r2://b/k.zip"):
            storage.put_object("k.zip", b"data", "application/zip")

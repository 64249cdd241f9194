"""Tests for the credential store."""

import pytest

from syncfree.config import SettingsStore
from syncfree.storage.credentials import CredentialStore


@pytest.fixture
def credentials(settings_store):
    return CredentialStore(settings_store)


class TestCredentialStore:
    """Tests for CredentialStore."""

    def test_empty_store_is_not_usable(self, credentials):
        assert not credentials.has_key_pair()
        assert not credentials.has_bearer_token()
        assert not credentials.has_usable_credentials()

    def test_bearer_token_alone_is_not_usable(self, credentials):
        credentials.set_bearer_token("tok")
        credentials.set_account_id("abc")
        credentials.set_bucket("b")

        assert credentials.has_bearer_token()
        assert not credentials.has_usable_credentials()

    def test_complete_set_is_usable(self, credentials):
        credentials.update(account_id="abc", access_key_id="K", secret_access_key="S", bucket_name="b")
        assert credentials.has_usable_credentials()

    def test_every_mutation_bumps_generation(self, credentials):
        start = credentials.generation
        credentials.set_keys("K", "S")
        credentials.set_bucket("b")
        credentials.clear()
        assert credentials.generation == start + 3

    def test_mutations_are_persisted(self, credentials, settings_store):
        credentials.set_keys("K", "S")

        reloaded = SettingsStore(settings_store.path).load()
        assert reloaded.access_key_id == "K"
        assert reloaded.secret_access_key == "S"

    def test_update_rejects_other_fields(self, credentials):
        with pytest.raises(ValueError, match="backup_path"):
            credentials.update(backup_path="x")

    def test_clear_forgets_credentials_and_buckets(self, credentials, settings_store):
        credentials.update(account_id="abc", access_key_id="K", secret_access_key="S", auth_token="tok", bucket_name="b")
        settings_store.update(available_buckets=["b", "c"])

        credentials.clear()

        assert credentials.account_id == ""
        assert not credentials.has_key_pair()
        assert not credentials.has_bearer_token()
        assert settings_store.settings.available_buckets == []
        # The chosen bucket name survives; it is not a secret.
        assert credentials.bucket_name == "b"

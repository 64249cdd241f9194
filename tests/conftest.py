"""Pytest configuration and fixtures for SyncFree tests."""

import os
from pathlib import Path

import pytest

from syncfree.config import SettingsStore


class MemoryVault:
    """In-memory FileStore; paths listed in ``unreadable`` fail on read."""

    def __init__(
        self,
        files: dict[str, bytes],
        unreadable: tuple[str, ...] = (),
        root: Path | None = None,
    ) -> None:
        self.files = dict(files)
        self.unreadable = set(unreadable)
        self.root = root
        self.reads: list[str] = []

    def list_files(self) -> list[str]:
        return list(self.files)

    def read_bytes(self, path: str) -> bytes:
        self.reads.append(path)
        if path in self.unreadable:
            raise PermissionError(f"Permission denied: {path}")
        return self.files[path]

    def relative_path(self, path) -> str | None:
        if self.root is None:
            return None
        try:
            return Path(path).resolve().relative_to(self.root.resolve()).as_posix()
        except ValueError:
            return None


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    """Keep developer SYNCFREE_* variables out of the tests."""
    for key in list(os.environ):
        if key.upper().startswith("SYNCFREE_"):
            monkeypatch.delenv(key)


@pytest.fixture
def settings_store(tmp_path):
    """A settings store backed by a fresh document in tmp_path."""
    store = SettingsStore(tmp_path / "syncfree.yaml")
    store.load()
    return store


@pytest.fixture
def configured_store(settings_store):
    """A settings store with a complete manual credential set."""
    settings_store.update(
        account_id="abc",
        access_key_id="K",
        secret_access_key="S",
        bucket_name="b",
    )
    return settings_store


@pytest.fixture
def memory_vault():
    """Factory for in-memory vaults."""
    return MemoryVault

"""Tests for the local filesystem vault."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from syncfree.backup.orchestrator import BackupOrchestrator
from syncfree.errors import ArchiveError
from syncfree.storage.r2 import R2StorageClient
from syncfree.vault import LocalVault


@pytest.fixture
def vault_dir(tmp_path):
    root = tmp_path / "vault"
    (root / "notes" / "daily").mkdir(parents=True)
    (root / "attachments").mkdir()
    (root / "empty").mkdir()
    (root / "b.md").write_text("bee")
    (root / "notes" / "a.md").write_text("# A")
    (root / "notes" / "daily" / "2024-01-02.md").write_text("today")
    (root / "attachments" / "img.png").write_bytes(b"\x89PNG\r\n\x1a\n\x00\xff")
    return root


class TestLocalVault:
    """Tests for LocalVault."""

    def test_lists_relative_posix_paths_sorted(self, vault_dir):
        assert LocalVault(vault_dir).list_files() == [
            "attachments/img.png",
            "b.md",
            "notes/a.md",
            "notes/daily/2024-01-02.md",
        ]

    def test_read_bytes_exact(self, vault_dir):
        vault = LocalVault(vault_dir)
        assert vault.read_bytes("attachments/img.png") == b"\x89PNG\r\n\x1a\n\x00\xff"
        assert vault.read_bytes("notes/daily/2024-01-02.md") == b"today"

    def test_missing_root(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            LocalVault(tmp_path / "absent").list_files()

    def test_relative_path(self, vault_dir, tmp_path):
        vault = LocalVault(vault_dir)
        assert vault.relative_path(vault_dir / "notes" / "a.md") == "notes/a.md"
        assert vault.relative_path(tmp_path / "syncfree.yaml") is None


class TestLocalVaultBackup:
    """LocalVault driving a real archive build."""

    @pytest.fixture
    def storage(self):
        return MagicMock(spec=R2StorageClient)

    @pytest.mark.asyncio
    async def test_missing_root_becomes_archive_error(self, configured_store, storage, tmp_path):
        orchestrator = BackupOrchestrator(configured_store, storage, LocalVault(tmp_path / "absent"))

        with pytest.raises(ArchiveError, match="Vault directory not found"):
            await orchestrator.run_backup()
        storage.put_object.assert_not_called()

    @pytest.mark.asyncio
    async def test_unreadable_file_aborts_without_upload(self, configured_store, storage, vault_dir, monkeypatch):
        locked = vault_dir / "notes" / "a.md"
        read_bytes = Path.read_bytes

        def guarded_read(self):
            if self == locked:
                raise PermissionError(13, "Permission denied", str(self))
            return read_bytes(self)

        monkeypatch.setattr(Path, "read_bytes", guarded_read)
        orchestrator = BackupOrchestrator(configured_store, storage, LocalVault(vault_dir))

        with pytest.raises(ArchiveError, match="notes/a.md"):
            await orchestrator.run_backup()
        storage.put_object.assert_not_called()

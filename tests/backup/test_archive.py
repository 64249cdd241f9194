"""Tests for the in-memory archive builder."""

import io
import zipfile

import pytest

from syncfree.backup.archive import ARCHIVE_CONTENT_TYPE, build_archive
from syncfree.errors import ArchiveError


def _unpack(data: bytes) -> dict[str, bytes]:
    with zipfile.ZipFile(io.BytesIO(data)) as archive:
        return {name: archive.read(name) for name in archive.namelist()}


class TestBuildArchive:
    """Tests for build_archive."""

    def test_entries_match_paths(self):
        files = {"notes/a.md": b"# A\n", "b.md": b"bee", "deep/er/c.bin": bytes(range(256))}

        result = build_archive(files, files.__getitem__)

        assert _unpack(result.data) == files
        assert result.file_count == 3
        assert result.raw_size == sum(len(v) for v in files.values())
        assert result.compressed_size == len(result.data)

    def test_entry_order_follows_input(self):
        files = {"z.md": b"z", "a.md": b"a"}
        result = build_archive(["z.md", "a.md"], files.__getitem__)
        with zipfile.ZipFile(io.BytesIO(result.data)) as archive:
            assert archive.namelist() == ["z.md", "a.md"]

    def test_entries_are_deflated(self):
        result = build_archive(["a.md"], lambda _: b"x" * 10_000)
        with zipfile.ZipFile(io.BytesIO(result.data)) as archive:
            assert archive.getinfo("a.md").compress_type == zipfile.ZIP_DEFLATED
        assert result.compressed_size < 10_000

    def test_empty_archive_is_valid(self):
        result = build_archive([], lambda _: b"")
        assert result.file_count == 0
        assert _unpack(result.data) == {}

    def test_empty_file(self):
        result = build_archive(["empty.md"], lambda _: b"")
        assert _unpack(result.data) == {"empty.md": b""}

    def test_duplicate_path_rejected(self):
        with pytest.raises(ArchiveError, match="Duplicate"):
            build_archive(["a.md", "a.md"], lambda _: b"x")

    def test_read_failure_wrapped(self):
        def read(path):
            raise PermissionError(f"denied: {path}")

        with pytest.raises(ArchiveError, match="secret.md") as exc_info:
            build_archive(["secret.md"], read)
        assert isinstance(exc_info.value.__cause__, PermissionError)

    def test_content_type(self):
        assert ARCHIVE_CONTENT_TYPE == "application/zip"

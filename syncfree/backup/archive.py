"""Archive builder: packs vault files into a single in-memory ZIP."""

from __future__ import annotations

import io
import logging
import zipfile
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from syncfree.errors import ArchiveError

logger = logging.getLogger(__name__)

ARCHIVE_CONTENT_TYPE = "application/zip"


@dataclass
class ArchiveResult:
    """A finished archive and some figures about it."""

    data: bytes
    file_count: int
    raw_size: int  # Sum of uncompressed file sizes

    @property
    def compressed_size(self) -> int:
        return len(self.data)


def build_archive(
    paths: Iterable[str],
    read: Callable[[str], bytes],
    compression_level: int = 6,
) -> ArchiveResult:
    """Build a ZIP archive whose entry names are the given vault paths.

    Each file is read and written immediately, so at most one file's content
    is held outside the archive buffer at a time. An empty path list yields
    a valid, empty archive.

    Raises:
        ArchiveError: A path appears twice or a file cannot be read.
    """
    buf = io.BytesIO()
    seen: set[str] = set()
    raw_size = 0

    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=compression_level) as archive:
        for path in paths:
            if path in seen:
                raise ArchiveError(f"Duplicate archive entry: {path}")
            seen.add(path)

            try:
                content = read(path)
            except OSError as e:
                raise ArchiveError(f"Failed to read {path}: {e}") from e

            archive.writestr(path, content)
            raw_size += len(content)

    data = buf.getvalue()
    logger.info(f"Archived {len(seen)} file(s): {raw_size:,} bytes -> {len(data):,} bytes")
    return ArchiveResult(data=data, file_count=len(seen), raw_size=raw_size)

"""Vault file-store collaborator.

The backup pipeline needs an ordered list of vault-relative paths and a way to
read one file's bytes. It also asks where host files (the settings document)
sit inside the vault, so they can be kept out of archives.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


class FileStore(Protocol):
    """Protocol for the host document store."""

    def list_files(self) -> list[str]: ...

    def read_bytes(self, path: str) -> bytes: ...

    def relative_path(self, path: str | Path) -> str | None:
        """Vault path of a host file, or None when it lies outside the vault."""
        ...


class LocalVault:
    """A vault rooted at a directory on the local filesystem.

    Paths are relative to the root and always use '/' separators, so they can
    be used directly as archive entry names.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).expanduser()

    def list_files(self) -> list[str]:
        if not self.root.is_dir():
            raise FileNotFoundError(f"Vault directory not found: {self.root}")
        return sorted(p.relative_to(self.root).as_posix() for p in self.root.rglob("*") if p.is_file())

    def read_bytes(self, path: str) -> bytes:
        return (self.root / path).read_bytes()

    def relative_path(self, path: str | Path) -> str | None:
        try:
            return Path(path).expanduser().resolve().relative_to(self.root.resolve()).as_posix()
        except ValueError:
            return None

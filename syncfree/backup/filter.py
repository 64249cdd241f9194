"""Exclusion filter deciding which vault files go into a backup."""

from __future__ import annotations

from collections.abc import Iterable


def parse_exclude_patterns(raw: str) -> list[str]:
    """Split a comma-separated exclusion string into prefix patterns.

    Tokens are trimmed and empty tokens dropped. Duplicates are removed while
    keeping first-seen order.
    """
    patterns: list[str] = []
    for token in raw.split(","):
        token = token.strip()
        if token and token not in patterns:
            patterns.append(token)
    return patterns


def is_excluded(path: str, patterns: Iterable[str]) -> bool:
    """True when the path starts with any pattern.

    This is a plain string prefix test, not a path-segment match: "lib"
    also excludes "library/notes.md".
    """
    return any(path.startswith(pattern) for pattern in patterns)


def filter_files(paths: Iterable[str], raw_excludes: str) -> list[str]:
    """Return the paths eligible for backup, preserving input order."""
    patterns = parse_exclude_patterns(raw_excludes)
    if not patterns:
        return list(paths)
    return [path for path in paths if not is_excluded(path, patterns)]

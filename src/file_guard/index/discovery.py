"""Deterministic file enumeration and fingerprinting."""

from __future__ import annotations

import hashlib
import os
import stat
from datetime import UTC, datetime, timedelta
from pathlib import Path

from file_guard.index.models import FileEntry

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_READ_CHUNK_BYTES = 1024 * 128


def retrieve_file_paths(root: Path) -> list[Path]:
    """Recursively list files under root in sorted order.

    Symlinks to files are listed under their own path and hashed through to
    their target; dangling links are dropped. Symlinked directories are not
    followed, entries carrying the Windows system attribute are skipped, and
    unreadable directories or entries are passed over silently.
    """
    output: list[Path] = []
    stack: list[Path] = [Path(root)]
    while stack:
        current = stack.pop()
        try:
            with os.scandir(current) as entries:
                ordered_entries = sorted(entries, key=lambda item: item.name)
        except OSError:
            continue
        for entry in reversed(ordered_entries):
            try:
                if _is_system_entry(entry):
                    continue
                if entry.is_dir(follow_symlinks=False):
                    stack.append(Path(entry.path))
                    continue
                if not entry.is_file():
                    continue
            except OSError:
                continue
            output.append(Path(entry.path))
    output.sort()
    return output


def _is_system_entry(entry: os.DirEntry[str]) -> bool:
    attributes = getattr(entry.stat(follow_symlinks=False), "st_file_attributes", 0)
    return bool(attributes & stat.FILE_ATTRIBUTE_SYSTEM)


def sha256_file(path: Path) -> str:
    """Compute the uppercase hex SHA-256 of a file in chunked reads."""
    digest = hashlib.sha256()
    with path.open("rb") as handle:
        while True:
            chunk = handle.read(_READ_CHUNK_BYTES)
            if not chunk:
                break
            digest.update(chunk)
    return digest.hexdigest().upper()


def mtime_from_ns(mtime_ns: int) -> datetime:
    """Convert a nanosecond timestamp to a UTC datetime truncated to microseconds."""
    return _EPOCH + timedelta(microseconds=mtime_ns // 1000)


def file_mtime(path: Path) -> datetime:
    """Return the current modification time of a file as a UTC datetime."""
    return mtime_from_ns(path.stat().st_mtime_ns)


def fingerprint_file(path: Path, file_ref: str) -> FileEntry:
    """Build a fingerprint record; the mtime is read before hashing."""
    if not path.is_file():
        raise FileNotFoundError(f"The file '{path}' does not exist.")
    last_modified = file_mtime(path)
    return FileEntry(
        file_ref=file_ref,
        last_modified=last_modified,
        digest=sha256_file(path),
    )

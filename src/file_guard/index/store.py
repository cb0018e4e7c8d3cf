"""Persistent per-guard-directory index storage."""

from __future__ import annotations

import json
import re
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path

from file_guard.index.models import FileEntry, Index

INDEX_FILE_NAME = "index"
_DIGEST_PATTERN = re.compile(r"[0-9A-F]{64}")


class IndexMissingError(FileNotFoundError):
    """Raised when a guard directory has no index file."""

    def __init__(self, path: Path) -> None:
        super().__init__(f"The index file '{path}' does not exist.")
        self.path = path


class IndexCorruptError(ValueError):
    """Raised when an index file cannot be decoded."""

    def __init__(self, path: Path | None, detail: str) -> None:
        location = f"'{path}'" if path is not None else "document"
        super().__init__(f"Index {location} is corrupt: {detail}")
        self.path = path
        self.detail = detail


def index_path(guard_directory: Path) -> Path:
    """Return the index file location inside a guard directory."""
    return guard_directory / INDEX_FILE_NAME


def format_timestamp(value: datetime) -> str:
    """Render a datetime as ISO-8601 UTC with microseconds and a Z suffix."""
    return value.astimezone(UTC).isoformat(timespec="microseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def encode_index(index: Index) -> str:
    """Serialize an index to deterministic JSON text."""
    files = {
        file_ref: {
            "fileRef": entry.file_ref,
            "lastModified": format_timestamp(entry.last_modified),
            "digest": entry.digest,
        }
        for file_ref, entry in index.files.items()
    }
    return json.dumps({"files": files}, indent=2, sort_keys=True) + "\n"


def decode_index(text: str, source: Path | None = None) -> Index:
    """Parse index JSON text, ignoring unknown fields."""
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as error:
        raise IndexCorruptError(source, f"invalid JSON ({error.msg})") from error
    if not isinstance(payload, dict):
        raise IndexCorruptError(source, "top-level value must be an object")
    raw_files = payload.get("files", {})
    if not isinstance(raw_files, dict):
        raise IndexCorruptError(source, "'files' must be an object")

    index = Index()
    for key, raw_entry in raw_files.items():
        index.put(_decode_entry(key, raw_entry, source))
    return index


def _decode_entry(key: str, raw_entry: object, source: Path | None) -> FileEntry:
    if not isinstance(raw_entry, dict):
        raise IndexCorruptError(source, f"entry '{key}' must be an object")
    file_ref = raw_entry.get("fileRef")
    last_modified = raw_entry.get("lastModified")
    digest = raw_entry.get("digest")
    if not isinstance(file_ref, str) or file_ref != key:
        raise IndexCorruptError(source, f"entry '{key}' has a mismatched fileRef")
    if not isinstance(last_modified, str):
        raise IndexCorruptError(source, f"entry '{key}' has no lastModified")
    if not isinstance(digest, str):
        raise IndexCorruptError(source, f"entry '{key}' has no digest")
    try:
        timestamp = parse_timestamp(last_modified)
    except ValueError as error:
        raise IndexCorruptError(source, f"entry '{key}' has an invalid lastModified") from error
    if _DIGEST_PATTERN.fullmatch(digest) is None:
        raise IndexCorruptError(source, f"entry '{key}' has a malformed digest")
    return FileEntry(file_ref=file_ref, last_modified=timestamp, digest=digest)


def load_index(guard_directory: Path) -> Index:
    """Load the index of a guard directory; a missing file is an error."""
    path = index_path(guard_directory)
    if not path.is_file():
        raise IndexMissingError(path)
    try:
        with path.open("r", encoding="utf-8") as handle:
            text = handle.read()
    except UnicodeDecodeError as error:
        raise IndexCorruptError(path, "not valid UTF-8") from error
    return decode_index(text, source=path)


def save_index(index: Index, guard_directory: Path) -> Path:
    """Atomically overwrite the index file of a guard directory."""
    path = index_path(guard_directory)
    tmp = path.with_suffix(path.suffix + ".tmp")
    with tmp.open("w", encoding="utf-8", newline="\n") as handle:
        handle.write(encode_index(index))
    tmp.replace(path)
    return path


class IndexSet:
    """Indices loaded for one run, keyed by guard directory."""

    def __init__(self, indices: dict[Path, Index]) -> None:
        self._indices = indices

    @classmethod
    def load(cls, guard_directories: Iterable[Path]) -> IndexSet:
        """Load every index up front; any missing or corrupt index aborts."""
        return cls({path: load_index(path) for path in sorted(set(guard_directories))})

    @property
    def guard_directories(self) -> tuple[Path, ...]:
        """Return loaded guard directories in sorted order."""
        return tuple(sorted(self._indices))

    def index_for(self, guard_directory: Path) -> Index:
        """Return the index owned by a loaded guard directory."""
        try:
            return self._indices[guard_directory]
        except KeyError:
            raise KeyError(f"Guard directory '{guard_directory}' was not loaded.") from None

    def persist(self) -> list[Path]:
        """Write every loaded index exactly once and return the written paths."""
        return [save_index(self._indices[path], path) for path in self.guard_directories]

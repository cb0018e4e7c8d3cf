"""Typed models for guard index state."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(slots=True, frozen=True)
class FileEntry:
    """Fingerprint of one file at the moment it was indexed."""

    file_ref: str
    last_modified: datetime
    digest: str


@dataclass(slots=True)
class Index:
    """Fingerprints owned by one guard directory, keyed by file reference."""

    files: dict[str, FileEntry] = field(default_factory=dict)

    def get(self, file_ref: str) -> FileEntry | None:
        """Return the entry for a reference, if indexed."""
        return self.files.get(file_ref)

    def put(self, entry: FileEntry) -> bool:
        """Insert or replace an entry; return True when the reference was new."""
        is_new = entry.file_ref not in self.files
        self.files[entry.file_ref] = entry
        return is_new

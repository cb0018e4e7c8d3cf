"""Portable file references relative to a protected root."""

from __future__ import annotations

from pathlib import Path


def to_ref(file_path: Path, guard_directory: Path) -> str:
    """Return the './'-prefixed POSIX path of a file below the guard directory's parent."""
    if not file_path.is_file():
        raise FileNotFoundError(f"The file '{file_path}' does not exist.")
    protected_root = guard_directory.parent
    if not file_path.is_relative_to(protected_root):
        raise ValueError(f"The file '{file_path}' is outside '{protected_root}'.")
    return f"./{file_path.relative_to(protected_root).as_posix()}"

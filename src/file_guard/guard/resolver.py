"""Guard directory discovery and nearest-ancestor file assignment."""

from __future__ import annotations

import os
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Final

GUARD_DIRECTORY_NAME: Final[str] = ".guard"


class GuardConfigurationError(Exception):
    """Raised when files cannot be mapped onto initialized guard directories."""

    def __init__(self, reason: str, hint: str) -> None:
        super().__init__(reason)
        self.reason = reason
        self.hint = hint


class NoGuardDirectoryError(GuardConfigurationError):
    """Raised when no guard directory is reachable from the scan root."""

    def __init__(self, target_root: Path) -> None:
        super().__init__(
            reason=f"No guard directory found for '{target_root}'.",
            hint="Run 'file-guard init' in the directory to protect or one of its parents.",
        )
        self.target_root = target_root


class UnguardedFilesError(GuardConfigurationError):
    """Raised when one or more files have no enclosing guard directory."""

    def __init__(self, paths: Iterable[Path]) -> None:
        super().__init__(
            reason="Some files are not within a guarded directory structure.",
            hint=(
                "Initialize a guard directory in a parent of these files or move them "
                "under an already guarded directory."
            ),
        )
        self.paths = tuple(sorted(paths))


@dataclass(slots=True, frozen=True)
class GuardResolution:
    """Guard directories in play and the owner of every data file."""

    guard_directories: tuple[Path, ...]
    assignments: dict[Path, Path]


def normalize_path(path: Path | str) -> Path:
    """Absolute, lexically normalized path; symlinks are left alone."""
    return Path(os.path.normpath(os.path.abspath(path)))


def is_guard_internal(path: Path) -> bool:
    """Return True for files stored directly inside a guard directory."""
    return path.parent.name == GUARD_DIRECTORY_NAME


def find_enclosing_guard_directory(start: Path) -> Path | None:
    """Walk up from start and return the first guard directory present on disk."""
    for directory in (start, *start.parents):
        marker = directory / GUARD_DIRECTORY_NAME
        if marker.is_dir():
            return marker
    return None


def discover_guard_directories(target_root: Path, candidate_files: Iterable[Path]) -> set[Path]:
    """Collect guard directories seen among candidates or above the target root."""
    markers = {path.parent for path in candidate_files if is_guard_internal(path)}
    enclosing = find_enclosing_guard_directory(target_root)
    if enclosing is not None:
        markers.add(enclosing)
    if not markers:
        raise NoGuardDirectoryError(target_root)
    return markers


def nearest_guard_directory(file_path: Path, guarded_roots: set[Path]) -> Path | None:
    """Return the guard directory of the nearest guarded ancestor of a file."""
    for directory in file_path.parents:
        if directory in guarded_roots:
            return directory / GUARD_DIRECTORY_NAME
    return None


def resolve(target_root: Path | str, candidate_files: Iterable[Path | str]) -> GuardResolution:
    """Assign every data file to exactly one guard directory or fail as a whole."""
    root = normalize_path(target_root)
    candidates = sorted({normalize_path(path) for path in candidate_files})
    markers = discover_guard_directories(root, candidates)
    guarded_roots = {marker.parent for marker in markers}

    assignments: dict[Path, Path] = {}
    unguarded: list[Path] = []
    for path in candidates:
        if is_guard_internal(path):
            continue
        owner = nearest_guard_directory(path, guarded_roots)
        if owner is None:
            unguarded.append(path)
            continue
        assignments[path] = owner

    if unguarded:
        raise UnguardedFilesError(unguarded)
    return GuardResolution(guard_directories=tuple(sorted(markers)), assignments=assignments)

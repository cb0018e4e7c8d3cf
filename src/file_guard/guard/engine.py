"""Index reconciliation: initialization, indexing, and verification runs."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from file_guard.guard.refs import to_ref
from file_guard.guard.resolver import (
    GUARD_DIRECTORY_NAME,
    GuardResolution,
    normalize_path,
    resolve,
)
from file_guard.index.discovery import (
    file_mtime,
    fingerprint_file,
    retrieve_file_paths,
    sha256_file,
)
from file_guard.index.models import Index
from file_guard.index.store import IndexSet, save_index
from file_guard.logging import EventSink, make_event, null_sink


class VerificationMode(Enum):
    """Which outcome categories make a verification run fail."""

    LENIENT = "lenient"
    MODERATE = "moderate"
    STRICT = "strict"

    @classmethod
    def parse(cls, value: VerificationMode | str) -> VerificationMode:
        """Accept a mode or its case-insensitive name."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        choices = ", ".join(mode.value for mode in cls)
        raise ValueError(f"Unknown verification mode: {value!r} (expected one of {choices}).")


class FileOutcome(Enum):
    """Classification of one file during verification, in precedence order."""

    NOT_INDEXED = "not_indexed"
    MODIFIED = "modified"
    ALTERED = "altered"
    VERIFICATION_FAILED = "verification_failed"
    VERIFIED = "verified"


class IndexAction(Enum):
    """What an indexing run did with one file."""

    ADDED = "added"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


@dataclass(slots=True)
class VerificationTally:
    """Per-outcome counters for one verification run."""

    not_indexed: int = 0
    modified: int = 0
    altered: int = 0
    verification_failed: int = 0
    verified: int = 0

    def record(self, outcome: FileOutcome) -> None:
        """Count one classified file."""
        name = outcome.value
        setattr(self, name, getattr(self, name) + 1)

    @property
    def total(self) -> int:
        """Return the number of classified files."""
        return (
            self.not_indexed
            + self.modified
            + self.altered
            + self.verification_failed
            + self.verified
        )


@dataclass(slots=True, frozen=True)
class VerificationReport:
    """Result of a verification run."""

    mode: VerificationMode
    tally: VerificationTally
    passed: bool


@dataclass(slots=True)
class IndexSummary:
    """Per-action counters for one indexing run."""

    added: int = 0
    updated: int = 0
    unchanged: int = 0
    failed: int = 0


@dataclass(slots=True, frozen=True)
class FileCheck:
    """Verification outcome of one file with diagnostic detail."""

    outcome: FileOutcome
    file_ref: str | None = None
    expected_digest: str | None = None
    actual_digest: str | None = None
    error: str | None = None


def passes(mode: VerificationMode, tally: VerificationTally) -> bool:
    """Apply the verdict policy of a mode to a tally."""
    match mode:
        case VerificationMode.LENIENT:
            return tally.altered == 0
        case VerificationMode.MODERATE:
            return tally.altered == 0 and tally.verification_failed == 0
        case VerificationMode.STRICT:
            return (
                tally.altered == 0
                and tally.verification_failed == 0
                and tally.modified == 0
                and tally.not_indexed == 0
            )
    raise ValueError(f"Unknown verification mode: {mode!r}")


def initialize(path: Path | str, sink: EventSink = null_sink) -> Path:
    """Create a guard directory with an empty index inside path."""
    directory = normalize_path(path)
    if not directory.is_dir():
        raise NotADirectoryError(f"'{directory}' is not a directory.")
    guard_directory = directory / GUARD_DIRECTORY_NAME
    if guard_directory.exists():
        sink(
            make_event(
                "already_initialized",
                "info",
                "FileGuard is already initialized in this directory.",
                path=guard_directory,
            )
        )
        return guard_directory
    guard_directory.mkdir()
    save_index(Index(), guard_directory)
    sink(
        make_event(
            "initialized",
            "info",
            f"FileGuard initialized successfully in: '{guard_directory}'",
            path=guard_directory,
        )
    )
    return guard_directory


def _prepare_run(
    target_root: Path | str,
    candidate_files: Iterable[Path | str],
    sink: EventSink,
) -> tuple[GuardResolution, IndexSet]:
    """Resolve guard directories and load their indices before any per-file work."""
    sink(make_event("resolving", "info", "Detecting initialized directories...", path=target_root))
    resolution = resolve(target_root, candidate_files)
    listing = "\n".join(str(path) for path in resolution.guard_directories)
    sink(
        make_event(
            "guard_directories_found",
            "info",
            f"Found guard directories:\n{listing}",
            count=len(resolution.guard_directories),
        )
    )
    indices = IndexSet.load(resolution.guard_directories)
    return resolution, indices


def index_file(path: Path, guard_directory: Path, index: Index) -> IndexAction:
    """Fingerprint a file when it is new to the index or its mtime moved forward."""
    file_ref = to_ref(path, guard_directory)
    entry = index.get(file_ref)
    if entry is not None and not file_mtime(path) > entry.last_modified:
        return IndexAction.UNCHANGED
    is_new = index.put(fingerprint_file(path, file_ref))
    return IndexAction.ADDED if is_new else IndexAction.UPDATED


def index_files(
    target_root: Path | str,
    candidate_files: Iterable[Path | str],
    sink: EventSink = null_sink,
) -> IndexSummary:
    """Index every guarded candidate file and persist each touched index once."""
    sink(make_event("indexing_started", "info", f"Indexing files in directory: '{target_root}'"))
    resolution, indices = _prepare_run(target_root, candidate_files, sink)

    summary = IndexSummary()
    for path in sorted(resolution.assignments):
        guard_directory = resolution.assignments[path]
        try:
            action = index_file(path, guard_directory, indices.index_for(guard_directory))
        except OSError as error:
            summary.failed += 1
            sink(
                make_event(
                    "index_failed",
                    "error",
                    f"Error indexing file '{path}': {error}",
                    path=path,
                    error=type(error).__name__,
                )
            )
            continue
        if action is IndexAction.ADDED:
            summary.added += 1
            sink(make_event("entry_added", "info", f"Indexed new file: '{path}'", path=path))
        elif action is IndexAction.UPDATED:
            summary.updated += 1
            sink(
                make_event(
                    "entry_updated",
                    "info",
                    f"File '{path}' has been modified since last index, entry updated",
                    path=path,
                )
            )
        else:
            summary.unchanged += 1
            sink(make_event("entry_unchanged", "debug", f"File '{path}' is up to date.", path=path))

    sink(make_event("writing_indices", "info", "Writing updated indices to files..."))
    for written in indices.persist():
        sink(make_event("index_written", "debug", f"Wrote index '{written}'", path=written))
    sink(
        make_event(
            "indexing_completed",
            "info",
            (
                f"Indexing completed: {summary.added} added, {summary.updated} updated, "
                f"{summary.unchanged} unchanged, {summary.failed} failed."
            ),
            added=summary.added,
            updated=summary.updated,
            unchanged=summary.unchanged,
            failed=summary.failed,
        )
    )
    return summary


def check_file(path: Path, guard_directory: Path, index: Index) -> FileCheck:
    """Classify one file against its index entry without mutating the index.

    The modification time is compared before hashing, so a file whose mtime
    moved forward is reported as modified without being rehashed, and a file
    edited with its mtime preserved or rewound is only caught by the digest.
    """
    try:
        file_ref = to_ref(path, guard_directory)
        entry = index.get(file_ref)
        if entry is None:
            return FileCheck(outcome=FileOutcome.NOT_INDEXED, file_ref=file_ref)
        if file_mtime(path) > entry.last_modified:
            return FileCheck(outcome=FileOutcome.MODIFIED, file_ref=file_ref)
        current = sha256_file(path)
    except OSError as error:
        return FileCheck(outcome=FileOutcome.VERIFICATION_FAILED, error=str(error))
    if current != entry.digest:
        return FileCheck(
            outcome=FileOutcome.ALTERED,
            file_ref=file_ref,
            expected_digest=entry.digest,
            actual_digest=current,
        )
    return FileCheck(outcome=FileOutcome.VERIFIED, file_ref=file_ref)


def verify_files(
    target_root: Path | str,
    candidate_files: Iterable[Path | str],
    mode: VerificationMode | str = VerificationMode.MODERATE,
    progress_interval: int | None = None,
    sink: EventSink = null_sink,
) -> VerificationReport:
    """Compare guarded candidate files with their indices and apply a verdict."""
    mode = VerificationMode.parse(mode)
    sink(
        make_event(
            "verification_started", "info", f"Verifying files in directory: '{target_root}'"
        )
    )
    resolution, indices = _prepare_run(target_root, candidate_files, sink)

    sink(make_event("verifying", "info", "Verifying file integrity..."))
    tally = VerificationTally()
    paths = sorted(resolution.assignments)
    for position, path in enumerate(paths, start=1):
        if progress_interval and progress_interval > 0 and position % progress_interval == 0:
            sink(
                make_event(
                    "progress",
                    "info",
                    f"Verifying file {position}/{len(paths)}",
                    current=position,
                    total=len(paths),
                )
            )
        guard_directory = resolution.assignments[path]
        check = check_file(path, guard_directory, indices.index_for(guard_directory))
        tally.record(check.outcome)
        _emit_check(sink, path, check)

    passed = passes(mode, tally)
    sink(
        make_event(
            "verification_completed",
            "info" if passed else "error",
            (
                f"Verification completed: {tally.verified} files verified, "
                f"{tally.not_indexed} files not indexed, {tally.modified} files modified, "
                f"{tally.altered} files altered, "
                f"{tally.verification_failed} failed file verifications."
            ),
            mode=mode.value,
            passed=passed,
            verified=tally.verified,
            not_indexed=tally.not_indexed,
            modified=tally.modified,
            altered=tally.altered,
            verification_failed=tally.verification_failed,
        )
    )
    return VerificationReport(mode=mode, tally=tally, passed=passed)


def _emit_check(sink: EventSink, path: Path, check: FileCheck) -> None:
    match check.outcome:
        case FileOutcome.NOT_INDEXED:
            sink(make_event("not_indexed", "warning", f"File '{path}' is not indexed.", path=path))
        case FileOutcome.MODIFIED:
            sink(
                make_event(
                    "modified",
                    "warning",
                    f"File '{path}' has been modified since last index.",
                    path=path,
                )
            )
        case FileOutcome.ALTERED:
            sink(
                make_event(
                    "altered",
                    "error",
                    (
                        f"File '{path}' has been altered. Expected hash: "
                        f"{check.expected_digest}, Current hash: {check.actual_digest}"
                    ),
                    path=path,
                    expected=check.expected_digest,
                    actual=check.actual_digest,
                )
            )
        case FileOutcome.VERIFICATION_FAILED:
            sink(
                make_event(
                    "verification_failed",
                    "error",
                    f"Error verifying file '{path}': {check.error}",
                    path=path,
                )
            )
        case FileOutcome.VERIFIED:
            sink(
                make_event(
                    "verified", "debug", f"File '{path}' is verified successfully.", path=path
                )
            )


class FileGuard:
    """Operations exposed to the command line, sharing one event sink."""

    def __init__(self, sink: EventSink = null_sink) -> None:
        self._sink = sink

    def initialize(self, path: Path | str) -> Path:
        """Create a guard directory inside path."""
        return initialize(path, sink=self._sink)

    def index_files(
        self, target_root: Path | str, file_paths: Iterable[Path | str]
    ) -> IndexSummary:
        """Index files below target_root."""
        return index_files(target_root, file_paths, sink=self._sink)

    def verify_files(
        self,
        target_root: Path | str,
        file_paths: Iterable[Path | str],
        mode: VerificationMode | str = VerificationMode.MODERATE,
        progress_interval: int | None = None,
    ) -> bool:
        """Verify files below target_root and return the verdict."""
        report = verify_files(
            target_root,
            file_paths,
            mode=mode,
            progress_interval=progress_interval,
            sink=self._sink,
        )
        return report.passed

    @staticmethod
    def retrieve_file_paths(root: Path | str) -> list[Path]:
        """List candidate files below root."""
        return retrieve_file_paths(Path(root))

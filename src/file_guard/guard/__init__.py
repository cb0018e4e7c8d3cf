"""Guard directory resolution and index reconciliation."""

from .engine import (
    FileCheck,
    FileGuard,
    FileOutcome,
    IndexAction,
    IndexSummary,
    VerificationMode,
    VerificationReport,
    VerificationTally,
    check_file,
    index_file,
    index_files,
    initialize,
    passes,
    verify_files,
)
from .refs import to_ref
from .resolver import (
    GUARD_DIRECTORY_NAME,
    GuardConfigurationError,
    GuardResolution,
    NoGuardDirectoryError,
    UnguardedFilesError,
    discover_guard_directories,
    find_enclosing_guard_directory,
    is_guard_internal,
    nearest_guard_directory,
    normalize_path,
    resolve,
)

__all__ = [
    "FileCheck",
    "FileGuard",
    "FileOutcome",
    "GUARD_DIRECTORY_NAME",
    "GuardConfigurationError",
    "GuardResolution",
    "IndexAction",
    "IndexSummary",
    "NoGuardDirectoryError",
    "UnguardedFilesError",
    "VerificationMode",
    "VerificationReport",
    "VerificationTally",
    "check_file",
    "discover_guard_directories",
    "find_enclosing_guard_directory",
    "index_file",
    "index_files",
    "initialize",
    "is_guard_internal",
    "nearest_guard_directory",
    "normalize_path",
    "passes",
    "resolve",
    "to_ref",
    "verify_files",
]

"""Command-line entrypoint."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from file_guard.config import CliOverrides, GuardConfig, load_effective_config
from file_guard.guard import FileGuard, GuardConfigurationError, UnguardedFilesError
from file_guard.guard.engine import VerificationMode
from file_guard.logging import (
    LEVELS,
    ConsoleEventSink,
    EventSink,
    JsonlAuditLogger,
    fan_out,
    make_event,
)

EXIT_OK = 0
EXIT_VERIFICATION_FAILED = 1
EXIT_FATAL = 3


def build_arg_parser() -> argparse.ArgumentParser:
    """Build argument parser for the file-guard commands."""
    parser = argparse.ArgumentParser(
        prog="file-guard",
        description="Detect unauthorized modification of files in guarded directories.",
    )
    parser.add_argument("--config", required=False, default=None)
    parser.add_argument("--audit-log", required=False, default=None)
    parser.add_argument("--log-level", choices=LEVELS, required=False, default=None)
    commands = parser.add_subparsers(dest="command", required=True)

    init = commands.add_parser("init", help="Initialize FileGuard in a directory")
    init.add_argument("--path", "-p", required=True, help="Path to initialize FileGuard in")

    index = commands.add_parser("index", help="Index a file or directory")
    index.add_argument("--path", "-p", required=True, help="Path to file or directory to index")

    verify = commands.add_parser("verify", help="Verify a file or directory")
    verify.add_argument("--path", "-p", required=True, help="Path to file or directory to verify")
    verify.add_argument(
        "--mode",
        "-m",
        choices=[mode.value for mode in VerificationMode],
        required=False,
        default=None,
        help=(
            "lenient (fail on altered files), moderate (fail on altered files or failed "
            "verifications), strict (also fail on unindexed and modified files)"
        ),
    )
    verify.add_argument(
        "--progress-interval",
        "-pi",
        "-i",
        type=int,
        required=False,
        default=None,
        help="Interval for progress updates (in files); zero or less disables them",
    )

    audit = commands.add_parser("audit", help="Print recent events from the audit log")
    audit.add_argument("--since", required=False, default=None)
    audit.add_argument("--limit", type=int, required=False, default=50)
    return parser


def prepare_target(path: Path) -> tuple[Path, list[Path]]:
    """Return the scan root and candidate files for a file or directory argument."""
    if path.is_dir():
        return path, FileGuard.retrieve_file_paths(path)
    if not path.exists():
        raise FileNotFoundError(f"The path '{path}' does not exist.")
    return path.parent, [path]


def exclude_audit_log(file_paths: list[Path], audit_log: Path | None) -> list[Path]:
    """Drop the active audit log, which changes as events are written."""
    if audit_log is None:
        return file_paths
    target = audit_log.resolve()
    return [path for path in file_paths if path.resolve() != target]


def build_sink(config: GuardConfig) -> EventSink:
    """Console output plus the audit log when one is configured."""
    console = ConsoleEventSink(sys.stderr, min_level=config.logging.level)
    if config.logging.audit_log is None:
        return console
    return fan_out(console, JsonlAuditLogger(config.logging.audit_log))


def main(argv: list[str] | None = None) -> int:
    """Entrypoint for the file-guard command."""
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    overrides = CliOverrides(
        mode=getattr(args, "mode", None),
        progress_interval=getattr(args, "progress_interval", None),
        level=args.log_level,
        audit_log=Path(args.audit_log) if args.audit_log is not None else None,
    )
    try:
        config = load_effective_config(
            config_path=Path(args.config) if args.config is not None else None,
            overrides=overrides,
        )
    except (ValueError, OSError) as error:
        sys.stderr.write(f"ERROR   Invalid configuration: {error}\n")
        return EXIT_FATAL

    if args.command == "audit":
        return _print_audit_log(config, since=args.since, limit=args.limit)

    sink = build_sink(config)
    try:
        return _run_command(args, config, FileGuard(sink))
    except GuardConfigurationError as error:
        _report_configuration_error(sink, error)
        return EXIT_FATAL
    except Exception as error:
        sink(
            make_event(
                "fatal",
                "error",
                f"Failed to {args.command} files: {error}",
                error=type(error).__name__,
            )
        )
        return EXIT_FATAL


def _run_command(args: argparse.Namespace, config: GuardConfig, guard: FileGuard) -> int:
    if args.command == "init":
        guard.initialize(Path(args.path))
        return EXIT_OK
    target_root, file_paths = prepare_target(Path(args.path))
    file_paths = exclude_audit_log(file_paths, config.logging.audit_log)
    if args.command == "index":
        guard.index_files(target_root, file_paths)
        return EXIT_OK
    passed = guard.verify_files(
        target_root,
        file_paths,
        mode=config.verify.mode,
        progress_interval=config.verify.progress_interval,
    )
    if not passed:
        sys.stderr.write(
            "ERROR   File verification failed. Please check the logs for more details.\n"
        )
        return EXIT_VERIFICATION_FAILED
    return EXIT_OK


def _report_configuration_error(sink: EventSink, error: GuardConfigurationError) -> None:
    paths: list[str] = []
    if isinstance(error, UnguardedFilesError):
        paths = [str(path) for path in error.paths]
    message = error.reason
    if paths:
        message = "The following files cannot be guarded:\n" + "\n".join(paths)
    sink(
        make_event(
            "configuration_error",
            "error",
            message,
            reason=error.reason,
            hint=error.hint,
            paths=paths,
        )
    )
    sink(make_event("configuration_hint", "error", error.hint))


def _print_audit_log(config: GuardConfig, since: str | None, limit: int) -> int:
    if config.logging.audit_log is None:
        sys.stderr.write(
            "ERROR   No audit log configured; pass --audit-log or set logging.audit_log.\n"
        )
        return EXIT_FATAL
    logger = JsonlAuditLogger(config.logging.audit_log)
    for record in logger.read(since=since, limit=limit):
        sys.stdout.write(f"{json.dumps(record, sort_keys=True)}\n")
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())

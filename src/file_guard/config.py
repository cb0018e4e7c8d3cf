"""Configuration loading and deterministic merge order."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path

from file_guard.guard.engine import VerificationMode
from file_guard.logging import LEVELS

CONFIG_FILE_NAME = "file-guard.toml"


@dataclass(slots=True, frozen=True)
class VerifyConfig:
    """Verification defaults."""

    mode: VerificationMode
    progress_interval: int | None


@dataclass(slots=True, frozen=True)
class LoggingConfig:
    """Event output settings."""

    level: str
    audit_log: Path | None


@dataclass(slots=True, frozen=True)
class GuardConfig:
    """Fully merged command configuration."""

    verify: VerifyConfig
    logging: LoggingConfig

    def to_public_dict(self) -> dict[str, object]:
        """Return a serializable snapshot of the effective configuration."""
        return {
            "verify": {
                "mode": self.verify.mode.value,
                "progress_interval": self.verify.progress_interval,
            },
            "logging": {
                "level": self.logging.level,
                "audit_log": str(self.logging.audit_log) if self.logging.audit_log else None,
            },
        }


@dataclass(slots=True, frozen=True)
class CliOverrides:
    """Optional command-line overrides applied at highest precedence."""

    mode: str | None = None
    progress_interval: int | None = None
    level: str | None = None
    audit_log: Path | None = None


def default_config() -> GuardConfig:
    """Build the built-in defaults."""
    return GuardConfig(
        verify=VerifyConfig(mode=VerificationMode.MODERATE, progress_interval=None),
        logging=LoggingConfig(level="info", audit_log=None),
    )


def load_config_file(config_path: Path) -> dict[str, object]:
    """Load a TOML config file; a missing file yields an empty payload."""
    if not config_path.exists():
        return {}
    with config_path.open("rb") as handle:
        payload = tomllib.load(handle)
    if not isinstance(payload, dict):
        raise ValueError(f"{config_path.name} must contain a top-level table.")
    return payload


def _get_table(payload: dict[str, object], key: str) -> dict[str, object]:
    value = payload.get(key, {})
    if not isinstance(value, dict):
        raise ValueError(f"Config section '{key}' must be a table.")
    return value


def merge_config(
    base: GuardConfig,
    payload: dict[str, object],
    overrides: CliOverrides,
    config_dir: Path,
) -> GuardConfig:
    """Merge defaults, file config, then CLI overrides."""
    verify_payload = _get_table(payload, "verify")
    logging_payload = _get_table(payload, "logging")

    mode = base.verify.mode
    if "mode" in verify_payload:
        mode = _mode(verify_payload["mode"], "verify.mode")
    progress_interval = _progress_interval(
        verify_payload.get("progress_interval"),
        "verify.progress_interval",
        base.verify.progress_interval,
    )

    level = base.logging.level
    if "level" in logging_payload:
        level = _level(logging_payload["level"], "logging.level")
    audit_log = base.logging.audit_log
    if "audit_log" in logging_payload:
        raw_audit_log = logging_payload["audit_log"]
        if not isinstance(raw_audit_log, str) or not raw_audit_log:
            raise ValueError("Config field 'logging.audit_log' must be a non-empty string.")
        audit_log = config_dir / raw_audit_log

    merged = GuardConfig(
        verify=VerifyConfig(mode=mode, progress_interval=progress_interval),
        logging=LoggingConfig(level=level, audit_log=audit_log),
    )
    return apply_cli_overrides(merged, overrides)


def apply_cli_overrides(config: GuardConfig, overrides: CliOverrides) -> GuardConfig:
    """Apply command-line overrides at highest precedence."""
    mode = config.verify.mode
    if overrides.mode is not None:
        mode = _mode(overrides.mode, "overrides.mode")
    progress_interval = _progress_interval(
        overrides.progress_interval,
        "overrides.progress_interval",
        config.verify.progress_interval,
    )
    level = config.logging.level
    if overrides.level is not None:
        level = _level(overrides.level, "overrides.level")
    audit_log = overrides.audit_log or config.logging.audit_log
    return GuardConfig(
        verify=VerifyConfig(mode=mode, progress_interval=progress_interval),
        logging=LoggingConfig(
            level=level,
            audit_log=audit_log.resolve() if audit_log is not None else None,
        ),
    )


def load_effective_config(
    config_path: Path | None = None,
    overrides: CliOverrides | None = None,
) -> GuardConfig:
    """Load effective config using merge order defaults -> config file -> overrides."""
    path = config_path if config_path is not None else Path.cwd() / CONFIG_FILE_NAME
    if config_path is not None and not path.exists():
        raise ValueError(f"Config file '{path}' does not exist.")
    payload = load_config_file(path)
    return merge_config(default_config(), payload, overrides or CliOverrides(), path.parent)


def _mode(value: object, name: str) -> VerificationMode:
    if not isinstance(value, str):
        raise ValueError(f"Config field '{name}' must be a string.")
    try:
        return VerificationMode.parse(value)
    except ValueError as error:
        raise ValueError(f"Config field '{name}': {error}") from None


def _level(value: object, name: str) -> str:
    if not isinstance(value, str) or value.lower() not in LEVELS:
        raise ValueError(f"Config field '{name}' must be one of {', '.join(LEVELS)}.")
    return value.lower()


def _progress_interval(value: object, name: str, default: int | None) -> int | None:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Config field '{name}' must be an integer.")
    if value < 1:
        return None
    return value

from __future__ import annotations

from pathlib import Path

import pytest

from file_guard.config import CONFIG_FILE_NAME, CliOverrides, load_effective_config
from file_guard.guard import VerificationMode


def test_defaults_when_no_config_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)

    config = load_effective_config()

    assert config.verify.mode is VerificationMode.MODERATE
    assert config.verify.progress_interval is None
    assert config.logging.level == "info"
    assert config.logging.audit_log is None


def test_merge_order_defaults_then_file_then_cli(tmp_path: Path) -> None:
    config_path = tmp_path / CONFIG_FILE_NAME
    config_path.write_text(
        "\n".join(
            [
                "[verify]",
                'mode = "strict"',
                "progress_interval = 250",
                "",
                "[logging]",
                'level = "warning"',
                'audit_log = "logs/audit.jsonl"',
            ]
        ),
        encoding="utf-8",
    )
    overrides = CliOverrides(mode="lenient", level="debug")

    config = load_effective_config(config_path=config_path, overrides=overrides)

    assert config.verify.mode is VerificationMode.LENIENT
    assert config.verify.progress_interval == 250
    assert config.logging.level == "debug"
    assert config.logging.audit_log == (tmp_path / "logs" / "audit.jsonl").resolve()


def test_config_file_is_picked_up_from_working_directory(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    (tmp_path / CONFIG_FILE_NAME).write_text('[verify]\nmode = "Strict"\n', encoding="utf-8")
    monkeypatch.chdir(tmp_path)

    config = load_effective_config()

    assert config.verify.mode is VerificationMode.STRICT


def test_audit_log_override_has_highest_precedence(tmp_path: Path) -> None:
    config_path = tmp_path / CONFIG_FILE_NAME
    config_path.write_text('[logging]\naudit_log = "from-file.jsonl"\n', encoding="utf-8")
    override = tmp_path / "from-cli.jsonl"

    config = load_effective_config(
        config_path=config_path,
        overrides=CliOverrides(audit_log=override, progress_interval=10),
    )

    assert config.logging.audit_log == override.resolve()
    assert config.verify.progress_interval == 10
    assert config.to_public_dict() == {
        "verify": {"mode": "moderate", "progress_interval": 10},
        "logging": {"level": "info", "audit_log": str(override.resolve())},
    }

from __future__ import annotations

import json
import os
from pathlib import Path

import pytest

from file_guard.cli import EXIT_FATAL, EXIT_OK, EXIT_VERIFICATION_FAILED, main

BASE_NS = 1_700_000_000_000_000_000


def _tree(root: Path) -> None:
    (root / "conf").mkdir(parents=True)
    (root / "conf" / "app.ini").write_text("debug=false\n", encoding="utf-8")
    (root / "release.txt").write_text("v1\n", encoding="utf-8")
    for path in (root / "conf" / "app.ini", root / "release.txt"):
        os.utime(path, ns=(BASE_NS, BASE_NS))


def test_init_index_verify_round_trip(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    _tree(tmp_path)

    assert main(["init", "--path", str(tmp_path)]) == EXIT_OK
    assert main(["index", "-p", str(tmp_path)]) == EXIT_OK
    assert main(["verify", "-p", str(tmp_path), "--mode", "strict"]) == EXIT_OK

    stderr = capsys.readouterr().err
    assert "FileGuard initialized successfully" in stderr
    assert "2 files verified" in stderr


def test_tampered_file_exits_with_verification_failure(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    _tree(tmp_path)
    main(["init", "-p", str(tmp_path)])
    main(["index", "-p", str(tmp_path)])
    target = tmp_path / "conf" / "app.ini"
    target.write_text("debug=true\n", encoding="utf-8")
    os.utime(target, ns=(BASE_NS, BASE_NS))

    code = main(["verify", "-p", str(tmp_path), "-m", "lenient"])

    assert code == EXIT_VERIFICATION_FAILED
    stderr = capsys.readouterr().err
    assert "has been altered" in stderr
    assert "File verification failed" in stderr


def test_single_file_argument_uses_parent_as_target(tmp_path: Path) -> None:
    _tree(tmp_path)
    main(["init", "-p", str(tmp_path)])
    main(["index", "-p", str(tmp_path / "conf" / "app.ini")])

    index = json.loads((tmp_path / ".guard" / "index").read_text(encoding="utf-8"))

    assert sorted(index["files"]) == ["./conf/app.ini"]
    assert main(["verify", "-p", str(tmp_path / "release.txt"), "-m", "strict"]) == (
        EXIT_VERIFICATION_FAILED
    )
    assert main(["verify", "-p", str(tmp_path / "release.txt")]) == EXIT_OK


def test_unguarded_tree_is_fatal(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    _tree(tmp_path)

    assert main(["index", "-p", str(tmp_path)]) == EXIT_FATAL
    assert "No guard directory found" in capsys.readouterr().err


def test_files_outside_nested_guard_are_listed(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    _tree(tmp_path)
    main(["init", "-p", str(tmp_path / "conf")])

    code = main(["index", "-p", str(tmp_path)])

    stderr = capsys.readouterr().err
    assert code == EXIT_FATAL
    assert "The following files cannot be guarded" in stderr
    assert str(tmp_path / "release.txt") in stderr
    assert "app.ini" not in stderr.split("cannot be guarded", 1)[1]


def test_missing_index_file_is_fatal(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    _tree(tmp_path)
    main(["init", "-p", str(tmp_path)])
    (tmp_path / ".guard" / "index").unlink()

    assert main(["verify", "-p", str(tmp_path)]) == EXIT_FATAL
    assert "does not exist" in capsys.readouterr().err


def test_missing_path_is_fatal(tmp_path: Path) -> None:
    assert main(["verify", "-p", str(tmp_path / "absent")]) == EXIT_FATAL


def test_invalid_config_is_fatal(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    config = tmp_path / "bad.toml"
    config.write_text('[verify]\nmode = "paranoid"\n', encoding="utf-8")

    assert main(["--config", str(config), "verify", "-p", str(tmp_path)]) == EXIT_FATAL
    assert "Invalid configuration" in capsys.readouterr().err


def test_audit_log_records_run_and_is_readable(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    data = tmp_path / "data"
    _tree(data)
    audit = tmp_path / "audit.jsonl"
    main(["--audit-log", str(audit), "init", "-p", str(data)])
    main(["--audit-log", str(audit), "--log-level", "error", "index", "-p", str(data)])
    capsys.readouterr()

    assert main(["--audit-log", str(audit), "audit", "--limit", "1"]) == EXIT_OK

    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 1
    assert json.loads(lines[0])["kind"] == "indexing_completed"


def test_audit_without_log_is_fatal(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)

    assert main(["audit"]) == EXIT_FATAL


def test_progress_interval_and_config_defaults(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    data = tmp_path / "data"
    _tree(data)
    config = tmp_path / "file-guard.toml"
    config.write_text('[verify]\nmode = "strict"\nprogress_interval = 1\n', encoding="utf-8")
    main(["init", "-p", str(data)])
    (data / "late.txt").write_text("late\n", encoding="utf-8")

    code = main(["--config", str(config), "verify", "-p", str(data)])

    stderr = capsys.readouterr().err
    assert code == EXIT_VERIFICATION_FAILED
    assert "Verifying file 3/3" in stderr


def test_audit_log_inside_guarded_root_is_not_fingerprinted(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    _tree(tmp_path)
    (tmp_path / "file-guard.toml").write_text(
        '[verify]\nmode = "strict"\n\n[logging]\naudit_log = "guard-audit.jsonl"\n',
        encoding="utf-8",
    )
    monkeypatch.chdir(tmp_path)

    assert main(["init", "-p", str(tmp_path)]) == EXIT_OK
    assert main(["index", "-p", str(tmp_path)]) == EXIT_OK
    assert main(["verify", "-p", str(tmp_path)]) == EXIT_OK

    index = json.loads((tmp_path / ".guard" / "index").read_text(encoding="utf-8"))
    assert "./guard-audit.jsonl" not in index["files"]
    assert "./release.txt" in index["files"]
    assert (tmp_path / "guard-audit.jsonl").stat().st_size > 0


def test_non_positive_progress_interval_disables_progress(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    _tree(tmp_path)
    main(["init", "-p", str(tmp_path)])
    main(["index", "-p", str(tmp_path)])
    capsys.readouterr()

    code = main(["--log-level", "debug", "verify", "-p", str(tmp_path), "-pi", "0"])

    assert code == EXIT_OK
    assert "Verifying file 1/2" not in capsys.readouterr().err

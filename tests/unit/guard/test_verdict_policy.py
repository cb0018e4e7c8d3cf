from __future__ import annotations

import pytest

from file_guard.guard import FileOutcome, VerificationMode, VerificationTally, passes


def test_not_indexed_only_fails_strict() -> None:
    tally = VerificationTally(not_indexed=1)

    assert passes(VerificationMode.LENIENT, tally) is True
    assert passes(VerificationMode.MODERATE, tally) is True
    assert passes(VerificationMode.STRICT, tally) is False


def test_modified_only_fails_strict() -> None:
    tally = VerificationTally(modified=2, verified=5)

    assert passes(VerificationMode.LENIENT, tally) is True
    assert passes(VerificationMode.MODERATE, tally) is True
    assert passes(VerificationMode.STRICT, tally) is False


def test_verification_failure_fails_moderate_and_strict() -> None:
    tally = VerificationTally(verification_failed=1)

    assert passes(VerificationMode.LENIENT, tally) is True
    assert passes(VerificationMode.MODERATE, tally) is False
    assert passes(VerificationMode.STRICT, tally) is False


def test_altered_fails_every_mode() -> None:
    tally = VerificationTally(altered=1, verified=10)

    assert not any(passes(mode, tally) for mode in VerificationMode)


def test_clean_tally_passes_every_mode() -> None:
    tally = VerificationTally(verified=3)

    assert all(passes(mode, tally) for mode in VerificationMode)


def test_unknown_mode_is_rejected() -> None:
    with pytest.raises(ValueError, match="Unknown verification mode"):
        passes("paranoid", VerificationTally())  # type: ignore[arg-type]
    with pytest.raises(ValueError, match="expected one of lenient, moderate, strict"):
        VerificationMode.parse("paranoid")


def test_mode_parse_is_case_insensitive() -> None:
    assert VerificationMode.parse("Strict") is VerificationMode.STRICT
    assert VerificationMode.parse(VerificationMode.LENIENT) is VerificationMode.LENIENT


def test_tally_records_each_outcome_once() -> None:
    tally = VerificationTally()
    for outcome in FileOutcome:
        tally.record(outcome)

    assert tally == VerificationTally(1, 1, 1, 1, 1)
    assert tally.total == 5

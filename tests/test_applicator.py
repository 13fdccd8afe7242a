"""
Change tracking tests
Outcome records, the attempt combinator and the run summary
"""

import subprocess

import pytest

from macsetup.applicator import ChangeTracker, Outcome
from macsetup.errors import CommandError, ConfigError, MacSetupError
from macsetup.verification import VerificationResult


def _boom(exc):
    def op():
        raise exc

    return op


class TestAttempt:
    """Best-effort application of one setting"""

    def test_success_records_change(self):
        tracker = ChangeTracker()
        assert tracker.attempt("Enabled Dock auto-hide", lambda: None) is True

        summary = tracker.summary()
        assert summary.changes == ("Enabled Dock auto-hide",)
        assert summary.warnings == ()

    def test_failure_becomes_warning_with_default_message(self):
        tracker = ChangeTracker()
        ok = tracker.attempt("Disabled startup sound", _boom(CommandError(["nvram"], 1)))

        assert ok is False
        assert tracker.summary().warnings == ("Failed: Disabled startup sound",)
        assert tracker.summary().changes == ()

    def test_custom_warning_text(self):
        tracker = ChangeTracker()
        tracker.attempt(
            "Disabled startup sound",
            _boom(CommandError(["nvram"], 1)),
            warning="Could not disable startup sound (requires admin)",
        )
        assert tracker.summary().warnings == ("Could not disable startup sound (requires admin)",)

    @pytest.mark.parametrize("exc", [OSError("disk full"), subprocess.TimeoutExpired(["x"], 1)])
    def test_os_and_subprocess_errors_are_best_effort(self, exc):
        tracker = ChangeTracker()
        assert tracker.attempt("Wrote something", _boom(exc)) is False
        assert len(tracker.summary().warnings) == 1

    def test_required_failure_records_and_reraises(self):
        tracker = ChangeTracker()
        with pytest.raises(CommandError):
            tracker.attempt("Erased disk4", _boom(CommandError(["diskutil"], 1)), required=True)

        records = tracker.records
        assert len(records) == 1
        assert records[0].outcome == Outcome.FAILED
        assert tracker.summary().failures[0].startswith("Failed: Erased disk4: ")

    def test_required_os_error_becomes_macsetup_error(self, tmp_path):
        tracker = ChangeTracker()
        target = tmp_path / "key.txt"
        target.mkdir()
        with pytest.raises(MacSetupError) as exc:
            tracker.attempt(
                "Saved recovery key",
                lambda: target.write_text("secret"),
                warning="Failed to save recovery key",
                required=True,
            )

        assert isinstance(exc.value.__cause__, IsADirectoryError)
        assert str(exc.value).startswith("Failed to save recovery key: ")
        assert tracker.records[0].outcome == Outcome.FAILED

    def test_programming_errors_propagate(self):
        tracker = ChangeTracker()
        with pytest.raises(ZeroDivisionError):
            tracker.attempt("Divided", lambda: 1 / 0)
        assert tracker.records == ()

    def test_change_count_equals_successful_attempts(self):
        tracker = ChangeTracker()
        results = [
            tracker.attempt("a", lambda: None),
            tracker.attempt("b", _boom(ConfigError("bad"))),
            tracker.attempt("c", lambda: None),
            tracker.attempt("d", _boom(OSError("nope"))),
        ]
        summary = tracker.summary()
        assert len(summary.changes) == sum(results) == 2
        assert len(summary.warnings) == 2


class TestRunSummary:
    """Immutable end-of-run summary"""

    def test_order_is_preserved(self):
        tracker = ChangeTracker()
        for d in ["first", "second", "third"]:
            tracker.attempt(d, lambda: None)
        assert tracker.summary().changes == ("first", "second", "third")

    def test_summary_is_a_snapshot(self):
        tracker = ChangeTracker()
        tracker.attempt("one", lambda: None)
        summary = tracker.summary()
        tracker.attempt("two", lambda: None)
        assert summary.changes == ("one",)

    def test_verified_requires_every_check(self):
        tracker = ChangeTracker()
        tracker.add_verification(VerificationResult("a", True, "1", "1"))
        assert tracker.summary().verified
        tracker.add_verification(VerificationResult("b", False, "1", "0"))
        assert not tracker.summary().verified

    def test_to_dict(self):
        tracker = ChangeTracker()
        tracker.attempt("Enabled firewall", lambda: None)
        tracker.warn("No SecureToken")
        tracker.add_fact("User", "tester")
        tracker.add_note("Restart to finish")

        doc = tracker.summary(extra_facts={"Architecture": "arm64"}).to_dict()
        assert doc["changes"] == ["Enabled firewall"]
        assert doc["warnings"] == ["No SecureToken"]
        assert doc["facts"] == {"User": "tester", "Architecture": "arm64"}
        assert doc["notes"] == ["Restart to finish"]

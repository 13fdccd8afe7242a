"""
Hardening workflow tests
"""

import pytest

from macsetup.errors import PreconditionError
from macsetup.main import main, run


class TestHardenPreconditions:
    """Refused runs change nothing"""

    def test_old_macos_exits_before_any_change(self, fake_mac, config_file):
        fake_mac.macos_version = "14.6"
        assert main(["harden", "--config", str(config_file)]) == 1
        assert {c[0] for c in fake_mac.commands()} == {"sw_vers"}

    def test_intel_is_refused(self, fake_mac, config_file, monkeypatch):
        monkeypatch.setattr("platform.machine", lambda: "x86_64")
        with pytest.raises(PreconditionError):
            run("harden", config_path=str(config_file))
        assert not fake_mac.ran("defaults")

    def test_not_macos_is_refused(self, fake_mac, config_file, monkeypatch):
        monkeypatch.setattr("platform.system", lambda: "Linux")
        assert main(["harden", "--config", str(config_file)]) == 1
        assert fake_mac.calls == []


class TestHarden:
    """macsetup harden"""

    def test_applies_settings(self, fake_mac, config_file):
        summary = run("harden", config_path=str(config_file))

        assert ["sudo", "-v"] in fake_mac.calls
        assert "FileVault enablement initiated (will complete at next login)" in summary.changes
        assert "Firewall enabled" in summary.changes
        assert "Stealth mode enabled" in summary.changes
        assert "Gatekeeper set to allow signed apps only" in summary.changes
        assert "Automatic update download enabled" in summary.changes
        assert "Guest account disabled" in summary.changes
        assert summary.warnings == ()
        assert fake_mac.prefs[("/Library/Preferences/com.apple.SoftwareUpdate", "AutomaticDownload")] == "1"

    def test_verification(self, fake_mac, config_file):
        summary = run("harden", config_path=str(config_file))

        failed = [v.description for v in summary.verification if not v.passed]
        # FileVault only turns on at the next login.
        assert failed == ["FileVault is On"]
        assert len(summary.verification) == 9

    def test_filevault_already_on(self, fake_mac, config_file):
        fake_mac.filevault = "FileVault is On."
        summary = run("harden", config_path=str(config_file))

        assert not fake_mac.ran("fdesetup", "enable")
        assert summary.verified

    def test_missing_secure_token_warns(self, fake_mac, config_file):
        fake_mac.secure_token = False
        summary = run("harden", config_path=str(config_file))
        assert any("SecureToken" in w for w in summary.warnings)

    def test_missing_firewall_tool_gives_warnings(self, fake_mac, config_file):
        fake_mac.missing.add("socketfilterfw")
        summary = run("harden", config_path=str(config_file))

        assert {
            "Could not enable firewall",
            "Could not block incoming connections",
            "Could not enable stealth mode",
            "Could not enable firewall logging",
        } <= set(summary.warnings)
        assert "Gatekeeper enabled" in summary.changes
        assert main(["harden", "--config", str(config_file)]) == 0

    def test_report_facts_and_notes(self, fake_mac, config_file):
        summary = run("harden", config_path=str(config_file))
        facts = dict(summary.facts)

        assert facts["User"] == "tester"
        assert facts["macOS Version"] == "15.1"
        assert facts["Model"] == "MacBook Air"
        assert any(n.startswith("Manual: Turn off Location Services") for n in summary.notes)

    def test_rerun_is_idempotent(self, fake_mac, config_file):
        first = run("harden", config_path=str(config_file))
        second = run("harden", config_path=str(config_file))
        assert second.warnings == ()
        assert set(second.changes) == set(first.changes)

"""
Command runner tests
argv prefixing, dry-run, missing executables and secret output
"""

import logging
import subprocess

import pytest

from macsetup.errors import CommandError
from macsetup.lib.command import build_argv, run_cmd, spawn_cmd


class TestBuildArgv:
    """Privilege prefixes"""

    def test_plain(self, fake_mac):
        assert build_argv(["defaults", "read", "x", "y"]) == ["defaults", "read", "x", "y"]

    def test_sudo_when_not_root(self, fake_mac):
        assert build_argv(["spctl", "--status"], sudo=True) == ["sudo", "-n", "spctl", "--status"]

    def test_sudo_is_dropped_for_root(self, as_root):
        assert build_argv(["spctl", "--status"], sudo=True) == ["spctl", "--status"]

    def test_as_user_passes_environment(self, as_root):
        argv = build_argv(["/bin/bash", "install.sh"], as_user="tester", env={"NONINTERACTIVE": "1"})
        assert argv == ["sudo", "-u", "tester", "-H", "env", "NONINTERACTIVE=1", "/bin/bash", "install.sh"]


class TestRunCmd:
    """Running external tools"""

    def test_dry_run_executes_nothing(self, fake_mac):
        r = run_cmd(["diskutil", "eraseDisk", "HFS+", "USB", "GPT", "disk4"], dry_run=True)
        assert r.ok
        assert fake_mac.calls == []

    def test_non_zero_raises(self, fake_mac):
        fake_mac.failing.add("killall")
        with pytest.raises(CommandError) as exc:
            run_cmd(["killall", "Dock"])
        assert exc.value.returncode == 1

    def test_non_zero_without_check(self, fake_mac):
        fake_mac.failing.add("killall")
        r = run_cmd(["killall", "Dock"], check=False)
        assert r.returncode == 1
        assert not r.ok

    def test_missing_executable_is_127(self, fake_mac):
        fake_mac.missing.add("osascript")
        with pytest.raises(CommandError) as exc:
            run_cmd(["osascript", "-e", "beep"])
        assert exc.value.returncode == 127
        assert run_cmd(["osascript", "-e", "beep"], check=False).returncode == 127

    def test_command_is_logged(self, fake_mac, caplog):
        with caplog.at_level(logging.INFO, logger="macsetup.lib.command"):
            run_cmd(["sw_vers", "-productVersion"])
        assert "CMD sw_vers -productVersion" in caplog.text

    def test_secret_output_is_never_logged(self, fake_mac, caplog):
        with caplog.at_level(logging.DEBUG):
            r = run_cmd(["fdesetup", "changerecovery", "-personal"], secret=True)
        assert fake_mac.recovery_key in r.stdout
        assert fake_mac.recovery_key not in caplog.text

    def test_output_is_captured_by_default(self, fake_mac):
        run_cmd(["sw_vers", "-productVersion"])
        assert fake_mac.streams_of("sw_vers") == (subprocess.PIPE, subprocess.PIPE)

    def test_interactive_leaves_prompts_on_the_terminal(self, fake_mac):
        r = run_cmd(["fdesetup", "changerecovery", "-personal"], secret=True, interactive=True)
        assert fake_mac.streams_of("changerecovery") == (subprocess.PIPE, None)
        assert fake_mac.recovery_key in r.stdout

    def test_uncaptured_output(self, fake_mac):
        r = run_cmd(["/bin/bash", "install.sh"], interactive=True, capture=False)
        assert fake_mac.streams_of("/bin/bash") == (None, None)
        assert r.ok

    def test_spawn(self, fake_mac):
        spawn_cmd(["/Applications/Firefox.app/Contents/MacOS/firefox", "-no-remote"])
        assert fake_mac.spawned == [["/Applications/Firefox.app/Contents/MacOS/firefox", "-no-remote"]]

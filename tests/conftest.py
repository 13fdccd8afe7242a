"""
Shared fixtures: a fake macOS command layer.

Every external command the package runs goes through subprocess.run or
subprocess.Popen; FakeMac answers them from in-memory state (a preference
store, FileVault status, firewall state) and records each call.
"""

import logging
import os
import platform
import plistlib
import subprocess

import pytest
import yaml


def _strip_privilege_prefix(argv):
    """Drop `sudo -n` / `sudo -u U -H env K=V` so handlers see the real command."""
    if argv[:2] == ["sudo", "-n"]:
        return argv[2:]
    if argv[:2] == ["sudo", "-u"] and "env" in argv:
        rest = argv[argv.index("env") + 1:]
        while rest and "=" in rest[0] and not rest[0].startswith("/"):
            rest = rest[1:]
        return rest
    return argv


class FakeMac:
    """In-memory stand-in for the macOS command line tools."""

    def __init__(self):
        self.calls = []
        # (argv, stdout, stderr) as passed to subprocess.run
        self.streams = []
        self.spawned = []
        self.prefs = {}
        self.missing = set()
        self.failing = set()
        self.macos_version = "15.1"
        self.filevault = "FileVault is Off."
        self.secure_token = True
        self.recovery_key = "ABCD-EFGH-IJKL-MNOP-QRST-UVWX"
        self.softwareupdate_listing = (
            "Software Update found the following new or updated software:\n"
            "* Label: Command Line Tools for Xcode-16.0\n"
            "\tTitle: Command Line Tools for Xcode, Version: 16.0, Size: 700000KiB\n"
        )
        self.clt_installed = True
        self.firewall = {}
        self.disks = {
            "disk0": {"DeviceIdentifier": "disk0", "Internal": True, "RemovableMedia": False},
            "disk4": {"DeviceIdentifier": "disk4", "Internal": False, "RemovableMedia": True},
        }

    # -- helpers -------------------------------------------------------------

    def commands(self):
        """Called commands with privilege prefixes removed."""
        return [_strip_privilege_prefix(list(c)) for c in self.calls]

    def ran(self, *prefix):
        return [c for c in self.commands() if tuple(c[: len(prefix)]) == prefix]

    def streams_of(self, *needle):
        """stdout/stderr settings of the last call containing every item of needle."""
        for argv, out, err in reversed(self.streams):
            if all(n in argv for n in needle):
                return out, err
        raise AssertionError(f"no call containing {needle}")

    # -- subprocess replacements ---------------------------------------------

    def run(self, argv, **kwargs):
        argv = list(argv)
        self.calls.append(argv)
        self.streams.append((argv, kwargs.get("stdout"), kwargs.get("stderr")))
        if argv == ["sudo", "-v"] or argv == ["sudo", "-n", "true"]:
            return subprocess.CompletedProcess(argv, 0, "", "")

        cmd = _strip_privilege_prefix(argv)
        name = os.path.basename(cmd[0])
        if name in self.missing:
            raise FileNotFoundError(2, "No such file or directory", cmd[0])
        if name in self.failing:
            return subprocess.CompletedProcess(argv, 1, "", f"{name}: failed")

        handler = getattr(self, "_" + name.replace("-", "_"), None)
        rc, out, err = handler(cmd[1:], kwargs) if handler else (0, "", "")
        return subprocess.CompletedProcess(argv, rc, out, err)

    def popen(self, argv, **kwargs):
        self.spawned.append(list(argv))
        return FakeProcess()

    # -- command handlers ----------------------------------------------------

    def _defaults(self, args, kwargs):
        verb, domain, key = args[0], args[1], args[2]
        if verb == "read":
            if (domain, key) not in self.prefs:
                return 1, "", f"The domain/default pair of ({domain}, {key}) does not exist"
            value = self.prefs[(domain, key)]
            if isinstance(value, list):
                return 0, "(\n" + ",\n".join(f"    {v}" for v in value) + "\n)\n", ""
            return 0, f"{value}\n", ""

        kind = args[3]
        values = args[4:]
        if kind == "-bool":
            self.prefs[(domain, key)] = "1" if values[0] in ("true", "yes", "1") else "0"
        elif kind == "-float":
            self.prefs[(domain, key)] = "%g" % float(values[0])
        elif kind == "-array":
            self.prefs[(domain, key)] = list(values)
        elif kind == "-array-add":
            self.prefs.setdefault((domain, key), [])
            self.prefs[(domain, key)] = list(self.prefs[(domain, key)]) + list(values)
        else:
            self.prefs[(domain, key)] = values[0]
        return 0, "", ""

    def _sw_vers(self, args, kwargs):
        if args == ["-productVersion"]:
            return 0, f"{self.macos_version}\n", ""
        return 0, "24B83\n", ""

    def _system_profiler(self, args, kwargs):
        return 0, "Hardware:\n\n    Hardware Overview:\n\n      Model Name: MacBook Air\n", ""

    def _stat(self, args, kwargs):
        return 0, "tester\n", ""

    def _fdesetup(self, args, kwargs):
        if args == ["status"]:
            return 0, f"{self.filevault}\n", ""
        if args[:2] == ["changerecovery", "-personal"]:
            return 0, f"New personal recovery key = '{self.recovery_key}'\n", ""
        return 0, "", ""

    def _sysadminctl(self, args, kwargs):
        state = "ENABLED" if self.secure_token else "DISABLED"
        return 0, "", f"Secure token is {state} for user {args[-1]}\n"

    def _socketfilterfw(self, args, kwargs):
        option = args[0].lstrip("-")
        if option.startswith("set"):
            self.firewall[option[3:]] = args[1] == "on"
            return 0, "", ""
        enabled = self.firewall.get(option[3:], False)
        if option == "getglobalstate":
            return 0, "Firewall is enabled. (State = 1)\n" if enabled else "Firewall is disabled. (State = 0)\n", ""
        if option == "getstealthmode":
            return 0, "Firewall stealth mode is on\n" if enabled else "Firewall stealth mode is off\n", ""
        return 0, f"Firewall has block all state set to {'enabled' if enabled else 'disabled'}.\n", ""

    def _spctl(self, args, kwargs):
        if args == ["--status"]:
            return 0, "assessments enabled\n", ""
        return 0, "", ""

    def _xcode_select(self, args, kwargs):
        if args == ["-p"]:
            return (0, "/Library/Developer/CommandLineTools\n", "") if self.clt_installed else (2, "", "unable to get active developer directory")
        if args == ["--install"] and self.clt_installed:
            return 1, "", "xcode-select: note: Command line tools are already installed."
        return 0, "", ""

    def _pkgutil(self, args, kwargs):
        return (0, "package-id: com.apple.pkg.CLTools_Executables\n", "") if self.clt_installed else (1, "", "No receipt")

    def _softwareupdate(self, args, kwargs):
        if args == ["-l"]:
            return 0, self.softwareupdate_listing, ""
        return 0, "", ""

    def _diskutil(self, args, kwargs):
        if args[:2] == ["info", "-plist"]:
            info = self.disks.get(args[2])
            if info is None:
                return 1, "", f"Could not find disk: {args[2]}"
            return 0, plistlib.dumps(info).decode("utf-8"), ""
        return 0, "", ""

    def _mkdir(self, args, kwargs):
        for d in args:
            if d != "-p":
                os.makedirs(d, exist_ok=True)
        return 0, "", ""

    def _tee(self, args, kwargs):
        with open(args[-1], "w", encoding="utf-8") as f:
            f.write(kwargs.get("input") or "")
        return 0, kwargs.get("input") or "", ""


class FakeProcess:
    pid = 4242

    def wait(self, timeout=None):
        return 0


@pytest.fixture
def fake_mac(monkeypatch):
    fake = FakeMac()
    monkeypatch.setattr(subprocess, "run", fake.run)
    monkeypatch.setattr(subprocess, "Popen", fake.popen)
    monkeypatch.setattr(platform, "system", lambda: "Darwin")
    monkeypatch.setattr(platform, "machine", lambda: "arm64")
    monkeypatch.setattr(os, "geteuid", lambda: 501)
    return fake


@pytest.fixture
def as_root(monkeypatch, fake_mac):
    monkeypatch.setattr(os, "geteuid", lambda: 0)
    return fake_mac


@pytest.fixture
def home(tmp_path):
    h = tmp_path / "home" / "tester"
    (h / "Desktop").mkdir(parents=True)
    return h


@pytest.fixture
def config_file(tmp_path, home):
    """A YAML config pointing the run at a throwaway home directory."""
    path = tmp_path / "macsetup.yaml"
    config = {
        "user": {"name": "tester", "home": str(home)},
        "homebrew": {"prefix": str(tmp_path / "homebrew")},
        "firefox": {"policies_dir": str(tmp_path / "ManagedPolicies"), "first_launch_seconds": 0},
    }
    path.write_text(yaml.safe_dump(config), encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    root = logging.getLogger()
    for h in getattr(root, "_macsetup_handlers", []):
        root.removeHandler(h)
        h.close()
    root._macsetup_handlers = []


@pytest.fixture
def desktop_log(home):
    """Return the newest mac_<prefix>_*.log written to the Desktop."""

    def find(prefix):
        logs = sorted((home / "Desktop").glob(f"mac_{prefix}_*.log"))
        assert logs, f"no mac_{prefix}_*.log on the Desktop"
        return logs[-1]

    return find

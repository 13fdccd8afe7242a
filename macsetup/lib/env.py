from __future__ import annotations

import getpass
import logging
import os
import pwd
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from ..errors import PreconditionError
from .command import run_cmd

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Paths:
    homebrew_prefix: str = "/opt/homebrew"
    homebrew_install_url: str = "https://raw.githubusercontent.com/Homebrew/install/HEAD/install.sh"
    socketfilterfw: str = "/usr/libexec/ApplicationFirewall/socketfilterfw"
    plistbuddy: str = "/usr/libexec/PlistBuddy"
    clt_dir: str = "/Library/Developer/CommandLineTools"
    clt_marker: str = "/tmp/.com.apple.dt.CommandLineTools.installondemand.in-progress"

    @property
    def brew_bin(self) -> str:
        return f"{self.homebrew_prefix}/bin/brew"


PATHS = Paths()


@dataclass(frozen=True)
class UserContext:
    """The human account the run is configuring (not necessarily the euid)."""

    name: str
    home: Path

    @property
    def desktop(self) -> Path:
        return self.home / "Desktop"

    @property
    def launch_agents(self) -> Path:
        return self.home / "Library" / "LaunchAgents"


def console_user(*, dry_run: bool = False) -> str:
    """Owner of /dev/console, i.e. the user logged in at the GUI."""

    r = run_cmd(["stat", "-f%Su", "/dev/console"], check=False, dry_run=dry_run)
    name = (r.stdout or "").strip()
    if r.returncode != 0 or not name or name == "root":
        return invoking_user()
    return name


def invoking_user() -> str:
    return os.environ.get("SUDO_USER") or os.environ.get("USER") or getpass.getuser()


def _home_for(name: str) -> Optional[Path]:
    try:
        return Path(pwd.getpwnam(name).pw_dir)
    except KeyError:
        return None


def resolve_user(config: Dict[str, Any], *, from_console: bool = False, dry_run: bool = False) -> UserContext:
    """Pick the target user, honouring config.user.{name,home} overrides."""

    ucfg = config.get("user") or {}
    name = ucfg.get("name") or (console_user(dry_run=dry_run) if from_console else invoking_user())
    home = ucfg.get("home")
    home_path = Path(home).expanduser() if home else _home_for(str(name))
    if home_path is None or not home_path.is_dir():
        raise PreconditionError(f"Cannot resolve HOME for {name}")
    return UserContext(name=str(name), home=home_path)

from __future__ import annotations

from .command import run_cmd
from .env import PATHS


def socketfilterfw(option: str, value: str = "on", *, dry_run: bool = False) -> None:
    """`socketfilterfw --<option> <value>`, e.g. ("setglobalstate", "on")."""

    run_cmd([PATHS.socketfilterfw, f"--{option}", value], sudo=True, dry_run=dry_run)


def gatekeeper_enable(*, dry_run: bool = False) -> None:
    run_cmd(["spctl", "--master-enable"], sudo=True, dry_run=dry_run)


def gatekeeper_allow_label(label: str = "Developer ID", *, dry_run: bool = False) -> None:
    run_cmd(["spctl", "--enable", "--label", label], sudo=True, dry_run=dry_run)

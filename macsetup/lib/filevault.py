from __future__ import annotations

import logging
import os
import shutil
from enum import Enum
from pathlib import Path

from .command import run_cmd

logger = logging.getLogger(__name__)


class FileVaultState(str, Enum):
    ON = "on"
    OFF = "off"
    UNKNOWN = "unknown"


def filevault_state(*, dry_run: bool = False) -> FileVaultState:
    r = run_cmd(["fdesetup", "status"], check=False, dry_run=dry_run)
    out = r.stdout or ""
    if "FileVault is On" in out:
        return FileVaultState.ON
    if "FileVault is Off" in out:
        return FileVaultState.OFF
    return FileVaultState.UNKNOWN


def has_secure_token(user: str, *, dry_run: bool = False) -> bool:
    # sysadminctl reports on stderr.
    r = run_cmd(["sysadminctl", "-secureTokenStatus", user], check=False, dry_run=dry_run)
    return "ENABLED" in (r.stdout or "") + (r.stderr or "")


def enable_deferred(defer_plist: str, *, dry_run: bool = False) -> None:
    """Enable FileVault at next login; the recovery key is written to defer_plist."""

    run_cmd(
        ["fdesetup", "enable", "-defer", defer_plist, "-forceatlogin", "0", "-dontaskatlogout"],
        sudo=True,
        dry_run=dry_run,
    )


def rotate_personal_key(destination: Path, *, owner: str | None = None, dry_run: bool = False) -> Path:
    """Generate a new personal recovery key and save it (mode 0600).

    fdesetup prompts for the SecureToken user's password on the terminal.
    """

    r = run_cmd(["fdesetup", "changerecovery", "-personal"], secret=True, interactive=True, dry_run=dry_run)
    if dry_run:
        logger.info("Would write recovery key to %s", destination)
        return destination

    destination.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(str(destination), os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write(r.stdout)
    os.chmod(destination, 0o600)

    if owner:
        try:
            shutil.chown(destination, user=owner, group="staff")
        except (LookupError, PermissionError, OSError) as e:
            logger.warning("Could not chown %s to %s: %s", destination, owner, e)
    return destination

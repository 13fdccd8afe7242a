from __future__ import annotations

import logging
from functools import partial
from pathlib import Path
from typing import List

from ..lib.command import run_cmd
from ..pipeline import RunContext
from .usb_media import installer_volume

logger = logging.getLogger(__name__)


def startosinstall_path(installer_app: str) -> Path:
    """startosinstall inside the installer app on the bootable volume."""

    app_name = Path(installer_app).name
    return Path(installer_volume(installer_app)) / app_name / "Contents" / "Resources" / "startosinstall"


def startosinstall_argv(installer_app: str, new_volume_name: str, *, user: str, apple_silicon: bool) -> List[str]:
    argv = [
        str(startosinstall_path(installer_app)),
        "--eraseinstall",
        "--agreetolicense",
        "--nointeraction",
        "--newvolumename",
        new_volume_name,
    ]
    if apple_silicon:
        # Apple Silicon needs a volume owner to authorize the erase.
        argv += ["--user", user, "--passprompt"]
    return argv


class EraseInstallStep:
    step_id = "10_erase_install"

    def run(self, ctx: RunContext) -> None:
        cfg = ctx.section("erase_install")
        argv = startosinstall_argv(
            cfg["installer_app"],
            cfg["new_volume_name"],
            user=ctx.user.name,
            apple_silicon=ctx.host.machine == "arm64",
        )
        logger.info("Erasing this Mac and reinstalling macOS; it will restart when done.")
        ctx.tracker.attempt(
            "Started erase-and-install",
            partial(run_cmd, argv, sudo=True, interactive=True, capture=False, dry_run=ctx.dry_run),
            warning="Could not start erase-and-install",
            required=True,
        )

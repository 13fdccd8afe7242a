from __future__ import annotations

import logging
from functools import partial
from pathlib import Path

from ..lib.command import run_cmd
from ..pipeline import RunContext

logger = logging.getLogger(__name__)


def installer_volume(installer_app: str) -> str:
    """/Applications/Install macOS Sequoia.app -> /Volumes/Install macOS Sequoia"""

    return f"/Volumes/{Path(installer_app).stem}"


class EraseUsbDiskStep:
    step_id = "10_erase_disk"

    def run(self, ctx: RunContext) -> None:
        usb = ctx.section("usb")
        disk_id = usb["disk_id"]
        volume = usb["volume_name"]
        ctx.tracker.attempt(
            f"Erased {disk_id} as {usb['filesystem']} volume {volume}",
            partial(
                run_cmd,
                ["diskutil", "eraseDisk", usb["filesystem"], volume, usb["scheme"], disk_id],
                dry_run=ctx.dry_run,
            ),
            warning=f"Could not erase {disk_id}",
            required=True,
        )


class CreateInstallMediaStep:
    step_id = "20_create_install_media"

    def run(self, ctx: RunContext) -> None:
        usb = ctx.section("usb")
        tool = str(Path(usb["installer_app"]) / "Contents" / "Resources" / "createinstallmedia")
        ctx.tracker.attempt(
            "Created bootable installer",
            partial(
                run_cmd,
                [tool, "--volume", f"/Volumes/{usb['volume_name']}", "--nointeraction"],
                sudo=True,
                dry_run=ctx.dry_run,
            ),
            warning="Could not create bootable installer",
            required=True,
        )


class EjectInstallerStep:
    step_id = "30_eject"

    def run(self, ctx: RunContext) -> None:
        volume = installer_volume(ctx.section("usb")["installer_app"])
        ctx.tracker.attempt(
            f"Ejected {volume}",
            partial(run_cmd, ["diskutil", "eject", volume], dry_run=ctx.dry_run),
            warning=f"Could not eject {volume}",
        )
        logger.info("Bootable USB created.")

from __future__ import annotations

import logging
import shutil
from functools import partial

from ..lib.filevault import rotate_personal_key
from ..pipeline import RunContext

logger = logging.getLogger(__name__)


class PrepareDesktopStep:
    step_id = "10_prepare_desktop"

    def run(self, ctx: RunContext) -> None:
        logger.info("Console user: %s", ctx.user.name)
        desktop = ctx.user.desktop
        if ctx.dry_run:
            return
        try:
            desktop.mkdir(parents=True, exist_ok=True)
            shutil.chown(desktop, user=ctx.user.name, group="staff")
        except (LookupError, OSError) as e:
            logger.info("Could not prepare %s: %s", desktop, e)


class RotateRecoveryKeyStep:
    step_id = "20_rotate_key"

    def run(self, ctx: RunContext) -> None:
        destination = ctx.user.desktop / ctx.section("recovery_key")["filename"]
        logger.info("Generating a personal recovery key (you will be prompted for your account password)...")
        ctx.tracker.attempt(
            f"Recovery key saved to: {destination}",
            partial(rotate_personal_key, destination, owner=ctx.user.name, dry_run=ctx.dry_run),
            warning="Failed to generate recovery key",
            required=True,
        )
        ctx.tracker.add_note("Store this securely (password manager / print & safe).")

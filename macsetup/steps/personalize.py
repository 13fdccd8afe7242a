from __future__ import annotations

import logging
from functools import partial
from pathlib import Path
from typing import List

from ..lib.command import have_command, run_cmd
from ..lib.defaults import PreferenceWrite, append_default, write_default
from ..lib.env import PATHS
from ..lib.launchd import install_launch_agent
from ..lib.templates import DOCK_TILE, SET_DESKTOP_PICTURE, save_solid_png
from ..pipeline import RunContext
from ._common import apply_manifest_section

logger = logging.getLogger(__name__)


def _app_label(path: str) -> str:
    name = Path(path).stem
    # The Profiles pane is what System Settings opens to.
    return "System Settings" if name == "Profiles" else name


class DockStep:
    step_id = "10_dock"

    def _add_tiles(self, ctx: RunContext, apps: List[str]) -> None:
        for app in apps:
            append_default("com.apple.dock", "persistent-apps", DOCK_TILE.render(path=app), dry_run=ctx.dry_run)

    def run(self, ctx: RunContext) -> None:
        logger.info("Configuring Dock...")
        apps = list(ctx.section("personalize")["dock_apps"])
        cleared = ctx.tracker.attempt(
            "Cleared all persistent apps from Dock",
            partial(write_default, PreferenceWrite("com.apple.dock", "persistent-apps", []), dry_run=ctx.dry_run),
            warning="Could not clear persistent apps from Dock",
        )
        if cleared and apps:
            names = " and ".join(_app_label(a) for a in apps)
            ctx.tracker.attempt(
                f"Added {names} to Dock", partial(self._add_tiles, ctx, apps), warning=f"Could not add {names} to Dock"
            )
        apply_manifest_section(ctx, "personalize", "dock")


class WallpaperStep:
    step_id = "20_wallpaper"

    def _image_path(self, ctx: RunContext) -> Path:
        configured = ctx.section("personalize")["wallpaper"].get("path")
        if configured:
            return Path(configured).expanduser()
        return ctx.user.home / "Pictures" / "macsetup_wallpaper.png"

    def _create(self, ctx: RunContext, path: Path) -> None:
        wp = ctx.section("personalize")["wallpaper"]
        if ctx.dry_run:
            logger.info("Would write %s", path)
            return
        path.parent.mkdir(parents=True, exist_ok=True)
        save_solid_png(path, int(wp["width"]), int(wp["height"]), tuple(int(c) for c in wp["rgb"]))

    def run(self, ctx: RunContext) -> None:
        logger.info("Setting desktop wallpaper...")
        path = self._image_path(ctx)
        if not ctx.tracker.attempt(
            "Created gray wallpaper image",
            partial(self._create, ctx, path),
            warning="Failed to create gray wallpaper image",
        ):
            return
        ctx.tracker.attempt(
            "Set gray wallpaper on all desktops",
            partial(run_cmd, ["osascript", "-e", SET_DESKTOP_PICTURE.render(path=path)], dry_run=ctx.dry_run),
            warning="Could not set wallpaper on all desktops",
        )


class SoundStep:
    step_id = "30_sound"

    def _mute(self, ctx: RunContext) -> None:
        run_cmd(["osascript", "-e", "set volume output volume 0"], dry_run=ctx.dry_run)
        run_cmd(["osascript", "-e", "set volume with output muted"], dry_run=ctx.dry_run)

    def run(self, ctx: RunContext) -> None:
        logger.info("Configuring sound settings...")
        cfg = ctx.section("personalize")
        if cfg.get("mute_volume", True):
            ctx.tracker.attempt(
                "Muted system output volume", partial(self._mute, ctx), warning="Could not mute system output volume"
            )
        apply_manifest_section(ctx, "personalize", "sound")
        if cfg.get("startup_mute", True):
            ctx.tracker.attempt(
                "Disabled startup sound",
                partial(run_cmd, ["nvram", "StartupMute=%01"], sudo=True, dry_run=ctx.dry_run),
                warning="Could not disable startup sound (requires admin)",
            )


class FinderStep:
    step_id = "40_finder"

    def run(self, ctx: RunContext) -> None:
        logger.info("Configuring Finder...")
        apply_manifest_section(ctx, "personalize", "finder", substitutions={"home": str(ctx.user.home)})


class SidebarStep:
    step_id = "50_sidebar"

    def _edit_sidebar(self, ctx: RunContext) -> None:
        plist = str(ctx.user.home / "Library" / "Preferences" / "com.apple.sidebarlists.plist")
        commands = [
            "Delete :systemitems:VolumesList:com.apple.LSSharedFileList.RecentDocuments",
            "Add :systemitems:VolumesList:Downloads dict",
            "Add :systemitems:VolumesList:Desktop dict",
            "Add :systemitems:VolumesList:Documents dict",
        ]
        for c in commands:
            # Entries may already be absent/present; each edit is allowed to fail.
            run_cmd([PATHS.plistbuddy, "-c", c, plist], check=False, dry_run=ctx.dry_run)

    def run(self, ctx: RunContext) -> None:
        logger.info("Configuring Finder sidebar...")
        if have_command(PATHS.plistbuddy):
            ctx.tracker.attempt(
                "Modified Finder sidebar items",
                partial(self._edit_sidebar, ctx),
                warning="Could not modify Finder sidebar items",
            )
        else:
            apply_manifest_section(ctx, "personalize", "sidebar_fallback")
        apply_manifest_section(ctx, "personalize", "finder_extras")


class RestartServicesStep:
    step_id = "60_restart_services"

    def run(self, ctx: RunContext) -> None:
        logger.info("Applying changes...")
        for name in ctx.section("personalize")["restart_processes"]:
            run_cmd(["killall", name], check=False, dry_run=ctx.dry_run)
            logger.info("Restarted %s", name)


class MuteLaunchAgentStep:
    """Keep the volume muted across logins."""

    step_id = "70_mute_launch_agent"

    def run(self, ctx: RunContext) -> None:
        logger.info("Setting up persistence...")
        label = ctx.section("personalize")["mute_agent_label"]
        ctx.tracker.attempt(
            "Created LaunchAgent for persistent mute",
            partial(
                install_launch_agent,
                ctx.user.launch_agents,
                label,
                ["/usr/bin/osascript", "-e", "set volume with output muted"],
                dry_run=ctx.dry_run,
            ),
            warning="Could not load mute volume LaunchAgent",
        )

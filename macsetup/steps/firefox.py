from __future__ import annotations

import logging
import time
from functools import partial
from pathlib import Path

from ..errors import CommandError
from ..lib.command import run_cmd, spawn_cmd
from ..lib.download import download_to, make_session
from ..lib.firefox import (
    Extension,
    app_binary,
    layout_for,
    locate_app,
    merge_user_prefs,
    policies_document,
    render_profiles_ini,
    write_policies,
)
from ..lib.homebrew import brew, brew_path
from ..pipeline import RunContext

logger = logging.getLogger(__name__)


def _quit_firefox(ctx: RunContext) -> None:
    run_cmd(["pkill", "-x", "Firefox"], check=False, dry_run=ctx.dry_run)


class QuitFirefoxStep:
    step_id = "10_quit_firefox"

    def run(self, ctx: RunContext) -> None:
        _quit_firefox(ctx)


class InstallFirefoxStep:
    """brew cask install into ~/Applications (avoids TCC prompts for /Applications)."""

    step_id = "20_install_firefox"

    def _install(self, ctx: RunContext, app_dir: Path) -> None:
        brew_bin = brew_path(ctx.section("homebrew")["prefix"]) or "brew"
        env = {"HOMEBREW_CASK_OPTS": f"--appdir={app_dir}"}
        if not ctx.dry_run:
            app_dir.mkdir(parents=True, exist_ok=True)
        try:
            brew(["install", "--cask", "firefox"], brew_bin=brew_bin, env=env, dry_run=ctx.dry_run)
        except CommandError:
            logger.info("brew install failed; trying upgrade")
            brew(["upgrade", "--cask", "firefox"], brew_bin=brew_bin, env=env, dry_run=ctx.dry_run)

    def run(self, ctx: RunContext) -> None:
        cfg = ctx.section("firefox")
        app_dir = Path(str(cfg["app_dir"]).replace("~", str(ctx.user.home), 1))
        logger.info("Installing Firefox...")
        ctx.tracker.attempt(
            "Installed Firefox",
            partial(self._install, ctx, app_dir),
            warning="Could not install Firefox",
            required=True,
        )

        candidates = [app_dir / "Firefox.app", Path("/Applications/Firefox.app")]
        if ctx.dry_run:
            app = candidates[0]
            binary = app / "Contents" / "MacOS" / "firefox"
        else:
            app = locate_app(candidates)
            binary = app_binary(app)
        ctx.state["firefox_app"] = app
        ctx.state["firefox_bin"] = binary


class ProfileStep:
    """Create the deterministic profile and make it the default."""

    step_id = "30_profile"

    def _create(self, ctx: RunContext) -> None:
        layout = layout_for(ctx.user.home, ctx.section("firefox")["profile_name"])
        binary = ctx.state.get("firefox_bin")
        if not ctx.dry_run:
            layout.profiles_dir.mkdir(parents=True, exist_ok=True)
        if binary:
            run_cmd(
                [str(binary), "--headless", "-CreateProfile", f"{layout.profile_name} {layout.profile_dir}"],
                check=False,
                dry_run=ctx.dry_run,
            )
        if ctx.dry_run:
            return
        layout.profile_dir.mkdir(parents=True, exist_ok=True)
        layout.profiles_ini.write_text(render_profiles_ini(layout), encoding="utf-8")

    def run(self, ctx: RunContext) -> None:
        logger.info("Creating deterministic Firefox profile...")
        ctx.tracker.attempt(
            "Created Firefox profile and set it as default",
            partial(self._create, ctx),
            warning="Could not create Firefox profile",
            required=True,
        )


class ExtensionsStep:
    step_id = "40_extensions"

    def run(self, ctx: RunContext) -> None:
        layout = layout_for(ctx.user.home, ctx.section("firefox")["profile_name"])
        logger.info("Installing add-ons into: %s", layout.extensions_dir)
        session = make_session()
        for raw in ctx.section("firefox")["extensions"]:
            ext = Extension(slug=raw["slug"], addon_id=raw["id"], sha256=raw.get("sha256"))
            ctx.tracker.attempt(
                f"Installed add-on {ext.slug}",
                partial(
                    download_to,
                    ext.url,
                    layout.extensions_dir / ext.filename,
                    sha256=ext.sha256,
                    session=session,
                    dry_run=ctx.dry_run,
                ),
                warning=f"Could not install add-on {ext.slug}",
            )


class UserPrefsStep:
    step_id = "50_user_prefs"

    def _write(self, ctx: RunContext) -> None:
        cfg = ctx.section("firefox")
        user_js = layout_for(ctx.user.home, cfg["profile_name"]).user_js
        existing = user_js.read_text(encoding="utf-8") if user_js.exists() else ""
        merged = merge_user_prefs(existing, cfg["prefs"])
        if ctx.dry_run:
            logger.info("Would write %s", user_js)
            return
        user_js.parent.mkdir(parents=True, exist_ok=True)
        user_js.write_text(merged, encoding="utf-8")

    def run(self, ctx: RunContext) -> None:
        homepage = ctx.section("firefox")["prefs"].get("browser.startup.homepage", "about:blank")
        ctx.tracker.attempt(
            f"Set homepage to {homepage} and kept add-ons enabled",
            partial(self._write, ctx),
            warning="Could not write Firefox user.js",
        )


class SearchPolicyStep:
    """System policy so the default search engine survives updates."""

    step_id = "60_search_policy"

    def run(self, ctx: RunContext) -> None:
        cfg = ctx.section("firefox")
        engine = cfg["search_engine"]
        logger.info("Setting %s as default search (system policy)...", engine)
        ctx.tracker.attempt(
            f"Set {engine} as default search engine",
            partial(write_policies, Path(cfg["policies_dir"]), policies_document(engine), dry_run=ctx.dry_run),
            warning=f"Could not set {engine} as default search engine",
        )


class LaunchFirefoxStep:
    """First launch on the new profile so add-ons register, then relaunch normally."""

    step_id = "70_launch"

    def __init__(self, sleep=time.sleep) -> None:
        self._sleep = sleep

    def _first_launch(self, ctx: RunContext) -> None:
        layout = layout_for(ctx.user.home, ctx.section("firefox")["profile_name"])
        binary = ctx.state["firefox_bin"]
        spawn_cmd([str(binary), "-profile", str(layout.profile_dir), "-no-remote"], dry_run=ctx.dry_run)
        if not ctx.dry_run:
            self._sleep(float(ctx.section("firefox")["first_launch_seconds"]))
        _quit_firefox(ctx)

    def run(self, ctx: RunContext) -> None:
        logger.info("Launching Firefox with target profile...")
        ctx.tracker.attempt(
            "Launched Firefox on the bootstrap profile",
            partial(self._first_launch, ctx),
            warning="Could not launch Firefox on the bootstrap profile",
        )
        logger.info("Relaunching Firefox normally...")
        ctx.tracker.attempt(
            "Relaunched Firefox",
            partial(run_cmd, ["open", "-na", str(ctx.state["firefox_app"])], dry_run=ctx.dry_run),
            warning="Could not relaunch Firefox",
        )
        ctx.tracker.add_note("Check about:addons for the add-ons and about:policies (Active).")

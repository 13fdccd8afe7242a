from __future__ import annotations

import logging
import shutil
from functools import partial
from pathlib import Path

from ..lib.clt import have_clt, install_clt, request_clt_install
from ..lib.homebrew import brew, ensure_shellenv, have_brew, install_homebrew, prepare_prefix, shellenv_line
from ..pipeline import RunContext

logger = logging.getLogger(__name__)


class CommandLineToolsStep:
    """Non-interactive CLT install through softwareupdate."""

    step_id = "10_command_line_tools"

    def run(self, ctx: RunContext) -> None:
        if have_clt(dry_run=ctx.dry_run):
            logger.info("CLT already installed.")
            ctx.tracker.attempt("Ensured Xcode Command Line Tools", lambda: None)
            return

        cfg = ctx.section("clt")
        logger.info("Installing Xcode Command Line Tools (non-interactive)...")
        ctx.tracker.attempt(
            "Ensured Xcode Command Line Tools",
            partial(
                install_clt,
                attempts=int(cfg["label_attempts"]),
                delay_s=float(cfg["label_retry_delay"]),
                dry_run=ctx.dry_run,
            ),
            warning="Could not install Xcode Command Line Tools",
            required=True,
        )


class RequestCommandLineToolsStep:
    """`xcode-select --install`; fails harmlessly when already installed."""

    step_id = "10_request_command_line_tools"

    def run(self, ctx: RunContext) -> None:
        ctx.tracker.attempt(
            "Requested Xcode Command Line Tools install",
            partial(request_clt_install, dry_run=ctx.dry_run),
            warning="Command Line Tools install not started (already installed?)",
        )


class HomebrewStep:
    step_id = "20_homebrew"

    def __init__(self, *, as_invoking_user: bool = True) -> None:
        # bootstrap runs as root and installs for the invoking user;
        # bootstrap-minimal runs as that user already.
        self.as_invoking_user = as_invoking_user

    def _install(self, ctx: RunContext) -> None:
        cfg = ctx.section("homebrew")
        if self.as_invoking_user:
            prepare_prefix(ctx.user.name, cfg["prefix"], dry_run=ctx.dry_run)
        install_homebrew(
            url=cfg["install_url"],
            as_user=ctx.user.name if self.as_invoking_user else None,
            noninteractive=self.as_invoking_user,
            dry_run=ctx.dry_run,
        )

    def run(self, ctx: RunContext) -> None:
        prefix = ctx.section("homebrew")["prefix"]
        if have_brew(prefix):
            logger.info("Homebrew already installed at %s.", prefix)
            ctx.tracker.attempt(f"Ensured Homebrew at {prefix}", lambda: None)
            return
        logger.info("Installing Homebrew...")
        ctx.tracker.attempt(
            f"Ensured Homebrew at {prefix}",
            partial(self._install, ctx),
            warning="Could not install Homebrew",
            required=True,
        )


class ShellEnvStep:
    """Wire `brew shellenv` into the user's zsh and bash startup files."""

    step_id = "30_shellenv"

    def _wire(self, ctx: RunContext, path: Path, line: str) -> None:
        if ensure_shellenv(path, line, dry_run=ctx.dry_run):
            logger.info("Added brew shellenv to %s", path)
        if not ctx.dry_run and path.exists():
            try:
                shutil.chown(path, user=ctx.user.name, group="staff")
            except (LookupError, PermissionError) as e:
                logger.info("Could not chown %s: %s", path, e)

    def run(self, ctx: RunContext) -> None:
        cfg = ctx.section("homebrew")
        line = shellenv_line(cfg["prefix"])
        for name in cfg["shell_files"]:
            path = ctx.user.home / name
            ctx.tracker.attempt(
                f"Ensured brew shellenv in ~/{name}",
                partial(self._wire, ctx, path, line),
                warning=f"Could not add brew shellenv to ~/{name}",
            )


class BrewUpdateStep:
    step_id = "40_brew_update"

    def __init__(self, *, as_invoking_user: bool = True) -> None:
        self.as_invoking_user = as_invoking_user

    def run(self, ctx: RunContext) -> None:
        cfg = ctx.section("homebrew")
        brew_bin = f"{cfg['prefix']}/bin/brew"
        user = ctx.user.name if self.as_invoking_user else None
        if not cfg.get("analytics", False):
            ctx.tracker.attempt(
                "Disabled Homebrew analytics",
                partial(brew, ["analytics", "off"], brew_bin=brew_bin, as_user=user, dry_run=ctx.dry_run),
                warning="Could not disable Homebrew analytics",
            )
        ctx.tracker.attempt(
            "Updated Homebrew",
            partial(brew, ["update"], brew_bin=brew_bin, as_user=user, dry_run=ctx.dry_run),
            warning="Could not update Homebrew",
            required=True,
        )
        logger.info("Homebrew ready.")

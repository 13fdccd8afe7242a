from __future__ import annotations

import logging
from functools import partial

from ..lib.filevault import FileVaultState, enable_deferred, filevault_state, has_secure_token
from ..lib.hostcheck import system_facts
from ..lib.manifests import load_manifest
from ..lib.security import gatekeeper_allow_label, gatekeeper_enable, socketfilterfw
from ..pipeline import RunContext
from ._common import apply_manifest_section

logger = logging.getLogger(__name__)

# socketfilterfw option: (change, warning)
_FIREWALL_LABELS = {
    "setglobalstate": ("Firewall enabled", "Could not enable firewall"),
    "setblockall": ("Firewall set to block all incoming connections", "Could not block incoming connections"),
    "setstealthmode": ("Stealth mode enabled", "Could not enable stealth mode"),
    "setloggingmode": ("Firewall logging enabled", "Could not enable firewall logging"),
}


class FileVaultStep:
    step_id = "10_filevault"

    def run(self, ctx: RunContext) -> None:
        logger.info("Checking FileVault status...")
        state = filevault_state(dry_run=ctx.dry_run)

        if state == FileVaultState.ON:
            logger.info("FileVault is already enabled")
            return
        if state == FileVaultState.UNKNOWN and not ctx.dry_run:
            ctx.tracker.warn("Could not determine FileVault status")
            return

        if not has_secure_token(ctx.user.name, dry_run=ctx.dry_run) and not ctx.dry_run:
            ctx.tracker.warn(f"{ctx.user.name} does not have a SecureToken; FileVault may need manual setup")

        ctx.tracker.attempt(
            "FileVault enablement initiated (will complete at next login)",
            partial(enable_deferred, ctx.section("harden")["filevault_defer_plist"], dry_run=ctx.dry_run),
            warning="FileVault could not be enabled automatically. May require manual setup.",
        )


class FirewallStep:
    step_id = "20_firewall"

    def run(self, ctx: RunContext) -> None:
        logger.info("Configuring Firewall...")
        for option in ctx.section("harden")["firewall"]:
            description, warning = _FIREWALL_LABELS.get(
                option, (f"Firewall {option} on", f"Could not turn on firewall {option}")
            )
            ctx.tracker.attempt(
                description,
                partial(socketfilterfw, option, "on", dry_run=ctx.dry_run),
                warning=warning,
            )


class GatekeeperStep:
    step_id = "30_gatekeeper"

    def run(self, ctx: RunContext) -> None:
        logger.info("Configuring Gatekeeper...")
        ctx.tracker.attempt(
            "Gatekeeper enabled",
            partial(gatekeeper_enable, dry_run=ctx.dry_run),
            warning="Could not enable Gatekeeper",
        )
        label = ctx.section("harden")["gatekeeper_label"]
        ctx.tracker.attempt(
            "Gatekeeper set to allow signed apps only",
            partial(gatekeeper_allow_label, label, dry_run=ctx.dry_run),
            warning="Could not configure Gatekeeper settings",
        )


class AutoUpdatesStep:
    step_id = "40_auto_updates"

    def run(self, ctx: RunContext) -> None:
        logger.info("Configuring automatic updates...")
        apply_manifest_section(ctx, "harden", "auto_updates")


class DiagnosticsStep:
    step_id = "50_diagnostics"

    def run(self, ctx: RunContext) -> None:
        logger.info("Disabling diagnostics and analytics submission...")
        apply_manifest_section(ctx, "harden", "diagnostics")


class AdditionalHardeningStep:
    step_id = "60_additional"

    def run(self, ctx: RunContext) -> None:
        logger.info("Applying additional security hardening...")
        apply_manifest_section(ctx, "harden", "additional")


class HardeningReportStep:
    """Collect host facts and the manual follow-ups for the summary."""

    step_id = "90_report"

    def run(self, ctx: RunContext) -> None:
        for key, value in system_facts(ctx.host, dry_run=ctx.dry_run).items():
            ctx.tracker.add_fact(key, value)
        ctx.tracker.add_fact("User", ctx.user.name)

        checklist = load_manifest("checklist")
        for note in checklist.get("restart_notes") or []:
            ctx.tracker.add_note(str(note))
        for item in checklist.get("manual") or []:
            ctx.tracker.add_note(f"Manual: {item['title']} ({item['where']})")

"""Registry of runnable workflows.

A workflow bundles its ordered steps with the fail-fast checks that must pass
before the first step runs, the privileges it needs and the manifest that
holds its read-back checks.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from .errors import ConfigError, PreconditionError
from .lib.filevault import FileVaultState, filevault_state
from .lib.homebrew import brew_path
from .lib.hostcheck import (
    require_apple_silicon,
    require_darwin,
    require_disk_id,
    require_external_disk,
    require_min_macos,
)
from .lib.privileges import ElevationMode
from .pipeline import RunContext, Step
from .steps import (
    AdditionalHardeningStep,
    AutoUpdatesStep,
    BrewUpdateStep,
    CommandLineToolsStep,
    CreateInstallMediaStep,
    DiagnosticsStep,
    DockStep,
    EjectInstallerStep,
    EraseInstallStep,
    EraseUsbDiskStep,
    ExtensionsStep,
    FileVaultStep,
    FinderStep,
    FirewallStep,
    GatekeeperStep,
    HardeningReportStep,
    HomebrewStep,
    InstallFirefoxStep,
    LaunchFirefoxStep,
    MuteLaunchAgentStep,
    PrepareDesktopStep,
    ProfileStep,
    QuitFirefoxStep,
    RequestCommandLineToolsStep,
    RestartServicesStep,
    RotateRecoveryKeyStep,
    SearchPolicyStep,
    ShellEnvStep,
    SidebarStep,
    SoundStep,
    UserPrefsStep,
    WallpaperStep,
)
from .steps.erase_install import startosinstall_path

Precondition = Callable[[RunContext], None]


def _darwin(ctx: RunContext) -> None:
    require_darwin(ctx.host)


def _apple_silicon(ctx: RunContext) -> None:
    require_apple_silicon(ctx.host)


def _min_macos(ctx: RunContext) -> None:
    require_min_macos(ctx.host, int(ctx.section("host")["min_macos_major"]))


def _homebrew(ctx: RunContext) -> None:
    if brew_path(ctx.section("homebrew")["prefix"]) is None:
        raise PreconditionError("Homebrew not found. Run `macsetup bootstrap` first.")


def _usb_target(ctx: RunContext) -> None:
    usb = ctx.section("usb")
    disk_id = usb.get("disk_id") or ""
    require_disk_id(disk_id)
    if ctx.dry_run:
        return
    if not Path(usb["installer_app"]).is_dir():
        raise PreconditionError(f"Installer not found: {usb['installer_app']}")
    require_external_disk(disk_id)


def _erase_confirmed(ctx: RunContext) -> None:
    cfg = ctx.section("erase_install")
    if not cfg.get("confirm"):
        raise PreconditionError("erase-install wipes this Mac; pass --confirm to proceed.")
    if ctx.dry_run:
        return
    tool = startosinstall_path(cfg["installer_app"])
    if not tool.exists():
        raise PreconditionError(f"startosinstall not found at {tool}; is the installer USB mounted?")


def _filevault_on(ctx: RunContext) -> None:
    if ctx.dry_run:
        return
    if filevault_state() != FileVaultState.ON:
        raise PreconditionError(
            "FileVault is not ON yet. If you just ran a deferred enable, "
            "log out and log back in once, then run this again."
        )


@dataclass(frozen=True)
class Workflow:
    name: str
    title: str
    help: str
    log_prefix: str
    elevation: ElevationMode
    preconditions: Tuple[Precondition, ...]
    steps: Callable[[], List[Step]]
    manifest: Optional[str] = None
    user_from_console: bool = False


WORKFLOWS: Dict[str, Workflow] = {
    w.name: w
    for w in [
        Workflow(
            name="usb",
            title="Bootable USB",
            help="Erase a USB disk and turn it into a macOS installer",
            log_prefix="usb",
            elevation=ElevationMode.SUDO,
            preconditions=(_darwin, _usb_target),
            steps=lambda: [EraseUsbDiskStep(), CreateInstallMediaStep(), EjectInstallerStep()],
        ),
        Workflow(
            name="erase-install",
            title="Erase and install",
            help="Erase this Mac and reinstall macOS from the installer USB",
            log_prefix="erase_install",
            elevation=ElevationMode.SUDO,
            preconditions=(_darwin, _erase_confirmed),
            steps=lambda: [EraseInstallStep()],
            user_from_console=True,
        ),
        Workflow(
            name="bootstrap-minimal",
            title="Minimal bootstrap",
            help="First-boot setup: Command Line Tools request, Homebrew, brew update",
            log_prefix="bootstrap_minimal",
            elevation=ElevationMode.NONE,
            preconditions=(_darwin,),
            steps=lambda: [
                RequestCommandLineToolsStep(),
                HomebrewStep(as_invoking_user=False),
                BrewUpdateStep(as_invoking_user=False),
            ],
        ),
        Workflow(
            name="bootstrap",
            title="Developer tools bootstrap",
            help="Non-interactive Xcode Command Line Tools + Homebrew install (run with sudo)",
            log_prefix="bootstrap",
            elevation=ElevationMode.ROOT,
            preconditions=(_darwin, _apple_silicon),
            steps=lambda: [CommandLineToolsStep(), HomebrewStep(), ShellEnvStep(), BrewUpdateStep()],
        ),
        Workflow(
            name="harden",
            title="Security hardening complete",
            help="Apply FileVault, firewall, Gatekeeper, update and privacy hardening",
            log_prefix="hardening",
            elevation=ElevationMode.SUDO,
            preconditions=(_darwin, _apple_silicon, _min_macos),
            steps=lambda: [
                FileVaultStep(),
                FirewallStep(),
                GatekeeperStep(),
                AutoUpdatesStep(),
                DiagnosticsStep(),
                AdditionalHardeningStep(),
                HardeningReportStep(),
            ],
            manifest="harden",
        ),
        Workflow(
            name="personalize",
            title="Personalization complete",
            help="Apply Dock, wallpaper, sound and Finder preferences",
            log_prefix="personalization",
            elevation=ElevationMode.NONE,
            preconditions=(_darwin,),
            steps=lambda: [
                DockStep(),
                WallpaperStep(),
                SoundStep(),
                FinderStep(),
                SidebarStep(),
                RestartServicesStep(),
                MuteLaunchAgentStep(),
            ],
            manifest="personalize",
        ),
        Workflow(
            name="recovery-key",
            title="FileVault recovery key",
            help="Rotate the FileVault personal recovery key and save it to the Desktop (run with sudo)",
            log_prefix="recovery_key",
            elevation=ElevationMode.ROOT,
            preconditions=(_darwin, _filevault_on),
            steps=lambda: [PrepareDesktopStep(), RotateRecoveryKeyStep()],
            user_from_console=True,
        ),
        Workflow(
            name="firefox",
            title="Firefox bootstrap",
            help="Install Firefox with a deterministic profile, add-ons and search policy",
            log_prefix="firefox",
            elevation=ElevationMode.SUDO,
            preconditions=(_darwin, _apple_silicon, _homebrew),
            steps=lambda: [
                QuitFirefoxStep(),
                InstallFirefoxStep(),
                ProfileStep(),
                ExtensionsStep(),
                UserPrefsStep(),
                SearchPolicyStep(),
                LaunchFirefoxStep(),
            ],
        ),
    ]
}


def get_workflow(name: str) -> Workflow:
    try:
        return WORKFLOWS[name]
    except KeyError:
        raise ConfigError(f"Unknown workflow {name!r}; choose from {', '.join(WORKFLOWS)}") from None


def check_preconditions(workflow: Workflow, ctx: RunContext) -> None:
    for check in workflow.preconditions:
        check(ctx)

from .bootstrap import BrewUpdateStep, CommandLineToolsStep, HomebrewStep, RequestCommandLineToolsStep, ShellEnvStep
from .erase_install import EraseInstallStep
from .firefox import (
    ExtensionsStep,
    InstallFirefoxStep,
    LaunchFirefoxStep,
    ProfileStep,
    QuitFirefoxStep,
    SearchPolicyStep,
    UserPrefsStep,
)
from .hardening import (
    AdditionalHardeningStep,
    AutoUpdatesStep,
    DiagnosticsStep,
    FileVaultStep,
    FirewallStep,
    GatekeeperStep,
    HardeningReportStep,
)
from .personalize import (
    DockStep,
    FinderStep,
    MuteLaunchAgentStep,
    RestartServicesStep,
    SidebarStep,
    SoundStep,
    WallpaperStep,
)
from .recovery_key import PrepareDesktopStep, RotateRecoveryKeyStep
from .usb_media import CreateInstallMediaStep, EjectInstallerStep, EraseUsbDiskStep

__all__ = [
    "AdditionalHardeningStep",
    "AutoUpdatesStep",
    "BrewUpdateStep",
    "CommandLineToolsStep",
    "CreateInstallMediaStep",
    "DiagnosticsStep",
    "DockStep",
    "EjectInstallerStep",
    "EraseInstallStep",
    "EraseUsbDiskStep",
    "ExtensionsStep",
    "FileVaultStep",
    "FinderStep",
    "FirewallStep",
    "GatekeeperStep",
    "HardeningReportStep",
    "HomebrewStep",
    "InstallFirefoxStep",
    "LaunchFirefoxStep",
    "MuteLaunchAgentStep",
    "PrepareDesktopStep",
    "ProfileStep",
    "QuitFirefoxStep",
    "RequestCommandLineToolsStep",
    "RestartServicesStep",
    "RotateRecoveryKeyStep",
    "SearchPolicyStep",
    "ShellEnvStep",
    "SidebarStep",
    "SoundStep",
    "UserPrefsStep",
    "WallpaperStep",
]

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)


def _detect_format(path: Path) -> str:
    ext = path.suffix.lower().lstrip(".")
    if ext in {"json", "yaml", "yml"}:
        return ext
    # Default to JSON for unknown extensions.
    return "json"


def load_document(path: str) -> Dict[str, Any]:
    p = Path(path).expanduser()
    if not p.exists():
        raise ConfigError(f"Config file not found: {p}")

    text = p.read_text(encoding="utf-8")
    try:
        if _detect_format(p) in {"yaml", "yml"}:
            data = yaml.safe_load(text) or {}
        else:
            data = json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigError(f"Unreadable config {p}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file must be an object/dict, got {type(data).__name__}")
    return data


def save_document(path: str, data: Dict[str, Any]) -> None:
    p = Path(path).expanduser()
    p.parent.mkdir(parents=True, exist_ok=True)

    if _detect_format(p) in {"yaml", "yml"}:
        p.write_text(yaml.safe_dump(data, sort_keys=False, allow_unicode=True), encoding="utf-8")
    else:
        p.write_text(json.dumps(data, indent=2, sort_keys=True, ensure_ascii=False) + "\n", encoding="utf-8")


def load_config(path: Optional[str]) -> Dict[str, Any]:
    return ensure_defaults(load_document(path) if path else {})


def ensure_defaults(config: Dict[str, Any]) -> Dict[str, Any]:
    """Fill required keys with sane defaults (without overriding user values)."""

    config.setdefault("dry_run", False)
    config.setdefault("user", {})

    log = config.setdefault("logging", {})
    log.setdefault("level", "INFO")
    log.setdefault("dir", None)  # None: the target user's Desktop

    host = config.setdefault("host", {})
    host.setdefault("min_macos_major", 15)

    usb = config.setdefault("usb", {})
    usb.setdefault("installer_app", "/Applications/Install macOS Sequoia.app")
    usb.setdefault("volume_name", "InstallUSB")
    usb.setdefault("filesystem", "HFS+")
    usb.setdefault("scheme", "GPT")
    usb.setdefault("disk_id", None)

    erase = config.setdefault("erase_install", {})
    erase.setdefault("installer_app", usb["installer_app"])
    erase.setdefault("new_volume_name", "Macintosh HD")
    erase.setdefault("confirm", False)

    brew = config.setdefault("homebrew", {})
    brew.setdefault("prefix", "/opt/homebrew")
    brew.setdefault("install_url", "https://raw.githubusercontent.com/Homebrew/install/HEAD/install.sh")
    brew.setdefault("shell_files", [".zprofile", ".zshrc", ".bash_profile"])
    brew.setdefault("analytics", False)

    clt = config.setdefault("clt", {})
    clt.setdefault("label_attempts", 6)
    clt.setdefault("label_retry_delay", 5)

    harden = config.setdefault("harden", {})
    harden.setdefault("filevault_defer_plist", "/tmp/filevault_recovery.plist")
    harden.setdefault("firewall", ["setglobalstate", "setblockall", "setstealthmode", "setloggingmode"])
    harden.setdefault("gatekeeper_label", "Developer ID")

    pers = config.setdefault("personalize", {})
    pers.setdefault(
        "dock_apps",
        [
            "/System/Library/PreferencePanes/Profiles.prefPane",
            "/System/Applications/Utilities/Terminal.app",
        ],
    )
    wallpaper = pers.setdefault("wallpaper", {})
    wallpaper.setdefault("rgb", [128, 128, 128])
    wallpaper.setdefault("width", 1920)
    wallpaper.setdefault("height", 1080)
    wallpaper.setdefault("path", None)  # None: ~/Pictures/macsetup_wallpaper.png
    pers.setdefault("mute_volume", True)
    pers.setdefault("startup_mute", True)
    pers.setdefault("restart_processes", ["Dock", "Finder", "SystemUIServer", "cfprefsd"])
    pers.setdefault("mute_agent_label", "com.user.mute-volume")

    rk = config.setdefault("recovery_key", {})
    rk.setdefault("filename", "FileVault_Recovery_Key.txt")

    ff = config.setdefault("firefox", {})
    ff.setdefault("app_dir", "~/Applications")
    ff.setdefault("profile_name", "bootstrap")
    ff.setdefault("search_engine", "DuckDuckGo")
    ff.setdefault("policies_dir", "/Library/Application Support/Mozilla/ManagedPolicies")
    ff.setdefault("first_launch_seconds", 10)
    ff.setdefault(
        "prefs",
        {
            "browser.startup.homepage": "about:blank",
            "browser.startup.page": 1,
            "extensions.autoDisableScopes": 0,
            "extensions.enabledScopes": 15,
        },
    )
    ff.setdefault(
        "extensions",
        [
            {"slug": "ublock-origin", "id": "uBlock0@raymondhill.net"},
            {"slug": "privacy-badger17", "id": "jid1-MnnxcxisBPnSXQ@jetpack"},
            {"slug": "multi-account-containers", "id": "@testpilot-containers"},
        ],
    )

    return config

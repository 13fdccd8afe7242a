from __future__ import annotations

import logging
import plistlib
import platform
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from ..errors import CommandError, PreconditionError
from .command import run_cmd

logger = logging.getLogger(__name__)

_DISK_ID = re.compile(r"^disk[0-9]+$")


@dataclass(frozen=True)
class HostInfo:
    system: str
    machine: str
    macos_version: Optional[str]

    @property
    def macos_major(self) -> int:
        return version_key(self.macos_version or "0")[0]


def version_key(version: str) -> Tuple[int, ...]:
    """Sort key for dotted versions ("15.0.1" -> (15, 0, 1)); junk parts sort as 0."""

    parts = []
    for part in version.strip().split("."):
        m = re.match(r"\d+", part)
        parts.append(int(m.group(0)) if m else 0)
    return tuple(parts) or (0,)


def _sw_vers(flag: str, *, dry_run: bool = False) -> Optional[str]:
    r = run_cmd(["sw_vers", flag], check=False, dry_run=dry_run)
    out = (r.stdout or "").strip()
    return out or None


def detect_host(*, dry_run: bool = False) -> HostInfo:
    system = platform.system()
    version = None
    if system == "Darwin":
        version = _sw_vers("-productVersion", dry_run=dry_run) or (platform.mac_ver()[0] or None)
    return HostInfo(system=system, machine=platform.machine(), macos_version=version)


def require_darwin(host: HostInfo) -> None:
    if host.system != "Darwin":
        raise PreconditionError("This tool is for macOS.")


def require_apple_silicon(host: HostInfo) -> None:
    if host.machine != "arm64":
        raise PreconditionError(f"Apple Silicon (arm64) required, this host is {host.machine}.")


def require_min_macos(host: HostInfo, major: int) -> None:
    if host.macos_major < major:
        raise PreconditionError(
            f"macOS {major} or later is required. Current version: {host.macos_version or 'unknown'}"
        )


def require_disk_id(disk_id: str) -> None:
    if not _DISK_ID.match(disk_id or ""):
        raise PreconditionError(f"Invalid disk id {disk_id!r} (expected e.g. disk4)")


def disk_info(disk_id: str, *, dry_run: bool = False) -> Dict[str, Any]:
    """Parse `diskutil info -plist` for a whole disk."""

    r = run_cmd(["diskutil", "info", "-plist", disk_id], check=False, dry_run=dry_run)
    if r.returncode != 0 or not r.stdout.strip():
        return {}
    try:
        data = plistlib.loads(r.stdout.encode("utf-8"))
    except plistlib.InvalidFileException:
        logger.warning("Unparseable diskutil output for %s", disk_id)
        return {}
    return data if isinstance(data, dict) else {}


def require_external_disk(disk_id: str, *, dry_run: bool = False) -> None:
    if dry_run:
        return
    info = disk_info(disk_id)
    if not info:
        raise PreconditionError(f"Disk {disk_id} not found")
    if info.get("Internal", True) and not info.get("RemovableMedia", False):
        raise PreconditionError(f"Refusing to erase internal disk {disk_id}")


def system_facts(host: HostInfo, *, dry_run: bool = False) -> Dict[str, str]:
    """Best-effort facts for the end-of-run report."""

    facts = {
        "Architecture": host.machine,
        "macOS Version": host.macos_version or "unknown",
        "Build": _sw_vers("-buildVersion", dry_run=dry_run) or "unknown",
    }
    try:
        r = run_cmd(["system_profiler", "SPHardwareDataType"], dry_run=dry_run)
        for line in r.stdout.splitlines():
            if "Model Name" in line:
                facts["Model"] = line.split(":", 1)[1].strip()
                break
    except CommandError:
        logger.info("system_profiler unavailable")
    return facts

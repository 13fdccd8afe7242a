from __future__ import annotations

import logging
import re
import time
from pathlib import Path
from typing import Callable, List, Optional

from ..errors import CommandError, MacSetupError
from .command import run_cmd
from .env import PATHS
from .hostcheck import version_key

logger = logging.getLogger(__name__)

_LABEL_RE = re.compile(r"Label: (Command Line Tools for Xcode-[^,\n]*)")
_TITLE_RE = re.compile(r"Command Line Tools for Xcode-[0-9][0-9.]*")


def have_clt(*, dry_run: bool = False) -> bool:
    if dry_run:
        return False
    if run_cmd(["/usr/bin/xcode-select", "-p"], check=False).returncode != 0:
        return False
    r = run_cmd(["pkgutil", "--pkg-info=com.apple.pkg.CLTools_Executables"], check=False)
    return r.returncode == 0


def parse_clt_labels(listing: str) -> List[str]:
    """Extract Command Line Tools labels from `softwareupdate -l` output."""

    labels = [m.strip() for m in _LABEL_RE.findall(listing)]
    if not labels:
        labels = [m.rstrip(".") for m in _TITLE_RE.findall(listing)]
    return labels


def newest_label(labels: List[str]) -> Optional[str]:
    if not labels:
        return None
    return max(labels, key=lambda lbl: version_key(lbl.rsplit("-", 1)[-1]))


def discover_label(
    *,
    attempts: int = 6,
    delay_s: float = 5.0,
    sleep: Callable[[float], None] = time.sleep,
    dry_run: bool = False,
) -> Optional[str]:
    if dry_run:
        # Nothing runs, so there is nothing to wait for.
        attempts = 1
    for i in range(attempts):
        r = run_cmd(["softwareupdate", "-l"], check=False, dry_run=dry_run)
        label = newest_label(parse_clt_labels((r.stdout or "") + "\n" + (r.stderr or "")))
        if label:
            return label
        if i + 1 < attempts:
            logger.info("No CLT label yet (attempt %d/%d); retrying in %ss", i + 1, attempts, delay_s)
            sleep(delay_s)
    return None


def install_clt(*, attempts: int = 6, delay_s: float = 5.0, dry_run: bool = False) -> str:
    """Install Command Line Tools non-interactively; returns the label installed."""

    marker = Path(PATHS.clt_marker)
    if dry_run:
        logger.info("Would create %s and install the newest CLT label", marker)
        run_cmd(["softwareupdate", "-l"], check=False, dry_run=True)
        run_cmd(["/usr/bin/xcode-select", "--switch", PATHS.clt_dir], dry_run=True)
        return ""

    marker.touch()
    try:
        label = discover_label(attempts=attempts, delay_s=delay_s)
        if not label:
            raise MacSetupError("Could not discover CLT label from softwareupdate.")
        logger.info("Selected label: %s", label)
        run_cmd(["softwareupdate", "-i", label, "--verbose"])
    finally:
        if marker.exists():
            marker.unlink()

    run_cmd(["/usr/bin/xcode-select", "--switch", PATHS.clt_dir])
    return label


def request_clt_install(*, dry_run: bool = False) -> None:
    """`xcode-select --install`: may show a dialog; exits non-zero if already installed."""

    r = run_cmd(["xcode-select", "--install"], check=False, dry_run=dry_run)
    if r.returncode != 0:
        raise CommandError(r.argv, r.returncode, r.stderr)

from __future__ import annotations

import logging
import shlex
import sys
import threading
from enum import Enum
from typing import Optional, Sequence

from ..errors import ElevationError
from .command import is_root, run_cmd

logger = logging.getLogger(__name__)

KEEPALIVE_INTERVAL_S = 60.0


class ElevationMode(str, Enum):
    NONE = "none"
    # A sudo credential must be obtainable; privileged commands run as `sudo -n`.
    SUDO = "sudo"
    # The whole process must already run as root.
    ROOT = "root"


def _rerun_hint(argv: Optional[Sequence[str]]) -> str:
    args = list(argv if argv is not None else sys.argv[1:])
    return "sudo " + " ".join(shlex.quote(a) for a in ["macsetup", *args])


def require_elevation(
    mode: ElevationMode,
    *,
    argv: Optional[Sequence[str]] = None,
    dry_run: bool = False,
) -> None:
    """Check, once at entry, that the run has the privileges it needs."""

    if mode == ElevationMode.NONE or is_root():
        return

    if mode == ElevationMode.ROOT:
        if dry_run:
            logger.info("Would require root (dry-run)")
            return
        raise ElevationError(f"Root privileges required. Re-run with: {_rerun_hint(argv)}")

    logger.info("Requesting administrator privileges...")
    r = run_cmd(["sudo", "-v"], check=False, dry_run=dry_run)
    if r.returncode != 0:
        raise ElevationError("Failed to obtain administrator privileges")
    logger.info("Administrator privileges obtained")


class SudoKeepAlive:
    """Refresh the cached sudo credential until stopped.

    The thread is a daemon so it also ends with the process.
    """

    def __init__(self, interval_s: float = KEEPALIVE_INTERVAL_S, *, dry_run: bool = False) -> None:
        self.interval_s = interval_s
        self.dry_run = dry_run
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def _loop(self) -> None:
        while not self._stop.wait(self.interval_s):
            r = run_cmd(["sudo", "-n", "true"], check=False, dry_run=self.dry_run)
            if r.returncode != 0:
                logger.warning("sudo credential could not be refreshed")
                return

    def start(self) -> "SudoKeepAlive":
        if self._thread is None and not is_root():
            self._thread = threading.Thread(target=self._loop, name="sudo-keepalive", daemon=True)
            self._thread.start()
        return self

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=1.0)
            self._thread = None

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

from .command import run_cmd
from .templates import launch_agent_plist

logger = logging.getLogger(__name__)


def install_launch_agent(
    directory: Path,
    label: str,
    program_arguments: Sequence[str],
    *,
    dry_run: bool = False,
) -> Path:
    """Write ~/Library/LaunchAgents/<label>.plist and (re)load it."""

    path = Path(directory) / f"{label}.plist"
    if dry_run:
        logger.info("Would write %s", path)
    else:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(launch_agent_plist(label, program_arguments))

    # Unload first so re-running does not fail with "already loaded".
    run_cmd(["launchctl", "unload", str(path)], check=False, dry_run=dry_run)
    run_cmd(["launchctl", "load", str(path)], dry_run=dry_run)
    return path

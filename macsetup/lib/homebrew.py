from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Iterable, List, Mapping, Optional

from .command import have_command, run_cmd
from .download import download_to
from .env import PATHS

logger = logging.getLogger(__name__)

SHELLENV_MARKER = "/opt/homebrew/bin/brew shellenv"


def shellenv_line(prefix: str = PATHS.homebrew_prefix) -> str:
    return f'eval "$({prefix}/bin/brew shellenv)"'


def brew_path(prefix: str = PATHS.homebrew_prefix) -> Optional[str]:
    """Absolute brew path if installed at prefix, else whatever is on PATH."""

    candidate = f"{prefix}/bin/brew"
    if have_command(candidate):
        return candidate
    if have_command("brew"):
        return "brew"
    return None


def have_brew(prefix: str = PATHS.homebrew_prefix) -> bool:
    return have_command(f"{prefix}/bin/brew")


def install_homebrew(
    *,
    url: str = PATHS.homebrew_install_url,
    as_user: Optional[str] = None,
    noninteractive: bool = True,
    dry_run: bool = False,
) -> None:
    """Download the upstream installer script and run it with /bin/bash."""

    with tempfile.TemporaryDirectory(prefix="macsetup-brew-") as tmp:
        script = Path(tmp) / "install.sh"
        download_to(url, script, dry_run=dry_run)
        if not dry_run:
            os.chmod(script, 0o755)
            os.chmod(tmp, 0o755)
        env = {"NONINTERACTIVE": "1"} if noninteractive else {}
        # Without NONINTERACTIVE the installer asks for RETURN and a password.
        run_cmd(
            ["/bin/bash", str(script)],
            as_user=as_user,
            env=env,
            interactive=not noninteractive,
            capture=noninteractive,
            dry_run=dry_run,
        )


def prepare_prefix(user: str, prefix: str = PATHS.homebrew_prefix, *, dry_run: bool = False) -> None:
    run_cmd(["mkdir", "-p", prefix], dry_run=dry_run)
    run_cmd(["chown", "-R", f"{user}:staff", prefix], dry_run=dry_run)


def ensure_shellenv(path: Path, line: Optional[str] = None, *, dry_run: bool = False) -> bool:
    """Append the brew shellenv line to a shell rc file once.

    Returns True if the file was modified.
    """

    line = line or shellenv_line()
    existing = path.read_text(encoding="utf-8") if path.exists() else ""
    if SHELLENV_MARKER in existing or line in existing:
        return False
    if dry_run:
        logger.info("Would append shellenv to %s", path)
        return True
    prefix = "" if not existing or existing.endswith("\n") else "\n"
    with open(path, "a", encoding="utf-8") as f:
        f.write(f"{prefix}{line}\n")
    return True


def brew(
    args: Iterable[str],
    *,
    brew_bin: str = PATHS.brew_bin,
    as_user: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
    check: bool = True,
    dry_run: bool = False,
):
    argv: List[str] = [brew_bin, *args]
    return run_cmd(argv, as_user=as_user, env=env, check=check, dry_run=dry_run)

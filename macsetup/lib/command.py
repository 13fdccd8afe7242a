from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

from ..errors import CommandError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CmdResult:
    argv: list[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def _fmt_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


def is_root() -> bool:
    return os.geteuid() == 0


def have_command(name: str) -> bool:
    """True if `name` is an executable path or resolves on PATH."""

    if os.sep in name:
        return os.path.isfile(name) and os.access(name, os.X_OK)
    return shutil.which(name) is not None


def build_argv(
    argv: Sequence[str],
    *,
    sudo: bool = False,
    as_user: str | None = None,
    env: Mapping[str, str] | None = None,
) -> list[str]:
    """Prefix argv for privileged or per-user execution.

    - sudo: `sudo -n` unless already root (the credential is obtained once at entry).
    - as_user: `sudo -u <user> -H env K=V ...` so the command runs as the invoking user.
    """

    argv_list = list(argv)
    if as_user:
        assignments = [f"{k}={v}" for k, v in (env or {}).items()]
        return ["sudo", "-u", as_user, "-H", "env", *assignments, *argv_list]
    if sudo and not is_root():
        return ["sudo", "-n", *argv_list]
    return argv_list


def run_cmd(
    argv: Sequence[str],
    *,
    check: bool = True,
    sudo: bool = False,
    as_user: str | None = None,
    env: Mapping[str, str] | None = None,
    cwd: str | None = None,
    input_text: str | None = None,
    secret: bool = False,
    interactive: bool = False,
    capture: bool = True,
    dry_run: bool = False,
) -> CmdResult:
    """Run a command with consistent logging.

    - Always logs the command.
    - Captures stdout/stderr; output of secret commands is never logged.
    - interactive: stdin and stderr stay on the terminal so password prompts are seen.
    - capture=False: stdout also goes straight to the terminal.
    - A missing executable raises CommandError with returncode 127.
    - dry_run logs but does not execute.
    """

    argv_list = build_argv(argv, sudo=sudo, as_user=as_user, env=env)
    logger.info("CMD %s", _fmt_argv(argv_list))

    if dry_run:
        return CmdResult(argv=argv_list, returncode=0, stdout="", stderr="")

    try:
        p = subprocess.run(
            argv_list,
            input=input_text,
            text=True,
            stdout=subprocess.PIPE if capture else None,
            stderr=None if interactive else subprocess.PIPE,
            cwd=cwd,
            env=dict(os.environ, **(env or {})) if not as_user else None,
        )
    except FileNotFoundError as e:
        if check:
            raise CommandError(argv_list, 127, f"command not found: {argv_list[0]}") from e
        return CmdResult(argv=argv_list, returncode=127, stdout="", stderr=str(e))

    if not secret:
        if p.stdout:
            logger.debug("STDOUT %s", p.stdout.strip())
        if p.stderr:
            logger.debug("STDERR %s", p.stderr.strip())

    if check and p.returncode != 0:
        raise CommandError(argv_list, p.returncode, "" if secret else (p.stderr or ""))

    return CmdResult(argv=argv_list, returncode=p.returncode, stdout=p.stdout or "", stderr=p.stderr or "")


def spawn_cmd(argv: Sequence[str], *, dry_run: bool = False) -> Optional[subprocess.Popen]:
    """Start a command in the background, detached from our stdio."""

    argv_list = list(argv)
    logger.info("SPAWN %s", _fmt_argv(argv_list))
    if dry_run:
        return None
    try:
        return subprocess.Popen(
            argv_list,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
    except FileNotFoundError as e:
        raise CommandError(argv_list, 127, f"command not found: {argv_list[0]}") from e

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from .errors import ConfigError
from .lib.command import run_cmd
from .lib.defaults import expected_read_value, read_default

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerificationResult:
    description: str
    passed: bool
    expected: str
    actual: Optional[str]

    def line(self) -> str:
        if self.passed:
            return f"✓ {self.description}"
        return f"✗ {self.description} (expected {self.expected!r}, got {self.actual!r})"


@dataclass(frozen=True)
class DefaultsCheck:
    """Re-read a preference and compare with the literal that was written."""

    description: str
    domain: str
    key: str
    expected: Any
    sudo: bool = False

    def run(self) -> VerificationResult:
        want = expected_read_value(self.expected)
        got = read_default(self.domain, self.key, sudo=self.sudo)
        return VerificationResult(self.description, got == want, want, got)


@dataclass(frozen=True)
class CommandCheck:
    """Pass when the command succeeds and `expect` (a regex, case-insensitive) matches its stdout."""

    description: str
    argv: Tuple[str, ...]
    expect: str
    sudo: bool = False

    def run(self) -> VerificationResult:
        r = run_cmd(list(self.argv), check=False, sudo=self.sudo)
        out = (r.stdout or "").strip()
        passed = r.returncode == 0 and re.search(self.expect, out, re.IGNORECASE) is not None
        return VerificationResult(self.description, passed, self.expect, out or None)


Check = Union[DefaultsCheck, CommandCheck]


def checks_from_manifest(manifest: Dict[str, Any]) -> List[Check]:
    checks: List[Check] = []
    try:
        for c in manifest.get("checks") or []:
            checks.append(
                DefaultsCheck(
                    description=str(c["description"]),
                    domain=str(c["domain"]),
                    key=str(c["key"]),
                    expected=c["expected"],
                    sudo=bool(c.get("sudo", False)),
                )
            )
        for c in manifest.get("command_checks") or []:
            checks.append(
                CommandCheck(
                    description=str(c["description"]),
                    argv=tuple(str(a) for a in c["argv"]),
                    expect=str(c["expect"]),
                    sudo=bool(c.get("sudo", False)),
                )
            )
    except KeyError as e:
        raise ConfigError(f"Verification check missing field {e}") from e
    return checks


def run_checks(checks: Sequence[Check], *, dry_run: bool = False) -> List[VerificationResult]:
    if dry_run:
        logger.info("Skipping %d verification checks (dry-run)", len(checks))
        return []
    results = []
    for check in checks:
        result = check.run()
        logger.info("VERIFY %s", result.line())
        results.append(result)
    return results

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple

from ..errors import ConfigError
from .command import run_cmd

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PreferenceWrite:
    domain: str
    key: str
    value: Any
    sudo: bool = False


@dataclass(frozen=True)
class PreferenceGroup:
    """One tracked setting; all writes are applied as a single attempt."""

    description: str
    writes: Tuple[PreferenceWrite, ...]


def type_args(value: Any) -> List[str]:
    """Map a Python value to `defaults write` type flag + value args."""

    # bool before int: bool is an int subclass.
    if isinstance(value, bool):
        return ["-bool", "true" if value else "false"]
    if isinstance(value, int):
        return ["-int", str(value)]
    if isinstance(value, float):
        return ["-float", repr(value)]
    if isinstance(value, str):
        return ["-string", value]
    if isinstance(value, (list, tuple)):
        return ["-array", *[str(v) for v in value]]
    raise ConfigError(f"Unsupported preference value type: {type(value).__name__}")


def expected_read_value(value: Any) -> str:
    """How `defaults read` prints a scalar that was written from `value`."""

    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return "%g" % value
    return str(value)


def write_argv(pref: PreferenceWrite) -> List[str]:
    return ["defaults", "write", pref.domain, pref.key, *type_args(pref.value)]


def write_default(pref: PreferenceWrite, *, dry_run: bool = False) -> None:
    run_cmd(write_argv(pref), sudo=pref.sudo, dry_run=dry_run)


def append_default(domain: str, key: str, fragment: str, *, dry_run: bool = False) -> None:
    """`defaults write <domain> <key> -array-add <plist fragment>`."""

    run_cmd(["defaults", "write", domain, key, "-array-add", fragment], dry_run=dry_run)


def read_default(domain: str, key: str, *, sudo: bool = False, dry_run: bool = False) -> Optional[str]:
    r = run_cmd(["defaults", "read", domain, key], check=False, sudo=sudo, dry_run=dry_run)
    if r.returncode != 0:
        return None
    return r.stdout.strip()


def apply_group(group: PreferenceGroup, *, dry_run: bool = False) -> None:
    for pref in group.writes:
        write_default(pref, dry_run=dry_run)


def groups_from(raw: Sequence[Any], *, substitutions: Optional[dict] = None) -> List[PreferenceGroup]:
    """Build PreferenceGroups from manifest data.

    String values may reference `{home}`-style substitutions.
    """

    subs = substitutions or {}
    groups: List[PreferenceGroup] = []
    for entry in raw or []:
        if not isinstance(entry, dict) or "description" not in entry:
            raise ConfigError(f"Preference group must be a mapping with a description: {entry!r}")
        writes = []
        for w in entry.get("writes") or []:
            value = w.get("value")
            if isinstance(value, str) and subs:
                value = value.format_map(subs)
            writes.append(
                PreferenceWrite(
                    domain=str(w["domain"]),
                    key=str(w["key"]),
                    value=value,
                    sudo=bool(w.get("sudo", entry.get("sudo", False))),
                )
            )
        groups.append(PreferenceGroup(description=str(entry["description"]), writes=tuple(writes)))
    return groups

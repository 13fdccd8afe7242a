from __future__ import annotations

from functools import partial
from typing import Dict, Optional

from ..lib.defaults import apply_group, groups_from
from ..lib.manifests import load_manifest
from ..pipeline import RunContext


def apply_manifest_section(ctx: RunContext, manifest: str, section: str, *, substitutions: Optional[Dict[str, str]] = None) -> int:
    """Apply every preference group of a manifest section; returns how many succeeded."""

    groups = groups_from(load_manifest(manifest).get(section) or [], substitutions=substitutions)
    ok = 0
    for group in groups:
        if ctx.tracker.attempt(group.description, partial(apply_group, group, dry_run=ctx.dry_run)):
            ok += 1
    return ok

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

import yaml

from ..errors import ConfigError


def _manifest_dir() -> Path:
    # macsetup/lib/manifests.py -> macsetup/manifests
    return Path(__file__).resolve().parents[1] / "manifests"


def load_manifest(name: str) -> Dict[str, Any]:
    """Load manifests/<name>.yaml shipped with the package."""

    p = _manifest_dir() / f"{name}.yaml"
    if not p.exists():
        raise ConfigError(f"Unknown manifest: {name}")
    data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"Manifest must be a mapping/dict: {p}")
    return data

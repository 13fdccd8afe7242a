from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..errors import PreconditionError
from .command import is_root, run_cmd
from .templates import FIREFOX_PROFILES_INI

logger = logging.getLogger(__name__)

AMO_LATEST = "https://addons.mozilla.org/firefox/downloads/latest/{slug}/latest.xpi"

_PREF_RE = re.compile(r'^\s*user_pref\(\s*"([^"]+)"')


@dataclass(frozen=True)
class Extension:
    slug: str
    addon_id: str
    sha256: Optional[str] = None

    @property
    def url(self) -> str:
        return AMO_LATEST.format(slug=self.slug)

    @property
    def filename(self) -> str:
        # Firefox only side-loads an XPI whose filename is the add-on ID.
        return f"{self.addon_id}.xpi"


@dataclass(frozen=True)
class ProfileLayout:
    support_dir: Path
    profile_name: str

    @property
    def profiles_dir(self) -> Path:
        return self.support_dir / "Profiles"

    @property
    def relative_path(self) -> str:
        return f"Profiles/{self.profile_name}.default"

    @property
    def profile_dir(self) -> Path:
        return self.support_dir / self.relative_path

    @property
    def profiles_ini(self) -> Path:
        return self.support_dir / "profiles.ini"

    @property
    def extensions_dir(self) -> Path:
        return self.profile_dir / "extensions"

    @property
    def user_js(self) -> Path:
        return self.profile_dir / "user.js"


def layout_for(home: Path, profile_name: str) -> ProfileLayout:
    return ProfileLayout(support_dir=home / "Library" / "Application Support" / "Firefox", profile_name=profile_name)


def locate_app(candidates: Iterable[Path]) -> Path:
    for app in candidates:
        if Path(app).is_dir():
            return Path(app)
    raise PreconditionError("Firefox.app not found after install.")


def app_binary(app: Path) -> Path:
    binary = app / "Contents" / "MacOS" / "firefox"
    if not (binary.is_file() and os.access(binary, os.X_OK)):
        raise PreconditionError(f"Firefox binary not found: {binary}")
    return binary


def render_profiles_ini(layout: ProfileLayout) -> str:
    return FIREFOX_PROFILES_INI.render(name=layout.profile_name, path=layout.relative_path)


def user_pref_line(key: str, value: Any) -> str:
    return f"user_pref({json.dumps(key)}, {json.dumps(value)});"


def merge_user_prefs(existing: str, prefs: Mapping[str, Any]) -> str:
    """Drop any prior user_pref lines for the managed keys and append new ones."""

    kept: List[str] = []
    for line in existing.splitlines():
        m = _PREF_RE.match(line)
        if m and m.group(1) in prefs:
            continue
        kept.append(line)
    kept.extend(user_pref_line(k, v) for k, v in prefs.items())
    return "\n".join(kept) + "\n"


def policies_document(search_engine: str, *, dont_check_default_browser: bool = True) -> Dict[str, Any]:
    return {
        "policies": {
            "SearchEngines": {"Default": search_engine},
            "DontCheckDefaultBrowser": dont_check_default_browser,
        }
    }


def write_policies(policies_dir: Path, document: Mapping[str, Any], *, dry_run: bool = False) -> Path:
    """Write policies.json into the system-wide ManagedPolicies directory."""

    path = Path(policies_dir) / "policies.json"
    text = json.dumps(document, indent=2) + "\n"
    if is_root():
        if dry_run:
            logger.info("Would write %s", path)
            return path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    run_cmd(["mkdir", "-p", str(policies_dir)], sudo=True, dry_run=dry_run)
    run_cmd(["tee", str(path)], sudo=True, input_text=text, dry_run=dry_run)
    return path

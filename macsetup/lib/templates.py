from __future__ import annotations

import plistlib
from dataclasses import dataclass
from pathlib import Path
from string import Template
from typing import Any, Dict, Sequence, Tuple

from PIL import Image

from ..errors import TemplateError


@dataclass(frozen=True)
class PayloadTemplate:
    """An opaque payload for an external tool with named substitution points."""

    name: str
    template: Template
    fields: Tuple[str, ...]

    def render(self, **values: Any) -> str:
        missing = [f for f in self.fields if f not in values]
        extra = [k for k in values if k not in self.fields]
        if missing or extra:
            raise TemplateError(f"{self.name}: missing={missing} unexpected={extra}")
        try:
            return self.template.substitute({k: str(v) for k, v in values.items()})
        except (KeyError, ValueError) as e:
            raise TemplateError(f"{self.name}: {e}") from e


def _tpl(name: str, text: str, *fields: str) -> PayloadTemplate:
    return PayloadTemplate(name=name, template=Template(text), fields=tuple(fields))


DOCK_TILE = _tpl(
    "dock_tile",
    """<dict>
    <key>tile-data</key>
    <dict>
        <key>file-data</key>
        <dict>
            <key>_CFURLString</key>
            <string>$path</string>
            <key>_CFURLStringType</key>
            <integer>0</integer>
        </dict>
    </dict>
</dict>""",
    "path",
)

SET_DESKTOP_PICTURE = _tpl(
    "set_desktop_picture",
    'tell application "System Events" to tell every desktop to set picture to "$path"',
    "path",
)

FIREFOX_PROFILES_INI = _tpl(
    "firefox_profiles_ini",
    """[General]
StartWithLastProfile=1

[Profile0]
Name=$name
IsRelative=1
Path=$path
Default=1
""",
    "name",
    "path",
)


def launch_agent_plist(label: str, program_arguments: Sequence[str], *, run_at_load: bool = True) -> bytes:
    payload: Dict[str, Any] = {
        "Label": label,
        "ProgramArguments": list(program_arguments),
        "RunAtLoad": run_at_load,
    }
    return plistlib.dumps(payload, fmt=plistlib.FMT_XML)


def save_solid_png(path: Path, width: int, height: int, rgb: Tuple[int, int, int]) -> Path:
    """Write a single-colour RGB PNG to path."""

    if width <= 0 or height <= 0:
        raise TemplateError(f"Invalid image size {width}x{height}")
    Image.new("RGB", (width, height), tuple(rgb)).save(path, "PNG")
    return path

from __future__ import annotations

from typing import Sequence


class MacSetupError(Exception):
    """Base class for errors raised by macsetup."""


class PreconditionError(MacSetupError):
    """A fail-fast check failed before any change was made."""


class ElevationError(PreconditionError):
    """Administrator privileges are required but unavailable."""


class ConfigError(MacSetupError):
    pass


class TemplateError(MacSetupError):
    pass


class DownloadError(MacSetupError):
    pass


class CommandError(MacSetupError):
    def __init__(self, argv: Sequence[str], returncode: int, stderr: str = "") -> None:
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr
        msg = f"Command failed ({returncode}): {' '.join(self.argv)}"
        if stderr.strip():
            msg += f"\n{stderr.strip()}"
        super().__init__(msg)

from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

_HANDLERS_ATTR = "_macsetup_handlers"


def default_log_path(prefix: str, directory: Union[str, Path], *, now: Optional[datetime] = None) -> str:
    """<directory>/mac_<prefix>_YYYYmmdd_HHMMSS.log"""

    stamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    return str(Path(directory).expanduser() / f"mac_{prefix}_{stamp}.log")


def configure_logging(
    log_path: str,
    level: Union[int, str] = logging.INFO,
    also_console: bool = True,
) -> str:
    """Configure logging for one run.

    Notes:
    - The log normally lands on the user's Desktop. If that location is not
      writable we fall back to a file in the current working directory, while
      continuing to report the intended path in the log.
    - Calling this again replaces the handlers installed by the previous call.

    Returns the actual file path being used.
    """

    logger = logging.getLogger()
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logger.setLevel(level)

    for h in getattr(logger, _HANDLERS_ATTR, []):
        logger.removeHandler(h)
        h.close()

    handlers: List[logging.Handler] = []

    fmt = logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )

    chosen_path = log_path
    try:
        Path(os.path.dirname(log_path) or ".").mkdir(parents=True, exist_ok=True)
        file_handler: logging.Handler = logging.FileHandler(log_path, encoding="utf-8")
    except OSError:
        chosen_path = str(Path.cwd() / Path(log_path).name)
        file_handler = logging.FileHandler(chosen_path, encoding="utf-8")
    file_handler.setFormatter(fmt)
    handlers.append(file_handler)

    if also_console:
        console = logging.StreamHandler()
        console.setFormatter(fmt)
        handlers.append(console)

    for h in handlers:
        logger.addHandler(h)

    setattr(logger, _HANDLERS_ATTR, handlers)

    logging.getLogger(__name__).info(
        "Logging initialized (requested=%s, actual=%s)", log_path, chosen_path
    )
    return chosen_path

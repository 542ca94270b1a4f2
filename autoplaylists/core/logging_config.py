import logging
import sys
from typing import Optional, Union

from autoplaylists.config import LOG_LEVEL

# Third-party loggers that only add noise at INFO
_QUIET_LOGGERS = ("urllib3", "httpx")


def configure_logging(level: Optional[Union[int, str]] = None) -> None:
    """
    Configure root logging for the sync coordinator.

    - Logs go to stdout
    - Time, level and logger name on every line
    - Level defaults to AUTOPLAYLISTS_LOG_LEVEL
    - Calling it again only adjusts the level
    """
    if level is None:
        level = LOG_LEVEL
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if root.handlers:
        root.setLevel(level)
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s - %(message)s",
            datefmt="%H:%M:%S",
        )
    )

    root.addHandler(handler)
    root.setLevel(level)

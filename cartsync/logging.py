"""
Logging for cartsync.

All modules log through children of the "cartsync" logger:

    from cartsync.logging import get_logger
    logger = get_logger(__name__)

A stdout handler is attached to the "cartsync" logger the first time a
logger is requested, unless the application already configured one.
"""

import logging
import os
import sys
from functools import cache

PACKAGE_LOGGER = "cartsync"

DETAILED_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
COMPACT_FORMAT = "%(levelname)s [%(name)s] %(message)s"

_configured = False


def _level_from_env() -> int:
    name = (os.environ.get("CARTSYNC_LOG_LEVEL") or os.environ.get("LOG_LEVEL") or "INFO").upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def configure_logging(level: int | None = None, compact: bool | None = None) -> logging.Logger:
    """
    Attach the cartsync handler once.

    Args:
        level: Log level; defaults to CARTSYNC_LOG_LEVEL / LOG_LEVEL
        compact: Drop timestamps; defaults to CARTSYNC_ENV == "production"

    Returns:
        The package logger
    """
    global _configured

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    if _configured or package_logger.handlers:
        return package_logger

    if compact is None:
        compact = os.environ.get("CARTSYNC_ENV") == "production"

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(COMPACT_FORMAT if compact else DETAILED_FORMAT))
    package_logger.addHandler(handler)
    package_logger.setLevel(level if level is not None else _level_from_env())

    # One request line per cart round trip is noise at INFO
    for noisy in ("httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    _configured = True
    return package_logger


@cache
def get_logger(name: str) -> logging.Logger:
    """Logger for a cartsync module (pass __name__)."""
    configure_logging()
    return logging.getLogger(name)


def sanitize_id_for_logging(id_value: str | int | None, max_length: int = 8) -> str:
    """
    Make a caller-supplied id safe to log.

    Control characters are escaped so an id cannot forge log lines
    (CWE-117), and the result is cut to max_length characters.
    """
    if id_value is None or id_value == "":
        return "N/A"
    text = str(id_value).replace("\x00", "")
    text = text.encode("unicode_escape").decode("ascii")
    return text[:max_length]


__all__ = [
    "COMPACT_FORMAT",
    "DETAILED_FORMAT",
    "configure_logging",
    "get_logger",
    "sanitize_id_for_logging",
]

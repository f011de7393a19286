"""
Centralized logging configuration.

    from qastore.log_config import setup_logging
    setup_logging()   # once, at process start
"""

import logging
import sys

from qastore.config import get_settings

# Loggers whose level follows Settings.log_level_store
_STORE_LOGGERS = (
    "qastore.client",
    "qastore.subscriptions",
)

_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def setup_logging() -> None:
    """Apply log levels from settings and install a stderr handler once."""
    settings = get_settings()

    root = logging.getLogger()
    root.setLevel(_parse_level(settings.log_level))
    if not any(getattr(h, "_qastore", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler._qastore = True
        root.addHandler(handler)

    store_level = _parse_level(settings.log_level_store)
    for name in _STORE_LOGGERS:
        logging.getLogger(name).setLevel(store_level)


def _parse_level(value: str) -> int:
    level = logging.getLevelName(value.strip().upper())
    if not isinstance(level, int):
        return logging.INFO
    return level

"""
Application logger.

Modules import the shared ``logger``; ``setup_logger`` is called once at
startup to apply the configured level.
"""

import logging
import sys

_LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s - %(message)s"


def setup_logger(name: str = "rorie", level: str | int = "INFO") -> logging.Logger:
    """Configure and return a named logger writing to stdout."""
    log = logging.getLogger(name)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    log.setLevel(level)

    if not log.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        log.addHandler(handler)
        log.propagate = False

    return log


logger = setup_logger()

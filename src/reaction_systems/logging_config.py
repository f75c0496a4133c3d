"""Console and file logging for reaction_systems.

Modules log through ``logging.getLogger(__name__)``; the package installs only
a ``NullHandler``. Scripts and notebooks call `setup_logging` to see parsing,
simulation and steady-state messages.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

PACKAGE_LOGGER = "reaction_systems"
LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> logging.Logger:
    """Attach handlers to the package logger and return it.

    Parameters
    ----------
    level:
        Threshold for the logger and all of its handlers.
    log_file:
        If given, messages are also written to this file (overwritten).

    Calling this again replaces the handlers of the previous call.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)

    formatter = logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S")
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode="w", encoding="utf-8"))
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.debug("Logging to %s", ", ".join(type(h).__name__ for h in handlers))
    return logger

"""Logging setup shared by all flowviz modules.

Every module logs through ``get_logger(__name__)``, so all loggers live under
the ``flowviz`` package logger and a single ``set_global_log_level`` call
from the CLI controls them together.
"""

import logging
import sys

PACKAGE_LOGGER = "flowviz"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%H:%M:%S"


def get_logger(name: str) -> logging.Logger:
    """Return the logger for ``name``, normally the calling module's ``__name__``."""
    return logging.getLogger(name)


def set_global_log_level(level: int) -> None:
    """Send log records to stderr and set the level of the flowviz loggers.

    Handlers already installed on the root logger are replaced.

    Args:
        level: Logging level (e.g., logging.DEBUG, logging.INFO).
    """
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        stream=sys.stderr,
        force=True,
    )
    logging.getLogger(PACKAGE_LOGGER).setLevel(level)

"""
pypst logging setup.

Modules log through ``logging.getLogger(__name__)``; ``configure_logging``
attaches the single stderr handler to the package logger. Match tracing goes
to the separate ``pypst.trace`` logger so it never mixes with stdout.
"""

import logging
import sys
from typing import Callable

from pypst.config import LOG_LEVEL

LOG_FORMAT = "[%(asctime)s] [%(levelname)-5s] [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

logger = logging.getLogger("pypst")
trace_logger = logging.getLogger("pypst.trace")


def configure_logging(level: str | int = LOG_LEVEL) -> logging.Logger:
    """Install the stderr handler on the ``pypst`` logger, replacing an earlier one."""
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.WARNING)

    logger.setLevel(level)
    for h in [h for h in logger.handlers if getattr(h, "_pypst_console", False)]:
        logger.removeHandler(h)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    handler._pypst_console = True  # type: ignore[attr-defined]
    logger.addHandler(handler)

    # Prevent duplicate records through the root logger
    logger.propagate = False
    return logger


def open_trace(path: str) -> Callable[[], None]:
    """
    Route the trace logger to ``path``.

    Falls back to stderr when the file cannot be opened. Returns a callable
    that detaches and closes the handler.
    """
    handler: logging.Handler
    try:
        handler = logging.FileHandler(path, mode="w", encoding="utf-8")
    except OSError as e:
        logger.warning("cannot open trace file %s: %s; tracing to stderr", path, e)
        handler = logging.StreamHandler(sys.stderr)

    handler.setFormatter(logging.Formatter("%(message)s"))
    trace_logger.addHandler(handler)
    trace_logger.setLevel(logging.DEBUG)
    trace_logger.propagate = False

    def close() -> None:
        """Detach and close the trace file handler."""
        trace_logger.removeHandler(handler)
        handler.close()

    return close

"""Logging helpers.

Every module logs through ``logging.getLogger(__name__)``. A caller-supplied
``logging.Logger`` replaces the package logger for a ``PolicyEngine``;
structured context is attached as ``extra={"context": {...}}``.
"""

import logging
import sys
from typing import Any, Dict, Optional

PACKAGE_LOGGER_NAME = "policy_engine"


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return the package logger, or a child of it."""
    if not name or name == PACKAGE_LOGGER_NAME:
        return logging.getLogger(PACKAGE_LOGGER_NAME)
    if name.startswith(PACKAGE_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{PACKAGE_LOGGER_NAME}.{name}")


def silent_logger() -> logging.Logger:
    """Logger that discards every record."""
    logger = logging.getLogger(f"{PACKAGE_LOGGER_NAME}.silent")
    if not any(isinstance(h, logging.NullHandler) for h in logger.handlers):
        logger.addHandler(logging.NullHandler())
    logger.propagate = False
    return logger


def log_event(
    logger: logging.Logger,
    level: int,
    message: str,
    context: Optional[Dict[str, Any]] = None,
) -> None:
    """Emit ``message`` with structured ``context``."""
    if context:
        rendered = " ".join(f"{k}={v}" for k, v in context.items())
        logger.log(level, "%s | %s", message, rendered, extra={"context": context})
    else:
        logger.log(level, message, extra={"context": {}})


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Install a timestamped stdout handler on the package logger."""
    logger = get_logger()
    logger.setLevel(level)

    while logger.hasHandlers() and logger.handlers:
        logger.removeHandler(logger.handlers[0])

    handler = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter(
        "%(asctime)s | %(levelname).1s | %(name)-30.30s | %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    return logger

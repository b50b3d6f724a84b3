"""Logger helpers shared by the engine modules."""

from __future__ import annotations

import logging
import sys
from typing import Optional, Union

ROOT_LOGGER_NAME = "eclat"
_HANDLER_NAME = "eclat-console"

logger = logging.getLogger(ROOT_LOGGER_NAME)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return the package logger, or a child of it for *name*."""
    if not name or name == ROOT_LOGGER_NAME:
        return logger
    if name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logger.getChild(name)


def configure_logging(level: Union[int, str] = logging.INFO) -> logging.Logger:
    """Install a single console handler on the package logger.

    Calling this again only adjusts the level.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    for handler in logger.handlers:
        if getattr(handler, "name", None) == _HANDLER_NAME:
            handler.setLevel(level)
            logger.setLevel(level)
            return logger
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.name = _HANDLER_NAME
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(level)
    return logger

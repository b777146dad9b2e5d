# === FILE: wp_mirror/logger.py ===
"""Logging setup for wp_mirror.

Modules log through children of the ``WpMirror`` logger
(``get_logger("cache")`` -> ``WpMirror.cache``). Records go to stderr and,
when requested, to a rotating log file; stdout is left to the progress lines
printed by the CLI.
"""
from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Final, Union

_DEFAULT_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_ROOT_NAME: Final[str] = "WpMirror"
_MAX_LOG_BYTES: Final[int] = 5 * 1024 * 1024
_LOG_BACKUPS: Final[int] = 3

_LevelT = Union[int, str]


def _formatted(handler: logging.Handler, fmt: str) -> logging.Handler:
    handler.setFormatter(logging.Formatter(fmt))
    return handler


def configure(
    *,
    level: _LevelT = "INFO",
    log_file: str | Path | None = None,
    log_format: str = _DEFAULT_FORMAT,
    replace_handlers: bool = True,
) -> logging.Logger:
    """Set level and handlers of the ``WpMirror`` logger and return it.

    With *replace_handlers* false the new handlers are added next to the
    existing ones.
    """
    root = logging.getLogger(_ROOT_NAME)
    root.setLevel(level)
    if replace_handlers:
        root.handlers.clear()

    root.addHandler(_formatted(logging.StreamHandler(sys.stderr), log_format))
    if log_file is not None:
        rotating = RotatingFileHandler(
            filename=str(log_file),
            maxBytes=_MAX_LOG_BYTES,
            backupCount=_LOG_BACKUPS,
            encoding="utf-8",
        )
        root.addHandler(_formatted(rotating, log_format))

    root.propagate = False
    return root


def get_logger(name: str | None = None) -> logging.Logger:
    """``WpMirror`` itself, or its child ``WpMirror.<name>``."""
    return logging.getLogger(_ROOT_NAME if name is None else f"{_ROOT_NAME}.{name}")


# console output at INFO until the CLI reconfigures it
logger: logging.Logger = configure()

__all__ = ["logger", "configure", "get_logger"]

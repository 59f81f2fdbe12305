"""Logging helpers for mapopt.

Every module obtains its logger through :func:`get_logger`. Loggers live
under the ``mapopt`` namespace, carry their own stderr handler and do not
propagate, so an application's root configuration is left alone. The
optimizers log at DEBUG; progress meant for users goes through the info
sink instead (see :class:`mapopt.io.LoggerWriter`).
"""

from __future__ import annotations

import logging
import sys
from typing import Optional, TextIO

_PACKAGE = "mapopt"
_FORMAT = "[%(levelname)s] %(name)s: %(message)s"

_level = logging.WARNING
_registry: dict[str, logging.Logger] = {}


def _qualify(name: Optional[str]) -> str:
    if not name or name == _PACKAGE:
        return _PACKAGE
    if name.startswith(_PACKAGE + "."):
        return name
    return f"{_PACKAGE}.{name}"


def _make_handler(
    level: int, stream: Optional[TextIO] = None, fmt: Optional[str] = None
) -> logging.Handler:
    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt or _FORMAT))
    return handler


def _resolve_level(level: int | str) -> int:
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.WARNING)
    return level


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return the cached ``mapopt`` logger for ``name``.

    Args:
        name: Usually ``__name__``. Names outside the package are prefixed
            with ``mapopt.``; None gives the package logger.

    Example:
        >>> from mapopt.logging import get_logger
        >>> get_logger("scratch").name
        'mapopt.scratch'
    """
    qualified = _qualify(name)
    cached = _registry.get(qualified)
    if cached is not None:
        return cached

    logger = logging.getLogger(qualified)
    if not logger.handlers:
        logger.setLevel(_level)
        logger.addHandler(_make_handler(_level))
        logger.propagate = False
    _registry[qualified] = logger
    return logger


def set_log_level(level: int | str) -> None:
    """Change the level of every mapopt logger and of loggers made later.

    Args:
        level: A ``logging`` constant or its name, e.g. ``"DEBUG"``.
    """
    global _level
    _level = _resolve_level(level)
    for logger in _registry.values():
        logger.setLevel(_level)
        for handler in logger.handlers:
            handler.setLevel(_level)


def configure_logging(
    level: int | str = logging.WARNING,
    format_string: Optional[str] = None,
    stream: Optional[TextIO] = None,
) -> None:
    """Point every existing mapopt logger at one stream and format.

    Existing handlers are dropped. Loggers created afterwards pick up the
    level but keep the default stderr handler.

    Args:
        level: Logging level (default: WARNING).
        format_string: ``logging.Formatter`` format; None keeps the default.
        stream: Destination stream (default: ``sys.stderr``).
    """
    global _level
    _level = _resolve_level(level)
    for logger in _registry.values():
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
        logger.addHandler(_make_handler(_level, stream, format_string))
        logger.setLevel(_level)


__all__ = ["configure_logging", "get_logger", "set_log_level"]

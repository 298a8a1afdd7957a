"""Logging for the ``mpesa_sms`` package.

Modules log through children of the ``mpesa_sms`` logger, obtained with
:func:`get_logger`. Until an entrypoint calls :func:`configure_logging` the
package logger only carries a ``NullHandler``, so embedding the engine in a
host prints nothing.

The level is taken from the ``level`` argument, then from
``MPESA_SMS_LOG_LEVEL``, then defaults to ``INFO``.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

PACKAGE_LOGGER = "mpesa_sms"
LOG_LEVEL_ENV = "MPESA_SMS_LOG_LEVEL"
DEFAULT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

# Handler installed by configure_logging; None while unconfigured.
_handler: logging.Handler | None = None


def _level_from_text(text: str) -> int | None:
    text = text.strip().upper()
    if text.isdigit():
        return int(text)
    return logging.getLevelNamesMapping().get(text)


def resolve_level(level: int | str | None = None) -> int:
    """Turn an ``int``, a level name or a numeric string into a level number.

    ``None`` reads ``MPESA_SMS_LOG_LEVEL``. Anything unrecognized is ``INFO``.
    """

    if isinstance(level, int):
        return level
    if level is None:
        level = os.getenv(LOG_LEVEL_ENV, "")
    resolved = _level_from_text(level)
    return logging.INFO if resolved is None else resolved


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] | None = None,
) -> logging.Handler:
    """Attach one ``StreamHandler`` to the package logger; later calls are no-ops.

    Returns the installed handler (the existing one on repeat calls). Output
    goes to ``stream`` or ``sys.stderr`` and does not propagate to the root
    logger.
    """

    global _handler
    if _handler is not None:
        return _handler

    pkg = logging.getLogger(PACKAGE_LOGGER)
    for placeholder in [h for h in pkg.handlers if isinstance(h, logging.NullHandler)]:
        pkg.removeHandler(placeholder)

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(logging.Formatter(fmt or DEFAULT_FORMAT))
    pkg.addHandler(handler)
    pkg.setLevel(resolve_level(level))
    pkg.propagate = False

    _handler = handler
    return handler


def get_logger(name: str) -> logging.Logger:
    if _handler is None:
        pkg = logging.getLogger(PACKAGE_LOGGER)
        if not pkg.handlers:
            pkg.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = [
    "DEFAULT_FORMAT",
    "LOG_LEVEL_ENV",
    "PACKAGE_LOGGER",
    "configure_logging",
    "get_logger",
    "resolve_level",
]

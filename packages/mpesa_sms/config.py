"""Environment-driven settings for hosts and the CLI.

Recognized variables (a local ``.env`` is loaded by the CLI beforehand):

- ``MPESA_SMS_LOG_LEVEL``: logging level name or number (see ``logging_setup``).
- ``MPESA_SMS_TIMEZONE``: IANA zone used for ``occurred_at`` (default ``UTC``).
- ``MPESA_SMS_ENABLED``: start with processing enabled (``1/true/yes``).
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .logging_setup import LOG_LEVEL_ENV

TIMEZONE_ENV = "MPESA_SMS_TIMEZONE"
ENABLED_ENV = "MPESA_SMS_ENABLED"

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


@dataclass(frozen=True, slots=True)
class Settings:
    log_level: str | None
    tz: tzinfo
    enabled: bool


def resolve_timezone(name: str | None) -> tzinfo:
    """Return the zone for ``name``; blank or ``"UTC"`` yields :data:`datetime.UTC`."""

    if name is None or not name.strip() or name.strip().upper() == "UTC":
        return UTC
    try:
        return ZoneInfo(name.strip())
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"unknown timezone: {name!r}") from exc


def _parse_bool(raw: str | None, *, default: bool) -> bool:
    if raw is None:
        return default
    v = raw.strip().lower()
    if v in _TRUTHY:
        return True
    if v in _FALSY:
        return False
    return default


def read_log_level(env: Mapping[str, str] | None = None) -> str | None:
    source = os.environ if env is None else env
    return (source.get(LOG_LEVEL_ENV) or "").strip() or None


def read_enabled(env: Mapping[str, str] | None = None) -> bool:
    """Whether processing starts enabled; unrecognized values mean ``False``."""

    source = os.environ if env is None else env
    return _parse_bool(source.get(ENABLED_ENV), default=False)


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    """Build :class:`Settings` from ``env`` (defaults to ``os.environ``).

    Raises ``ValueError`` when ``MPESA_SMS_TIMEZONE`` names an unknown zone.
    """

    source = os.environ if env is None else env
    return Settings(
        log_level=read_log_level(source),
        tz=resolve_timezone(source.get(TIMEZONE_ENV)),
        enabled=read_enabled(source),
    )


__all__ = [
    "ENABLED_ENV",
    "TIMEZONE_ENV",
    "Settings",
    "load_settings",
    "read_enabled",
    "read_log_level",
    "resolve_timezone",
]

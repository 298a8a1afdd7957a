"""Rule-based extraction of transaction records from M-Pesa SMS text.

The engine is a fixed sequence of small pure stages over the same input
text. Each stage returns its own value (or ``None``) and :func:`extract`
merges them into a single :class:`~mpesa_sms.models.TransactionRecord`:

1. relevance filter (``"m-pesa"`` marker)
2. direction classifier
3. amount extractor (first ``KSH``/``KES`` amount)
4. rejection gate (amount must be positive)
5. reference extractor
6. counterparty extractor
7. category classifier (outbound only)
8. timestamp normalizer

Every failure is value-level: :func:`extract` returns ``None`` and never
raises for a ``str | None`` body and an ``int`` timestamp. No state is kept
between calls.
"""

from __future__ import annotations

import math
import re
from datetime import UTC, datetime, timedelta, tzinfo

from .categories import match_category
from .logging_setup import get_logger
from .models import Direction, TransactionRecord

RELEVANCE_MARKER = "m-pesa"

# (phrases, direction) in priority order; the first containing rule wins.
DIRECTION_RULES: tuple[tuple[tuple[str, ...], Direction], ...] = (
    (("you have received", "received from"), Direction.INBOUND),
    (("paid to", "sent to", "send to"), Direction.OUTBOUND),
)
DEFAULT_DIRECTION = Direction.OUTBOUND

# "Ksh 1,234.50", "KES250", "kes 3,000". Only these two currency codes.
_AMOUNT_RE = re.compile(r"(KSH|KES)\s*([0-9,]+(?:\.[0-9]+)?)", re.IGNORECASE | re.ASCII)
# Standalone run of 8+ uppercase letters/digits, e.g. "QAB1CD2EFG".
_REFERENCE_RE = re.compile(r"\b([A-Z0-9]{8,})\b", re.ASCII)
_COUNTERPARTY_DELIMITER_RE = re.compile(r" to ", re.IGNORECASE)

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

_logger = get_logger("mpesa_sms.extraction")


# ---------------------------------------------------------------------------
# Stages
# ---------------------------------------------------------------------------


def relevant_text(body: str | None) -> str | None:
    """Return the trimmed body when it belongs to the M-Pesa family, else ``None``."""

    if body is None:
        return None
    text = body.strip()
    if not text:
        return None
    if RELEVANCE_MARKER not in text.lower():
        return None
    return text


def classify_direction(lowered: str) -> Direction:
    for phrases, direction in DIRECTION_RULES:
        if any(phrase in lowered for phrase in phrases):
            return direction
    return DEFAULT_DIRECTION


def extract_amount(text: str) -> float:
    """Parse the first currency-prefixed amount; ``0.0`` when absent or malformed."""

    m = _AMOUNT_RE.search(text)
    if m is None:
        return 0.0
    raw = m.group(2).replace(",", "")
    try:
        value = float(raw)
    except ValueError:
        return 0.0
    # A run of digits long enough to overflow is as useless as no amount.
    return value if math.isfinite(value) else 0.0


def extract_reference(text: str) -> str | None:
    m = _REFERENCE_RE.search(text)
    return m.group(1) if m else None


def extract_counterparty(text: str) -> str | None:
    """Best-effort name after the first ``" to "``, cut at the next full stop.

    The remainder is trimmed; a ``"."`` only cuts when something precedes it.
    """

    m = _COUNTERPARTY_DELIMITER_RE.search(text)
    if m is None:
        return None
    after = text[m.end() :].strip()
    stop = after.find(".")
    if stop > 0:
        return after[:stop].strip()
    return after or None


def classify_category(lowered: str, direction: Direction) -> str | None:
    if direction is not Direction.OUTBOUND:
        return None
    return match_category(lowered)


def _civil_from_days(days: int) -> tuple[int, int, int]:
    # Proleptic Gregorian (year, month, day) for days since 1970-01-01,
    # valid for any integer (H. Hinnant's days_from_civil inverse).
    z = days + 719_468
    era = z // 146_097
    doe = z - era * 146_097
    yoe = (doe - doe // 1_460 + doe // 36_524 - doe // 146_096) // 365
    doy = doe - (365 * yoe + yoe // 4 - yoe // 100)
    mp = (5 * doy + 2) // 153
    day = doy - (153 * mp + 2) // 5 + 1
    month = mp + 3 if mp < 10 else mp - 9
    year = yoe + era * 400 + (1 if month <= 2 else 0)
    return year, month, day


def _edge_offset(timestamp_millis: int, tz: tzinfo) -> timedelta:
    # Offset in force at the nearest representable instant.
    if timestamp_millis > 0:
        edge = datetime(9999, 12, 1, tzinfo=UTC)
    else:
        edge = datetime(1, 1, 2, tzinfo=UTC)
    return edge.astimezone(tz).utcoffset() or timedelta(0)


def _format_fields(
    year: int, month: int, day: int, hour: int, minute: int, second: int, millis: int, offset: str
) -> str:
    sign = "-" if year < 0 else ""
    return (
        f"{sign}{abs(year):04d}-{month:02d}-{day:02d}"
        f"T{hour:02d}:{minute:02d}:{second:02d}.{millis:03d}{offset}"
    )


def _format_offset(offset: timedelta) -> str:
    minutes = int(offset.total_seconds()) // 60
    sign = "-" if minutes < 0 else "+"
    hours, mins = divmod(abs(minutes), 60)
    return f"{sign}{hours:02d}{mins:02d}"


def format_timestamp(timestamp_millis: int, tz: tzinfo = UTC) -> str:
    """Format epoch millis as ``YYYY-MM-DDTHH:MM:SS.mmm+HHMM`` in ``tz``.

    Instants outside the years :mod:`datetime` supports are rendered by
    integer calendar arithmetic using the zone's offset at the nearest
    supported instant; years beyond four digits widen and years before 1
    carry a leading ``-``.
    """

    try:
        moment = (_EPOCH + timedelta(milliseconds=timestamp_millis)).astimezone(tz)
    except (OverflowError, ValueError):
        offset = _edge_offset(timestamp_millis, tz)
        local = timestamp_millis + (offset // timedelta(milliseconds=1))
        days, ms_of_day = divmod(local, 86_400_000)
        hour, rest = divmod(ms_of_day, 3_600_000)
        minute, rest = divmod(rest, 60_000)
        second, millis = divmod(rest, 1_000)
        return _format_fields(
            *_civil_from_days(days), hour, minute, second, millis, _format_offset(offset)
        )
    return _format_fields(
        moment.year,
        moment.month,
        moment.day,
        moment.hour,
        moment.minute,
        moment.second,
        moment.microsecond // 1000,
        f"{moment:%z}",
    )


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


def extract(
    body: str | None,
    timestamp_millis: int,
    *,
    tz: tzinfo = UTC,
) -> TransactionRecord | None:
    """Extract a :class:`TransactionRecord` from one message, or ``None``.

    Parameters
    ----------
    body:
        Raw SMS text; ``None`` and blank text are treated as non-matching.
    timestamp_millis:
        Receipt instant as epoch milliseconds (may be zero or negative).
    tz:
        Zone used to render ``occurred_at``; defaults to UTC.
    """

    text = relevant_text(body)
    if text is None:
        return None
    lowered = text.lower()

    direction = classify_direction(lowered)

    amount = extract_amount(text)
    if amount <= 0:
        _logger.debug("Skipping M-Pesa message without a positive amount")
        return None

    reference = extract_reference(text)
    counterparty = extract_counterparty(text)
    category = classify_category(lowered, direction)

    return TransactionRecord(
        direction=direction,
        amount=amount,
        description=text,
        occurred_at=format_timestamp(timestamp_millis, tz),
        category=category,
        counterparty=counterparty,
        reference=reference,
    )


__all__ = [
    "DEFAULT_DIRECTION",
    "DIRECTION_RULES",
    "RELEVANCE_MARKER",
    "classify_category",
    "classify_direction",
    "extract",
    "extract_amount",
    "extract_counterparty",
    "extract_reference",
    "format_timestamp",
    "relevant_text",
]

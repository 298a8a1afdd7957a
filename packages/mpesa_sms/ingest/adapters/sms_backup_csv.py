"""Adapter for SMS backup CSV exports to :class:`~mpesa_sms.models.RawMessage`.

CSV header (column names follow the Android SMS content provider; extra
columns such as ``type`` or ``read`` are ignored):

``address, body, date``

Mapping rules:
- ``sender``: ``address`` trimmed, or ``None`` when missing/empty
- ``body``: ``body`` verbatim (the engine trims it)
- ``timestamp_millis``: ``date`` as integer epoch milliseconds
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping

from ...models import RawMessage

REQUIRED_COLUMNS: frozenset[str] = frozenset({"address", "body", "date"})


def _parse_millis(raw: str | None, *, idx: int) -> int:
    s = (raw or "").strip()
    if not s:
        raise ValueError(f"row {idx}: 'date' is empty")
    try:
        return int(s)
    except ValueError as exc:
        raise ValueError(f"row {idx}: 'date' is not epoch milliseconds: {raw!r}") from exc


def to_raw_messages(rows: Iterable[Mapping[str, str | None]]) -> Iterator[RawMessage]:
    """Convert SMS backup rows to :class:`RawMessage`, skipping blank rows."""

    for idx, row in enumerate(rows):
        # DictReader files overflow cells under a ``None`` key; ignore them.
        if all((v or "").strip() == "" for k, v in row.items() if k is not None):
            continue
        address = (row.get("address") or "").strip() or None
        yield RawMessage(
            sender=address,
            body=row.get("body"),
            timestamp_millis=_parse_millis(row.get("date"), idx=idx),
        )


__all__ = ["REQUIRED_COLUMNS", "to_raw_messages"]

"""Ingest helpers shared by the CLI and host integrations."""

from __future__ import annotations

import csv
from os import PathLike
from pathlib import Path

from ..models import RawMessage
from .adapters.sms_backup_csv import REQUIRED_COLUMNS, to_raw_messages


def load_messages_from_csv(csv_path: str | PathLike[str]) -> list[RawMessage]:
    """Read an SMS backup CSV and return its rows as :class:`RawMessage` values.

    Raises ``csv.Error`` when the header row is missing or lacks required
    columns, and ``ValueError`` for rows whose ``date`` is not epoch millis.
    """

    p = Path(csv_path)
    with p.open(encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        headers_set = set(reader.fieldnames or [])
        if not headers_set:
            raise csv.Error(f"CSV appears to have no header row: {csv_path}")
        missing = sorted(REQUIRED_COLUMNS - headers_set)
        if missing:
            raise csv.Error(
                "CSV header mismatch for SMS backup adapter. Missing columns: "
                + ", ".join(missing)
            )
        return list(to_raw_messages(reader))


__all__ = ["load_messages_from_csv"]

"""In-memory hand-off queue for extracted records.

``MessageBuffer`` owns both the enable flag and the pending records behind a
single lock, so "append if enabled" and "drain" are each one atomic step:
a record appended concurrently with a drain lands either in that drain's
result or in the next one, never in both and never nowhere.
"""

from __future__ import annotations

import threading

from .logging_setup import get_logger
from .models import TransactionRecord

_logger = get_logger("mpesa_sms.buffer")


class MessageBuffer:
    """Thread-safe, ordered buffer of :class:`TransactionRecord` items.

    Producers call :meth:`append`; exactly one consumer calls :meth:`drain`.
    Disabling the buffer stops new appends but leaves buffered records alone.
    """

    __slots__ = ("_enabled", "_items", "_lock")

    def __init__(self, *, enabled: bool = False) -> None:
        self._lock = threading.Lock()
        self._enabled = bool(enabled)
        self._items: list[TransactionRecord] = []

    @property
    def enabled(self) -> bool:
        with self._lock:
            return self._enabled

    def set_enabled(self, value: bool) -> bool:
        """Set the enable flag (last write wins) and return the new state."""

        if not isinstance(value, bool):
            raise TypeError(f"enabled must be a bool, got {type(value).__name__}")
        with self._lock:
            self._enabled = value
        _logger.info("M-Pesa SMS buffer %s", "enabled" if value else "disabled")
        return value

    def append(self, record: TransactionRecord | None) -> bool:
        """Append ``record`` when enabled; return whether it was stored."""

        if record is None:
            return False
        with self._lock:
            if not self._enabled:
                return False
            self._items.append(record)
            return True

    def drain(self) -> list[TransactionRecord]:
        """Return all buffered records in insertion order and clear the buffer."""

        with self._lock:
            out = self._items
            self._items = []
        if out:
            _logger.debug("Drained %d buffered record(s)", len(out))
        return out

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


__all__ = ["MessageBuffer"]

"""Data models for ``mpesa_sms``.

``TransactionRecord`` is the engine's output and stays a plain frozen
dataclass so it can be compared, hashed, and shared across threads freely.
``TransactionPayload`` is the flat wire shape handed to consumers; it is a
Pydantic model so that serialization rules (field names, omission of absent
optionals) live in one validated place.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, field_validator

# ---------------------------------------------------------------------------
# Engine output
# ---------------------------------------------------------------------------


class Direction(str, Enum):
    """Direction of funds movement. Values double as the wire ``kind``."""

    INBOUND = "IN"
    OUTBOUND = "OUT"


@dataclass(frozen=True, slots=True)
class TransactionRecord:
    """A single transaction extracted from an M-Pesa notification.

    Attributes
    ----------
    direction:
        Whether funds were received (``INBOUND``) or sent (``OUTBOUND``).
    amount:
        Positive amount parsed from the first ``KSH``/``KES`` token.
    description:
        The trimmed message text, verbatim.
    occurred_at:
        ISO-8601 timestamp with millisecond precision and numeric UTC offset
        (``YYYY-MM-DDTHH:MM:SS.mmm+HHMM``).
    category:
        Spending category; only ever set on outbound records.
    counterparty:
        Best-effort name following the first ``" to "`` in the text.
    reference:
        Best-effort M-Pesa transaction code (8+ uppercase letters/digits).
    """

    direction: Direction
    amount: float
    description: str
    occurred_at: str
    category: str | None = None
    counterparty: str | None = None
    reference: str | None = None

    def __post_init__(self) -> None:
        if not math.isfinite(self.amount) or self.amount <= 0:
            raise ValueError(f"TransactionRecord.amount must be positive, got {self.amount!r}")
        if self.category is not None and self.direction is not Direction.OUTBOUND:
            raise ValueError("TransactionRecord.category is only allowed on outbound records")


# ---------------------------------------------------------------------------
# Host-side input
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RawMessage:
    """One SMS part as delivered by the host messaging subsystem."""

    sender: str | None
    body: str | None
    timestamp_millis: int


# ---------------------------------------------------------------------------
# Wire payload
# ---------------------------------------------------------------------------


class TransactionPayload(BaseModel):
    """Flat key/value view of a :class:`TransactionRecord` for consumers.

    Optional fields are dropped entirely when absent (see :func:`to_payload`),
    never emitted as ``null``.
    """

    model_config = ConfigDict(strict=True, extra="forbid", frozen=True)

    kind: Literal["IN", "OUT"]
    amount: float
    category: str | None = None
    counterparty: str | None = None
    mpesa_ref: str | None = None
    description: str
    occurred_at: str

    @field_validator("amount")
    @classmethod
    def _amount_positive(cls, v: float) -> float:
        if not math.isfinite(v) or v <= 0:
            raise ValueError("amount must be a positive finite number")
        return v

    @classmethod
    def from_record(cls, record: TransactionRecord) -> TransactionPayload:
        return cls(
            kind=record.direction.value,
            amount=float(record.amount),
            category=record.category,
            counterparty=record.counterparty,
            mpesa_ref=record.reference,
            description=record.description,
            occurred_at=record.occurred_at,
        )


def to_payload(record: TransactionRecord) -> dict[str, Any]:
    """Serialize ``record`` to the flat consumer mapping.

    Key order follows the wire contract: ``kind, amount, category,
    counterparty, mpesa_ref, description, occurred_at``.
    """

    return TransactionPayload.from_record(record).model_dump(exclude_none=True)


__all__ = [
    "Direction",
    "RawMessage",
    "TransactionPayload",
    "TransactionRecord",
    "to_payload",
]

"""Public interface for the ``mpesa_sms`` package.

Re-exports the extraction engine, its data models, the hand-off buffer and
the host bridge. There is no runtime logic here, only symbol re-exports.
"""

from .bridge import (
    MessageSource,
    PermissionDeniedError,
    PermissionGate,
    PermissionState,
    ResultSink,
    SmsBridge,
    StaticPermissionGate,
)
from .buffer import MessageBuffer
from .extraction import extract
from .models import (
    Direction,
    RawMessage,
    TransactionPayload,
    TransactionRecord,
    to_payload,
)

__all__ = [
    # Engine
    "extract",
    # Models / serialization
    "Direction",
    "RawMessage",
    "TransactionPayload",
    "TransactionRecord",
    "to_payload",
    # Buffer / host bridge
    "MessageBuffer",
    "MessageSource",
    "PermissionDeniedError",
    "PermissionGate",
    "PermissionState",
    "ResultSink",
    "SmsBridge",
    "StaticPermissionGate",
]

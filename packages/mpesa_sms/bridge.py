"""Host-neutral bridge between a device's SMS stream and the extraction engine.

A mobile host plugs in three things:

- a :class:`PermissionGate` answering whether SMS access has been granted,
- a :class:`MessageSource` that calls back with the parts of each incoming SMS,
- a :class:`ResultSink` (or a direct :meth:`SmsBridge.pull_new_messages`
  call) that consumes extracted records.

:class:`SmsBridge` exposes the control surface a host UI talks to:
``request_permission``, ``set_enabled`` and ``pull_new_messages``. Incoming
messages only reach the engine when permission is granted and the bridge is
enabled.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import UTC, tzinfo
from enum import Enum
from typing import Any, Protocol, TypeAlias

from .buffer import MessageBuffer
from .config import read_enabled
from .extraction import extract
from .logging_setup import get_logger
from .models import RawMessage, TransactionRecord, to_payload

_logger = get_logger("mpesa_sms.bridge")


class PermissionDeniedError(RuntimeError):
    """Raised when an operation needs SMS access that has not been granted."""


class PermissionState(str, Enum):
    GRANTED = "granted"
    DENIED = "denied"
    PROMPT = "prompt"


class PermissionGate(Protocol):
    def state(self) -> PermissionState: ...

    def request(self) -> PermissionState: ...


MessageCallback: TypeAlias = Callable[[Sequence[RawMessage]], Any]


class MessageSource(Protocol):
    def subscribe(self, callback: MessageCallback) -> None: ...


class ResultSink(Protocol):
    def deliver(self, items: list[dict[str, Any]]) -> None: ...


class StaticPermissionGate:
    """Gate for hosts that settle SMS access before the bridge is built."""

    __slots__ = ("_state",)

    def __init__(self, granted: bool) -> None:
        self._state = PermissionState.GRANTED if granted else PermissionState.DENIED

    def state(self) -> PermissionState:
        return self._state

    def request(self) -> PermissionState:
        return self._state


class SmsBridge:
    """Wire SMS deliveries through :func:`~mpesa_sms.extraction.extract` into a buffer.

    Parameters
    ----------
    buffer:
        Destination for extracted records. When omitted, a fresh
        :class:`MessageBuffer` is created, enabled when ``MPESA_SMS_ENABLED``
        is truthy.
    permissions:
        Gate consulted before any message is processed. Defaults to a gate
        that denies access, so a host must opt in explicitly.
    tz:
        Zone used to render ``occurred_at`` timestamps.
    """

    def __init__(
        self,
        buffer: MessageBuffer | None = None,
        *,
        permissions: PermissionGate | None = None,
        tz: tzinfo = UTC,
    ) -> None:
        self.buffer = buffer if buffer is not None else MessageBuffer(enabled=read_enabled())
        self.permissions: PermissionGate = (
            permissions if permissions is not None else StaticPermissionGate(False)
        )
        self.tz = tz

    # ---- Control surface ---------------------------------------------------

    def request_permission(self) -> dict[str, Any]:
        """Ask for SMS access; resolves immediately when already granted."""

        state = self.permissions.state()
        if state is not PermissionState.GRANTED:
            state = self.permissions.request()
        granted = state is PermissionState.GRANTED
        if not granted:
            _logger.warning("SMS permission denied (state=%s)", state.value)
        return {"granted": granted, "status": "granted" if granted else "denied"}

    def set_enabled(self, enabled: bool = False) -> dict[str, Any]:
        return {"enabled": self.buffer.set_enabled(enabled)}

    def pull_new_messages(self) -> dict[str, Any]:
        """Drain buffered records and return them as flat payload mappings."""

        return {"items": [to_payload(r) for r in self.buffer.drain()]}

    # ---- Message flow ------------------------------------------------------

    def attach(self, source: MessageSource) -> None:
        """Subscribe :meth:`receive` to ``source``; requires granted permission."""

        if self.permissions.state() is not PermissionState.GRANTED:
            raise PermissionDeniedError("SMS permission has not been granted")
        source.subscribe(self.receive)

    def receive(self, parts: Sequence[RawMessage]) -> TransactionRecord | None:
        """Handle one delivery (possibly multipart) and buffer any extracted record.

        Bodies are concatenated in order; the first non-null sender and the
        last part's timestamp describe the whole message.
        """

        if not self.buffer.enabled:
            return None
        if self.permissions.state() is not PermissionState.GRANTED:
            return None
        message = combine_parts(parts)
        if message is None:
            return None

        record = extract(message.body, message.timestamp_millis, tz=self.tz)
        if record is None:
            return None
        if not self.buffer.append(record):
            # Disabled between the check above and the append.
            return None
        _logger.debug(
            "Buffered %s M-Pesa record from %s", record.direction.value, message.sender or "?"
        )
        return record

    def flush(self, sink: ResultSink) -> int:
        """Drain the buffer into ``sink``; returns the number of items delivered."""

        items = self.pull_new_messages()["items"]
        if items:
            sink.deliver(items)
        return len(items)


def combine_parts(parts: Sequence[RawMessage | None]) -> RawMessage | None:
    """Merge the parts of one multipart SMS into a single :class:`RawMessage`."""

    present = [p for p in parts if p is not None]
    if not present:
        return None
    sender = next((p.sender for p in present if p.sender is not None), None)
    body = "".join(p.body for p in present if p.body is not None)
    return RawMessage(sender=sender, body=body, timestamp_millis=present[-1].timestamp_millis)


__all__ = [
    "MessageCallback",
    "MessageSource",
    "PermissionDeniedError",
    "PermissionGate",
    "PermissionState",
    "ResultSink",
    "SmsBridge",
    "StaticPermissionGate",
    "combine_parts",
]

from collections.abc import Sequence
from typing import Any

import pytest

from mpesa_sms import (
    Direction,
    MessageBuffer,
    PermissionDeniedError,
    PermissionState,
    RawMessage,
    SmsBridge,
    StaticPermissionGate,
)
from mpesa_sms.bridge import combine_parts

PAYMENT = "QAB1CD2EFG Confirmed. Ksh1,200.00 paid to KCB Parking. New M-PESA balance is Ksh80.00."


class _PromptGate:
    """Gate that starts undecided and grants (or denies) when asked."""

    def __init__(self, grant: bool) -> None:
        self._grant = grant
        self._state = PermissionState.PROMPT
        self.requests = 0

    def state(self) -> PermissionState:
        return self._state

    def request(self) -> PermissionState:
        self.requests += 1
        self._state = PermissionState.GRANTED if self._grant else PermissionState.DENIED
        return self._state


class _ListSource:
    def __init__(self) -> None:
        self.callbacks = []

    def subscribe(self, callback) -> None:
        self.callbacks.append(callback)

    def emit(self, parts: Sequence[RawMessage]) -> None:
        for cb in self.callbacks:
            cb(parts)


class _ListSink:
    def __init__(self) -> None:
        self.batches: list[list[dict[str, Any]]] = []

    def deliver(self, items: list[dict[str, Any]]) -> None:
        self.batches.append(items)


def _enabled_bridge() -> SmsBridge:
    bridge = SmsBridge(permissions=StaticPermissionGate(True))
    bridge.set_enabled(True)
    return bridge


# ---- Permission handshake ----------------------------------------------------


def test_request_permission_resolves_immediately_when_granted():
    gate = _PromptGate(grant=True)
    gate._state = PermissionState.GRANTED
    bridge = SmsBridge(permissions=gate)
    assert bridge.request_permission() == {"granted": True, "status": "granted"}
    assert gate.requests == 0


def test_request_permission_asks_the_gate_once():
    gate = _PromptGate(grant=True)
    bridge = SmsBridge(permissions=gate)
    assert bridge.request_permission() == {"granted": True, "status": "granted"}
    assert gate.requests == 1


def test_request_permission_reports_denial():
    bridge = SmsBridge(permissions=_PromptGate(grant=False))
    assert bridge.request_permission() == {"granted": False, "status": "denied"}


def test_default_gate_denies():
    bridge = SmsBridge()
    bridge.set_enabled(True)
    assert bridge.receive([RawMessage("MPESA", PAYMENT, 0)]) is None
    assert bridge.pull_new_messages() == {"items": []}


# ---- Enable toggle -----------------------------------------------------------


def test_default_buffer_starts_disabled():
    assert SmsBridge().buffer.enabled is False


@pytest.mark.parametrize("raw", ["1", "true", "YES", " on "])
def test_default_buffer_honours_enabled_env(monkeypatch: pytest.MonkeyPatch, raw):
    monkeypatch.setenv("MPESA_SMS_ENABLED", raw)
    bridge = SmsBridge(permissions=StaticPermissionGate(True))
    assert bridge.buffer.enabled is True
    assert bridge.receive([RawMessage("MPESA", PAYMENT, 0)]) is not None
    assert len(bridge.pull_new_messages()["items"]) == 1


def test_injected_buffer_ignores_enabled_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("MPESA_SMS_ENABLED", "1")
    assert SmsBridge(MessageBuffer()).buffer.enabled is False


def test_set_enabled_returns_state_and_defaults_to_false():
    bridge = SmsBridge(permissions=StaticPermissionGate(True))
    assert bridge.set_enabled(True) == {"enabled": True}
    assert bridge.set_enabled() == {"enabled": False}


def test_disabled_bridge_skips_messages_but_keeps_buffered_ones():
    bridge = _enabled_bridge()
    assert bridge.receive([RawMessage("MPESA", PAYMENT, 0)]) is not None
    bridge.set_enabled(False)
    assert bridge.receive([RawMessage("MPESA", PAYMENT, 1)]) is None
    items = bridge.pull_new_messages()["items"]
    assert len(items) == 1
    assert items[0]["occurred_at"] == "1970-01-01T00:00:00.000+0000"


# ---- Receive / pull ----------------------------------------------------------


def test_receive_buffers_record_and_pull_serializes_it():
    bridge = _enabled_bridge()
    rec = bridge.receive([RawMessage("MPESA", PAYMENT, 1_700_000_000_000)])
    assert rec is not None
    assert rec.direction is Direction.OUTBOUND

    assert bridge.pull_new_messages() == {
        "items": [
            {
                "kind": "OUT",
                "amount": 1200.0,
                "category": "Parking",
                "counterparty": "KCB Parking",
                "mpesa_ref": "QAB1CD2EFG",
                "description": PAYMENT,
                "occurred_at": "2023-11-14T22:13:20.000+0000",
            }
        ]
    }
    assert bridge.pull_new_messages() == {"items": []}


def test_receive_ignores_non_mpesa_sms():
    bridge = _enabled_bridge()
    assert bridge.receive([RawMessage("+254700000000", "See you at 5", 0)]) is None
    assert len(bridge.buffer) == 0


def test_receive_joins_multipart_messages():
    bridge = _enabled_bridge()
    parts = [
        RawMessage("MPESA", "QAB1CD2EFG Confirmed. Ksh1,200.00 paid to KCB ", 10),
        RawMessage(None, "Parking. New M-PESA balance is Ksh80.00.", 20),
    ]
    rec = bridge.receive(parts)
    assert rec is not None
    assert rec.counterparty == "KCB Parking"
    assert rec.occurred_at == "1970-01-01T00:00:00.020+0000"


def test_receive_with_no_parts_is_a_no_op():
    bridge = _enabled_bridge()
    assert bridge.receive([]) is None


def test_combine_parts_uses_first_sender_and_last_timestamp():
    merged = combine_parts(
        [
            RawMessage(None, "a", 1),
            None,
            RawMessage("MPESA", None, 2),
            RawMessage("OTHER", "b", 3),
        ]
    )
    assert merged == RawMessage(sender="MPESA", body="ab", timestamp_millis=3)
    assert combine_parts([None]) is None


def test_bridge_uses_injected_buffer():
    buf = MessageBuffer(enabled=True)
    bridge = SmsBridge(buf, permissions=StaticPermissionGate(True))
    bridge.receive([RawMessage("MPESA", PAYMENT, 0)])
    assert len(buf) == 1


# ---- Source / sink -----------------------------------------------------------


def test_attach_requires_permission():
    bridge = SmsBridge(permissions=StaticPermissionGate(False))
    with pytest.raises(PermissionDeniedError):
        bridge.attach(_ListSource())


def test_attached_source_feeds_bridge_and_flush_delivers_once():
    bridge = _enabled_bridge()
    source = _ListSource()
    sink = _ListSink()
    bridge.attach(source)

    source.emit([RawMessage("MPESA", PAYMENT, 0)])
    source.emit([RawMessage("MPESA", "Hello", 0)])
    source.emit([RawMessage("MPESA", "You have received Ksh 50 from BOB via M-PESA", 0)])

    assert bridge.flush(sink) == 2
    assert [item["kind"] for item in sink.batches[0]] == ["OUT", "IN"]
    assert bridge.flush(sink) == 0
    assert len(sink.batches) == 1

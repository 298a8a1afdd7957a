"""Pytest configuration shared by the ``mpesa_sms`` test suite.

Puts the workspace ``packages/`` directory on ``sys.path`` so the package
imports without an editable install, and clears the ``MPESA_SMS_*``
environment so a developer's shell or ``.env`` cannot leak into tests.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

_ROOT = Path(__file__).resolve().parents[1]
_PKG_DIR = _ROOT / "packages"
sys.path[:0] = [p for p in [str(_PKG_DIR)] if p not in sys.path]


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("MPESA_SMS_LOG_LEVEL", "MPESA_SMS_TIMEZONE", "MPESA_SMS_ENABLED"):
        monkeypatch.delenv(name, raising=False)

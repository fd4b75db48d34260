from __future__ import annotations

import pytest

from signal_router.client import build_client
from signal_router.core.errors import ConfigUnavailable


def test_missing_credentials_are_reported(monkeypatch) -> None:
    monkeypatch.setenv("API_ID", "12345")
    monkeypatch.delenv("API_HASH", raising=False)
    with pytest.raises(ConfigUnavailable) as excinfo:
        build_client()
    assert "API_HASH" in str(excinfo.value)
    assert "API_ID" not in str(excinfo.value)

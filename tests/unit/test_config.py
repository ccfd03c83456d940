"""Unit tests for configuration."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from visibility_saga.config import BridgeSettings


def test_settings_defaults(monkeypatch) -> None:
    """Defaults apply when nothing is configured."""
    for name in ("LOG_LEVEL", "LOG_FORMAT", "INITIAL_VISIBLE", "WATCH_ON_START", "PORT"):
        monkeypatch.delenv(f"VISIBILITY_{name}", raising=False)

    settings = BridgeSettings(_env_file=None)

    assert settings.log_level == "INFO"
    assert settings.log_format == "json"
    assert settings.initial_visible is True
    assert settings.watch_on_start is True
    assert settings.state_history_limit == 100
    assert settings.port == 8000


def test_settings_read_prefixed_environment(monkeypatch) -> None:
    """Environment variables use the VISIBILITY_ prefix."""
    monkeypatch.setenv("VISIBILITY_INITIAL_VISIBLE", "false")
    monkeypatch.setenv("VISIBILITY_LOG_FORMAT", "text")
    monkeypatch.setenv("VISIBILITY_STATE_HISTORY_LIMIT", "5")

    settings = BridgeSettings(_env_file=None)

    assert settings.initial_visible is False
    assert settings.log_format == "text"
    assert settings.state_history_limit == 5


def test_settings_read_env_file(tmp_path: Path, monkeypatch) -> None:
    """A `.env` file is honoured; unknown keys are ignored."""
    monkeypatch.delenv("VISIBILITY_WATCH_ON_START", raising=False)
    env_file = tmp_path / ".env"
    env_file.write_text("VISIBILITY_WATCH_ON_START=false\nUNRELATED=1\n", encoding="utf-8")

    settings = BridgeSettings(_env_file=env_file)

    assert settings.watch_on_start is False


def test_settings_validate_values(monkeypatch) -> None:
    """Invalid values fail loudly."""
    monkeypatch.setenv("VISIBILITY_STATE_HISTORY_LIMIT", "0")

    with pytest.raises(ValidationError):
        BridgeSettings(_env_file=None)

from __future__ import annotations

import json

import pytest

from visibility_saga.main import main


@pytest.fixture
def quiet_env(monkeypatch, restore_root_logging):
    monkeypatch.setenv("VISIBILITY_LOG_LEVEL", "WARNING")
    monkeypatch.setenv("VISIBILITY_INITIAL_VISIBLE", "true")
    monkeypatch.setenv("VISIBILITY_WATCH_ON_START", "true")


def _last_json_line(out: str) -> dict:
    return json.loads(out.strip().splitlines()[-1])


def test_simulate_prints_state_history(quiet_env, capsys) -> None:
    assert main(["simulate", "hidden", "visible"]) == 0

    result = _last_json_line(capsys.readouterr().out)
    assert result == {"states": [{"visible": True}, {"visible": False}, {"visible": True}]}


def test_simulate_ignores_reports_after_stop(quiet_env, capsys) -> None:
    assert main(["simulate", "hidden", "visible", "hidden", "--stop-after", "1"]) == 0

    result = _last_json_line(capsys.readouterr().out)
    assert result == {"states": [{"visible": True}, {"visible": False}]}


def test_simulate_rejects_unknown_states(quiet_env) -> None:
    with pytest.raises(SystemExit) as exc_info:
        main(["simulate", "prerender"])

    assert exc_info.value.code == 2


def test_invalid_configuration_exits_with_2(quiet_env, monkeypatch, capsys) -> None:
    monkeypatch.setenv("VISIBILITY_STATE_HISTORY_LIMIT", "0")

    assert main(["simulate", "hidden"]) == 2
    assert "Configuration error" in capsys.readouterr().err

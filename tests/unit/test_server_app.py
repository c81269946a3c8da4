# pylint: disable=missing-module-docstring,missing-function-docstring
import json
from typing import Any

import pytest
from fastapi.testclient import TestClient

from config import AppConfig
from observability import logger
from server.app import create_app


@pytest.fixture(name="lines")
def fixture_lines(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    captured: list[str] = []
    monkeypatch.setattr(logger, "_print", captured.append)
    return captured


def test_health(lines: list[str]):
    client = TestClient(create_app(AppConfig(agent_api_token="t")))

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_missing_token_is_logged_at_startup(lines: list[str]):
    create_app(AppConfig(agent_api_token=None))

    events: list[dict[str, Any]] = [json.loads(line) for line in lines]
    assert any(e["event_type"] == "AGENT_TOKEN_MISSING" for e in events)


def test_websocket_greets_with_session_init_and_state(lines: list[str]):
    client = TestClient(create_app(AppConfig(agent_api_token="t")))

    with client.websocket_connect("/ws?tz=UTC&lang=en") as ws:
        init = ws.receive_json()
        snapshot = ws.receive_json()

    assert init["type"] == "SESSION_INIT"
    assert init["timezone"] == "UTC"
    assert snapshot == {**snapshot, "type": "STATE", "state": "IDLE"}

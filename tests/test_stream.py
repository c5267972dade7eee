# tests/test_stream.py

import logging

import pytest
from fastapi import WebSocketDisconnect
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session
from starlette.websockets import WebSocket

from app.api.v1 import stream
from app.api.v1.stream import CLOSE_GAME_NOT_FOUND, CLOSE_INTERNAL_ERROR
from app.db import SessionLocal
from app.services import game_machine
from app.services.store import GameRecordStore


def _create_game(client: TestClient) -> str:
    res = client.post("/api/games", json={"host_name": "Host", "player_count": 5, "mafia_count": 1})
    assert res.status_code == 200
    return res.json()["game"]["code"]


def _join_directly(code: str, name: str) -> None:
    """HTTP を通さず別セッションから参加させる（他クライアントの書き込み）"""
    other = SessionLocal()
    try:
        game_machine.join_game(GameRecordStore(other), code, name)
    finally:
        other.close()


def _names(message: dict) -> list[str]:
    return [p["name"] for p in message["payload"]["players"]]


def test_stream_sends_snapshot_then_updates(client: TestClient, db: Session):
    code = _create_game(client)

    with client.websocket_connect(f"/api/games/{code}/stream") as ws:
        first = ws.receive_json()
        assert first["type"] == "snapshot"
        assert first["code"] == code
        assert _names(first) == ["Host"]

        client.post(f"/api/games/{code}/join", json={"player_name": "Bob"})
        update = ws.receive_json()
        assert update["type"] == "snapshot"
        assert update["version"] > first["version"]
        assert _names(update) == ["Host", "Bob"]

        client.post(f"/api/games/{code}/reveal")
        revealed = ws.receive_json()
        assert revealed["payload"]["mafia_revealed"] is True


def test_stream_for_unknown_game_is_closed(client: TestClient, db: Session):
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/api/games/ZZZZZZ/stream") as ws:
            ws.receive_json()
    assert exc_info.value.code == CLOSE_GAME_NOT_FOUND


def test_stream_accepts_padded_code(client: TestClient, db: Session):
    code = _create_game(client)

    with client.websocket_connect(f"/api/games/%20{code}%20/stream") as ws:
        first = ws.receive_json()
        assert first["code"] == code


def test_write_between_snapshot_and_accept_is_delivered(
    client: TestClient, db: Session, monkeypatch: pytest.MonkeyPatch
):
    """スナップショットを読んだ後、accept 前に入った書き込みも届く"""
    code = _create_game(client)
    original_accept = WebSocket.accept

    async def accept_after_join(self, *args, **kwargs):
        _join_directly(code, "Bob")
        await original_accept(self, *args, **kwargs)

    monkeypatch.setattr(WebSocket, "accept", accept_after_join)

    with client.websocket_connect(f"/api/games/{code}/stream") as ws:
        first = ws.receive_json()
        assert _names(first) == ["Host"]

        update = ws.receive_json()
        assert update["version"] > first["version"]
        assert _names(update) == ["Host", "Bob"]


def test_write_already_in_snapshot_is_not_sent_twice(
    client: TestClient, db: Session, monkeypatch: pytest.MonkeyPatch
):
    """購読後・初回読み出し前の書き込みはスナップショットに含まれるので、重複して送らない"""
    code = _create_game(client)
    original_get = GameRecordStore.get
    armed = {"join": True}

    def get_after_join(self, game_code):
        if armed["join"]:
            armed["join"] = False
            _join_directly(game_code, "Bob")
        return original_get(self, game_code)

    monkeypatch.setattr(GameRecordStore, "get", get_after_join)

    with client.websocket_connect(f"/api/games/{code}/stream") as ws:
        first = ws.receive_json()
        assert _names(first) == ["Host", "Bob"]

        client.post(f"/api/games/{code}/reveal")
        update = ws.receive_json()
        assert update["version"] == first["version"] + 1
        assert update["payload"]["mafia_revealed"] is True


def test_send_failure_is_logged_and_closes_stream(
    client: TestClient, db: Session, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
):
    code = _create_game(client)
    original_message = stream.snapshot_message
    calls = {"n": 0}

    def broken_after_first(record):
        calls["n"] += 1
        if calls["n"] > 1:
            raise ValueError("cannot serialise snapshot")
        return original_message(record)

    monkeypatch.setattr(stream, "snapshot_message", broken_after_first)

    with caplog.at_level(logging.WARNING, logger="app.api.v1.stream"):
        with client.websocket_connect(f"/api/games/{code}/stream") as ws:
            ws.receive_json()
            client.post(f"/api/games/{code}/join", json={"player_name": "Bob"})

            with pytest.raises(WebSocketDisconnect) as exc_info:
                ws.receive_json()
            assert exc_info.value.code == CLOSE_INTERNAL_ERROR

    assert "cannot serialise snapshot" in caplog.text

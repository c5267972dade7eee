# tests/test_full_game_flow.py

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.main import app
from app.models.game import Game, GamePlayer, GameVote


def test_full_game_flow_two_rounds(db: Session, client: TestClient):
    """
    作成 → 参加 → 開始 → 投票 → 集計 → 公開 → ロビーに戻って2戦目
    までを一気に確認する統合テスト。
    """
    res = client.post("/api/games", json={"host_name": "Host", "player_count": 6, "mafia_count": 2})
    assert res.status_code == 200
    code = res.json()["game"]["code"]

    clients = {1: client}
    for name in ("Ann", "Ben", "Cid", "Dee"):
        c = TestClient(app)
        joined = c.post(f"/api/games/{code}/join", json={"player_name": name}).json()
        clients[joined["player"]["id"]] = c
    assert sorted(clients) == [1, 2, 3, 4, 5]

    for round_no in (1, 2):
        res = client.post(f"/api/games/{code}/start")
        assert res.status_code == 200

        # DB 上でもマフィアは2人
        db.expire_all()
        mafia_rows = (
            db.query(GamePlayer)
            .filter(GamePlayer.game_code == code, GamePlayer.is_mafia == True)  # noqa: E712
            .all()
        )
        assert len(mafia_rows) == 2

        client.post(f"/api/games/{code}/voting")
        for voter_id, c in clients.items():
            target_id = 2 if voter_id != 2 else 3
            res = c.post(f"/api/games/{code}/votes", json={"voter_id": voter_id, "target_id": target_id})
            assert res.status_code == 200
        assert res.json()["voting_complete"] is True

        tally = client.get(f"/api/games/{code}/tally").json()
        assert [p["id"] for p in tally["most_voted"]] == [2]

        revealed = client.post(f"/api/games/{code}/reveal").json()
        mafia_ids = {p["id"] for p in revealed["players"] if p["is_mafia"]}
        assert mafia_ids == {r.player_id for r in mafia_rows}

        res = client.post(f"/api/games/{code}/reset")
        assert res.status_code == 200

    game = db.get(Game, code)
    db.refresh(game)
    assert game.status == "lobby"
    assert db.query(GameVote).filter(GameVote.game_code == code).count() == 0
    assert (
        db.query(GamePlayer)
        .filter(GamePlayer.game_code == code, GamePlayer.is_mafia == True)  # noqa: E712
        .count()
        == 0
    )

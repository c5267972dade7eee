# app/schemas/game.py

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

GameStatus = Literal[
    "lobby",
    "playing",
    "ended",   # 定義のみ（どの操作からも遷移しない）
]


# -----------------------------
# ストア上のゲームレコード（1ゲーム = 1レコード）
# -----------------------------
class Player(BaseModel):
    id: int
    name: str
    is_mafia: bool = False


class GameRecord(BaseModel):
    """
    ゲーム1件分の共有状態。
    ストアから読み出したスナップショットで、更新はストア経由でのみ行う。
    votes は「投票者ID → 投票先ID」の int キー辞書。
    """
    code: str
    host: str
    host_player_id: int
    player_count: int
    mafia_count: int
    players: list[Player] = []
    normal_word: str
    mafia_word: str
    status: GameStatus = "lobby"
    created_at: Optional[datetime] = None
    votes: dict[int, int] = {}
    voting_complete: bool = False
    mafia_revealed: bool = False
    next_player_id: int = 1
    version: int = 1


# -----------------------------
# API 入出力
# -----------------------------
class GameCreate(BaseModel):
    host_name: str
    player_count: int = 5
    mafia_count: int = 2


class GameJoinRequest(BaseModel):
    player_name: str


class PlayerOut(BaseModel):
    id: int
    name: str
    # 正体は公開（reveal）されるまで伏せる
    is_mafia: Optional[bool] = None


class GameOut(BaseModel):
    code: str
    host: str
    host_player_id: int
    player_count: int
    mafia_count: int
    status: GameStatus
    players: list[PlayerOut]
    votes: dict[int, int]
    voting_complete: bool
    mafia_revealed: bool
    normal_word: Optional[str] = None
    mafia_word: Optional[str] = None
    created_at: Optional[datetime] = None
    version: int
    poll_interval_sec: float = Field(default=1.0)

    @classmethod
    def from_record(cls, record: GameRecord, poll_interval_sec: float = 1.0) -> "GameOut":
        revealed = record.mafia_revealed
        return cls(
            code=record.code,
            host=record.host,
            host_player_id=record.host_player_id,
            player_count=record.player_count,
            mafia_count=record.mafia_count,
            status=record.status,
            players=[player_out(p, revealed) for p in record.players],
            votes=dict(record.votes),
            voting_complete=record.voting_complete,
            mafia_revealed=revealed,
            normal_word=record.normal_word if revealed else None,
            mafia_word=record.mafia_word if revealed else None,
            created_at=record.created_at,
            version=record.version,
            poll_interval_sec=poll_interval_sec,
        )


class GameJoinOut(BaseModel):
    """作成 / 参加のレスポンス。自分のプレイヤー情報とゲーム全体"""
    player: PlayerOut
    game: GameOut


class GameJoinableOut(BaseModel):
    code: str
    joinable: bool
    players_joined: int
    player_count: int


def player_out(player: Player, revealed: bool) -> PlayerOut:
    return PlayerOut(
        id=player.id,
        name=player.name,
        is_mafia=player.is_mafia if revealed else None,
    )

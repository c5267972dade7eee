# app/schemas/game_member.py
from pydantic import BaseModel


class PlayerSession(BaseModel):
    """このクライアントがどのゲームの誰として参加しているか（認証なし）"""
    player_id: int
    game_code: str


class GameMemberMe(BaseModel):
    code: str
    player_id: int
    name: str
    word: str    # 自分に配られたお題（マフィアなら mafia_word）
    is_host: bool = False
    has_voted: bool = False
    status: str

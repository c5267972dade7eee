# app/api/session.py
"""
このクライアントが「どのゲームの何番のプレイヤーか」を覚えておく cookie。
認証ではなく、ブラウザごとの目印にすぎない。

値の形式: "<GAME_CODE>:<player_id>"
"""
from typing import Optional

from fastapi import Request, Response

from app.config import settings
from app.schemas.game_member import PlayerSession


def get_session(request: Request) -> Optional[PlayerSession]:
    raw = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if not raw:
        return None

    code, sep, player_id = raw.partition(":")
    if not sep or not code or not player_id.isdigit():
        return None
    return PlayerSession(player_id=int(player_id), game_code=code)


def set_session(response: Response, player_id: int, game_code: str) -> None:
    response.set_cookie(
        settings.SESSION_COOKIE_NAME,
        f"{game_code}:{player_id}",
        httponly=True,
        samesite="lax",
    )


def clear_session(response: Response) -> None:
    response.delete_cookie(settings.SESSION_COOKIE_NAME)

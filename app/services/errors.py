# app/services/errors.py
"""
ゲーム操作の失敗種別。

各操作は「新しいレコードを返す」か「以下のどれか1つを送出する」のどちらか。
送出した時点でストアには何も書き込まれていない。
main.py の例外ハンドラで {"detail": ...} の JSON に変換される。
"""


class GameError(Exception):
    status_code = 400
    detail = "Game error"

    def __init__(self, detail: str | None = None):
        self.detail = detail or type(self).detail
        super().__init__(self.detail)


class NotFound(GameError):
    status_code = 404
    detail = "Game not found"


class AlreadyStarted(GameError):
    detail = "Game already started"


class Full(GameError):
    detail = "Game is full"


class NameTaken(GameError):
    detail = "Name already taken"


class NotEnoughPlayers(GameError):
    detail = "Need at least 3 players"


class UnknownVoter(GameError):
    status_code = 404
    detail = "Voter not found"


class UnknownTarget(GameError):
    status_code = 404
    detail = "Target not found"


class SelfVote(GameError):
    detail = "Player cannot vote for themselves"


class InvalidSettings(GameError):
    status_code = 422
    detail = "Invalid player/mafia count"


class InvalidName(GameError):
    status_code = 422
    detail = "Name must not be empty"


class NotInGame(GameError):
    status_code = 404
    detail = "You're not part of this game"


class StorageUnavailable(GameError):
    status_code = 503
    detail = "Storage unavailable"


class WriteConflict(Exception):
    """version 不一致で条件付き更新が失敗した（ストア内部 → 状態機械で再試行）"""

    def __init__(self, code: str):
        self.code = code
        super().__init__(f"write conflict on game {code}")

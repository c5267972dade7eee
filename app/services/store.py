# app/services/store.py
"""
ゲームレコードのストア（SQLAlchemy 版）

- get / exists / create / update / subscribe の5つだけを状態機械に見せる。
- update は「渡されたフィールドだけをマージ」する部分更新。
  players / votes はコレクションごと置き換える（差分を取って行単位で反映）。
- expected_version を渡すと条件付き更新になり、
  他クライアントが先に書いていたら WriteConflict を送出する。
- 書き込みに成功したら notifier へ新しいスナップショットを publish する。
"""
import logging
import uuid
from typing import Any, Callable, Optional

from sqlalchemy import update as sa_update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..models.game import Game, GamePlayer, GameVote
from ..schemas.game import GameRecord, Player
from .errors import NotFound, StorageUnavailable, WriteConflict
from .notifier import ChangeNotifier, notifier as default_notifier

logger = logging.getLogger(__name__)

# update で直接書き換えてよい列
SCALAR_FIELDS = frozenset({
    "status",
    "voting_complete",
    "mafia_revealed",
    "next_player_id",
})
COLLECTION_FIELDS = frozenset({"players", "votes"})


class GameRecordStore:
    def __init__(self, db: Session, notifier: Optional[ChangeNotifier] = None):
        self.db = db
        self.notifier = notifier or default_notifier

    # -----------------------------
    # 読み出し
    # -----------------------------
    def get(self, code: str) -> GameRecord:
        try:
            # 他セッションの書き込みを拾うため identity map を捨てて読み直す
            self.db.expire_all()
            game = self.db.get(Game, code)
            if game is None:
                raise NotFound()
            return _to_record(game)
        except SQLAlchemyError as exc:
            self._fail("get", code, exc)

    def exists(self, code: str) -> bool:
        try:
            return self.db.get(Game, code) is not None
        except SQLAlchemyError as exc:
            self._fail("exists", code, exc)

    # -----------------------------
    # 書き込み
    # -----------------------------
    def create(self, record: GameRecord) -> GameRecord:
        try:
            if self.exists(record.code):
                raise WriteConflict(record.code)

            game = Game(
                code=record.code,
                host=record.host,
                host_player_id=record.host_player_id,
                player_count=record.player_count,
                mafia_count=record.mafia_count,
                normal_word=record.normal_word,
                mafia_word=record.mafia_word,
                status=record.status,
                voting_complete=record.voting_complete,
                mafia_revealed=record.mafia_revealed,
                next_player_id=record.next_player_id,
                version=1,
            )
            if record.created_at is not None:
                game.created_at = record.created_at
            for order_no, p in enumerate(record.players, start=1):
                game.players.append(
                    GamePlayer(
                        id=str(uuid.uuid4()),
                        player_id=p.id,
                        name=p.name,
                        is_mafia=p.is_mafia,
                        order_no=order_no,
                    )
                )
            for voter_id, target_id in record.votes.items():
                game.votes.append(
                    GameVote(
                        id=str(uuid.uuid4()),
                        voter_player_id=voter_id,
                        target_player_id=target_id,
                    )
                )
            self.db.add(game)
            self.db.commit()
        except IntegrityError as exc:
            # exists() の後に同じ code が先に書かれた
            self.db.rollback()
            raise WriteConflict(record.code) from exc
        except SQLAlchemyError as exc:
            self._fail("create", record.code, exc)

        created = self.get(record.code)
        self.notifier.publish(created.code, created)
        return created

    def update(
        self,
        code: str,
        fields: dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> GameRecord:
        unknown = set(fields) - SCALAR_FIELDS - COLLECTION_FIELDS
        if unknown:
            raise ValueError(f"fields not updatable: {sorted(unknown)}")

        try:
            values = {k: v for k, v in fields.items() if k in SCALAR_FIELDS}
            stmt = sa_update(Game).where(Game.code == code)
            if expected_version is not None:
                stmt = stmt.where(Game.version == expected_version)
            stmt = stmt.values(version=Game.version + 1, **values).execution_options(
                synchronize_session=False
            )

            result = self.db.execute(stmt)
            if result.rowcount == 0:
                self.db.rollback()
                if not self.exists(code):
                    raise NotFound()
                raise WriteConflict(code)

            if "players" in fields:
                self._sync_players(code, fields["players"])
            if "votes" in fields:
                self._sync_votes(code, fields["votes"])

            self.db.commit()
        except SQLAlchemyError as exc:
            self._fail("update", code, exc)

        updated = self.get(code)
        self.notifier.publish(code, updated)
        return updated

    def subscribe(self, code: str, on_change: Callable[[GameRecord], None]) -> Callable[[], None]:
        return self.notifier.subscribe(code, on_change)

    # -----------------------------
    # 内部ヘルパー
    # -----------------------------
    def _sync_players(self, code: str, players: list[Player]) -> None:
        existing = {
            row.player_id: row
            for row in self.db.query(GamePlayer).filter(GamePlayer.game_code == code).all()
        }
        keep: set[int] = set()

        for order_no, p in enumerate(players, start=1):
            row = existing.get(p.id)
            if row is None:
                self.db.add(
                    GamePlayer(
                        id=str(uuid.uuid4()),
                        game_code=code,
                        player_id=p.id,
                        name=p.name,
                        is_mafia=p.is_mafia,
                        order_no=order_no,
                    )
                )
            else:
                row.name = p.name
                row.is_mafia = p.is_mafia
                row.order_no = order_no
            keep.add(p.id)

        for player_id, row in existing.items():
            if player_id not in keep:
                self.db.delete(row)

    def _sync_votes(self, code: str, votes: dict[int, int]) -> None:
        existing = {
            row.voter_player_id: row
            for row in self.db.query(GameVote).filter(GameVote.game_code == code).all()
        }

        for voter_id, target_id in votes.items():
            row = existing.get(voter_id)
            if row is None:
                self.db.add(
                    GameVote(
                        id=str(uuid.uuid4()),
                        game_code=code,
                        voter_player_id=voter_id,
                        target_player_id=target_id,
                    )
                )
            else:
                row.target_player_id = target_id

        for voter_id, row in existing.items():
            if voter_id not in votes:
                self.db.delete(row)

    def _fail(self, op: str, code: str, exc: SQLAlchemyError):
        self.db.rollback()
        logger.exception("storage %s failed for game %s", op, code)
        raise StorageUnavailable() from exc


def _to_record(game: Game) -> GameRecord:
    return GameRecord(
        code=game.code,
        host=game.host,
        host_player_id=game.host_player_id,
        player_count=game.player_count,
        mafia_count=game.mafia_count,
        players=[
            Player(id=p.player_id, name=p.name, is_mafia=p.is_mafia)
            for p in game.players
        ],
        normal_word=game.normal_word,
        mafia_word=game.mafia_word,
        status=game.status,
        created_at=game.created_at,
        votes={v.voter_player_id: v.target_player_id for v in game.votes},
        voting_complete=game.voting_complete,
        mafia_revealed=game.mafia_revealed,
        next_player_id=game.next_player_id,
        version=game.version,
    )

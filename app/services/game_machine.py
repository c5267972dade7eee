# app/services/game_machine.py
"""
ゲームの状態遷移（lobby → playing → 投票 → 公開 → lobby）

すべての更新はここを通す。各操作は
  1. ストアから最新レコードを読む
  2. 検証する（失敗なら GameError を送出し、何も書かない）
  3. 変更フィールドを version 条件付きで書き込む
の順で動く。version が食い違ったら読み直して再試行する（_mutate）。

投票・公開などのサブ状態は status ではなく
votes / voting_complete / mafia_revealed で表現する。
"""
import logging
import random
from collections import Counter
from datetime import datetime
from typing import Callable, Optional

from ..config import settings
from ..schemas.game import GameRecord, Player
from .errors import (
    AlreadyStarted,
    Full,
    InvalidName,
    InvalidSettings,
    NameTaken,
    NotEnoughPlayers,
    SelfVote,
    StorageUnavailable,
    UnknownTarget,
    UnknownVoter,
    WriteConflict,
)
from .generators import generate_game_code, generate_word_pair
from .store import GameRecordStore

logger = logging.getLogger(__name__)

MIN_PLAYERS = 3
MAX_PLAYERS = 20
MAX_NAME_LENGTH = 32


# -----------------------------
# 共通：読み→検証→条件付き書き込み
# -----------------------------
def _mutate(
    store: GameRecordStore,
    code: str,
    change: Callable[[GameRecord], dict],
) -> GameRecord:
    attempts = settings.MAX_WRITE_RETRIES
    for attempt in range(1, attempts + 1):
        record = store.get(code)
        fields = change(record)
        try:
            return store.update(code, fields, expected_version=record.version)
        except WriteConflict:
            logger.warning(
                "write conflict on game %s (attempt %d/%d)", code, attempt, attempts
            )

    logger.error("giving up on game %s after %d conflicting writes", code, attempts)
    raise StorageUnavailable("Too many concurrent updates, please retry")


def _clean_name(name: str) -> str:
    name = (name or "").strip()
    if not name:
        raise InvalidName()
    if len(name) > MAX_NAME_LENGTH:
        raise InvalidName(f"Name must be at most {MAX_NAME_LENGTH} characters")
    return name


def max_mafia_for(player_total: int) -> int:
    return player_total // 2


def effective_mafia_count(mafia_count: int, player_total: int) -> int:
    """人数が足りないときは floor(人数/2) に切り詰める"""
    return min(mafia_count, max_mafia_for(player_total))


def pick_mafia_indices(
    player_total: int,
    mafia_total: int,
    rng: Optional[random.Random] = None,
) -> list[int]:
    """
    0..player_total-1 から重複なしで mafia_total 個を一様に選ぶ。
    インデックスのプールから1つずつ抜き取る方式。
    """
    rng = rng or random
    pool = list(range(player_total))
    chosen: list[int] = []
    for _ in range(mafia_total):
        chosen.append(pool.pop(rng.randrange(len(pool))))
    return chosen


# -----------------------------
# 🎮 作成・参加
# -----------------------------
def get_game(store: GameRecordStore, code: str) -> GameRecord:
    return store.get(code)


def create_game(
    store: GameRecordStore,
    host_name: str,
    player_count: int,
    mafia_count: int,
    rng: Optional[random.Random] = None,
) -> GameRecord:
    host_name = _clean_name(host_name)

    if not MIN_PLAYERS <= player_count <= MAX_PLAYERS:
        raise InvalidSettings(
            f"player_count must be between {MIN_PLAYERS} and {MAX_PLAYERS}"
        )
    if not 1 <= mafia_count <= max_mafia_for(player_count):
        raise InvalidSettings(
            f"mafia_count must be between 1 and {max_mafia_for(player_count)}"
        )

    pair = generate_word_pair(rng)

    for _ in range(settings.CODE_GENERATION_ATTEMPTS):
        code = generate_game_code(rng)
        record = GameRecord(
            code=code,
            host=host_name,
            host_player_id=1,
            player_count=player_count,
            mafia_count=mafia_count,
            players=[Player(id=1, name=host_name, is_mafia=False)],
            normal_word=pair.normal_word,
            mafia_word=pair.mafia_word,
            status="lobby",
            created_at=datetime.utcnow(),
            votes={},
            next_player_id=2,
        )
        try:
            created = store.create(record)
        except WriteConflict:
            logger.warning("game code %s already in use, generating another", code)
            continue
        logger.info(
            "game %s created by %r (players=%d, mafia=%d)",
            code, host_name, player_count, mafia_count,
        )
        return created

    raise StorageUnavailable("Could not allocate a game code")


def check_joinable(store: GameRecordStore, code: str) -> GameRecord:
    """
    ロビーに入る前の事前チェック（名前の重複は見ない）。
    NotFound / AlreadyStarted / Full のどれかを送出する。
    """
    record = store.get(code)
    _ensure_lobby_open(record)
    return record


def _ensure_lobby_open(record: GameRecord) -> None:
    if record.status != "lobby":
        raise AlreadyStarted()
    if len(record.players) >= record.player_count:
        raise Full()


def join_game(
    store: GameRecordStore,
    code: str,
    player_name: str,
) -> tuple[GameRecord, Player]:
    player_name = _clean_name(player_name)
    joined: dict[str, Player] = {}

    def change(record: GameRecord) -> dict:
        _ensure_lobby_open(record)
        if any(p.name == player_name for p in record.players):
            raise NameTaken()

        player = Player(id=record.next_player_id, name=player_name, is_mafia=False)
        joined["player"] = player
        return {
            "players": record.players + [player],
            "next_player_id": record.next_player_id + 1,
        }

    record = _mutate(store, code, change)
    player = joined["player"]
    logger.info("player %r joined game %s as #%d", player.name, code, player.id)
    return record, player


# -----------------------------
# 🧩 開始（マフィア配布）
# -----------------------------
def start_game(
    store: GameRecordStore,
    code: str,
    rng: Optional[random.Random] = None,
) -> GameRecord:
    def change(record: GameRecord) -> dict:
        if record.status != "lobby":
            raise AlreadyStarted()

        n = len(record.players)
        if n < MIN_PLAYERS:
            raise NotEnoughPlayers()

        mafia_total = effective_mafia_count(record.mafia_count, n)
        mafia_indices = set(pick_mafia_indices(n, mafia_total, rng))

        players = [
            p.model_copy(update={"is_mafia": i in mafia_indices})
            for i, p in enumerate(record.players)
        ]
        return {
            "players": players,
            "status": "playing",
            "votes": {},
            "voting_complete": False,
            "mafia_revealed": False,
        }

    record = _mutate(store, code, change)
    logger.info(
        "game %s started with %d players / %d mafia",
        code, len(record.players), sum(p.is_mafia for p in record.players),
    )
    return record


# -----------------------------
# 🗳 投票
# -----------------------------
def start_voting(store: GameRecordStore, code: str) -> GameRecord:
    # 司会のみ（UI 側の約束事。ここでは判定しない）
    return _mutate(
        store,
        code,
        lambda record: {
            "votes": {},
            "voting_complete": False,
            "mafia_revealed": False,
        },
    )


def cast_vote(
    store: GameRecordStore,
    code: str,
    voter_id: int,
    target_id: int,
) -> GameRecord:
    """
    voter_id の票を target_id に入れる（既に投票済みなら上書き）。
    全員分の票が揃ったら voting_complete を立てる。
    """
    def change(record: GameRecord) -> dict:
        player_ids = {p.id for p in record.players}
        if voter_id not in player_ids:
            raise UnknownVoter()
        if target_id not in player_ids:
            raise UnknownTarget()
        if voter_id == target_id:
            raise SelfVote()

        # 抜けたプレイヤーの票は持ち越さない
        votes = {v: t for v, t in record.votes.items() if v in player_ids}
        votes[voter_id] = target_id
        return {
            "votes": votes,
            "voting_complete": len(votes) == len(record.players),
        }

    return _mutate(store, code, change)


def count_votes(votes: dict[int, int]) -> dict[int, int]:
    """投票先ID → 得票数"""
    return dict(Counter(votes.values()))


def tally_votes(votes: dict[int, int], players: list[Player]) -> list[Player]:
    """
    最多得票のプレイヤーを返す。同票は決着させず全員返す（players の並び順）。
    票が無ければ空リスト。
    """
    counts = count_votes(votes)
    if not counts:
        return []
    top = max(counts.values())
    return [p for p in players if counts.get(p.id, 0) == top]


# -----------------------------
# 🔍 公開・リプレイ
# -----------------------------
def reveal_mafias(store: GameRecordStore, code: str) -> GameRecord:
    return _mutate(store, code, lambda record: {"mafia_revealed": True})


def reset_to_lobby(store: GameRecordStore, code: str) -> GameRecord:
    """同じメンバー・同じお題のままロビーに戻す（役職と投票だけ消す）"""
    def change(record: GameRecord) -> dict:
        return {
            "status": "lobby",
            "votes": {},
            "voting_complete": False,
            "mafia_revealed": False,
            "players": [p.model_copy(update={"is_mafia": False}) for p in record.players],
        }

    record = _mutate(store, code, change)
    logger.info("game %s reset to lobby", code)
    return record


# -----------------------------
# 👤 セッション上のプレイヤー解決
# -----------------------------
def resolve_player(record: GameRecord, player_id: int) -> Optional[Player]:
    return next((p for p in record.players if p.id == player_id), None)


def is_host(record: GameRecord, player: Player) -> bool:
    return player.id == record.host_player_id


def has_voted(record: GameRecord, player: Player) -> bool:
    return player.id in record.votes


def word_for(record: GameRecord, player: Player) -> str:
    return record.mafia_word if player.is_mafia else record.normal_word

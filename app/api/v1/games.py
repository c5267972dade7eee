# app/api/v1/games.py

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from ...config import settings
from ...api.deps import get_code, get_store
from ...api.session import clear_session, get_session, set_session
from ...schemas.game import (
    GameCreate,
    GameJoinableOut,
    GameJoinOut,
    GameJoinRequest,
    GameOut,
    GameRecord,
    player_out,
)
from ...schemas.game_member import GameMemberMe
from ...schemas.vote import TallyItem, TallyOut, VoteCreate
from ...services import game_machine
from ...services.errors import GameError, NotInGame
from ...services.store import GameRecordStore

router = APIRouter(prefix="/games", tags=["games"])


def _game_out(record: GameRecord) -> GameOut:
    return GameOut.from_record(record, poll_interval_sec=settings.POLL_INTERVAL_SEC)


def error_response(exc: GameError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


# -----------------------------
# 🎮 ゲーム作成
# -----------------------------
@router.post("", response_model=GameJoinOut)
def create_game(
    payload: GameCreate,
    response: Response,
    store: GameRecordStore = Depends(get_store),
):
    record = game_machine.create_game(
        store,
        host_name=payload.host_name,
        player_count=payload.player_count,
        mafia_count=payload.mafia_count,
    )
    host = game_machine.resolve_player(record, record.host_player_id)

    # 作成者はそのまま参加者1番
    set_session(response, host.id, record.code)
    return GameJoinOut(player=player_out(host, record.mafia_revealed), game=_game_out(record))


# -----------------------------
# 🔍 ゲーム情報取得（ポーリング用）
# -----------------------------
@router.get("/{code}", response_model=GameOut)
def get_game(
    code: str = Depends(get_code),
    store: GameRecordStore = Depends(get_store),
):
    return _game_out(game_machine.get_game(store, code))


@router.get("/{code}/joinable", response_model=GameJoinableOut)
def check_joinable(
    code: str = Depends(get_code),
    store: GameRecordStore = Depends(get_store),
):
    """
    トップ画面の「参加」ボタン用の事前チェック。
    存在しない / 開始済み / 満員 ならそれぞれのエラーを返す。
    """
    record = game_machine.check_joinable(store, code)
    return GameJoinableOut(
        code=record.code,
        joinable=True,
        players_joined=len(record.players),
        player_count=record.player_count,
    )


# -----------------------------
# 🙋 参加
# -----------------------------
@router.post("/{code}/join", response_model=GameJoinOut)
def join_game(
    payload: GameJoinRequest,
    response: Response,
    code: str = Depends(get_code),
    store: GameRecordStore = Depends(get_store),
):
    record, player = game_machine.join_game(store, code, payload.player_name)
    set_session(response, player.id, record.code)
    return GameJoinOut(player=player_out(player, record.mafia_revealed), game=_game_out(record))


# -----------------------------
# 🧩 ゲーム開始（マフィア配布）
# -----------------------------
@router.post("/{code}/start", response_model=GameOut)
def start_game(
    code: str = Depends(get_code),
    store: GameRecordStore = Depends(get_store),
):
    return _game_out(game_machine.start_game(store, code))


# -----------------------------
# 🗳 投票
# -----------------------------
@router.post("/{code}/voting", response_model=GameOut)
def start_voting(
    code: str = Depends(get_code),
    store: GameRecordStore = Depends(get_store),
):
    """投票ラウンドを（やり直しも含めて）開始する。票は空にする"""
    return _game_out(game_machine.start_voting(store, code))


@router.post("/{code}/votes", response_model=GameOut)
def cast_vote(
    data: VoteCreate,
    code: str = Depends(get_code),
    store: GameRecordStore = Depends(get_store),
):
    """
    投票:
    - 投票者・投票先ともにこのゲームのプレイヤーであること
    - 自分自身には投票できない
    - 同じ voter が再投票した場合は上書き
    """
    record = game_machine.cast_vote(store, code, data.voter_id, data.target_id)
    return _game_out(record)


@router.get("/{code}/tally", response_model=TallyOut)
def tally(
    code: str = Depends(get_code),
    store: GameRecordStore = Depends(get_store),
):
    record = game_machine.get_game(store, code)
    counts = game_machine.count_votes(record.votes)

    # プレイヤー順に並べる
    items = [
        TallyItem(target_id=p.id, vote_count=counts[p.id])
        for p in record.players
        if p.id in counts
    ]
    most_voted = game_machine.tally_votes(record.votes, record.players)

    return TallyOut(
        code=record.code,
        voted_count=len(record.votes),
        player_total=len(record.players),
        voting_complete=record.voting_complete,
        items=items,
        most_voted=[player_out(p, record.mafia_revealed) for p in most_voted],
    )


# -----------------------------
# 🔍 正体公開・もう一度遊ぶ
# -----------------------------
@router.post("/{code}/reveal", response_model=GameOut)
def reveal_mafias(
    code: str = Depends(get_code),
    store: GameRecordStore = Depends(get_store),
):
    return _game_out(game_machine.reveal_mafias(store, code))


@router.post("/{code}/reset", response_model=GameOut)
def reset_to_lobby(
    code: str = Depends(get_code),
    store: GameRecordStore = Depends(get_store),
):
    return _game_out(game_machine.reset_to_lobby(store, code))


# -----------------------------
# 👤 自分の情報（cookie のセッションから解決）
# -----------------------------
@router.get("/{code}/me", response_model=GameMemberMe)
def get_my_info(
    request: Request,
    code: str = Depends(get_code),
    store: GameRecordStore = Depends(get_store),
):
    session = get_session(request)
    if session is None or session.game_code != code:
        raise NotInGame()

    record = game_machine.get_game(store, code)
    player = game_machine.resolve_player(record, session.player_id)
    if player is None:
        # もう存在しないプレイヤーを指している → 未参加扱いにして cookie も消す
        res = error_response(NotInGame())
        clear_session(res)
        return res

    return GameMemberMe(
        code=record.code,
        player_id=player.id,
        name=player.name,
        word=game_machine.word_for(record, player),
        is_host=game_machine.is_host(record, player),
        has_voted=game_machine.has_voted(record, player),
        status=record.status,
    )


@router.post("/{code}/leave", status_code=204)
def leave_game(code: str):
    """このクライアントのセッションを消すだけ（ロスターからは消さない）"""
    res = Response(status_code=204)
    clear_session(res)
    return res
# app/api/v1/stream.py
"""
ゲームの変更通知（WebSocket）

接続直後に現在のスナップショットを1回送り、
以降はストアへの書き込みが成功するたびに新しいスナップショットを送る。
クライアントは受け取った内容でローカル状態を丸ごと置き換える。
ポーリング（GET /api/games/{code}）と同じ内容なので、どちらを使ってもよい。
"""
import asyncio
import contextlib
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from starlette.concurrency import run_in_threadpool

from ...config import settings
from ...api.deps import get_code
from ...db import SessionLocal
from ...schemas.game import GameOut, GameRecord
from ...services.errors import NotFound
from ...services.store import GameRecordStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/games", tags=["stream"])

# 存在しないゲームコードで接続されたときの close code
CLOSE_GAME_NOT_FOUND = 4404
CLOSE_INTERNAL_ERROR = 1011


def snapshot_message(record: GameRecord) -> dict:
    payload = GameOut.from_record(record, poll_interval_sec=settings.POLL_INTERVAL_SEC)
    return {
        "type": "snapshot",
        "code": record.code,
        "version": record.version,
        "payload": payload.model_dump(mode="json"),
    }


@router.websocket("/{code}/stream")
async def game_stream(websocket: WebSocket, code: str = Depends(get_code)):
    db = SessionLocal()
    store = GameRecordStore(db)

    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[GameRecord] = asyncio.Queue()

    # 最初のスナップショットを読む前に購読しておく（読んだ直後の書き込みを取りこぼさない）
    # publish は同期ルートのワーカースレッドから呼ばれる
    unsubscribe = store.subscribe(
        code, lambda rec: loop.call_soon_threadsafe(queue.put_nowait, rec)
    )
    try:
        try:
            record = await run_in_threadpool(store.get, code)
        except NotFound:
            await websocket.close(code=CLOSE_GAME_NOT_FOUND)
            return

        await websocket.accept()
        logger.debug(
            "stream for game %s connected (%d listeners)",
            code, store.notifier.listener_count(code),
        )

        async def forward() -> None:
            last_version = record.version
            await websocket.send_json(snapshot_message(record))
            while True:
                rec = await queue.get()
                # スナップショットに含まれている書き込みは送らない
                if rec.version <= last_version:
                    continue
                last_version = rec.version
                await websocket.send_json(snapshot_message(rec))

        async def drain() -> None:
            # クライアントからの受信は切断検知のためだけ
            while True:
                await websocket.receive_text()

        sender = asyncio.create_task(forward())
        receiver = asyncio.create_task(drain())
        done, pending = await asyncio.wait(
            {sender, receiver}, return_when=asyncio.FIRST_COMPLETED
        )

        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

        for task in done:
            exc = task.exception()
            if exc is None or isinstance(exc, WebSocketDisconnect):
                logger.debug("stream for game %s disconnected", code)
            else:
                logger.warning("stream for game %s stopped: %r", code, exc)
                with contextlib.suppress(RuntimeError):
                    await websocket.close(code=CLOSE_INTERNAL_ERROR)
    finally:
        unsubscribe()
        db.close()

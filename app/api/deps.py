# app/api/deps.py

from collections.abc import Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from app.db import SessionLocal
from app.services.store import GameRecordStore


def get_db_dep() -> Generator[Session, None, None]:
    """
    FastAPI の Depends で使う DB セッション依存関数。
    エンドポイント側では `db: Session = Depends(get_db_dep)` で利用。
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_store(db: Session = Depends(get_db_dep)) -> GameRecordStore:
    """ゲームレコードのストア。通知は共有の notifier に流れる"""
    return GameRecordStore(db)


def get_code(code: str) -> str:
    """パスのゲームコード。前後の空白は落とす（コピペ入力対策）"""
    return code.strip()

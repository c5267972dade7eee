# tests/conftest.py
import os

# アプリ本体を import する前にテスト用 DB を向けておく
os.environ.setdefault("DATABASE_URL", "sqlite:///./test_word_mafia.db")

import pytest
from sqlalchemy.orm import Session
from fastapi.testclient import TestClient

from app.db import Base, engine, SessionLocal
from app.main import app
from app.services.notifier import ChangeNotifier
from app.services.store import GameRecordStore

# モデルを Base に登録しておく
from app.models.game import Game  # noqa: F401


@pytest.fixture(scope="function")
def db() -> Session:
    """
    テストごとにクリーンな DB を用意するフィクスチャ。
    アプリ本体と同じ engine を使う。
    """
    # 既存テーブルを全部削除してから、再作成
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def notifier() -> ChangeNotifier:
    """テストごとに独立した通知先"""
    return ChangeNotifier()


@pytest.fixture(scope="function")
def store(db: Session, notifier: ChangeNotifier) -> GameRecordStore:
    return GameRecordStore(db, notifier=notifier)


@pytest.fixture(scope="function")
def client(db: Session) -> TestClient:
    """
    通常の FastAPI app をそのまま使う TestClient。
    DI の上書きは行わない。
    """
    with TestClient(app) as c:
        yield c

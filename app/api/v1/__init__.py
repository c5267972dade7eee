# app/api/v1/__init__.py

from fastapi import APIRouter

from . import games, stream

api_router = APIRouter()

# それぞれの router 側で prefix を持っている前提にする
api_router.include_router(games.router)   # games.router 内で prefix="/games"
api_router.include_router(stream.router)  # stream.router も prefix="/games"（WebSocket）

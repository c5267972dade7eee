# app/config.py
"""
アプリ設定（Settings）

- 既定値はローカル開発用。
- 環境変数 or `.env` で上書きできる（pydantic-settings が自動で読む）。
- 各モジュールは `from app.config import settings` で参照する。

例（.env）:
    DATABASE_URL="sqlite:///./word_mafia.db"
    POLL_INTERVAL_SEC=1.0
    MAX_WRITE_RETRIES=5
    LOG_LEVEL="DEBUG"
"""
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    APP_NAME: str = "Word Mafia API"
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    DATABASE_URL: str = "sqlite:///./word_mafia.db"

    # クライアントがポーリングする間隔（秒）。レスポンスにも載せる
    POLL_INTERVAL_SEC: float = 1.0

    # 楽観ロック（version 比較）で競合したときの再試行回数
    MAX_WRITE_RETRIES: int = 5

    # ゲームコード衝突時の再生成回数
    CODE_GENERATION_ATTEMPTS: int = 10

    SESSION_COOKIE_NAME: str = "word_mafia_session"

    # フロント（別オリジン）から cookie 付きで叩くため明示的に列挙する
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


settings = Settings()

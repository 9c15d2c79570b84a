from __future__ import annotations

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    POSTGRES_USER: str = "echoworld"
    POSTGRES_PASSWORD: str = "echoworld"
    POSTGRES_DB: str = "echoworld"
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432

    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_RECYCLE: int = 300

    REDIS_URL: str = "redis://localhost:6379/0"

    JWT_SECRET: str = ""
    JWT_ALGORITHM: str = "HS256"

    CORS_ORIGINS: list[str] = ["*"]

    LOG_LEVEL: str = "INFO"

    WS_HEARTBEAT_SECONDS: int = 30

    REALTIME_CHANNEL_PREFIX: str = "echoworld"

    PRESENCE_CHANNEL: str = "global-presence"
    PRESENCE_HEARTBEAT_SECONDS: float = 30.0
    PRESENCE_STALE_SECONDS: float = 90.0

    TYPING_TIMEOUT_SECONDS: float = 3.0
    TYPING_STALE_SECONDS: float = 5.0

    COMPOSER_MAX_PENDING: int = 3
    MESSAGES_PAGE_LIMIT: int = 50

    @property
    def database_url(self) -> str:
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.POSTGRES_DB}"
        )

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()

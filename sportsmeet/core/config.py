from __future__ import annotations

from typing import Any, List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _split_origins(raw: Any) -> List[str]:
    """
    Normalize CORS allow origins from env.

    Supports a list, "*", or a comma-separated string.
    """
    if raw is None:
        return ["*"]

    if isinstance(raw, list):
        items = [str(x).strip() for x in raw]
        return [x for x in items if x] or ["*"]

    s = str(raw).strip()
    if not s or s == "*":
        return ["*"]

    parts = [p.strip() for p in s.split(",")]
    return [p for p in parts if p] or ["*"]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # App identity
    env: str = Field(default="local", alias="APP_ENV")
    app_name: str = Field(default="sportsmeet", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Server runtime (uvicorn)
    host: str = Field(default="127.0.0.1", alias="HOST")
    port: int = Field(default=5001, alias="PORT")
    reload: bool = Field(default=False, alias="RELOAD")

    cors_allow_origins: list[str] = Field(default_factory=lambda: ["*"], alias="CORS_ALLOW_ORIGINS")

    database_url: str = Field(default="sqlite:///./data/sportsmeet.sqlite", alias="DATABASE_URL")

    # Redis backs the per-event locks
    redis_url: str = Field(default="redis://localhost:6379/0", alias="REDIS_URL")
    lock_timeout: float = Field(default=10, alias="LOCK_TIMEOUT")
    lock_blocking_timeout: float = Field(default=5, alias="LOCK_BLOCKING_TIMEOUT")

    jwt_secret: str = Field(default="change-me", alias="JWT_SECRET")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(default=60 * 24 * 7, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    # Undelivered notifications a live connection may hold before it is dropped
    notification_buffer_size: int = Field(default=100, alias="NOTIFICATION_BUFFER_SIZE")

    news_api_key: str = Field(default="", alias="NEWS_API_KEY")
    news_api_url: str = Field(default="https://newsapi.org/v2/top-headlines", alias="NEWS_API_URL")
    news_country: str = Field(default="us", alias="NEWS_COUNTRY")

    @field_validator("log_level", mode="before")
    @classmethod
    def _norm_log_level(cls, v: Any) -> str:
        s = ("" if v is None else str(v)).strip().upper()
        return s or "INFO"

    @field_validator("cors_allow_origins", mode="before")
    @classmethod
    def _norm_cors_allow_origins(cls, v: Any) -> list[str]:
        return _split_origins(v)

    @field_validator("database_url", "redis_url", mode="before")
    @classmethod
    def _strip(cls, v: Any) -> str:
        return ("" if v is None else str(v)).strip()

    @field_validator("notification_buffer_size")
    @classmethod
    def _positive_buffer(cls, v: int) -> int:
        if v < 1:
            raise ValueError("NOTIFICATION_BUFFER_SIZE must be at least 1")
        return v


settings = Settings()


def get_redis_url() -> str:
    return settings.redis_url

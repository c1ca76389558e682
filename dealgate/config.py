"""
@file: config.py
@description: Service settings via Pydantic v2
@dependencies: pydantic, pydantic-settings
@created: 2026-10-12
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def split_csv(value: str | None) -> tuple[str, ...]:
    if not value:
        return tuple()
    return tuple(item.strip() for item in value.split(",") if item.strip())


class SentrySettings(BaseModel):
    dsn: str = ""
    environment: str = "local"

    @property
    def enabled(self) -> bool:
        return bool(self.dsn)


class CorsSettings(BaseModel):
    allowed_origins: tuple[str, ...]
    allow_methods: tuple[str, ...]
    allow_headers: tuple[str, ...]
    allow_credentials: bool = True


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        populate_by_name=True,
    )
    app_name: str = Field(default="dealgate", alias="APP_NAME")
    env: str = Field(default="local", alias="ENV")
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8080, alias="PORT")
    database_url: str = Field(default="", alias="DATABASE_URL")
    database_echo: bool = Field(default=False, alias="DATABASE_ECHO")
    store_connect_timeout_sec: float = Field(default=10.0, alias="STORE_CONNECT_TIMEOUT_SEC")
    store_connect_retries: int = Field(default=0, alias="STORE_CONNECT_RETRIES")
    store_connect_retry_delay_sec: float = Field(
        default=2.0, alias="STORE_CONNECT_RETRY_DELAY_SEC"
    )
    bootstrap_ordering: Literal["listener_first", "store_first"] = Field(
        default="listener_first", alias="BOOTSTRAP_ORDERING"
    )
    cors_allowed_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173", alias="CORS_ALLOWED_ORIGINS"
    )
    cors_allow_methods: str = Field(
        default="GET,POST,PUT,PATCH,DELETE,OPTIONS", alias="CORS_ALLOW_METHODS"
    )
    cors_allow_headers: str = Field(
        default="Content-Type,Authorization,X-Requested-With", alias="CORS_ALLOW_HEADERS"
    )
    gated_prefixes_raw: str = Field(
        default="/api/auth,/api/deals,/api/flash-orders", alias="GATED_PREFIXES"
    )
    realtime_path: str = Field(default="/socket", alias="REALTIME_PATH")
    admin_email: str = Field(default="", alias="ADMIN_EMAIL")
    admin_password: str = Field(default="", alias="ADMIN_PASSWORD")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_json: bool = Field(default=False, alias="LOG_JSON")
    enable_metrics: bool = Field(default=False, alias="ENABLE_METRICS")
    sentry_dsn: str = Field(default="", alias="SENTRY_DSN")

    @field_validator("port")
    @classmethod
    def _positive_port(cls, v: int) -> int:
        if v <= 0 or v > 65535:
            raise ValueError("port must be within 1..65535")
        return v

    @field_validator("store_connect_retries")
    @classmethod
    def _non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    @field_validator("store_connect_timeout_sec")
    @classmethod
    def _positive_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be > 0")
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return (v or "INFO").strip().upper()

    @property
    def cors(self) -> CorsSettings:
        origins: list[str] = []
        for origin in split_csv(self.cors_allowed_origins):
            origin = origin.rstrip("/")
            if origin not in origins:
                origins.append(origin)
        return CorsSettings(
            allowed_origins=tuple(origins),
            allow_methods=tuple(m.upper() for m in split_csv(self.cors_allow_methods)),
            allow_headers=split_csv(self.cors_allow_headers),
        )

    @property
    def gated_prefixes(self) -> tuple[str, ...]:
        return tuple("/" + p.strip("/") for p in split_csv(self.gated_prefixes_raw))

    @property
    def sentry(self) -> SentrySettings:
        return SentrySettings(dsn=self.sentry_dsn, environment=self.env)


@lru_cache(1)
def get_settings() -> Settings:
    return Settings()  # auto-reads env via pydantic-settings v2


def reset_settings_cache() -> None:
    """Drop the cached settings so tests can change the environment."""
    get_settings.cache_clear()  # type: ignore[attr-defined]


__all__ = ["CorsSettings", "SentrySettings", "Settings", "get_settings", "reset_settings_cache", "split_csv"]

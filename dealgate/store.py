"""
@file: store.py
@description: Async SQLAlchemy store connector and privileged account seeding.
@dependencies: sqlalchemy, asyncpg, aiosqlite, bcrypt, logger
@created: 2026-10-12
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from enum import Enum

import bcrypt
from sqlalchemy import Column, DateTime, Integer, MetaData, String, Table, insert, select, text
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from .config import Settings
from .logger import logger

_DEFAULT_CONNECT_TIMEOUT = 10.0
_DEFAULT_POOL_SIZE = 10
_DEFAULT_MAX_OVERFLOW = 10


class StoreBackend(Enum):
    SQLITE = "sqlite"
    POSTGRESQL = "postgresql"


class StoreConfigurationError(RuntimeError):
    """Raised when the DSN is missing, invalid or uses an unsupported driver."""


class StoreConnectionError(RuntimeError):
    """Raised when the store does not answer the startup probe."""


def mask_dsn(dsn: str) -> str:
    """Hide credentials of a connection string before it reaches the logs."""
    try:
        url = make_url(dsn)
    except Exception:
        return "***"
    if url.password:
        url = url.set(password="***")
    if url.username:
        url = url.set(username="***")
    return url.render_as_string(hide_password=False)


def normalize_url(dsn: str) -> URL:
    if not dsn or not dsn.strip():
        raise StoreConfigurationError("database DSN is not configured")
    try:
        url = make_url(dsn.strip())
    except Exception as exc:
        raise StoreConfigurationError(f"Invalid database DSN: {mask_dsn(dsn)}") from exc

    driver = url.drivername
    if driver.startswith("sqlite"):
        if driver != "sqlite+aiosqlite":
            url = url.set(drivername="sqlite+aiosqlite")
    elif driver.startswith("postgres"):
        if driver != "postgresql+asyncpg":
            url = url.set(drivername="postgresql+asyncpg")
    else:
        raise StoreConfigurationError(f"Unsupported driver in DSN: {driver}")
    return url


def detect_backend(url: URL) -> StoreBackend:
    if url.drivername.startswith("sqlite"):
        return StoreBackend.SQLITE
    return StoreBackend.POSTGRESQL


class StoreConnector:
    """Own the async engine and answer whether the store is reachable."""

    def __init__(
        self,
        dsn: str,
        *,
        connect_timeout: float = _DEFAULT_CONNECT_TIMEOUT,
        echo: bool = False,
    ) -> None:
        self.dsn = dsn
        self.connect_timeout = connect_timeout
        self.echo = echo
        self._engine: AsyncEngine | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> StoreConnector:
        return cls(
            settings.database_url,
            connect_timeout=settings.store_connect_timeout_sec,
            echo=settings.database_echo,
        )

    @property
    def masked_dsn(self) -> str:
        return mask_dsn(self.dsn) if self.dsn else "<unset>"

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise StoreConnectionError("store engine has not been created")
        return self._engine

    def _create_engine(self, url: URL) -> AsyncEngine:
        connect_args: dict[str, object] = {}
        engine_kwargs: dict[str, object] = {"echo": self.echo}
        if detect_backend(url) is StoreBackend.SQLITE:
            connect_args["timeout"] = self.connect_timeout
            engine_kwargs["poolclass"] = NullPool
        else:
            connect_args["timeout"] = self.connect_timeout
            engine_kwargs.update(
                {
                    "pool_pre_ping": True,
                    "pool_size": _DEFAULT_POOL_SIZE,
                    "max_overflow": _DEFAULT_MAX_OVERFLOW,
                }
            )
        return create_async_engine(url, connect_args=connect_args, **engine_kwargs)

    async def connect(self) -> None:
        """Create the engine if needed and probe it with ``SELECT 1``."""
        url = normalize_url(self.dsn)
        if self._engine is None:
            self._engine = self._create_engine(url)
        try:
            async with self._engine.connect() as connection:
                await connection.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError, asyncio.TimeoutError) as exc:
            raise StoreConnectionError(
                f"store at {self.masked_dsn} is unreachable: {type(exc).__name__}: {exc}"
            ) from exc
        logger.info("Store connection healthy for {}", self.masked_dsn)

    async def dispose(self) -> None:
        engine = self._engine
        self._engine = None
        if engine is not None:
            await engine.dispose()


metadata = MetaData()

accounts = Table(
    "accounts",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", String(255), nullable=False),
    Column("role", String(32), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("ascii")


def verify_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("ascii"))


class AdminAccountSeeder:
    """Ensure the privileged account exists; running it again changes nothing."""

    def __init__(
        self,
        connector: StoreConnector,
        email: str,
        password: str,
        *,
        role: str = "admin",
    ) -> None:
        self.connector = connector
        self.email = (email or "").strip().lower()
        self.password = password or ""
        self.role = role

    async def seed(self) -> bool:
        """Return True when the account was created by this call."""
        if not self.email or not self.password:
            logger.info("Admin credentials not configured; seeding skipped")
            return False

        engine = self.connector.engine
        try:
            async with engine.begin() as conn:
                await conn.run_sync(metadata.create_all)
                existing = await conn.execute(
                    select(accounts.c.id).where(accounts.c.email == self.email)
                )
                if existing.first() is not None:
                    logger.info("Admin account {} already exists", self.email)
                    return False
                await conn.execute(
                    insert(accounts).values(
                        email=self.email,
                        password_hash=hash_password(self.password),
                        role=self.role,
                        created_at=datetime.now(timezone.utc),
                    )
                )
        except IntegrityError:
            logger.info("Admin account {} was created concurrently", self.email)
            return False
        logger.info("Admin account {} created", self.email)
        return True


__all__ = [
    "AdminAccountSeeder",
    "StoreBackend",
    "StoreConfigurationError",
    "StoreConnectionError",
    "StoreConnector",
    "accounts",
    "detect_backend",
    "hash_password",
    "mask_dsn",
    "normalize_url",
    "verify_password",
]

"""
Sloka API — Database Connection Handle
=======================================

What:  Declarative base plus the `Database` handle that owns the async engine.
How:   `Database.connect()` lazily creates one engine with a bounded pool and
       reuses it for every later call. The application factory stores the
       handle on `app.state`; the lifespan connects at startup and disposes
       at shutdown. Sessions are handed out per request.
Who:   Lifespan in main.py, the store dependency in routes, the seed CLI.

Connection Bounds:
    pool_timeout      seconds to wait for a pooled connection
    connect timeout   seconds to open a new server connection (asyncpg)
    command_timeout   seconds a statement may wait on the socket (asyncpg)
    pool_pre_ping     validates connections before use
    pool_recycle      recycles connections every hour
"""

import logging
from typing import Optional

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from sloka_api.config import Settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""
    pass


class Database:
    """
    Explicit connection handle with process-lifetime scope.

    The engine is created on the first `connect()` and cached; later calls
    are no-ops. `dispose()` closes every pooled connection and clears the
    cache so a new `connect()` starts fresh.
    """

    def __init__(self, settings: Settings, url: Optional[str] = None):
        self._settings = settings
        self.url = url or settings.database_url
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def engine(self) -> Optional[AsyncEngine]:
        return self._engine

    @property
    def is_connected(self) -> bool:
        """True once an engine has been created and successfully pinged."""
        return self._engine is not None

    def _engine_options(self) -> dict:
        s = self._settings
        options: dict = {
            "pool_pre_ping": s.db_pool_pre_ping,
            "echo": s.log_level == "DEBUG",
        }
        backend = make_url(self.url).get_backend_name()
        if backend == "sqlite":
            return options

        options.update(
            pool_size=s.db_pool_size,
            max_overflow=s.db_max_overflow,
            pool_timeout=s.db_pool_timeout,
            pool_recycle=3600,
        )
        if make_url(self.url).get_driver_name() == "asyncpg":
            options["connect_args"] = {
                "timeout": s.db_connect_timeout,
                "command_timeout": s.db_command_timeout,
            }
        return options

    async def connect(self) -> AsyncEngine:
        """
        Create (once) and verify the engine.

        Raises whatever the driver raises when the server is unreachable; the
        half-built engine is disposed so the next call retries from scratch.
        """
        if self._engine is not None:
            logger.debug("Using cached database connection")
            return self._engine

        engine = create_async_engine(self.url, **self._engine_options())
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception:
            await engine.dispose()
            raise

        self._engine = engine
        self._session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        logger.info("Connected to database (%s)", make_url(self.url).get_backend_name())
        return engine

    async def ping(self) -> bool:
        """Lightweight connectivity check. Never raises."""
        if self._engine is None:
            return False
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.warning("Database ping failed: %s", str(e))
            return False

    def session(self) -> AsyncSession:
        if self._session_factory is None:
            raise RuntimeError("Database.connect() must be awaited before opening sessions")
        return self._session_factory()

    async def dispose(self) -> None:
        """Close all pooled connections (called on shutdown)."""
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._session_factory = None
        logger.info("Database connection closed")

"""SQLite store lifecycle for the local billing variant."""

import os
import logging
from typing import AsyncGenerator, Optional
from contextlib import asynccontextmanager

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncSession,
    async_sessionmaker,
    AsyncEngine,
)
from sqlalchemy.pool import StaticPool

from . import models

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./billing.db"
SQLITE_DRIVER = "sqlite+aiosqlite"


def resolve_database_url(database_url: Optional[str] = None) -> str:
    """Pick the store URL: explicit value, DATABASE_URL, then ./billing.db.

    A plain ``sqlite://`` URL is switched to the aiosqlite driver.

    Raises:
        ValueError: For a non-SQLite URL.
    """
    url = make_url(database_url or os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL)
    if url.get_backend_name() != "sqlite":
        raise ValueError(f"Unsupported database '{url.get_backend_name()}', only SQLite is supported")
    if url.drivername != SQLITE_DRIVER:
        url = url.set(drivername=SQLITE_DRIVER)
    return url.render_as_string(hide_password=False)


def is_memory_url(database_url: str) -> bool:
    database = make_url(database_url).database
    return not database or database == ":memory:"


class DatabaseManager:
    """
    Owns the engine and session factory of the local store.

    Example:
        db_manager = DatabaseManager()
        await db_manager.initialize()

        async with db_manager.session() as session:
            # use session
            pass

        await db_manager.shutdown()
    """

    def __init__(self, database_url: Optional[str] = None, echo: bool = False):
        self.database_url = resolve_database_url(database_url)
        self.echo = echo
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def initialized(self) -> bool:
        return self._engine is not None

    @property
    def in_memory(self) -> bool:
        return is_memory_url(self.database_url)

    def _create_engine(self) -> AsyncEngine:
        # One shared connection, otherwise each session sees an empty :memory: database
        if self.in_memory:
            return create_async_engine(
                self.database_url,
                echo=self.echo,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        return create_async_engine(self.database_url, echo=self.echo)

    async def initialize(self, create_tables: bool = True) -> None:
        """Open the store, creating the provider and payment tables if missing."""
        self._engine = self._create_engine()
        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

        if create_tables:
            async with self._engine.begin() as conn:
                await conn.run_sync(models.Base.metadata.create_all)

        logger.info(f"Billing store ready at {self.database_url}")

    async def shutdown(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("Billing store closed.")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Session that commits on success and rolls back on error."""
        if self._session_factory is None:
            raise RuntimeError(
                "DatabaseManager not initialized. Call initialize() first."
            )

        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

"""Async database manager for Ticket-Engine."""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ticket_engine.common.config import TicketEngineSettings, get_settings
from ticket_engine.common.models import Base

# Import all model modules so Base.metadata is complete for create_all().
import ticket_engine.tickets.models  # noqa: F401
import ticket_engine.scans.models  # noqa: F401
import ticket_engine.payments.models  # noqa: F401


class DatabaseManager:
    """Owns the engine and hands out one session per unit of work.

    A session commits when its block exits cleanly, so a ticket mutation is
    durable before the check-in lock around it is released.
    """

    def __init__(self, settings: TicketEngineSettings | None = None):
        self._settings = settings or get_settings()
        self.engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def is_sqlite(self) -> bool:
        return make_url(self._settings.db_url).get_backend_name() == "sqlite"

    async def init(self) -> None:
        url = make_url(self._settings.db_url)
        kwargs = {"echo": self._settings.db_echo}
        if self.is_sqlite:
            if url.database and url.database != ":memory:":
                Path(url.database).parent.mkdir(parents=True, exist_ok=True)
            # Gate devices write concurrently; wait for the file lock instead of failing.
            kwargs["connect_args"] = {"timeout": self._settings.db_busy_timeout}

        self.engine = create_async_engine(url, **kwargs)
        if self.is_sqlite:
            event.listen(self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        self._session_factory = async_sessionmaker(
            self.engine, expire_on_commit=False
        )

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        if self._session_factory is None:
            raise RuntimeError("DatabaseManager not initialized — call init() first")
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def create_all(self) -> None:
        if self.engine is None:
            raise RuntimeError("DatabaseManager not initialized — call init() first")
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        if self.engine:
            await self.engine.dispose()
            self.engine = None
            self._session_factory = None


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()

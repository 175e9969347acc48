"""Async database manager for RWA Ledger (single-DB)."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from rwa_ledger.common.config import LedgerSettings, get_settings
from rwa_ledger.common.models import Base

# Import all model modules so Base.metadata is complete for create_all().
import rwa_ledger.users.models  # noqa: F401
import rwa_ledger.assets.models  # noqa: F401
import rwa_ledger.ledger.models  # noqa: F401
import rwa_ledger.orders.models  # noqa: F401
import rwa_ledger.transfers.models  # noqa: F401
import rwa_ledger.valuation.models  # noqa: F401
import rwa_ledger.notifications.models  # noqa: F401


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class DatabaseManager:
    """Manages a single async database engine.

    Every ``get_session()`` block is one unit of work: it commits when the
    block exits normally and rolls back everything when it raises.
    """

    def __init__(self, settings: LedgerSettings | None = None):
        self._settings = settings or get_settings()
        self.engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    async def init(self) -> None:
        url = self._settings.db_url
        self.engine = create_async_engine(url, echo=False)
        if self.engine.dialect.name == "sqlite":
            event.listen(self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        self._session_factory = async_sessionmaker(
            self.engine, expire_on_commit=False
        )

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        if self._session_factory is None:
            raise RuntimeError("DatabaseManager not initialized; call init() first")
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def create_all(self) -> None:
        if self.engine is None:
            raise RuntimeError("DatabaseManager not initialized; call init() first")
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        if self.engine:
            await self.engine.dispose()
            self.engine = None
            self._session_factory = None

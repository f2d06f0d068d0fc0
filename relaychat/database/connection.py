from typing import Optional

from loguru import logger
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from ..core.errors import StorageNotConfiguredError, StorageUnavailableError
from ..models.base import Base


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Owns the engine and session factory for one DATABASE_URL.

    Constructed with ``url=None`` it is the "not configured" sentinel: every
    attempt to open a session raises StorageNotConfiguredError. A configured
    database whose schema could not be created is "unreachable" until a later
    ``ensure_ready()`` succeeds.
    """

    def __init__(self, url: Optional[str], echo: bool = False):
        self.url = url
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker[AsyncSession]] = None
        self.reachable = False
        if url:
            self.engine = create_async_engine(url, echo=echo, future=True)
            if self.engine.dialect.name == "sqlite":
                event.listen(self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
            self.session_factory = async_sessionmaker(
                bind=self.engine, class_=AsyncSession, autoflush=False, expire_on_commit=False
            )

    @property
    def is_configured(self) -> bool:
        return self.engine is not None

    async def create_all(self) -> None:
        if self.engine is None:
            return
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        self.reachable = True

    async def ensure_ready(self) -> None:
        """Creates the schema on first use; raises a 503 kind while storage is down."""
        if self.engine is None:
            raise StorageNotConfiguredError()
        if self.reachable:
            return
        try:
            await self.create_all()
        except Exception as e:
            logger.error(f"Storage is unreachable: {e}")
            raise StorageUnavailableError() from e

    def session(self) -> AsyncSession:
        if self.session_factory is None:
            raise StorageNotConfiguredError()
        return self.session_factory()

    async def dispose(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()

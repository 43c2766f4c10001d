# DB connections

import asyncio

import structlog
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import settings
from app.models.event import Base

logger = structlog.get_logger()


class Database:
    """
    Lazily created async engine with a one-time schema/index setup.

    The first caller of `initialize()` starts the setup; concurrent callers
    await the same future. A failed setup clears the memo so the next request
    retries from scratch.
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.echo = echo
        self.initialized = False
        self._engine: AsyncEngine | None = None
        self._sessionmaker: async_sessionmaker[AsyncSession] | None = None
        self._init_future: asyncio.Future | None = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            if self.url.startswith("sqlite"):
                self._engine = create_async_engine(self.url, echo=self.echo)
            else:
                self._engine = create_async_engine(
                    self.url,
                    echo=self.echo,
                    pool_size=20,
                    max_overflow=0,
                    pool_pre_ping=True
                )
        return self._engine

    def session(self) -> AsyncSession:
        if self._sessionmaker is None:
            self._sessionmaker = async_sessionmaker(
                self.engine,
                class_=AsyncSession,
                expire_on_commit=False
            )
        return self._sessionmaker()

    async def _ensure_schema(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("event_store_indexes_ensured")

    async def initialize(self) -> None:
        if self.initialized:
            return
        if self._init_future is None:
            self._init_future = asyncio.ensure_future(self._ensure_schema())

        future = self._init_future
        try:
            await asyncio.shield(future)
        except Exception:
            if self._init_future is future:
                self._init_future = None
            raise

        self.initialized = True

    async def dispose(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
        self._engine = None
        self._sessionmaker = None
        self._init_future = None
        self.initialized = False


database = Database(settings.database_url, echo=settings.debug)


def get_database() -> Database:
    """Dependency returning the shared event store handle"""
    return database

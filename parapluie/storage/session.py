"""Local store database session management."""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from parapluie.core.settings import get_settings
from parapluie.models import Base

IN_MEMORY_URLS = ("sqlite+aiosqlite://", "sqlite+aiosqlite:///:memory:")


def create_local_engine(url: str | None = None) -> AsyncEngine:
    """Create the async local store engine. Tables are created by init_local_store."""
    url = url or get_settings().local_store_url
    kwargs: dict = {"future": True}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        # One shared connection, otherwise every connection gets its own empty database
        if url in IN_MEMORY_URLS:
            kwargs["poolclass"] = StaticPool
    return create_async_engine(url, **kwargs)


async def init_local_store(engine: AsyncEngine) -> None:
    """Create the local store tables if they do not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def get_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create async session maker."""
    return async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)

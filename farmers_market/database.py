"""
Document store connection: one async engine per process, one session per
request.

Every entity table hangs off ``Base``; ``get_db`` owns the transaction, so
repositories only flush and the request either commits as a whole or not at
all.
"""
import logging
from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from farmers_market.config import Settings, settings
from farmers_market.middleware import install_query_counter

logger = logging.getLogger(__name__)


def engine_options(config: Settings) -> dict[str, Any]:
    """Keyword arguments for ``create_async_engine`` derived from *config*."""
    options: dict[str, Any] = {"echo": config.DEBUG, "pool_pre_ping": True}
    if make_url(config.DATABASE_URL).get_backend_name() != "sqlite":
        options.update(
            pool_size=config.DB_POOL_SIZE,
            max_overflow=config.DB_MAX_OVERFLOW,
            pool_recycle=config.DB_POOL_RECYCLE_SECONDS,
        )
    return options


# Module-level engine; tests swap the session factory through ``get_db``.
engine = create_async_engine(settings.DATABASE_URL, **engine_options(settings))

install_query_counter(engine)

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


async def get_db():
    """Yield a request-scoped session; commit on success, roll back on any error."""
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            logger.debug("Rolling back request transaction")
            await session.rollback()
            raise


async def create_tables() -> None:
    """Create any missing tables for the registered models."""
    import farmers_market.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

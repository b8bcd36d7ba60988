"""Process-wide async engine and session factory.

Both are built on first use from :func:`load_database_settings` and kept
for the life of the process; the server disposes them on shutdown.  Every
request then opens its own ``AsyncSession`` from the shared factory.
"""

import logging

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from votebot_db.config import DatabaseSettings, load_database_settings

logger = logging.getLogger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine(settings: DatabaseSettings | None = None) -> AsyncEngine:
    """Return the shared engine, creating it on the first call.

    ``settings`` only matters on that first call; later calls return the
    engine that already exists.
    """
    global _engine
    if _engine is None:
        settings = settings or load_database_settings()
        _engine = create_async_engine(
            settings.url,
            echo=settings.echo,
            pool_size=settings.pool_size,
            max_overflow=settings.max_overflow,
            pool_recycle=settings.pool_recycle,
            # Idle connections may have been closed server-side
            pool_pre_ping=True,
        )
        logger.info(
            "Database engine created for %s",
            make_url(settings.url).render_as_string(hide_password=True),
        )
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the shared session factory.

    Sessions keep their objects usable after commit, since the stores hand
    pydantic copies back to the engine after the request's transaction.
    """
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(bind=get_engine(), expire_on_commit=False)
    return _session_factory


async def dispose_engine() -> None:
    """Close every pooled connection and forget the engine."""
    global _engine, _session_factory
    if _engine is None:
        return
    await _engine.dispose()
    _engine = None
    _session_factory = None
    logger.info("Database engine disposed")

"""FastAPI dependency injection — provides DB sessions, stores, engine and chains.

Each request that touches the database gets a fresh ``AsyncSession`` via
``get_db()``.  The session is committed on success and rolled back on error,
matching the SDK convention where stores call ``flush()`` but never
``commit()``.
"""

from typing import AsyncGenerator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from votebot_chains.catalog import ChainStore
from votebot_chains.engine import ConversationEngine
from votebot_chains.interfaces import Stores
from votebot_db.engine import get_session_factory
from votebot_db.repository import build_stores


# ------------------------------------------------------------------
# Database session (the transaction boundary)
# ------------------------------------------------------------------

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async DB session; commit on success, rollback on error."""
    factory = get_session_factory()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_stores(db: AsyncSession = Depends(get_db)) -> Stores:
    """SQL stores bound to this request's session."""
    return build_stores(db)


# ------------------------------------------------------------------
# Engine & chain store, stashed on app.state during lifespan
# ------------------------------------------------------------------

def get_engine(request: Request) -> ConversationEngine:
    """Return the ConversationEngine singleton from ``app.state``."""
    return request.app.state.engine


def get_store(request: Request) -> ChainStore:
    """Return the ChainStore singleton from ``app.state``."""
    return request.app.state.store

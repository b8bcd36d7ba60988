"""Database settings read from the environment.

The connection URL comes from ``DATABASE_URL`` when set, otherwise it is
assembled from ``PG_HOST`` / ``PG_PORT`` / ``PG_USER`` / ``PG_PASSWORD`` /
``PG_DATABASE`` (the docker-compose style).  Plain ``postgresql://`` URLs
are rewritten to the asyncpg driver.
"""

import os
from dataclasses import dataclass

_ASYNC_SCHEME = "postgresql+asyncpg://"


@dataclass(frozen=True)
class DatabaseSettings:
    """Connection and pool parameters for the async engine."""

    url: str
    pool_size: int = 5
    max_overflow: int = 10
    # Seconds before a pooled connection is recycled
    pool_recycle: int = 1800
    echo: bool = False


def _url_from_parts() -> str:
    host = os.getenv("PG_HOST", "localhost")
    port = os.getenv("PG_PORT", "5432")
    user = os.getenv("PG_USER", "votebot")
    password = os.getenv("PG_PASSWORD", "votebot")
    database = os.getenv("PG_DATABASE", "votebot")
    return f"postgresql://{user}:{password}@{host}:{port}/{database}"


def get_async_url() -> str:
    """Connection URL with the asyncpg driver selected."""
    url = os.getenv("DATABASE_URL") or _url_from_parts()
    for scheme in ("postgresql://", "postgres://"):
        if url.startswith(scheme):
            return _ASYNC_SCHEME + url[len(scheme):]
    return url


def load_database_settings() -> DatabaseSettings:
    """Build :class:`DatabaseSettings` from ``DATABASE_URL`` / ``PG_*``."""
    return DatabaseSettings(
        url=get_async_url(),
        pool_size=int(os.getenv("PG_POOL_SIZE", "5")),
        max_overflow=int(os.getenv("PG_MAX_OVERFLOW", "10")),
        pool_recycle=int(os.getenv("PG_POOL_RECYCLE", "1800")),
        echo=os.getenv("PG_ECHO", "").strip().lower() in ("1", "true", "yes"),
    )

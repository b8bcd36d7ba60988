"""FastAPI application for the SMS voter-registration bot.

``create_app()`` wires together:

  - a lifespan that loads and validates the chains, opens the zip lookup
    client and builds the single ``ConversationEngine`` of the process
  - CORS, the exception handlers of :mod:`votebot_server.errors` and the
    ``/api/v1`` routes
  - ``/health``, which checks the database and reports the loaded chains

Run it with ``votebot-server`` or ``uvicorn votebot_server.app:app``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from votebot_chains.catalog import ChainStore
from votebot_chains.engine import ConversationEngine
from votebot_chains.lookup import ZippopotamLookup
from votebot_db.engine import dispose_engine, get_engine

from votebot_server.config import ServerSettings, load_settings
from votebot_server.errors import install_error_handlers
from votebot_server.routes import register_routes

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build the chain store, lookup and engine; release them on shutdown.

    A chain that breaks an authoring contract raises here, so the server
    refuses to start instead of failing mid-conversation.
    """
    settings: ServerSettings = app.state.settings

    store = ChainStore(settings.chains_dir)
    store.load()

    lookup: ZippopotamLookup | None = None
    if settings.zip_lookup_enabled:
        lookup = ZippopotamLookup()
    else:
        logger.warning("Zip lookup disabled; zip codes are accepted without checking")

    app.state.store = store
    app.state.engine = ConversationEngine(store, lookup=lookup)
    logger.info("Votebot server ready with chains: %s", ", ".join(store.chain_names()))
    try:
        yield
    finally:
        if lookup is not None:
            await lookup.aclose()
        await dispose_engine()


def create_app(settings: ServerSettings | None = None) -> FastAPI:
    """Build the application.  ``settings`` defaults to the environment."""
    settings = settings or load_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = FastAPI(
        title="Votebot API Server",
        description="SMS webhook and conversation API for the voter-registration bot",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_error_handlers(app)

    @app.get("/health")
    async def health(request: Request) -> dict:
        """Readiness probe: database reachable and chains loaded."""
        store: ChainStore | None = getattr(request.app.state, "store", None)
        chains = store.chain_names() if store is not None else []
        try:
            async with get_engine().connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception as exc:
            logger.error("Health check failed: %s", exc)
            return {"status": "error", "detail": str(exc), "chains": chains}
        return {"status": "ok", "chains": chains}

    register_routes(app)
    return app


# ASGI entry for ``uvicorn votebot_server.app:app``
app = create_app()


def cli() -> None:
    """``votebot-server`` console script."""
    import uvicorn

    settings = load_settings()
    uvicorn.run(
        "votebot_server.app:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )

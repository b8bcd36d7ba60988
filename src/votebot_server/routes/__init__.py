"""Route registration — mounts all routers under ``/api/v1``."""

from fastapi import FastAPI

from votebot_server.routes.chains import router as chains_router
from votebot_server.routes.conversations import router as conversations_router
from votebot_server.routes.receipts import router as receipts_router

API_PREFIX = "/api/v1"


def register_routes(app: FastAPI) -> None:
    """Include all sub-routers under the versioned API prefix."""
    app.include_router(conversations_router, prefix=API_PREFIX)
    app.include_router(chains_router, prefix=API_PREFIX)
    app.include_router(receipts_router, prefix=API_PREFIX)

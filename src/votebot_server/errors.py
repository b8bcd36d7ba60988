"""Exception handlers — turn SDK exceptions into HTTP responses.

Routes only handle the happy path.  Failures surface as exceptions and
are mapped here, in one place:

  - ``ValueError`` from the SDK / stores: status picked from the message
    ("not found" → 404, "already exists" → 409, otherwise 400)
  - ``ConfigurationError``: a broken chain, 500
  - ``TransportError``: the database or lookup service failed, 503
  - anything else: 500 with the traceback in the log

Clients only ever see a short generic ``detail``; ids, usernames and
chain internals stay in the server log.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from votebot_chains.errors import ConfigurationError, TransportError

logger = logging.getLogger(__name__)

# (substring of the lower-cased message, status); first match wins
_VALUE_ERROR_PATTERNS: list[tuple[str, int]] = [
    ("already exists", 409),
    ("not found", 404),
]

_DETAILS: dict[int, str] = {
    400: "Invalid request",
    404: "Resource not found",
    409: "Resource already exists",
    500: "Internal server error",
    503: "Service temporarily unavailable",
}


def _error(status: int) -> JSONResponse:
    return JSONResponse(status_code=status, content={"detail": _DETAILS[status]})


async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    message = str(exc)
    lowered = message.lower()
    status = next((code for pattern, code in _VALUE_ERROR_PATTERNS if pattern in lowered), 400)
    logger.warning("%s %s -> %d: %s", request.method, request.url.path, status, message)
    return _error(status)


async def configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    """A chain references something that does not exist."""
    logger.error("Chain configuration error on %s %s: %s", request.method, request.url.path, exc)
    return _error(500)


async def transport_error_handler(request: Request, exc: TransportError) -> JSONResponse:
    logger.error("Collaborator failure on %s %s: %s", request.method, request.url.path, exc)
    return _error(503)


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error(500)


def install_error_handlers(app: FastAPI) -> None:
    """Register every handler above on ``app``."""
    app.add_exception_handler(ValueError, value_error_handler)
    app.add_exception_handler(ConfigurationError, configuration_error_handler)
    app.add_exception_handler(TransportError, transport_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)

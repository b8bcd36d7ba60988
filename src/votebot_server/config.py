"""Server configuration — reads settings from environment variables.

All settings have sensible defaults for local development.  In production
the values are typically overridden via env vars or a ``.env`` file.
"""

import os
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ServerSettings:
    """Immutable server configuration read from environment at startup."""

    # Network
    host: str = "0.0.0.0"
    port: int = 8080

    # CORS: comma-separated origins, or "*" for wide-open dev mode
    cors_origins: list[str] = field(default_factory=lambda: ["*"])

    # Chain directory (None → ChainStore default, the packaged chains/)
    chains_dir: str | None = None

    # Postal-code lookup; disabled means zip codes are accepted unchecked
    zip_lookup_enabled: bool = True

    # Logging
    log_level: str = "INFO"


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def load_settings() -> ServerSettings:
    """Build settings from ``SERVER_*`` environment variables."""
    raw_origins = os.getenv("SERVER_CORS_ORIGINS", "*")
    origins = [o.strip() for o in raw_origins.split(",") if o.strip()]

    return ServerSettings(
        host=os.getenv("SERVER_HOST", "0.0.0.0"),
        port=int(os.getenv("SERVER_PORT", "8080")),
        cors_origins=origins,
        chains_dir=os.getenv("SERVER_CHAINS_DIR") or None,
        zip_lookup_enabled=_flag("SERVER_ZIP_LOOKUP", "true"),
        log_level=os.getenv("SERVER_LOG_LEVEL", "INFO").upper(),
    )

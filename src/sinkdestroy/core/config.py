from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from decouple import config

ENVIRONMENT: Final[str] = config("ENVIRONMENT", default="production")
DEBUG: Final[bool] = ENVIRONMENT != "production"
LOG_LEVEL: Final[str] = config(
    "LOG_LEVEL", default="DEBUG" if DEBUG else "INFO"
).upper()

APP_VERSION: Final[str] = config("APP_VERSION", default="dev")

# --- Game server ---
SERVER_HOST: Final[str] = config("SERVER_HOST", default="brad-home.ch")
SERVER_PORT: Final[int] = config("SERVER_PORT", default=50003, cast=int)
SERVER_URL: Final[str] = config(
    "SERVER_URL", default=f"http://{SERVER_HOST}:{SERVER_PORT}/"
)

# --- Timeouts (seconds) ---
HTTP_TIMEOUT: Final[float] = config("HTTP_TIMEOUT", default=60.0, cast=float)
CONNECT_TIMEOUT: Final[float] = config("CONNECT_TIMEOUT", default=5.0, cast=float)
LONG_POLL_TIMEOUT: Final[float] = config(
    "LONG_POLL_TIMEOUT", default=30.0, cast=float
)

# --- Retry policy ---
POLLING_DELAY: Final[float] = config("POLLING_DELAY", default=1.0, cast=float)
MAX_RETRIES: Final[int] = config("MAX_RETRIES", default=3, cast=int)


@dataclass(frozen=True)
class ControllerSettings:
    """Timing knobs for one game controller."""

    long_poll_timeout: float = LONG_POLL_TIMEOUT
    polling_delay: float = POLLING_DELAY
    max_retries: int = MAX_RETRIES

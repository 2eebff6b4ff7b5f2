"""Runtime configuration models."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from .errors import ConfigError
from .validation import validate_fetch_constraints, validate_server_constraints

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
DEFAULT_REQUEST_TIMEOUT = 10.0
DEFAULT_MAX_BYTES = 10 * 1024 * 1024
DEFAULT_CHUNK_SIZE = 8192

DEFAULT_PORT = 3000
DEFAULT_RATE_LIMIT_POINTS = 50
DEFAULT_RATE_LIMIT_DURATION = 60.0
DEFAULT_SWEEP_INTERVAL = 300.0

SERVICE_NAME = "Email Extractor API"
PRODUCTION_ORIGINS = (
    "https://email-extractor-saas.onrender.com",
    "https://your-custom-domain.com",
)
DEVELOPMENT_ORIGINS = ("http://localhost:3000", "http://localhost:5500")


def browser_headers(user_agent: str = DEFAULT_USER_AGENT) -> dict[str, str]:
    """Request headers that look like a desktop browser."""
    return {
        "User-Agent": user_agent,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
        "Accept-Encoding": "gzip, deflate",
        "Connection": "keep-alive",
        "Upgrade-Insecure-Requests": "1",
        "Cache-Control": "no-cache",
    }


@dataclass(frozen=True)
class FetchConfig:
    """Limits applied to every page fetch."""

    timeout: float = DEFAULT_REQUEST_TIMEOUT
    max_bytes: int = DEFAULT_MAX_BYTES
    chunk_size: int = DEFAULT_CHUNK_SIZE
    user_agent: str = DEFAULT_USER_AGENT

    def __post_init__(self) -> None:
        validate_fetch_constraints(
            timeout=self.timeout,
            max_bytes=self.max_bytes,
            chunk_size=self.chunk_size,
        )


@dataclass(frozen=True)
class ServerSettings:
    """Validated settings for the HTTP API."""

    environment: str = "development"
    port: int = DEFAULT_PORT
    rate_limit_points: int = DEFAULT_RATE_LIMIT_POINTS
    rate_limit_duration: float = DEFAULT_RATE_LIMIT_DURATION
    sweep_interval: float = DEFAULT_SWEEP_INTERVAL
    allowed_origins: tuple[str, ...] = DEVELOPMENT_ORIGINS
    fetch: FetchConfig = field(default_factory=FetchConfig)

    def __post_init__(self) -> None:
        validate_server_constraints(
            port=self.port,
            rate_limit_points=self.rate_limit_points,
            rate_limit_duration=self.rate_limit_duration,
            sweep_interval=self.sweep_interval,
        )

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ServerSettings:
        """Build settings from environment variables."""
        env = os.environ if environ is None else environ
        environment = env.get("APP_ENV", "development")
        origins_raw = env.get("ALLOWED_ORIGINS")
        if origins_raw:
            origins = tuple(item.strip() for item in origins_raw.split(",") if item.strip())
        elif environment == "production":
            origins = PRODUCTION_ORIGINS
        else:
            origins = DEVELOPMENT_ORIGINS
        try:
            port = int(env.get("PORT", DEFAULT_PORT))
            points = int(env.get("RATE_LIMIT_POINTS", DEFAULT_RATE_LIMIT_POINTS))
            duration = float(env.get("RATE_LIMIT_DURATION", DEFAULT_RATE_LIMIT_DURATION))
        except ValueError as exc:
            raise ConfigError(f"Invalid numeric environment value: {exc}") from exc
        return cls(
            environment=environment,
            port=port,
            rate_limit_points=points,
            rate_limit_duration=duration,
            allowed_origins=origins,
        )

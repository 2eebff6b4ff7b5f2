"""HTTP API around the extraction pipeline."""

from __future__ import annotations

import logging
import math
import platform
import sys
import time
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from pydantic import BaseModel
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from . import __version__
from .config import SERVICE_NAME, ServerSettings
from .logging_utils import get_logger
from .models import ExtractionResult, Fetcher
from .pipeline import build_fetcher, extract
from .rate_limit import RateLimitStore
from .validation import is_internal_host, is_supported_url, normalize_target_url

STATIC_DIR = Path(__file__).parent / "static"
INDEX_HTML = STATIC_DIR / "index.html"
API_PREFIX = "/api/"

STATUS_BY_KIND = {
    "invalid_url": 400,
    "not_found": 404,
    "connection_refused": 400,
    "timeout": 408,
    "size_exceeded": 413,
    "http_error": 502,
    "network": 500,
}
FREE_TIER_NOTE = "Using simple extraction method on free tier"


class ExtractRequest(BaseModel):
    url: str | None = None
    method: str = "simple"


def _error(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content={"success": False, "error": message, **extra}
    )


def client_ip(request: Request) -> str:
    """Client address, honouring the first X-Forwarded-For hop."""
    forwarded = request.headers.get("x-forwarded-for", "")
    if forwarded.strip():
        return forwarded.split(",", maxsplit=1)[0].strip()
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Apply the application's rate-limit store to /api/ paths."""

    def __init__(
        self,
        app: Any,
        *,
        store: RateLimitStore,
        sweep_interval: float,
        clock: Callable[[], float],
        logger: logging.Logger,
    ) -> None:
        super().__init__(app)
        self.store = store
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._logger = logger
        self._last_sweep = clock()

    def _maybe_sweep(self) -> None:
        now = self._clock()
        if now - self._last_sweep < self.sweep_interval:
            return
        self._last_sweep = now
        evicted = self.store.sweep()
        if evicted:
            self._logger.debug("Evicted %d stale rate-limit entries", evicted)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if not request.url.path.startswith(API_PREFIX) or request.method == "OPTIONS":
            return await call_next(request)

        self._maybe_sweep()
        decision = self.store.hit(client_ip(request))
        if not decision.allowed:
            return _error(
                429,
                f"Rate limit exceeded. Please try again in {decision.retry_after} seconds.",
                retryAfter=decision.retry_after,
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(decision.limit)
        response.headers["X-RateLimit-Remaining"] = str(decision.remaining)
        response.headers["X-RateLimit-Reset"] = str(math.ceil(decision.reset_at))
        return response


def _result_response(
    result: ExtractionResult, *, failure_status: int | None = None
) -> JSONResponse:
    if result.success:
        return JSONResponse(content=result.to_dict())
    status = failure_status or STATUS_BY_KIND.get(result.error_kind or "network", 500)
    return _error(status, result.error or "Failed to extract emails")


def create_app(
    settings: ServerSettings | None = None,
    *,
    fetcher: Fetcher | None = None,
    rate_limiter: RateLimitStore | None = None,
    clock: Callable[[], float] = time.time,
    logger: logging.Logger | None = None,
) -> FastAPI:
    """Build the API with explicit, per-instance collaborators."""
    settings = settings or ServerSettings()
    log = logger or get_logger()
    page_fetcher = fetcher or build_fetcher(settings.fetch, logger=log)
    store = rate_limiter or RateLimitStore(
        limit=settings.rate_limit_points,
        window_seconds=settings.rate_limit_duration,
        clock=clock,
    )
    started_at = clock()

    app = FastAPI(title=SERVICE_NAME, version=__version__)
    app.state.settings = settings
    app.state.rate_limiter = store

    app.add_middleware(
        RateLimitMiddleware,
        store=store,
        sweep_interval=settings.sweep_interval,
        clock=clock,
        logger=log,
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next: RequestResponseEndpoint) -> Response:
        log.info("%s %s - %s", request.method, request.url.path, client_ip(request))
        return await call_next(request)

    # Registered last so it wraps everything, 429 responses included.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.allowed_origins),
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "Accept"],
    )

    def _resolve_target(payload: ExtractRequest | None) -> str | JSONResponse:
        raw = payload.url if payload else None
        if not raw or not raw.strip():
            return _error(400, "URL is required")
        target = normalize_target_url(raw)
        if not is_supported_url(target):
            return _error(400, "Invalid URL format")
        return target

    @app.post("/api/extract")
    def extract_endpoint(payload: ExtractRequest | None = None) -> JSONResponse:
        target = _resolve_target(payload)
        if isinstance(target, JSONResponse):
            return target
        if is_internal_host(target):
            return _error(400, "Internal domains are not allowed")
        log.info("Received extraction request for: %s", target)
        result = extract(target, fetcher=page_fetcher, logger=log, note=FREE_TIER_NOTE)
        return _result_response(result)

    @app.post("/api/extract-simple")
    def extract_simple_endpoint(payload: ExtractRequest | None = None) -> JSONResponse:
        target = _resolve_target(payload)
        if isinstance(target, JSONResponse):
            return target
        result = extract(target, fetcher=page_fetcher, logger=log)
        return _result_response(result, failure_status=500)

    @app.get("/api/health")
    def health() -> dict[str, Any]:
        return {
            "status": "healthy",
            "service": SERVICE_NAME,
            "version": __version__,
            "environment": settings.environment,
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "uptime": round(clock() - started_at, 3),
        }

    @app.get("/api/info")
    def info() -> dict[str, Any]:
        return {
            "service": SERVICE_NAME,
            "version": __version__,
            "pythonVersion": platform.python_version(),
            "platform": sys.platform,
            "rateLimit": {
                "points": store.limit,
                "duration": f"{store.window_seconds:g} seconds",
            },
        }

    @app.api_route("/api/{path:path}", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
    def api_not_found(path: str) -> JSONResponse:
        return _error(404, "API endpoint not found")

    @app.get("/")
    def index() -> FileResponse:
        return FileResponse(INDEX_HTML)

    @app.get("/{path:path}")
    def spa_fallback(path: str) -> FileResponse:
        return FileResponse(INDEX_HTML)

    return app

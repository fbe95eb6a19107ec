"""
api/main.py -- FastAPI application entry point for MediaVault.

Run with:      uvicorn asgi:app --reload
               python main.py            (binds HOST:PORT from settings)

Middleware stack (outermost to innermost):
  1. CORSMiddleware   -- adds CORS headers for allowed browser origins
  2. SlowAPIMiddleware -- enforces per-route rate limits from api.limiter

Lifespan builds every component once from the Settings object and stores it
on app.state (settings, user_store, media_store, ledger). Request handlers
read configuration from there, never from the environment.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import SQLAlchemyError

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse, describe_validation_errors
from api.routes.v1.auth import router as auth_router
from api.routes.v1.media import router as media_router
from auth.ledger import TokenLedger
from auth.store import UserStore
from auth.tokens import TokenCodec
from core.config import get_settings
from core.errors import MediaVaultError
from media.store import MediaStore

__version__ = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("mediavault.api")

# ---------------------------------------------------------------------------
# Background token sweep
# ---------------------------------------------------------------------------


async def _purge_loop(app: FastAPI, interval_seconds: int) -> None:
    """Delete expired session tokens every interval_seconds.

    This is the TTL sweep the ledger relies on; the auth gate still
    re-checks expiry because a row can outlive its expiry until the next pass.
    CancelledError from task.cancel() during shutdown propagates out of
    asyncio.sleep and unwinds the coroutine cleanly.
    """
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await asyncio.to_thread(app.state.ledger.purge_expired)
        except Exception:
            # Any failure must not end the task; the next pass retries.
            logger.exception("Token purge failed; retrying next interval")


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build stores and the token ledger on startup; dispose them on shutdown.

    Startup order matters: stores first, the ledger (which wraps the user
    store) second, the purge task (which uses the ledger) last.
    """
    settings = get_settings()
    logger.info("MediaVault API starting up")
    app.state.settings = settings
    app.state.user_store = UserStore(settings.connection_string)
    app.state.media_store = MediaStore(settings.connection_string)
    app.state.ledger = TokenLedger(
        app.state.user_store,
        TokenCodec(settings.secret_key),
        ttl_hours=settings.token_ttl_hours,
    )
    logger.info("Stores initialized (auth_configured=%s)", settings.auth_configured)
    app.state.purge_task = asyncio.create_task(_purge_loop(app, settings.token_purge_interval_seconds))

    yield

    app.state.purge_task.cancel()
    app.state.media_store.close()
    app.state.user_store.close()
    logger.info("MediaVault API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="MediaVault API",
    description="Personal media tracking: record watched and read media, filter and page through it.",
    version=__version__,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_methods=["GET", "POST", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
app.include_router(media_router, prefix="/api/v1", tags=["Media"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


def _error_response(status_code: int, code: str, message: str, detail: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump(),
    )


@app.exception_handler(MediaVaultError)
async def mediavault_error_handler(request: Request, exc: MediaVaultError) -> JSONResponse:
    """Translate the core error taxonomy into HTTP responses.

    Server-side failures are logged with their real message and answered with
    a generic one; client errors are returned verbatim.
    """
    if not exc.exposes_detail:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    detail = getattr(exc, "field", None) if exc.exposes_detail else None
    return _error_response(exc.status_code, exc.code, exc.client_message, detail)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = _error_response(429, "rate_limited", "Too many requests.", str(exc))
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 naming the first field that failed body or query validation."""
    field, message = describe_validation_errors(exc.errors())
    return _error_response(400, "validation_error", message, field or None)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for all FastAPI/Starlette HTTP exceptions."""
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})
    return _error_response(exc.status_code, f"http_{exc.status_code}", str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is written to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_response(500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable
# regardless of router registration state. No auth and no rate limit.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return API liveness, version, and database reachability."""
    try:
        request.app.state.user_store.ping()
        database = "ok"
    except SQLAlchemyError:
        logger.exception("Health check could not reach the database")
        database = "error"
    status = "ok" if database == "ok" else "degraded"
    return HealthResponse(status=status, version=__version__, components={"app": "ok", "database": database})

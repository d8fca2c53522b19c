"""
api/main.py -- FastAPI application entry point for TenantNotes.

This is the request dispatcher around the policy core: it terminates HTTP,
parses bodies, verifies Bearer tokens, calls core.policy / core.quota through
api.guards, performs the storage operation, and renders every failure in one
error envelope.

Run with:      uvicorn api.main:app --reload

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for allowed browser origins
  3. SlowAPIMiddleware     -- enforces per-route rate limits from api.limiter

Lifespan builds the process-wide collaborators once (settings, TokenCodec,
stores) and closes them symmetrically on shutdown.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import OperationalError
from starlette.exceptions import HTTPException

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from api.routes.v1.notes import router as notes_router
from api.routes.v1.tenants import router as tenants_router
from auth.provisioning import seed_demo
from auth.store import UserStore
from auth.tokens import TokenCodec
from core.config import get_settings
from core.errors import ServiceError, StorageUnavailableError
from notes.store import NoteStore

API_VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("tenantnotes.api")

_settings = get_settings()


# ---------------------------------------------------------------------------
# Lifespan -- modern startup / shutdown pattern (replaces @app.on_event)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Everything before yield runs on startup; everything after yield runs on
    shutdown.

    Startup order matters:
      1. TokenCodec -- built from the validated settings exactly once; every
         request shares this immutable instance.
      2. Stores -- the user store must exist before the optional demo seed.
    """
    settings = get_settings()
    logger.info("TenantNotes API starting up")
    if settings.using_dev_secret:
        logger.warning("Tokens are signed with the development SECRET_KEY -- do not expose this instance")
    app.state.token_codec = TokenCodec.from_settings(settings)
    app.state.user_store = UserStore(settings.auth_database_url, timeout=settings.db_timeout_seconds)
    app.state.notes = NoteStore(settings.notes_database_url, timeout=settings.db_timeout_seconds)
    logger.info("Stores initialized")
    if settings.seed_demo_data:
        seed_demo(app.state.user_store)

    yield

    app.state.notes.close()
    app.state.user_store.close()
    logger.info("TenantNotes API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="TenantNotes API",
    description="Multi-tenant notes with role-scoped access and plan-based quotas.",
    version=API_VERSION,
    lifespan=lifespan,
    # Schema browsing is a development convenience only.
    docs_url="/docs" if _settings.debug else None,
    redoc_url=None,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# Register in the order you want the request to encounter them:
# TrustedHost -> CORS -> SlowAPI.
# ---------------------------------------------------------------------------

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=_settings.allowed_hosts,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
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
app.include_router(tenants_router, prefix="/api/v1", tags=["Tenants"])
app.include_router(notes_router, prefix="/api/v1", tags=["Notes"])


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


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Render a domain failure (401/402/403/404/409/400/503) with its own code."""
    response = _error_response(exc.status_code, exc.code, exc.message, exc.detail)
    if isinstance(exc, StorageUnavailableError):
        response.headers["Retry-After"] = str(exc.retry_after)
    return response


@app.exception_handler(OperationalError)
async def storage_error_handler(request: Request, exc: OperationalError) -> JSONResponse:
    """Storage timed out or is unreachable: tell the client to retry, never retry here."""
    logger.error("Storage unavailable on %s %s: %s", request.method, request.url.path, exc.orig)
    return await service_error_handler(request, StorageUnavailableError())


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = _error_response(429, "rate_limited", "Too many requests.", str(exc))
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed JSON, missing fields and bad path parameters are all a 400."""
    # Locations and messages only, never input values.
    detail = "; ".join(f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in exc.errors())
    return _error_response(400, "validation_error", "Request validation failed.", detail)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Structured error for framework-raised HTTP errors (unknown route, wrong method)."""
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})
    return _error_response(exc.status_code, f"http_{exc.status_code}", str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is logged server-side only, never sent to the client.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_response(500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable
# regardless of router registration state. No auth, no rate limit.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", tags=["Health"])
def health(request: Request) -> JSONResponse:
    """Return liveness plus a database round-trip for each store."""
    components = {"app": "ok", "database": "ok"}
    try:
        if not (request.app.state.user_store.ping() and request.app.state.notes.ping()):
            components["database"] = "error"
    except OperationalError:
        logger.warning("Health check could not reach storage")
        components["database"] = "error"
    healthy = components["database"] == "ok"
    body = HealthResponse(status="healthy" if healthy else "degraded", version=API_VERSION, components=components)
    return JSONResponse(status_code=200 if healthy else 503, content=body.model_dump())

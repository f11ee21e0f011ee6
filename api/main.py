"""
api/main.py -- FastAPI application entry point for the News API.

Run with:  python main.py
           uvicorn api.main:app --reload

Middleware:
  TrustedHostMiddleware -- rejects requests with unexpected Host headers
  CORSMiddleware        -- adds CORS headers for allowed browser origins
  access_log            -- one log line per request

Rate limiting is per route, through the @limiter.limit decorator (see
api/limiter.py). There are no app-wide limits, so SlowAPIMiddleware is not
mounted.

Lifespan builds the shared context once -- settings, store, token service --
and parks it on app.state, where handlers and dependencies read it from the
request. An unreachable database stops startup.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse, HelloResponse
from api.routes.auth import router as auth_router
from api.routes.news import router as news_router
from auth.tokens import TokenService
from core.config import get_settings
from store import StoreError, create_store

__version__ = "1.0.0"

# Fails here, before the app exists, when JWT_SECRET is missing.
_settings = get_settings()

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=_settings.log_level.upper(),
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("newsapi.api")


# ---------------------------------------------------------------------------
# Lifespan -- startup / shutdown
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the shared context on startup and release it on shutdown.

    Startup order matters:
      1. Store first -- tables are created and the backend is pinged, so an
         unreachable database stops the process before it accepts traffic.
      2. Token service second -- only needs the secret from settings.
    """
    settings = get_settings()
    logger.info(
        "News API starting up (storage=%s, auth_required=%s)",
        settings.storage_backend,
        settings.auth_required,
    )
    try:
        store = create_store(settings)
        store.ping()
    except StoreError:
        logger.critical("Store unavailable -- refusing to start", exc_info=True)
        raise

    app.state.settings = settings
    app.state.store = store
    app.state.tokens = TokenService(settings.jwt_secret, settings.token_expire_seconds)
    logger.info("Store initialized (%s)", type(store).__name__)

    yield

    app.state.store.close()
    logger.info("News API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="News API",
    description="Minimal authenticated CRUD service for news articles.",
    version=__version__,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# Each add_middleware call wraps the ones before it, so the access log runs
# first and TrustedHost last before routing.
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

# slowapi looks for app.state.limiter by convention.
app.state.limiter = limiter


# ---------------------------------------------------------------------------
# Access log
# ---------------------------------------------------------------------------


@app.middleware("http")
async def access_log(request: Request, call_next):
    """One line per request: method, path, status, latency and the caller.

    The caller is the authenticated user id when the auth gate ran and
    succeeded, otherwise the client address.
    """
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    caller = getattr(request.state, "user_id", None)
    if caller is None:
        caller = request.client.host if request.client else "-"
    logger.info(
        "%s %s -> %d in %.1fms [%s]",
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
        caller,
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, tags=["Auth"])
app.include_router(news_router, tags=["News"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# Every failure leaves the service as {"error": {code, message, detail}}.
# Backend and exception text goes to the log, never into the body.
# ---------------------------------------------------------------------------


def _error(
    status_code: int,
    code: str,
    message: str,
    detail: Optional[str] = None,
    headers: Optional[dict] = None,
) -> JSONResponse:
    body = ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail))
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=headers)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """429 with Retry-After. Only /login is limited."""
    logger.warning("Rate limit hit on %s from %s", request.url.path, get_remote_address(request))
    retry_after = int(getattr(exc, "retry_after", 60))
    return _error(
        429,
        "rate_limited",
        "Too many login attempts, try again later.",
        detail=str(exc.detail),
        headers={"Retry-After": str(retry_after)},
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """400 for malformed JSON and for bodies that fail the request models.

    FastAPI's default is 422; the News API reports every bad body as 400.
    """
    fields = sorted({".".join(str(p) for p in err.get("loc", ())[1:]) or "body" for err in exc.errors()})
    return _error(400, "validation_error", "Invalid request body.", detail=", ".join(fields))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Wrap HTTPException in the error envelope, keeping its headers.

    Handlers and the auth gate pass detail=ErrorDetail(...).model_dump(); that
    dict becomes the error field as-is. Framework errors (unknown route, wrong
    method) carry a plain string and get a generic http_<status> code.
    """
    headers = getattr(exc, "headers", None)
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=headers)
    return _error(exc.status_code, f"http_{exc.status_code}", str(exc.detail), headers=headers)


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    logger.error("Store error on %s %s: %s", request.method, request.url.path, exc)
    return _error(500, "store_error", "The data store could not complete the request.")


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled %s on %s %s", type(exc).__name__, request.method, request.url.path)
    return _error(500, "internal_error", "Internal server error.")


# ---------------------------------------------------------------------------
# Health and greeting endpoints
#
# Defined directly in main.py (not in a router) so they are always reachable.
# No auth and no rate limit -- load balancers must not be throttled.
# ---------------------------------------------------------------------------


@app.get("/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return liveness, version and store reachability."""
    store_status = "ok"
    try:
        request.app.state.store.ping()
    except StoreError:
        store_status = "error"
    return HealthResponse(version=__version__, components={"app": "ok", "store": store_status})


@app.get("/hello", tags=["Health"])
def hello(name: Optional[str] = None) -> HelloResponse:
    """Greet name. 400 when name is missing or blank."""
    if not name or not name.strip():
        raise HTTPException(
            status_code=400,
            detail=ErrorDetail(code="validation_error", message="Name is required").model_dump(),
        )
    return HelloResponse(message="Hello, World!", name=name)

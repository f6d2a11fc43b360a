"""
api/main.py -- FastAPI application entry point for CredStore.

Exposes the auth core (register, login, profile, user list) over HTTP.

Run with:  python main.py serve
           uvicorn api.main:app --reload

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for allowed browser origins

Lifespan builds the process-wide state exactly once (the pooled UserStore,
the TokenIssuer and the AuthService that wraps them) and tears it down
symmetrically on shutdown. Nothing is created lazily on first request.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.models import ErrorResponse, HealthResponse, ServiceInfoResponse
from api.routes.auth import router as auth_router
from auth.errors import (
    AuthError,
    EmailTakenError,
    InvalidCredentialsError,
    InvalidEmailError,
    InvalidUsernameError,
    MissingFieldsError,
    StorageUnavailableError,
    TokenInvalidError,
    TokenMissingError,
    UsernameTakenError,
    UserNotFoundError,
    WeakPasswordError,
)
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import TokenIssuer
from core.config import get_settings

VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("credstore.api")

_settings = get_settings()

# ---------------------------------------------------------------------------
# Error -> HTTP status
#
# Ordered most-specific first: TokenMissingError subclasses TokenInvalidError
# and must win the lookup. Anything not listed is a 500.
# ---------------------------------------------------------------------------

_STATUS_BY_ERROR: tuple[tuple[type[AuthError], int], ...] = (
    (MissingFieldsError, 400),
    (InvalidEmailError, 400),
    (InvalidUsernameError, 400),
    (WeakPasswordError, 400),
    (EmailTakenError, 400),
    (UsernameTakenError, 400),
    (InvalidCredentialsError, 401),
    (TokenMissingError, 401),
    (TokenInvalidError, 403),
    (UserNotFoundError, 404),
    (StorageUnavailableError, 500),
)


def status_for(exc: AuthError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 500


def _error(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(message=message, code=code).model_dump(),
    )


# ---------------------------------------------------------------------------
# Lifespan -- modern startup / shutdown pattern
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the store, token issuer and service on startup; dispose the pool on shutdown.

    Startup fails loudly if the database is unreachable -- StorageUnavailableError
    from the schema bootstrap propagates and the server never starts serving.
    """
    logger.info("CredStore API starting up")
    store = UserStore(
        _settings.database_url,
        pool_size=_settings.db_pool_size,
        pool_timeout=_settings.db_pool_timeout,
    )
    tokens = TokenIssuer(_settings.secret_key, expire_seconds=_settings.token_expire_seconds)
    app.state.user_store = store
    app.state.auth_service = AuthService(store, tokens)
    logger.info("Auth initialized (pool_size=%d)", _settings.db_pool_size)

    yield

    app.state.user_store.close()
    logger.info("CredStore API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="CredStore API",
    description="Username/password registration, login and profile management.",
    version=VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
# ---------------------------------------------------------------------------

app.add_middleware(TrustedHostMiddleware, allowed_hosts=_settings.allowed_hosts)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_methods=["GET", "POST", "PUT", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)


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

app.include_router(auth_router, tags=["Auth"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Map every domain error to its status code.

    StorageUnavailableError has already been logged with its cause by the
    store; its message is the generic "Internal server error".
    """
    return _error(status_for(exc), exc.code, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 when the body is not a JSON object or a field has the wrong type or length."""
    logger.debug("Request validation failed on %s: %s", request.url.path, exc.errors())
    return _error(400, "validation_error", "Request validation failed")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Wrap framework HTTP errors (unknown route, wrong method) in the envelope."""
    if exc.status_code == 404:
        return _error(404, "not_found", f"Route not found: {request.method} {request.url.path}")
    return _error(exc.status_code, f"http_{exc.status_code}", str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is written to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error(500, "internal_error", "Internal server error")


# ---------------------------------------------------------------------------
# Health and service banner
#
# Defined directly in main.py (not in a router) so they are always reachable
# regardless of router registration state.
# ---------------------------------------------------------------------------


@app.get("/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return liveness, timestamp, version and database reachability. Always 200."""
    store = getattr(request.app.state, "user_store", None)
    database = "ok" if store is not None and store.ping() else "error"
    return HealthResponse(
        timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        version=VERSION,
        components={"database": database},
    )


@app.get("/", tags=["Health"])
def service_info() -> ServiceInfoResponse:
    """List the public surface of the API."""
    return ServiceInfoResponse(
        message="Authentication API is running",
        version=VERSION,
        endpoints=[
            "POST /auth/register",
            "POST /auth/login",
            "GET /auth/profile",
            "PUT /auth/profile",
            "GET /auth/users",
            "GET /health",
        ],
    )

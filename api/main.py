"""
api/main.py -- FastAPI application entry point for Taskboard.

Run with:      python main.py
               uvicorn asgi:app --reload

Middleware stack (registration order):
  1. TrustedHostMiddleware    -- rejects requests with unexpected Host headers
  2. CORSMiddleware           -- adds CORS headers for allowed browser origins
  3. SlowAPIMiddleware        -- enforces per-route rate limits from api.limiter
  4. SessionCarrierMiddleware -- opens the encrypted session cookie into the
                                 request scope and re-seals it on the way out

Lifespan opens the account and task stores on startup and closes them on
shutdown.
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
from fastapi.responses import HTMLResponse, JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.tasks import router as tasks_router
from api.routes.users import router as users_router
from auth.session import SessionCarrierMiddleware, SessionCodec
from auth.store import AccountStore
from core.config import get_settings
from core.errors import AppError
from tasks.store import TaskStore

__version__ = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("taskboard.api")

settings = get_settings()


def open_stores() -> tuple[AccountStore, TaskStore]:
    """Open both stores at the configured URLs (or their default SQLite files)."""
    account_store = AccountStore(settings.auth_db_url) if settings.auth_db_url else AccountStore()
    task_store = TaskStore(settings.tasks_db_url) if settings.tasks_db_url else TaskStore()
    return account_store, task_store


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the stores before the first request and close them at shutdown."""
    logger.info("Taskboard API starting up")
    app.state.account_store, app.state.task_store = open_stores()
    logger.info("Stores initialized")

    yield

    app.state.account_store.close()
    app.state.task_store.close()
    logger.info("Taskboard API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Taskboard API",
    description="Task list with accounts, token-checked login and a session-held favorite task.",
    version=__version__,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
# ---------------------------------------------------------------------------

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=settings.allowed_hosts,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost", "http://localhost:3000", "http://127.0.0.1"],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    expose_headers=["X-Auth-Token"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# The codec gets the key here; auth/session.py never reads configuration.
app.add_middleware(
    SessionCarrierMiddleware,
    codec=SessionCodec(settings.secret_key, settings.session_ttl_seconds),
    cookie_name=settings.session_cookie_name,
    https_only=settings.secure_cookies,
)

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

app.include_router(users_router, tags=["Users"])
app.include_router(tasks_router, tags=["Tasks"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


def _error(status_code: int, code: str, message: str, detail: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump(),
    )


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render any AppError with its own status, code and message."""
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.detail)
    return _error(exc.status_code, exc.code, exc.message, exc.detail)


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Persistence failures are not retried; the error text goes back to the client."""
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return _error(500, "database_error", "Database operation failed.", str(exc))


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded.

    slowapi stores the wait time on the exception as exc.retry_after (int seconds).
    """
    retry_after = int(getattr(exc, "retry_after", 60))
    response = _error(429, "rate_limited", "Too many requests.", str(exc))
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Path and query parameters that fail FastAPI's own validation."""
    return _error(422, "validation_error", "Request validation failed.", str(exc.errors()))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Starlette-level errors (404 for unknown paths, 405, ...)."""
    return _error(exc.status_code, f"http_{exc.status_code}", str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unexpected server errors. The traceback goes to the log only."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error(500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Welcome page and health endpoint
#
# Defined directly in main.py (not in a router) so they are always reachable.
# No rate limit: health checks must not be throttled.
# ---------------------------------------------------------------------------

_WELCOME_HTML = """<!DOCTYPE html>
<html>
  <head><title>Taskboard</title></head>
  <body>
    <h1>Taskboard</h1>
    <p>Register at <code>POST /users/register</code>, log in at <code>POST /login</code>,
    then send <code>Authorization: Bearer &lt;token&gt;</code> with the session cookie.</p>
    <p>API documentation: <a href="/docs">/docs</a></p>
  </body>
</html>
"""


@app.get("/", response_class=HTMLResponse, include_in_schema=False)
async def index() -> HTMLResponse:
    return HTMLResponse(_WELCOME_HTML)


@app.get("/health", tags=["Health"])
async def health() -> HealthResponse:
    """Return API liveness and current version."""
    return HealthResponse(version=__version__)

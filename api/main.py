"""
api/main.py -- FastAPI application entry point for Pharmabolt.

Run with:  uvicorn asgi:app --reload
           pharmabolt            (console script, listens on PORT)

Middleware stack (outermost to innermost):
  1. CORSMiddleware  -- adds CORS headers for allowed browser origins
  2. log_requests    -- one log line per request with status and latency

Lifespan builds the process-wide collaborators once (database engine and
token service) and stores them on app.state; dependencies read them from
there, which is also how tests swap in their own.

Error boundary: every handler raises core.errors.ApiError subclasses and
this module alone decides how each one looks on the wire.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.models import ErrorDetail, ErrorResponse, HealthResponse, ValidationErrorResponse
from api.routes.auth import router as auth_router
from api.routes.drugs import router as drugs_router
from api.routes.users import router as users_router
from auth.tokens import TokenService
from core.config import get_settings
from core.db import Database
from core.errors import ApiError, Forbidden, Unauthenticated

__version__ = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("pharmabolt.api")

_WELCOME = (
    "Welcome to the Pharmabolt API \n\n Visit: \n "
    "'/auth/register' to register \n '/auth/login' to login and get a token. "
)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build shared resources on startup and release them on shutdown."""
    settings = get_settings()
    logger.info("Pharmabolt API starting up")
    app.state.db = Database.from_settings(settings)
    app.state.db.create_all()
    logger.info("Database initialized (%s)", app.state.db.engine.url.render_as_string(hide_password=True))
    app.state.tokens = TokenService(settings.secret_key, expire_seconds=settings.token_expire_seconds)

    yield

    app.state.db.close()
    logger.info("Pharmabolt API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Pharmabolt API",
    description="Drug catalog and user accounts with bearer-token authentication.",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)


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

app.include_router(auth_router, prefix="/api", tags=["Auth"])
app.include_router(drugs_router, prefix="/api", tags=["Drugs"])
app.include_router(users_router, prefix="/api", tags=["Users"])


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------


def _error_body(message: str, details=None) -> dict:
    return ErrorResponse(error=ErrorDetail(message=message, details=details)).model_dump()


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    """Translate a taxonomy error into its status code and body.

    Authentication and authorization failures use a flat {"error": message}
    body; every other error uses {"error": {"message", "details"}}.
    """
    if isinstance(exc, (Unauthenticated, Forbidden)):
        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message}, headers=headers)
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.message, exc.details))


def _describe(error: dict) -> str:
    """Render one Pydantic error as '<field>: <message>'."""
    loc = [str(part) for part in error.get("loc", ()) if part != "body"]
    field = ".".join(loc) or "body"
    return f"{field}: {error.get('msg', 'is invalid')}"


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 listing every schema violation, not just the first."""
    return JSONResponse(
        status_code=400,
        content=ValidationErrorResponse(errors=[_describe(e) for e in exc.errors()]).model_dump(),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Framework-raised HTTP errors: unmatched routes, wrong methods."""
    if exc.status_code == 404:
        return JSONResponse(status_code=404, content={"error": {"message": "Resource not found"}})
    return JSONResponse(status_code=exc.status_code, content=_error_body(str(exc.detail)))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unexpected failures, including database errors.

    The exception is logged with its traceback; the client receives only a
    generic message.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=_error_body("Internal Server Error"))


# ---------------------------------------------------------------------------
# Welcome and health
# ---------------------------------------------------------------------------


@app.get("/api", response_class=PlainTextResponse, include_in_schema=False)
async def welcome() -> str:
    return _WELCOME


@app.get("/api/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Liveness plus a database round-trip. Always 200; check components."""
    db_ok = request.app.state.db.ping()
    return HealthResponse(
        version=__version__,
        components={"app": "ok", "database": "ok" if db_ok else "error"},
    )

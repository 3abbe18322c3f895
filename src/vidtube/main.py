"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Lifespan manages startup/shutdown (Redis, database engine).
Middleware, CORS, exception handlers and routers are all registered here.

Every failure leaves the API in one shape:
    {"success": false, "status_kind": "...", "message": "..."}
Stack traces go to the log, never to the client.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from vidtube import __version__
from vidtube.api import api_router
from vidtube.config import settings
from vidtube.errors import InternalError, ValidationError, VidTubeError

logger = structlog.get_logger()

_HTTP_KINDS = {
    400: "validation_error",
    401: "unauthenticated",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs at shutdown.
    """
    logger.info(
        "vidtube.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    from vidtube.cache import close_redis, init_redis
    try:
        await init_redis()
        logger.info("vidtube.redis_connected")
    except Exception as e:
        # Redis is optional: only rate limiting depends on it
        logger.warning("vidtube.redis_unavailable", error=str(e))

    yield

    logger.info("vidtube.shutdown")
    await close_redis()

    from vidtube.db.engine import engine
    await engine.dispose()


# ── Exception handlers ───────────────────────────────────────


def _envelope(status_code: int, kind: str, message: str) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "status_kind": kind, "message": message},
        headers=headers,
    )


async def handle_app_error(request: Request, exc: VidTubeError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("request.failed", kind=exc.kind, error=exc.message)
    return _envelope(exc.status_code, exc.kind, exc.message)


async def handle_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Body/query validation → 400.

    Only field locations and messages are echoed; the rejected input is
    left out because it may be a password.
    """
    parts = []
    for error in exc.errors():
        loc = ".".join(str(p) for p in error.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {error.get('msg')}" if loc else str(error.get("msg")))
    message = "; ".join(parts) or ValidationError.default_message
    return _envelope(ValidationError.status_code, ValidationError.kind, message)


async def handle_http_error(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    kind = _HTTP_KINDS.get(exc.status_code, "http_error")
    return _envelope(exc.status_code, kind, str(exc.detail))


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("request.unhandled_error")
    return _envelope(
        InternalError.status_code, InternalError.kind, "Internal server error"
    )


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="VidTube API",
        description="Video hosting backend — accounts, sessions and videos",
        version=__version__,
        lifespan=lifespan,
    )

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: CORS → RateLimit → Security → RequestId → handler

    from vidtube.middleware.rate_limit import RateLimitMiddleware
    from vidtube.middleware.request_id import RequestIdMiddleware
    from vidtube.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        default_rpm=settings.rate_limit_rpm,
        auth_rpm=settings.rate_limit_auth_rpm,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(VidTubeError, handle_app_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    app.include_router(api_router)

    return app


# Default app instance (used by uvicorn: vidtube.main:app)
app = create_app()

"""FastAPI application for the changelog API.

Run with ``uvicorn main:app``.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from core import get_logger
from core.cache import InMemoryCache
from core.config import Settings, get_settings
from core.github_client import close_github_client
from core.logger import configure_logging
from core.middleware import RequestContextMiddleware, SecurityHeadersMiddleware
from core.ratelimit import limiter, rate_limit_exceeded_handler
from routes import changelog_router, health_router

configure_logging()
logger = get_logger(__name__)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled.exception", exc_type=type(exc).__name__)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    logger.warning("request.invalid", error_count=len(errors))
    return JSONResponse(status_code=422, content={"detail": errors})


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logger.info(
        "app.started",
        repo=settings.changelog_repo,
        authenticated=bool(settings.github_token),
        webhook_secret_configured=bool(settings.changelog_webhook_secret),
    )
    yield
    await close_github_client()
    logger.info("app.stopped")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the API with a fresh changelog cache."""
    settings = settings or get_settings()
    show_docs = settings.enable_docs or settings.debug

    app = FastAPI(
        title="Changelog API",
        description="Recent significant commits of one GitHub repository.",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs" if show_docs else None,
        redoc_url=None,
        openapi_url="/openapi.json" if show_docs else None,
    )

    # One slot per tracked repository; routes reach it via the ChangelogCache dependency
    app.state.changelog_cache = InMemoryCache()
    app.state.limiter = limiter

    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.add_middleware(SecurityHeadersMiddleware)
    # Added last so it wraps everything and every log line carries the request id
    app.add_middleware(RequestContextMiddleware)

    app.include_router(health_router)
    app.include_router(changelog_router)
    return app


app = create_app()

"""Per-client rate limits for the changelog endpoints (slowapi).

Counters live in ``RATELIMIT_STORAGE_URI``. The default ``memory://`` keeps
them per process, so with N workers a client effectively gets N times the
limit; point it at Redis when running more than one worker.
"""

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from core import get_logger
from core.config import get_settings

logger = get_logger(__name__)

# Refresh hits GitHub on every call; no other changelog route is limited
REFRESH_LIMIT = "5/minute"


def _build_limiter() -> Limiter:
    storage_uri = get_settings().ratelimit_storage_uri
    if storage_uri == "memory://" and not get_settings().debug:
        logger.warning("ratelimit.memory_storage", storage_uri=storage_uri)

    return Limiter(
        key_func=get_remote_address,
        storage_uri=storage_uri,
        key_prefix="changelog:",
        # Fall back to per-process counters while Redis is unreachable
        in_memory_fallback_enabled=storage_uri.startswith(("redis://", "rediss://")),
    )


limiter = _build_limiter()


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """Answer 429 with a JSON body and a Retry-After header."""
    retry_after = getattr(exc, "retry_after", 60)
    logger.warning(
        "ratelimit.exceeded",
        client=get_remote_address(request),
        path=request.url.path,
        limit=exc.detail,
    )
    return JSONResponse(
        status_code=429,
        content={"detail": f"Rate limit exceeded: {exc.detail}", "retry_after": retry_after},
        headers={"Retry-After": str(retry_after)},
    )

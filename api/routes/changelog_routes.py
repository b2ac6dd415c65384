"""Changelog endpoints - listing, signed refresh and GitHub webhook.

Only the refresh endpoint is rate limited: the listing must always answer
200 with an array, and a dropped webhook delivery is never redelivered.
"""

from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from core import get_logger
from core.cache import CachePort
from core.config import get_settings
from core.ratelimit import REFRESH_LIMIT, limiter
from schemas import CommitSummary, RefreshErrorResponse, RefreshResponse
from services.changelog_service import (
    get_changelog,
    invalidate_changelog,
    refresh_changelog,
)
from services.webhooks_service import (
    SIGNATURE_HEADER,
    WebhookEvent,
    WebhookVerificationError,
    ensure_verified,
)

logger = get_logger(__name__)

router = APIRouter(tags=["changelog"])


def get_changelog_cache(request: Request) -> CachePort:
    return request.app.state.changelog_cache


ChangelogCache = Annotated[CachePort, Depends(get_changelog_cache)]


async def _signed_event(request: Request) -> WebhookEvent:
    return WebhookEvent(
        signature=request.headers.get(SIGNATURE_HEADER),
        body=await request.body(),
        event_type=request.headers.get("X-GitHub-Event"),
        delivery_id=request.headers.get("X-GitHub-Delivery"),
    )


@router.get(
    "/changelog_data",
    response_model=list[CommitSummary],
    summary="Get recent significant commits",
    responses={
        200: {
            "description": (
                "Significant recent commits. Always at least one entry; "
                "a placeholder is served when GitHub is unavailable."
            )
        }
    },
)
async def changelog_data(cache: ChangelogCache) -> list[CommitSummary]:
    """Serve cached, filtered commit summaries.

    Results are cached until the TTL expires or a verified webhook arrives.
    """
    return await get_changelog(cache)


@router.post(
    "/changelog_refresh",
    response_model=RefreshResponse,
    summary="Force a changelog refresh",
    description=(
        "Operator action. The request body must be signed with the webhook "
        "secret in X-Hub-Signature-256 (see `cli.py sign`)."
    ),
    responses={
        401: {"description": "Missing or invalid signature"},
        500: {"model": RefreshErrorResponse},
    },
)
@limiter.limit(REFRESH_LIMIT)
async def changelog_refresh(request: Request, cache: ChangelogCache) -> Response:
    """Bypass the cache, rebuild the changelog and store it."""
    try:
        ensure_verified(
            await _signed_event(request), get_settings().changelog_webhook_secret
        )
    except WebhookVerificationError:
        return Response(status_code=401)

    try:
        commits = await refresh_changelog(cache)
    except Exception as e:
        logger.error(
            "changelog.refresh_failed", error=str(e), error_type=type(e).__name__
        )
        return JSONResponse(
            status_code=500,
            content=RefreshErrorResponse(error=f"Refresh failed: {e}").model_dump(),
        )

    body = RefreshResponse(
        message="Changelog refreshed",
        commits=commits,
        timestamp=datetime.now(UTC),
    )
    return JSONResponse(content=body.model_dump(mode="json"))


@router.post(
    "/changelog_webhook",
    summary="Handle GitHub push webhooks",
    description=(
        "Verifies the X-Hub-Signature-256 HMAC over the raw body and drops "
        "the cached changelog."
    ),
    status_code=200,
    response_class=Response,
    responses={401: {"description": "Missing or invalid signature"}},
)
async def changelog_webhook(request: Request, cache: ChangelogCache) -> Response:
    try:
        ensure_verified(
            await _signed_event(request), get_settings().changelog_webhook_secret
        )
    except WebhookVerificationError:
        return Response(status_code=401)

    invalidate_changelog(cache)
    return Response(status_code=200)

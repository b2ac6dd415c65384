"""Health check endpoints."""

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from schemas import HealthResponse

router = APIRouter(tags=["health"])

SERVICE_NAME = "changelog-api"


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="healthy", service=SERVICE_NAME)


@router.get("/up", response_model=HealthResponse, include_in_schema=False)
async def up() -> HealthResponse:
    """Liveness probe for load balancers. Does not touch GitHub."""
    return HealthResponse(status="healthy", service=SERVICE_NAME)


@router.get(
    "/2c085e5c6556b7a9", response_class=PlainTextResponse, include_in_schema=False
)
async def hidden_check() -> str:
    """Unlisted reachability check; always answers with a fixed refusal."""
    return "Access Denied"

"""Shared HTTP client and commit endpoints for the GitHub REST API.

Provides a connection-pooled ``httpx.AsyncClient`` plus the two calls the
changelog needs:

- ``fetch_recent_commits`` lists the first page of commits (required call,
  failures propagate as ``GitHubClientError`` subclasses, never retried)
- ``fetch_commit_stats`` fetches diff statistics for one commit (best-effort,
  any failure degrades to zeroed stats)
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx

from core import get_logger
from core.config import get_settings
from schemas import CommitStats

logger = get_logger(__name__)

_github_http_client: httpx.AsyncClient | None = None
_github_client_lock = asyncio.Lock()

RawCommit = dict[str, Any]


class GitHubClientError(Exception):
    """Base class for failures of the required commit listing call."""


class TransportError(GitHubClientError):
    """DNS, TLS, connection or timeout failure talking to GitHub."""


class UpstreamStatusError(GitHubClientError):
    """GitHub answered with a non-success status code."""

    def __init__(self, status_code: int, body: str = ""):
        super().__init__(f"GitHub API returned {status_code}")
        self.status_code = status_code
        self.body = body


class ParseError(GitHubClientError):
    """GitHub answered with a body that is not the expected JSON shape."""


async def get_github_client() -> httpx.AsyncClient:
    """Get or create a shared HTTP client for GitHub API requests.

    Uses connection pooling to reduce overhead from per-request client creation.
    Thread-safe via asyncio.Lock to prevent race conditions.
    """
    global _github_http_client

    if _github_http_client is not None and not _github_http_client.is_closed:
        return _github_http_client

    async with _github_client_lock:
        if _github_http_client is not None and not _github_http_client.is_closed:
            return _github_http_client

        settings = get_settings()
        _github_http_client = httpx.AsyncClient(
            base_url=settings.github_api_url,
            timeout=settings.http_timeout,
            follow_redirects=True,
            limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
        )
        return _github_http_client


async def close_github_client() -> None:
    """Close the shared GitHub HTTP client (called on application shutdown)."""
    global _github_http_client
    if _github_http_client is not None and not _github_http_client.is_closed:
        await _github_http_client.aclose()
    _github_http_client = None


def github_headers() -> dict[str, str]:
    """Get headers for GitHub API requests, including auth token if available."""
    settings = get_settings()
    headers = {
        "User-Agent": settings.github_user_agent,
        "Accept": "application/vnd.github.v3+json",
    }
    if settings.github_token:
        headers["Authorization"] = f"Bearer {settings.github_token}"
    return headers


async def fetch_recent_commits(repo_path: str) -> list[RawCommit]:
    """List the most recent commits of ``repo_path`` (first page only).

    Raises:
        TransportError: the request never produced a response.
        UpstreamStatusError: GitHub returned a non-2xx status.
        ParseError: the body is not a JSON array.
    """
    settings = get_settings()
    url = f"/repos/{repo_path}/commits"
    params = {"per_page": settings.changelog_commits_per_page}

    logger.info("github.fetching_commits", repo=repo_path, url=url)

    client = await get_github_client()
    try:
        response = await client.get(
            url,
            params=params,
            headers=github_headers(),
            timeout=settings.http_timeout,
        )
    except httpx.RequestError as e:
        raise TransportError(str(e) or type(e).__name__) from e

    if not response.is_success:
        raise UpstreamStatusError(response.status_code, response.text)

    try:
        data = response.json()
    except ValueError as e:
        raise ParseError(f"Invalid JSON from GitHub: {e}") from e

    if not isinstance(data, list):
        raise ParseError(f"Expected a JSON array, got {type(data).__name__}")

    logger.info("github.commits_fetched", repo=repo_path, count=len(data))
    return data


async def fetch_commit_stats(sha: str | None, repo_path: str) -> CommitStats:
    """Fetch additions/deletions for a single commit.

    Never raises: this is enrichment only, so any failure returns zeroed stats.
    """
    if not sha:
        return CommitStats()

    settings = get_settings()
    try:
        client = await get_github_client()
        response = await client.get(
            f"/repos/{repo_path}/commits/{sha}",
            headers=github_headers(),
            timeout=settings.github_stats_timeout,
        )
        response.raise_for_status()
        stats = response.json().get("stats") or {}
        return CommitStats.from_counts(stats.get("additions"), stats.get("deletions"))
    except Exception as e:
        logger.warning("github.stats_unavailable", sha=sha, error=str(e))
        return CommitStats()

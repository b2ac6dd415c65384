"""Changelog service for fetching, filtering and caching commit history.

Fetches recent commits from the GitHub API, normalizes them into
``CommitSummary`` entries and keeps only significant ones. Results live in a
single cache slot per repository so they can be dropped by the webhook.

Flow:
    get_changelog -> read_or_populate -> build_changelog
        -> fetch_recent_commits -> normalize_commit (-> fetch_commit_stats)
        -> filter_significant
"""

import asyncio
from collections.abc import Sequence
from datetime import UTC, date, datetime
from typing import Any

from core import get_logger
from core.cache import CachePort, changelog_cache_key, read_or_populate
from core.config import get_settings
from core.github_client import RawCommit, fetch_commit_stats, fetch_recent_commits
from schemas import CommitStats, CommitSummary

logger = get_logger(__name__)

SIGNIFICANCE_THRESHOLD = 50

NO_MESSAGE = "No message"
NO_TITLE = "No title"
UNKNOWN_SHA = "unknown"
FILTERED_SHA = "filtered"
DEV_SHA = "dev"
MISSING_URL = "#"


def _today() -> str:
    return datetime.now(UTC).date().isoformat()


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _parse_commit_date(value: Any) -> str:
    """Format an ISO 8601 timestamp as YYYY-MM-DD, falling back to today."""
    if not isinstance(value, str) or not value:
        return _today()
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date().isoformat()
    except ValueError:
        pass
    try:
        return date.fromisoformat(value[:10]).isoformat()
    except ValueError:
        return _today()


def _split_message(message: str) -> tuple[str, list[str]]:
    """First line is the title, remaining non-blank lines are details.

    Only ``\\n`` (or ``\\r\\n``) separates lines. A message made of nothing
    but line breaks has no title; an empty first line followed by text is
    kept as an empty title.
    """
    lines = message.replace("\r\n", "\n").split("\n")
    while lines and not lines[-1]:
        lines.pop()
    if not lines:
        return NO_TITLE, []
    details = [line for line in lines[1:] if line.strip()]
    return lines[0], details


def _short_sha(sha: Any) -> str:
    if isinstance(sha, str) and sha:
        return sha[:7]
    return UNKNOWN_SHA


async def normalize_commit(raw_commit: RawCommit, repo_path: str) -> CommitSummary:
    """Map a raw GitHub commit record to a ``CommitSummary``.

    Every field has a fallback, so one malformed record can't fail the whole
    listing. When the record reports no added or deleted lines (the list
    endpoint never includes stats), the per-commit endpoint is asked instead.
    """
    raw = _as_dict(raw_commit)
    commit_info = _as_dict(raw.get("commit"))
    author_info = _as_dict(commit_info.get("author"))

    message = commit_info.get("message")
    if not isinstance(message, str):
        message = NO_MESSAGE

    raw_stats = _as_dict(raw.get("stats"))
    stats = CommitStats.from_counts(
        raw_stats.get("additions"), raw_stats.get("deletions")
    )
    sha = raw.get("sha")
    if stats.is_empty:
        stats = await fetch_commit_stats(sha if isinstance(sha, str) else None, repo_path)

    title, details = _split_message(message)
    url = raw.get("html_url")

    return CommitSummary(
        date=_parse_commit_date(author_info.get("date")),
        title=title,
        details=details,
        sha=_short_sha(sha),
        url=url if isinstance(url, str) and url else MISSING_URL,
        stats=stats,
    )


def significance_placeholder(
    repo_html_url: str, threshold: int = SIGNIFICANCE_THRESHOLD
) -> CommitSummary:
    return CommitSummary(
        date=_today(),
        title="No significant changes",
        details=[f"Recent commits were minor updates ({threshold} lines or fewer)."],
        sha=FILTERED_SHA,
        url=repo_html_url,
        stats=CommitStats(),
    )


def development_mode_placeholder(repo_html_url: str) -> list[CommitSummary]:
    """Fixed payload served when the listing can't be built."""
    return [
        CommitSummary(
            date=_today(),
            title="Development Mode",
            details=["GitHub API integration in progress"],
            sha=DEV_SHA,
            url=repo_html_url,
            stats=CommitStats(),
        )
    ]


def filter_significant(
    commits: Sequence[CommitSummary],
    threshold: int = SIGNIFICANCE_THRESHOLD,
    repo_html_url: str | None = None,
) -> list[CommitSummary]:
    """Keep commits changing more than ``threshold`` lines.

    Never returns an empty list: when nothing qualifies a single placeholder
    (sha ``"filtered"``) is returned instead. Idempotent, since the
    placeholder itself has a total of zero and is replaced by an equal one.
    """
    significant = [c for c in commits if c.stats.total > threshold]
    if significant:
        return significant

    if repo_html_url is None:
        repo_html_url = get_settings().repo_html_url
    return [significance_placeholder(repo_html_url, threshold)]


async def build_changelog(
    repo_path: str, threshold: int = SIGNIFICANCE_THRESHOLD
) -> list[CommitSummary]:
    """Uncached producer: fetch, normalize and filter recent commits.

    Raises ``GitHubClientError`` when the listing call fails.
    """
    raw_commits = await fetch_recent_commits(repo_path)
    commits = await asyncio.gather(
        *(normalize_commit(raw, repo_path) for raw in raw_commits)
    )
    return filter_significant(
        commits, threshold, repo_html_url=f"https://github.com/{repo_path}"
    )


async def get_changelog(cache: CachePort) -> list[CommitSummary]:
    """Return the changelog for the configured repository.

    Serves the cached slot when present. Any failure building the listing
    yields the Development Mode placeholder, which is never cached.
    """
    settings = get_settings()
    repo_path = settings.changelog_repo

    async def _produce() -> list[CommitSummary]:
        logger.info("changelog.fetching_from_github", repo=repo_path)
        commits = await build_changelog(
            repo_path, settings.changelog_significance_threshold
        )
        logger.info("changelog.cached", repo=repo_path, commits_count=len(commits))
        return commits

    try:
        return await read_or_populate(
            cache,
            changelog_cache_key(repo_path),
            settings.changelog_cache_ttl,
            _produce,
        )
    except Exception as e:
        logger.error(
            "changelog.fetch_failed",
            repo=repo_path,
            error=str(e),
            error_type=type(e).__name__,
        )
        return development_mode_placeholder(settings.repo_html_url)


async def refresh_changelog(cache: CachePort) -> list[CommitSummary]:
    """Rebuild the changelog bypassing the cache and overwrite the slot.

    Errors propagate so the caller can report them; the existing slot is
    left untouched on failure.
    """
    settings = get_settings()
    repo_path = settings.changelog_repo

    commits = await build_changelog(
        repo_path, settings.changelog_significance_threshold
    )
    cache.set(changelog_cache_key(repo_path), commits, settings.changelog_cache_ttl)
    logger.info("changelog.refreshed", repo=repo_path, commits_count=len(commits))
    return commits


def invalidate_changelog(cache: CachePort) -> None:
    """Drop the cache slot so the next read refetches from GitHub."""
    repo_path = get_settings().changelog_repo
    cache.delete(changelog_cache_key(repo_path))
    logger.info("changelog.invalidated", repo=repo_path)

"""Pydantic schemas for API request/response validation."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


def _as_count(value: object) -> int:
    """Coerce an upstream line count into a non-negative int, 0 if unusable."""
    if isinstance(value, bool):
        return 0
    try:
        count = int(value)  # type: ignore[call-overload]
    except (TypeError, ValueError, OverflowError):
        return 0
    return max(count, 0)


class CommitStats(BaseModel):
    """Line counts changed by a commit.

    ``total`` always equals ``additions + deletions`` when built through
    ``from_counts``.
    """

    model_config = ConfigDict(frozen=True)

    additions: int = Field(default=0, ge=0)
    deletions: int = Field(default=0, ge=0)
    total: int = Field(default=0, ge=0)

    @classmethod
    def from_counts(cls, additions: object, deletions: object) -> "CommitStats":
        adds = _as_count(additions)
        dels = _as_count(deletions)
        return cls(additions=adds, deletions=dels, total=adds + dels)

    @property
    def is_empty(self) -> bool:
        return self.additions == 0 and self.deletions == 0


class CommitSummary(BaseModel):
    """A single changelog entry as served to the page."""

    model_config = ConfigDict(frozen=True)

    date: str = Field(description="Author date as YYYY-MM-DD")
    title: str
    details: list[str] = Field(default_factory=list)
    sha: str = Field(description="7-character short hash or a sentinel")
    url: str
    stats: CommitStats = Field(default_factory=CommitStats)


class RefreshResponse(BaseModel):
    """Response for a forced changelog refresh."""

    message: str
    commits: list[CommitSummary]
    timestamp: datetime


class RefreshErrorResponse(BaseModel):
    error: str


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str

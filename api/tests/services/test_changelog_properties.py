"""Property-based tests for changelog_service using Hypothesis.

These tests verify properties that must hold for any upstream payload:
normalization never fails and filtering is idempotent and never empty.
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from schemas import CommitStats, CommitSummary
from services.changelog_service import filter_significant, normalize_commit
from tests.factories import REPO_PATH

pytestmark = pytest.mark.unit

REPO_URL = f"https://github.com/{REPO_PATH}"

# =============================================================================
# Custom Strategies
# =============================================================================

json_scalars = st.one_of(
    st.none(),
    st.booleans(),
    st.integers(min_value=-(10**6), max_value=10**6),
    st.text(max_size=20),
)


@st.composite
def raw_commits(draw) -> dict:
    """Commit records with any subset of fields missing or mistyped."""
    author = draw(
        st.fixed_dictionaries(
            {},
            optional={
                "name": json_scalars,
                "date": st.one_of(
                    json_scalars,
                    st.datetimes().map(lambda d: d.isoformat() + "Z"),
                ),
            },
        )
    )
    commit = draw(
        st.fixed_dictionaries(
            {},
            optional={
                "author": st.one_of(st.just(author), json_scalars),
                "message": st.one_of(st.text(max_size=80), json_scalars),
            },
        )
    )
    stats = st.fixed_dictionaries(
        {},
        optional={
            "additions": json_scalars,
            "deletions": json_scalars,
            "total": json_scalars,
        },
    )
    return draw(
        st.fixed_dictionaries(
            {},
            optional={
                "sha": st.one_of(st.text(max_size=40), json_scalars),
                "html_url": json_scalars,
                "commit": st.one_of(st.just(commit), json_scalars),
                "stats": st.one_of(stats, json_scalars),
            },
        )
    )


summaries = st.builds(
    lambda total, sha: CommitSummary(
        date="2026-01-24",
        title="commit",
        sha=sha,
        url="#",
        stats=CommitStats.from_counts(total, 0),
    ),
    st.integers(min_value=0, max_value=500),
    st.text(min_size=1, max_size=7),
)


# =============================================================================
# Properties
# =============================================================================


class TestNormalizeProperties:
    @given(raw=raw_commits())
    @settings(max_examples=200, suppress_health_check=[HealthCheck.too_slow])
    def test_never_raises_and_fills_every_field(self, raw: dict):
        with patch(
            "services.changelog_service.fetch_commit_stats",
            new=AsyncMock(return_value=CommitStats()),
        ):
            summary = asyncio.run(normalize_commit(raw, REPO_PATH))

        assert len(summary.date) == 10
        assert isinstance(summary.title, str)
        assert all(line.strip() for line in summary.details)
        assert summary.sha == "unknown" or len(summary.sha) <= 7
        assert summary.url
        assert summary.stats.total == summary.stats.additions + summary.stats.deletions
        assert summary.stats.additions >= 0 and summary.stats.deletions >= 0


class TestFilterProperties:
    @given(commits=st.lists(summaries, max_size=15))
    def test_idempotent(self, commits: list[CommitSummary]):
        once = filter_significant(commits, repo_html_url=REPO_URL)
        assert filter_significant(once, repo_html_url=REPO_URL) == once

    @given(commits=st.lists(summaries, max_size=15))
    def test_never_empty(self, commits: list[CommitSummary]):
        assert len(filter_significant(commits, repo_html_url=REPO_URL)) >= 1

    @given(
        commits=st.lists(summaries, max_size=15),
        threshold=st.integers(min_value=0, max_value=500),
    )
    def test_result_is_all_significant_or_single_placeholder(
        self, commits: list[CommitSummary], threshold: int
    ):
        result = filter_significant(commits, threshold, repo_html_url=REPO_URL)
        if any(c.stats.total > threshold for c in commits):
            assert all(c.stats.total > threshold for c in result)
        else:
            assert [c.sha for c in result] == ["filtered"]

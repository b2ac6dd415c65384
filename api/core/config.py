"""Application configuration using pydantic-settings."""

from functools import lru_cache
from typing import Self

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Optional - unauthenticated calls work but hit the 60/hour rate limit
    github_token: str = ""

    # Shared secret for X-Hub-Signature-256 verification.
    # Empty means every webhook delivery is rejected.
    changelog_webhook_secret: str = ""

    # Tracked repository in "owner/name" form
    changelog_repo: str = "carolinekks/carolinekks.dk"

    changelog_cache_ttl: int = 3600
    changelog_significance_threshold: int = 50
    changelog_commits_per_page: int = 10

    github_api_url: str = "https://api.github.com"
    github_user_agent: str = "carolinekks.dk-changelog"

    # The list call is required, the per-commit stats call is best-effort
    http_timeout: float = 10.0
    github_stats_timeout: float = 5.0

    # Use "redis://host:port" in production for distributed rate limiting
    # memory:// only works for single-instance deployments
    ratelimit_storage_uri: str = "memory://"

    debug: bool = False
    enable_docs: bool = False  # Swagger UI at /docs

    @model_validator(mode="after")
    def validate_config(self) -> Self:
        owner, _, name = self.changelog_repo.partition("/")
        if not owner or not name or "/" in name:
            raise ValueError(
                f"CHANGELOG_REPO must look like 'owner/name', got {self.changelog_repo!r}"
            )
        if self.http_timeout <= 0 or self.github_stats_timeout <= 0:
            raise ValueError("HTTP_TIMEOUT and GITHUB_STATS_TIMEOUT must be positive")
        if self.changelog_cache_ttl <= 0:
            raise ValueError("CHANGELOG_CACHE_TTL must be positive")
        if self.changelog_significance_threshold < 0:
            raise ValueError("CHANGELOG_SIGNIFICANCE_THRESHOLD must not be negative")
        return self

    @property
    def repo_html_url(self) -> str:
        return f"https://github.com/{self.changelog_repo}"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Call this in tests to reset settings between test cases.
    After clearing, the next get_settings() call will create
    a fresh Settings instance with current environment variables.

    Example:
        def test_something(monkeypatch):
            monkeypatch.setenv("CHANGELOG_REPO", "owner/repo")
            clear_settings_cache()
            settings = get_settings()  # Fresh instance
    """
    get_settings.cache_clear()

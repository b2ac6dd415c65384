"""Pytest configuration and shared fixtures.

This module provides:
- Test settings via environment variables (set before app imports)
- A fresh in-memory changelog cache per test, injected into the app
- FastAPI test client for route tests
- Reset of the shared GitHub HTTP client between tests

GitHub itself is mocked at the transport level with respx (``respx_mock``).
"""

# Set environment variables BEFORE any imports that trigger Settings validation
import os

os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("CHANGELOG_REPO", "octo/changelog")
os.environ.setdefault("CHANGELOG_WEBHOOK_SECRET", "test_webhook_secret")
os.environ.setdefault("GITHUB_TOKEN", "test_github_token")

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from core.cache import InMemoryCache
from core.config import clear_settings_cache


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Re-read settings from the environment for every test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture(autouse=True)
def _reset_github_client():
    """Drop the shared GitHub client so each test builds one on its own loop."""
    import core.github_client as mod

    mod._github_http_client = None
    yield
    mod._github_http_client = None


@pytest.fixture
def cache() -> InMemoryCache:
    return InMemoryCache()


@pytest_asyncio.fixture(scope="function")
async def app(cache: InMemoryCache) -> AsyncGenerator[FastAPI]:
    """FastAPI app with the changelog cache swapped for the test's cache."""
    from main import app as fastapi_app
    from routes.changelog_routes import get_changelog_cache

    fastapi_app.dependency_overrides[get_changelog_cache] = lambda: cache
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Create async HTTP client for testing routes."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

"""Unit tests for the operator CLI."""

import json
from unittest.mock import AsyncMock, patch

import pytest

from cli import main
from core.config import clear_settings_cache
from core.github_client import TransportError
from schemas import CommitStats, CommitSummary
from services.webhooks_service import compute_signature
from tests.factories import WEBHOOK_SECRET

pytestmark = pytest.mark.unit


@pytest.fixture(autouse=True)
def _no_logging_setup():
    """Keep log output out of captured stdout."""
    with patch("cli.configure_logging"):
        yield


class TestFetchCommand:
    def test_prints_changelog_json(self, capsys):
        commits = [
            CommitSummary(
                date="2026-01-24",
                title="Add changelog",
                sha="abc1234",
                url="#",
                stats=CommitStats.from_counts(80, 4),
            )
        ]
        with patch("cli.build_changelog", new=AsyncMock(return_value=commits)):
            assert main(["fetch"]) == 0

        out = capsys.readouterr().out
        payload = json.loads(out)
        assert payload[0]["sha"] == "abc1234"
        assert payload[0]["stats"]["total"] == 84

    def test_returns_1_on_github_failure(self):
        with patch(
            "cli.build_changelog",
            new=AsyncMock(side_effect=TransportError("unreachable")),
        ):
            assert main(["fetch"]) == 1


class TestSignCommand:
    def test_prints_signature_for_file(self, tmp_path, capsys):
        body = b'{"ref":"refs/heads/main"}'
        path = tmp_path / "body.json"
        path.write_bytes(body)

        assert main(["sign", str(path)]) == 0

        out = capsys.readouterr().out
        assert compute_signature(body, WEBHOOK_SECRET) in out

    def test_fails_without_secret(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CHANGELOG_WEBHOOK_SECRET", "")
        clear_settings_cache()
        path = tmp_path / "body.json"
        path.write_bytes(b"{}")

        assert main(["sign", str(path)]) == 1


def test_no_command_prints_help():
    assert main([]) == 1

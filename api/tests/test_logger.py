"""Tests for the structlog configuration in core.logger."""

import json
import logging

import pytest
import structlog

from core.logger import (
    REDACTED,
    SERVICE_NAME,
    add_service_name,
    configure_logging,
    get_logger,
    redact_secrets,
)

pytestmark = pytest.mark.unit


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)
    structlog.reset_defaults()


def _last_json_line(capsys) -> dict:
    return json.loads(capsys.readouterr().out.strip().splitlines()[-1])


class TestConfigureLogging:
    def test_installs_single_processor_formatter_handler(self):
        configure_logging()
        configure_logging()

        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0].formatter, structlog.stdlib.ProcessorFormatter)

    @pytest.mark.parametrize(
        ("value", "expected"),
        [("warning", logging.WARNING), ("DEBUG", logging.DEBUG), ("chatty", logging.INFO)],
    )
    def test_log_level_from_env(self, monkeypatch, value, expected):
        monkeypatch.setenv("LOG_LEVEL", value)
        configure_logging()
        assert logging.getLogger().level == expected

    def test_http_client_loggers_are_quieted(self):
        configure_logging()
        for name in ("httpx", "httpcore", "uvicorn.access"):
            assert logging.getLogger(name).level == logging.WARNING

    def test_stdlib_records_render_as_json(self, monkeypatch, capsys):
        monkeypatch.setenv("LOG_FORMAT", "json")
        configure_logging()

        logging.getLogger("uvicorn.error").warning("server.shutting_down")

        parsed = _last_json_line(capsys)
        assert parsed["event"] == "server.shutting_down"
        assert parsed["level"] == "warning"
        assert parsed["logger"] == "uvicorn.error"
        assert parsed["service"] == SERVICE_NAME

    def test_structlog_events_are_redacted(self, monkeypatch, capsys):
        monkeypatch.setenv("LOG_FORMAT", "json")
        configure_logging()

        get_logger("core.github_client").warning(
            "github.request", authorization="Bearer ghp_secret", repo="octo/changelog"
        )

        parsed = _last_json_line(capsys)
        assert parsed["authorization"] == REDACTED
        assert parsed["repo"] == "octo/changelog"


class TestProcessors:
    def test_redact_masks_only_secret_keys(self):
        event = {"event": "x", "signature": "sha256=abc", "secret": "", "sha": "abc1234"}

        result = redact_secrets(None, "info", event)

        assert result["signature"] == REDACTED
        assert result["secret"] == ""
        assert result["sha"] == "abc1234"

    def test_service_name_does_not_override_explicit_value(self):
        assert add_service_name(None, "info", {"service": "other"})["service"] == "other"
        assert add_service_name(None, "info", {})["service"] == SERVICE_NAME

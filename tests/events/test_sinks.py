"""
Tests for event sinks.

Uses mocked aiohttp sessions.
"""

from __future__ import annotations

import logging
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import orjson
import pytest

from modelbridge.events.config import WebhookSinkConfig
from modelbridge.events.models import Event, Severity
from modelbridge.events.sinks import LoggingEventSink, WebhookEventSink


@pytest.fixture
def sample_event() -> Event:
    return Event(action="import", severity=Severity.SUCCESS, description="Imported models from CSV sheets")


def _session(status: int, text: str = "") -> AsyncMock:
    mock_response = AsyncMock()
    mock_response.status = status
    mock_response.text = AsyncMock(return_value=text)
    mock_response.__aenter__ = AsyncMock(return_value=mock_response)
    mock_response.__aexit__ = AsyncMock(return_value=None)

    mock_session = AsyncMock()
    mock_session.post = MagicMock(return_value=mock_response)
    mock_session.closed = False
    return mock_session


class TestLoggingEventSink:
    @pytest.mark.asyncio
    async def test_logs_event(self, sample_event: Event, caplog: pytest.LogCaptureFixture) -> None:
        sink = LoggingEventSink()

        with caplog.at_level(logging.INFO, logger="modelbridge.events"):
            result = await sink.send(sample_event)

        assert result.success is True
        assert "Imported models from CSV sheets" in caplog.text

    @pytest.mark.asyncio
    async def test_error_events_logged_as_errors(self, caplog: pytest.LogCaptureFixture) -> None:
        sink = LoggingEventSink()

        with caplog.at_level(logging.INFO, logger="modelbridge.events"):
            await sink.send(Event(action="import", severity=Severity.ERROR, description="failed"))

        assert caplog.records[-1].levelno == logging.ERROR


class TestWebhookSinkConfig:
    def test_url_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MODELBRIDGE_EVENTS_WEBHOOK_URL", "https://hooks.example.com/env")
        assert WebhookSinkConfig(enabled=True).url == "https://hooks.example.com/env"

    def test_url_required_when_enabled(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("MODELBRIDGE_EVENTS_WEBHOOK_URL", raising=False)
        with pytest.raises(ValueError, match="MODELBRIDGE_EVENTS_WEBHOOK_URL"):
            WebhookSinkConfig(enabled=True)

    def test_invalid_retries(self) -> None:
        with pytest.raises(ValueError, match="max_retries"):
            WebhookSinkConfig(max_retries=-1)


class TestWebhookEventSink:
    @pytest.mark.asyncio
    async def test_send_disabled(self, sample_event: Event) -> None:
        sink = WebhookEventSink(WebhookSinkConfig(enabled=False))

        result = await sink.send(sample_event)

        assert result.success is False
        assert result.error is not None
        assert "not enabled" in result.error.lower()

    @pytest.mark.asyncio
    async def test_send_success(self, sample_event: Event) -> None:
        config = WebhookSinkConfig(
            enabled=True, url="https://hooks.example.com/x", headers={"X-Token": "abc"}
        )
        sink = WebhookEventSink(config)
        mock_session = _session(200)
        sink._session = mock_session

        result = await sink.send(sample_event)

        assert result.success is True
        assert result.status_code == 200
        mock_session.post.assert_called_once()
        args, kwargs = mock_session.post.call_args
        assert args[0] == "https://hooks.example.com/x"
        assert orjson.loads(kwargs["data"])["id"] == sample_event.id
        assert kwargs["headers"]["X-Token"] == "abc"
        await sink.close()

    @pytest.mark.asyncio
    async def test_send_http_error(self, sample_event: Event) -> None:
        config = WebhookSinkConfig(enabled=True, url="https://hooks.example.com/x", max_retries=0)
        sink = WebhookEventSink(config)
        sink._session = _session(503, "unavailable")

        result = await sink.send(sample_event)

        assert result.success is False
        assert result.status_code == 503
        assert result.error == "HTTP 503: unavailable"

    @pytest.mark.asyncio
    async def test_retries_connection_errors(self, sample_event: Event) -> None:
        config = WebhookSinkConfig(enabled=True, url="https://hooks.example.com/x", max_retries=1)
        sink = WebhookEventSink(config)
        mock_session = _session(200)
        mock_session.post = MagicMock(side_effect=aiohttp.ClientConnectionError("refused"))
        sink._session = mock_session

        result = await sink.send(sample_event)

        assert result.success is False
        assert result.error is not None
        assert result.error.startswith("Connection error")
        assert mock_session.post.call_count == 2

    def test_name_hides_url(self) -> None:
        sink = WebhookEventSink(WebhookSinkConfig(enabled=True, url="https://hooks.example.com/secret"))
        assert "secret" not in sink.name

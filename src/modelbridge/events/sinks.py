"""
Event sinks.

A sink delivers one Event somewhere. Sinks report failure through the
returned SinkResult; the broadcaster never lets a sink failure reach the
request that published the event.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

import aiohttp

from modelbridge.events.models import Severity

if TYPE_CHECKING:
    from modelbridge.events.config import WebhookSinkConfig
    from modelbridge.events.models import Event

logger = logging.getLogger(__name__)


@dataclass
class SinkResult:
    """Result of a delivery attempt."""

    success: bool
    sink_name: str
    error: str | None = None
    status_code: int | None = None


class EventSink(ABC):
    """Abstract base class for event sinks."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique name for this sink."""
        ...

    @abstractmethod
    async def send(self, event: Event) -> SinkResult:
        ...

    async def close(self) -> None:
        """Close any resources held by this sink."""
        return None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"


class LoggingEventSink(EventSink):
    """Writes events to the ``modelbridge.events`` logger."""

    def __init__(self, logger_name: str = "modelbridge.events") -> None:
        self._logger = logging.getLogger(logger_name)

    @property
    def name(self) -> str:
        return "log"

    async def send(self, event: Event) -> SinkResult:
        level = logging.ERROR if event.severity is Severity.ERROR else logging.INFO
        self._logger.log(
            level,
            event.description or event.action,
            extra={
                "event_id": event.id,
                "action": event.action,
                "severity": event.severity.value,
                "category": event.category,
            },
        )
        return SinkResult(success=True, sink_name=self.name)


class WebhookEventSink(EventSink):
    """
    Posts events as JSON to a configured URL.

    Retries connection errors and non-2xx responses up to max_retries.
    """

    def __init__(self, config: WebhookSinkConfig) -> None:
        self._config = config
        self._session: aiohttp.ClientSession | None = None

    @property
    def name(self) -> str:
        # Don't expose webhook URL in name
        return "webhook:custom"

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self._config.timeout_s)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def send(self, event: Event) -> SinkResult:
        if not self._config.enabled:
            return SinkResult(success=False, sink_name=self.name, error="Webhook sink not enabled")

        headers = {"Content-Type": "application/json"}
        headers.update(self._config.headers)
        payload = event.to_json()

        last_error = "Max retries exceeded"
        status: int | None = None
        for attempt in range(self._config.max_retries + 1):
            try:
                session = await self._get_session()
                async with session.post(self._config.url, data=payload, headers=headers) as resp:
                    status = resp.status
                    if 200 <= status < 300:
                        return SinkResult(success=True, sink_name=self.name, status_code=status)
                    error_text = await resp.text()
                    last_error = f"HTTP {status}: {error_text[:200]}"
                    logger.error(
                        "Webhook send failed",
                        extra={"status": status, "error": error_text, "attempt": attempt},
                    )
            except aiohttp.ClientError as e:
                last_error = f"Connection error: {e}"
                logger.error(
                    "Webhook connection error",
                    extra={"error": str(e), "attempt": attempt},
                )
            if attempt < self._config.max_retries:
                await asyncio.sleep(1)

        return SinkResult(success=False, sink_name=self.name, error=last_error, status_code=status)

    async def close(self) -> None:
        """Close aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

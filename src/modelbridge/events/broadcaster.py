"""
Fire-and-forget event broadcaster.

``publish`` schedules delivery to every sink and returns immediately; the
caller never waits for, or sees, the outcome. Pending deliveries are
tracked so ``flush``/``close`` can drain them on shutdown.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from modelbridge.events.sinks import EventSink, LoggingEventSink, SinkResult, WebhookEventSink

if TYPE_CHECKING:
    from modelbridge.events.config import EventsConfig
    from modelbridge.events.models import Event

logger = logging.getLogger(__name__)


@dataclass
class BroadcastMetrics:
    """Metrics for event delivery."""

    total_published: int = 0
    total_delivered: int = 0
    total_failed: int = 0
    sink_failures: dict[str, int] = field(default_factory=dict)


class EventBroadcaster:
    """Publishes events to the configured sinks without blocking callers."""

    def __init__(self, config: EventsConfig, sinks: list[EventSink] | None = None) -> None:
        self._config = config
        self._sinks: list[EventSink] = sinks if sinks is not None else self._build_sinks()
        self._pending: set[asyncio.Task[None]] = set()
        self._metrics = BroadcastMetrics()
        self._closed = False

    def _build_sinks(self) -> list[EventSink]:
        sinks: list[EventSink] = []
        if self._config.log:
            sinks.append(LoggingEventSink())
        if self._config.webhook.enabled and not self._config.dry_run:
            sinks.append(WebhookEventSink(self._config.webhook))
            logger.info("Webhook event sink enabled")
        return sinks

    @property
    def metrics(self) -> BroadcastMetrics:
        return self._metrics

    @property
    def pending(self) -> int:
        return len(self._pending)

    def publish(self, event: Event) -> None:
        """Schedule delivery of ``event``; never raises, never blocks."""
        if self._closed or not self._config.enabled or not self._sinks:
            return
        try:
            task = asyncio.get_running_loop().create_task(self._dispatch(event))
        except RuntimeError:
            logger.warning("No running event loop, dropping event", extra={"action": event.action})
            return
        self._metrics.total_published += 1
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _dispatch(self, event: Event) -> None:
        results = await asyncio.gather(
            *(sink.send(event) for sink in self._sinks),
            return_exceptions=True,
        )
        for sink, result in zip(self._sinks, results, strict=True):
            if isinstance(result, SinkResult) and result.success:
                self._metrics.total_delivered += 1
                continue
            error = str(result) if isinstance(result, BaseException) else result.error
            self._metrics.total_failed += 1
            self._metrics.sink_failures[sink.name] = self._metrics.sink_failures.get(sink.name, 0) + 1
            logger.warning(
                "Event delivery failed",
                extra={"sink": sink.name, "action": event.action, "error": error},
            )

    async def flush(self) -> None:
        """Wait for every pending delivery to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def close(self) -> None:
        """Drain pending deliveries and close sinks."""
        self._closed = True
        await self.flush()
        for sink in self._sinks:
            await sink.close()

"""User-facing events, published fire-and-forget."""

from modelbridge.events.broadcaster import BroadcastMetrics, EventBroadcaster
from modelbridge.events.config import EventsConfig, WebhookSinkConfig
from modelbridge.events.models import (
    CATEGORY_ENTITY,
    CATEGORY_REGISTRATION,
    Event,
    Severity,
    error_event,
    import_generated_event,
    registration_event,
)
from modelbridge.events.sinks import EventSink, LoggingEventSink, SinkResult, WebhookEventSink

__all__ = [
    "CATEGORY_ENTITY",
    "CATEGORY_REGISTRATION",
    "BroadcastMetrics",
    "Event",
    "EventBroadcaster",
    "EventSink",
    "EventsConfig",
    "LoggingEventSink",
    "Severity",
    "SinkResult",
    "WebhookEventSink",
    "WebhookSinkConfig",
    "error_event",
    "import_generated_event",
    "registration_event",
]

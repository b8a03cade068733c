"""
Event publishing configuration.

Secrets (webhook URL) come from the environment when not set explicitly.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field


@dataclass
class WebhookSinkConfig:
    """Webhook event sink configuration."""

    enabled: bool = False
    url: str = ""  # From MODELBRIDGE_EVENTS_WEBHOOK_URL env var
    timeout_s: float = 10.0
    max_retries: int = 2
    headers: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.enabled:
            if not self.url:
                self.url = os.environ.get("MODELBRIDGE_EVENTS_WEBHOOK_URL", "")
            if not self.url:
                raise ValueError("MODELBRIDGE_EVENTS_WEBHOOK_URL required when webhook sink enabled")
        if self.timeout_s <= 0:
            raise ValueError(f"timeout_s must be > 0, got {self.timeout_s}")
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")


@dataclass
class EventsConfig:
    """Main event publishing configuration."""

    enabled: bool = True

    # Log every event through the logging sink
    log: bool = True

    webhook: WebhookSinkConfig = field(default_factory=WebhookSinkConfig)

    # Dry run mode: log but don't send to remote sinks
    dry_run: bool = False

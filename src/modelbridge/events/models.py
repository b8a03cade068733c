"""
Import/export event contracts.

Events tell the requesting user what happened (models imported, partial
failures, terminal errors). They are published fire-and-forget.
"""

from __future__ import annotations

import time
import uuid
from enum import Enum
from typing import Any

import orjson
from pydantic import BaseModel, ConfigDict, Field

CATEGORY_ENTITY = "entity"
CATEGORY_REGISTRATION = "registration"


class Severity(str, Enum):
    INFO = "informational"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class Event(BaseModel):
    """
    User-facing event.

    Attributes:
        id: Event id (uuid4 hex).
        ts: Creation timestamp (milliseconds).
        user_id: Acting user, empty when unknown.
        category: What the event is about (entity, registration or an entity type).
        action: Operation that produced it (import, register, update, export).
        severity: Event severity.
        description: One-line human-readable summary.
        metadata: Extra detail (error text, counts, report).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    ts: int = Field(default_factory=lambda: int(time.time() * 1000), ge=0)
    user_id: str = ""
    category: str = CATEGORY_ENTITY
    action: str = Field(..., min_length=1)
    severity: Severity = Severity.INFO
    description: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)

    def to_json(self) -> bytes:
        """Serialize to JSON bytes using orjson."""
        return orjson.dumps(self.model_dump(mode="json"))


def import_generated_event(model_name: str, component_count: int, *, is_csv: bool, user_id: str = "") -> Event:
    """Event sent once an import has produced its packages."""
    if is_csv:
        description = "Imported models from CSV sheets"
    else:
        description = f"Imported model {model_name} with {component_count} components"
    return Event(
        user_id=user_id,
        category=CATEGORY_ENTITY,
        action="import",
        severity=Severity.SUCCESS,
        description=description,
        metadata={"model": model_name, "components": component_count},
    )


def error_event(description: str, error: BaseException, *, action: str = "import", user_id: str = "") -> Event:
    return Event(
        user_id=user_id,
        category=CATEGORY_ENTITY,
        action=action,
        severity=Severity.ERROR,
        description=description,
        metadata={"error": str(error), "error_type": type(error).__name__},
    )


def registration_event(message: str, error_message: str, report: dict[str, Any], *, user_id: str = "") -> Event:
    """Final event of a registering import; a warning when any entity failed."""
    return Event(
        user_id=user_id,
        category=CATEGORY_REGISTRATION,
        action="register",
        severity=Severity.WARNING if error_message else Severity.SUCCESS,
        description=message,
        metadata={"error": error_message, "report": report} if error_message else {"report": report},
    )

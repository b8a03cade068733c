"""
Registration outcome report.

One report per import request. Every attempted entity contributes exactly
one outcome: a success or a classified failure. Partial success is explicit
(``total_count`` vs ``err_count`` plus per-entity detail), never collapsed
into a single flag.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import ValidationError

from modelbridge.contracts.entities import (
    Entity,
    EntityType,
    ModelDefinition,
    entity_name,
    entity_type_of,
)
from modelbridge.contracts.registry import EntityRegistrationResult
from modelbridge.errors import EntityDecodeError


class FailureKind(str, Enum):
    REGISTRANT_CONFLICT = "registrant_conflict"
    MODEL_CONFLICT = "model_conflict"
    SCHEMA = "schema"
    UNKNOWN = "unknown"


def classify_failure(result: EntityRegistrationResult) -> FailureKind | None:
    """Map a RegisterEntity result to a failure kind (None on success).

    A registrant conflict wins when both identity flags are set.
    """
    if result.registrant_error:
        return FailureKind.REGISTRANT_CONFLICT
    if result.model_error:
        return FailureKind.MODEL_CONFLICT
    if result.error is None:
        return None
    if isinstance(result.error, EntityDecodeError | ValidationError):
        return FailureKind.SCHEMA
    return FailureKind.UNKNOWN


@dataclass(frozen=True)
class EntityIdentity:
    """Who an outcome is about.

    ``entity_type`` is None when a file could not be decoded far enough to
    know what it holds.
    """

    entity_type: EntityType | None
    name: str
    model_name: str = ""
    version: str = ""

    @classmethod
    def of(cls, entity: Entity) -> EntityIdentity:
        if isinstance(entity, ModelDefinition):
            return cls(EntityType.MODEL, entity_name(entity), entity.name, entity.content_version)
        model = entity.model
        return cls(
            entity_type_of(entity),
            entity_name(entity),
            model.name if model is not None else "",
            model.content_version if model is not None else "",
        )

    def describe(self) -> str:
        kind = self.entity_type.value if self.entity_type else "entity"
        if self.model_name and self.entity_type is not EntityType.MODEL:
            return f"{kind} {self.name} (model {self.model_name})"
        return f"{kind} {self.name}"


@dataclass(frozen=True)
class RegistrationFailure:
    identity: EntityIdentity
    kind: FailureKind
    detail: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "entityType": self.identity.entity_type.value if self.identity.entity_type else None,
            "name": self.identity.name,
            "model": self.identity.model_name,
            "version": self.identity.version,
            "kind": self.kind.value,
            "error": self.detail,
        }


@dataclass(frozen=True)
class RegistrationOutcome:
    """Result of one attempted registration (failure is None on success)."""

    identity: EntityIdentity
    failure: RegistrationFailure | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls, identity: EntityIdentity) -> RegistrationOutcome:
        return cls(identity=identity)

    @classmethod
    def failed(cls, identity: EntityIdentity, kind: FailureKind, detail: str) -> RegistrationOutcome:
        return cls(identity=identity, failure=RegistrationFailure(identity, kind, detail))


@dataclass
class EntityCount:
    """Successful registrations per entity type and the failure total."""

    model_count: int = 0
    comp_count: int = 0
    rel_count: int = 0
    total_err_count: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "modelCount": self.model_count,
            "compCount": self.comp_count,
            "relCount": self.rel_count,
            "totalErrCount": self.total_err_count,
        }


@dataclass
class RegistrationReport:
    """Aggregate of every outcome of one import request.

    Mutated only by the pipeline's collector task.
    """

    entity_count: EntityCount = field(default_factory=EntityCount)
    failures: list[RegistrationFailure] = field(default_factory=list)
    models: list[str] = field(default_factory=list)
    components: list[str] = field(default_factory=list)
    relationships: list[str] = field(default_factory=list)
    total_count: int = 0

    @property
    def err_count(self) -> int:
        return self.entity_count.total_err_count

    @property
    def success_count(self) -> int:
        return self.total_count - self.err_count

    @property
    def has_failures(self) -> bool:
        return self.err_count > 0

    def record(self, outcome: RegistrationOutcome) -> None:
        self.total_count += 1
        if outcome.failure is not None:
            self.entity_count.total_err_count += 1
            self.failures.append(outcome.failure)
            return
        identity = outcome.identity
        if identity.entity_type is EntityType.MODEL:
            self.entity_count.model_count += 1
            self.models.append(identity.name)
        elif identity.entity_type is EntityType.COMPONENT:
            self.entity_count.comp_count += 1
            self.components.append(identity.name)
        elif identity.entity_type is EntityType.RELATIONSHIP:
            self.entity_count.rel_count += 1
            self.relationships.append(identity.name)

    def message(self) -> str:
        """Human-readable summary of what was imported."""
        count = self.entity_count
        if self.total_count == 0:
            return "No entities found to register"
        parts = []
        if count.model_count:
            parts.append(f"{count.model_count} model(s): {', '.join(self.models)}")
        if count.comp_count:
            parts.append(f"{count.comp_count} component(s)")
        if count.rel_count:
            parts.append(f"{count.rel_count} relationship(s)")
        if not parts:
            return f"No entities imported ({self.err_count} of {self.total_count} failed)"
        summary = "Imported " + ", ".join(parts)
        if self.err_count:
            summary += f" ({self.err_count} of {self.total_count} failed)"
        return summary

    def error_message(self) -> str:
        """Per-entity failure lines; empty when nothing failed."""
        if not self.failures:
            return ""
        lines = [f"Failed to register {self.err_count} entit{'y' if self.err_count == 1 else 'ies'}:"]
        for failure in self.failures:
            kind = failure.kind.value.replace("_", " ")
            lines.append(f"- {failure.identity.describe()}: {kind}: {failure.detail}")
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalCount": self.total_count,
            "errCount": self.err_count,
            "entityCount": self.entity_count.to_dict(),
            "models": list(self.models),
            "components": list(self.components),
            "relationships": list(self.relationships),
            "errors": [f.to_dict() for f in self.failures],
        }

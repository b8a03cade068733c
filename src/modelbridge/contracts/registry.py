"""
Contract of the backing registry.

The registry store is an external collaborator; this module only fixes the
shapes exchanged with it. Query errors are raised; per-entity registration
outcomes are returned.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

from modelbridge.contracts.entities import Entity, ModelDefinition

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence


@dataclass(frozen=True)
class Connection:
    """Connection the registered entity originates from."""

    kind: str = ""


@dataclass(frozen=True)
class ModelFilter:
    """Model lookup filter.

    Attributes:
        id: Exact model id.
        name: Model name (greedy match when ``greedy`` is set).
        version: Content version.
        components: Inline the model's components.
        relationships: Inline the model's relationships.
        greedy: Substring match on name.
    """

    id: str = ""
    name: str = ""
    version: str = ""
    components: bool = False
    relationships: bool = False
    greedy: bool = False
    limit: int = 0
    offset: int = 0


@dataclass(frozen=True)
class RegistrantFilter:
    display_name: str = ""
    greedy: bool = False
    limit: int = 0
    offset: int = 0
    sort: str = ""
    order_on: str = ""


@dataclass
class EntityPage:
    entities: list[Entity] = field(default_factory=list)
    count: int = 0
    unique_count: int = 0


@dataclass
class RegistrantPage:
    registrants: list[dict[str, Any]] = field(default_factory=list)
    count: int = 0


@dataclass(frozen=True)
class EntityRegistrationResult:
    """Outcome of one RegisterEntity call.

    The two flags are independent; both may be false while ``error`` is set
    (for example a schema validation failure).
    """

    registrant_error: bool = False
    model_error: bool = False
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and not self.registrant_error and not self.model_error


class Registry(Protocol):
    """Registry operations consumed by the pipeline."""

    async def get_entities(self, entity_filter: ModelFilter) -> EntityPage: ...

    async def register_entity(
        self, connection: Connection, entity: Entity
    ) -> EntityRegistrationResult: ...

    async def update_entity_status(self, entity_id: str, status: str, entity_type: str) -> None: ...

    async def get_registrants(self, registrant_filter: RegistrantFilter) -> RegistrantPage: ...


def first_model(entities: Sequence[Entity]) -> ModelDefinition | None:
    """Return the first ModelDefinition in a query result, or None."""
    for entity in entities:
        if isinstance(entity, ModelDefinition):
            return entity
    return None


DEFAULT_PAGE_SIZE = 25


@dataclass(frozen=True)
class PaginationParams:
    """Listing parameters.

    ``page`` is 1-based; ``limit`` 0 (``pagesize=all``) means no limit.
    """

    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE
    search: str = ""
    order: str = ""
    sort: str = "asc"

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit if self.limit else 0

    @classmethod
    def from_query(cls, params: Mapping[str, str]) -> PaginationParams:
        """Parse query parameters; unparsable numbers fall back to defaults."""
        page = _positive_int(params.get("page"), 1)
        raw_size = params.get("pagesize", "")
        limit = 0 if raw_size == "all" else _positive_int(raw_size, DEFAULT_PAGE_SIZE)
        sort = params.get("sort", "asc").lower()
        return cls(
            page=page,
            limit=limit,
            search=params.get("search", ""),
            order=params.get("order", ""),
            sort=sort if sort in {"asc", "desc"} else "asc",
        )

    def registrant_filter(self) -> RegistrantFilter:
        return RegistrantFilter(
            display_name=self.search,
            greedy=bool(self.search),
            limit=self.limit,
            offset=self.offset,
            sort=self.sort,
            order_on=self.order,
        )


def _positive_int(raw: str | None, default: int) -> int:
    try:
        value = int(raw) if raw else default
    except ValueError:
        return default
    return value if value > 0 else default

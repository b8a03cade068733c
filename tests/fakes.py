"""In-memory collaborators and builders shared by the test suite."""

from __future__ import annotations

import asyncio
import base64
from typing import TYPE_CHECKING

from modelbridge.codec import OutputFormat, write_entity
from modelbridge.contracts.entities import (
    Category,
    ComponentDefinition,
    ComponentSpec,
    Entity,
    ModelDefinition,
    PackageInfo,
    Registrant,
    RelationshipDefinition,
    entity_name,
)
from modelbridge.contracts.registry import (
    Connection,
    EntityPage,
    EntityRegistrationResult,
    ModelFilter,
    RegistrantFilter,
    RegistrantPage,
)
from modelbridge.errors import DownloadError
from modelbridge.events.models import Event
from modelbridge.events.sinks import EventSink, SinkResult
from modelbridge.layout import layout_for, unique_path

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path


class FakeRegistry:
    """Registry double recording every call.

    ``results`` maps an entity name to the result returned for it;
    ``raise_on`` names entities whose registration raises.
    """

    def __init__(self, entities: Iterable[Entity] = ()) -> None:
        self.entities: list[Entity] = list(entities)
        self.registered: list[tuple[Connection, Entity]] = []
        self.results: dict[str, EntityRegistrationResult] = {}
        self.raise_on: set[str] = set()
        self.query_error: Exception | None = None
        self.status_error: Exception | None = None
        self.filters: list[ModelFilter] = []
        self.status_updates: list[tuple[str, str, str]] = []
        self.registrants: list[dict[str, object]] = []
        self.registrant_filters: list[RegistrantFilter] = []

    async def get_entities(self, entity_filter: ModelFilter) -> EntityPage:
        self.filters.append(entity_filter)
        if self.query_error is not None:
            raise self.query_error
        matches: list[Entity] = []
        for entity in self.entities:
            if not isinstance(entity, ModelDefinition):
                continue
            if entity_filter.id and entity.id != entity_filter.id:
                continue
            if entity_filter.name and entity_filter.name.lower() not in entity.name:
                continue
            if entity_filter.version and entity.content_version != entity_filter.version:
                continue
            update: dict[str, object] = {}
            if not entity_filter.components:
                update["components"] = None
            if not entity_filter.relationships:
                update["relationships"] = None
            matches.append(entity.model_copy(update=update))
        return EntityPage(entities=matches, count=len(matches), unique_count=len(matches))

    async def register_entity(
        self, connection: Connection, entity: Entity
    ) -> EntityRegistrationResult:
        self.registered.append((connection, entity))
        name = entity_name(entity)
        if name in self.raise_on:
            raise RuntimeError(f"registry unavailable for {name}")
        return self.results.get(name, EntityRegistrationResult())

    async def update_entity_status(self, entity_id: str, status: str, entity_type: str) -> None:
        if self.status_error is not None:
            raise self.status_error
        self.status_updates.append((entity_id, status, entity_type))

    async def get_registrants(self, registrant_filter: RegistrantFilter) -> RegistrantPage:
        self.registrant_filters.append(registrant_filter)
        if self.query_error is not None:
            raise self.query_error
        return RegistrantPage(registrants=list(self.registrants), count=len(self.registrants))

    def registered_names(self) -> list[str]:
        return [entity_name(entity) for _, entity in self.registered]


class FakeDownloader:
    """Downloader double serving canned bodies by URL."""

    def __init__(self, responses: dict[str, bytes] | None = None, status: int = 404) -> None:
        self.responses = dict(responses or {})
        self.status = status
        self.fetched: list[str] = []

    async def fetch(self, url: str) -> bytes:
        self.fetched.append(url)
        if url not in self.responses:
            raise DownloadError(
                f"failed to download file, status code: {self.status}", status=self.status
            )
        return self.responses[url]


def make_model(
    name: str = "aws-ec2",
    version: str = "v1.0.0",
    *,
    registrant: str = "github",
    display_name: str = "",
    **fields: object,
) -> ModelDefinition:
    return ModelDefinition(
        name=name,
        display_name=display_name or name,
        registrant=Registrant(kind=registrant),
        category=Category(name="Cloud"),
        model=PackageInfo(version=version),
        **fields,
    )


def make_component(kind: str, model: ModelDefinition | None = None) -> ComponentDefinition:
    return ComponentDefinition(
        display_name=kind,
        component=ComponentSpec(kind=kind, version="ec2.aws/v1", schema_='{"type": "object"}'),
        model=model,
    )


def make_relationship(
    kind: str = "edge",
    type_: str = "binding",
    sub_type: str = "network",
    model: ModelDefinition | None = None,
) -> RelationshipDefinition:
    return RelationshipDefinition(kind=kind, type=type_, sub_type=sub_type, model=model)


def write_package_tree(
    root: Path,
    model: ModelDefinition,
    components: Iterable[ComponentDefinition] = (),
    relationships: Iterable[RelationshipDefinition] = (),
    fmt: OutputFormat = OutputFormat.JSON,
) -> Path:
    """Write a canonical package under ``root`` and return its version dir."""
    layout = layout_for(root, model, fmt)
    layout.create()
    header = model.header()
    write_entity(header, layout.model_file, fmt)
    for component in components:
        component = component.model_copy(update={"model": header})
        write_entity(component, unique_path(layout.component_file(component)), fmt)
    for relationship in relationships:
        relationship = relationship.model_copy(update={"model": header})
        write_entity(relationship, unique_path(layout.relationship_file(relationship)), fmt)
    return layout.version_dir


def csv_data_url(text: str) -> str:
    return "data:text/csv;base64," + base64.b64encode(text.encode()).decode()


MODEL_SHEET = """model,modelDisplayName,registrant,category,version
aws-ec2,AWS EC2,github,Cloud,v1.2.0
"""

COMPONENT_SHEET = """model,component,version,displayName
aws-ec2,Instance,ec2.aws/v1,EC2 Instance
aws-ec2,SecurityGroup,ec2.aws/v1,
"""

RELATIONSHIP_SHEET = """model,kind,type,subType
aws-ec2,edge,binding,network
"""


class RecordingSink(EventSink):
    """Event sink keeping every delivered event in memory."""

    def __init__(self, name: str = "recording", *, fail: bool = False, raise_error: bool = False) -> None:
        self._name = name
        self.fail = fail
        self.raise_error = raise_error
        self.events: list[Event] = []
        self.closed = False

    @property
    def name(self) -> str:
        return self._name

    async def send(self, event: Event) -> SinkResult:
        await asyncio.sleep(0)
        if self.raise_error:
            raise RuntimeError("sink exploded")
        self.events.append(event)
        if self.fail:
            return SinkResult(success=False, sink_name=self.name, error="rejected")
        return SinkResult(success=True, sink_name=self.name)

    async def close(self) -> None:
        self.closed = True

    def descriptions(self) -> list[str]:
        return [event.description for event in self.events]

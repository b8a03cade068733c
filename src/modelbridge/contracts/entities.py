"""
Registry entity contracts.

Models own components and relationships by back-reference only: a component
or relationship carries a copy of its model header (the model without its
own component/relationship lists), set when the entity is written or
registered. The JSON wire format uses camelCase keys; unknown keys are kept
so that a load/dump round trip does not lose vendor fields.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

MODEL_SCHEMA_VERSION = "models.meshery.io/v1beta1"
COMPONENT_SCHEMA_VERSION = "components.meshery.io/v1beta1"
RELATIONSHIP_SCHEMA_VERSION = "relationships.meshery.io/v1alpha3"

# Definition (schema) version used when a source does not state one
DEFAULT_DEFINITION_VERSION = "v1.0.0"
DEFAULT_CONTENT_VERSION = "v1.0.0"


class EntityType(str, Enum):
    """Kind of registry entity."""

    MODEL = "model"
    COMPONENT = "component"
    RELATIONSHIP = "relationship"


def entity_type_for_schema_version(schema_version: str) -> EntityType | None:
    """Classify a schemaVersion string such as ``components.meshery.io/v1beta1``."""
    group = schema_version.split("/", 1)[0].split(".", 1)[0].lower()
    return {
        "models": EntityType.MODEL,
        "components": EntityType.COMPONENT,
        "relationships": EntityType.RELATIONSHIP,
    }.get(group)


class _WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        protected_namespaces=(),
    )

    def to_document(self) -> dict[str, Any]:
        """Dump to the camelCase wire document, omitting unset optionals."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Registrant(_WireModel):
    """Originating source of a model (github, artifacthub, meshery, ...)."""

    kind: str = ""
    name: str = ""


class Category(_WireModel):
    name: str = "Uncategorized"


class PackageInfo(_WireModel):
    """Content (package) version information of a model."""

    version: str = DEFAULT_CONTENT_VERSION


class ModelMetadata(_WireModel):
    """Display metadata of a model."""

    primary_color: str | None = None
    secondary_color: str | None = None
    shape: str | None = None
    svg_color: str | None = None
    svg_white: str | None = None
    svg_complete: str | None = None
    is_annotation: bool = False
    publish_to_registry: bool = True


class ComponentMetadata(_WireModel):
    """Display metadata of a component."""

    shape: str | None = None
    primary_color: str | None = None
    svg_color: str | None = None
    svg_white: str | None = None
    svg_complete: str | None = None
    is_annotation: bool = False


class ComponentSpec(_WireModel):
    """The typed resource a component describes.

    Attributes:
        kind: Resource kind (e.g. "Deployment").
        version: API version of the resource (e.g. "apps/v1").
        schema_: Raw schema blob, usually a JSON document in a string.
    """

    kind: str = Field(..., min_length=1)
    version: str = ""
    schema_: str = Field(default="", alias="schema")


class ModelDefinition(_WireModel):
    """A named, versioned collection of components and relationships.

    ``components is None`` means components were not requested or not
    attached, which is distinct from an empty list.
    """

    id: str | None = None
    schema_version: str = MODEL_SCHEMA_VERSION
    version: str = DEFAULT_DEFINITION_VERSION
    name: str = Field(..., min_length=1)
    display_name: str = ""
    description: str = ""
    status: str = "enabled"
    registrant: Registrant = Field(default_factory=Registrant)
    category: Category = Field(default_factory=Category)
    sub_category: str = ""
    metadata: ModelMetadata = Field(default_factory=ModelMetadata)
    model: PackageInfo = Field(default_factory=PackageInfo)
    components: list[ComponentDefinition] | None = None
    relationships: list[RelationshipDefinition] | None = None

    @field_validator("name")
    @classmethod
    def lower_name(cls, v: str) -> str:
        """Model names are case-insensitive; store them lower-cased."""
        return v.strip().lower()

    @property
    def content_version(self) -> str:
        return self.model.version or DEFAULT_CONTENT_VERSION

    def header(self) -> ModelDefinition:
        """Return a copy without attached components and relationships."""
        return self.model_copy(update={"components": None, "relationships": None})


class ComponentDefinition(_WireModel):
    id: str | None = None
    schema_version: str = COMPONENT_SCHEMA_VERSION
    version: str = DEFAULT_DEFINITION_VERSION
    display_name: str = ""
    description: str = ""
    format: str = "JSON"
    status: str = "enabled"
    metadata: ComponentMetadata = Field(default_factory=ComponentMetadata)
    model: ModelDefinition | None = None
    component: ComponentSpec

    @property
    def kind(self) -> str:
        return self.component.kind

    @property
    def model_name(self) -> str:
        return self.model.name if self.model is not None else ""


class RelationshipDefinition(_WireModel):
    id: str | None = None
    schema_version: str = RELATIONSHIP_SCHEMA_VERSION
    version: str = DEFAULT_DEFINITION_VERSION
    kind: str = Field(..., min_length=1)
    type: str = ""
    sub_type: str = ""
    status: str = "enabled"
    evaluation_query: str | None = None
    schema_: str = Field(default="", alias="schema")
    metadata: dict[str, Any] = Field(default_factory=dict)
    selectors: list[dict[str, Any]] | None = None
    model: ModelDefinition | None = None

    @property
    def name(self) -> str:
        return "-".join(part for part in (self.kind, self.type, self.sub_type) if part)

    @property
    def model_name(self) -> str:
        return self.model.name if self.model is not None else ""


Entity = ModelDefinition | ComponentDefinition | RelationshipDefinition

ModelDefinition.model_rebuild()
ComponentDefinition.model_rebuild()
RelationshipDefinition.model_rebuild()


def entity_type_of(entity: Entity) -> EntityType:
    if isinstance(entity, ModelDefinition):
        return EntityType.MODEL
    if isinstance(entity, ComponentDefinition):
        return EntityType.COMPONENT
    return EntityType.RELATIONSHIP


def entity_name(entity: Entity) -> str:
    """Human-facing identity used in reports and events."""
    if isinstance(entity, ModelDefinition):
        return entity.display_name or entity.name
    if isinstance(entity, ComponentDefinition):
        return entity.display_name or entity.kind
    return entity.name

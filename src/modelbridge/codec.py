"""
Entity file codecs.

Per-entity files are written as JSON (orjson, 2-space indent) or YAML. The
``oci`` output format is the encoding used inside OCI artifacts, which is
JSON with a ``.json`` suffix.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any

import orjson
import yaml
from pydantic import ValidationError

from modelbridge.contracts.entities import (
    ComponentDefinition,
    Entity,
    EntityType,
    ModelDefinition,
    RelationshipDefinition,
    entity_type_for_schema_version,
)
from modelbridge.errors import EntityDecodeError

if TYPE_CHECKING:
    from pathlib import Path

JSON_SUFFIXES = frozenset({".json"})
YAML_SUFFIXES = frozenset({".yaml", ".yml"})
ENTITY_SUFFIXES = JSON_SUFFIXES | YAML_SUFFIXES


class OutputFormat(str, Enum):
    JSON = "json"
    YAML = "yaml"
    OCI = "oci"

    @property
    def extension(self) -> str:
        return "yaml" if self is OutputFormat.YAML else "json"

    @classmethod
    def parse(cls, value: str | None) -> OutputFormat:
        """Parse a query value; empty means JSON.

        Raises:
            ValueError: For an unsupported format.
        """
        if not value:
            return cls.JSON
        try:
            return cls(value.lower())
        except ValueError:
            supported = ", ".join(f.value for f in cls)
            raise ValueError(f"unsupported output format {value!r} (supported: {supported})") from None


def encode_document(document: dict[str, Any], fmt: OutputFormat) -> bytes:
    if fmt is OutputFormat.YAML:
        return yaml.safe_dump(document, sort_keys=False, allow_unicode=True).encode()
    return orjson.dumps(document, option=orjson.OPT_INDENT_2) + b"\n"


def decode_document(data: bytes, suffix: str) -> Any:
    """Decode a JSON or YAML document; the suffix picks the parser."""
    if suffix.lower() in YAML_SUFFIXES:
        return yaml.safe_load(data)
    return orjson.loads(data)


def write_entity(entity: Entity, path: Path, fmt: OutputFormat) -> Path:
    """Write an entity file and return its path."""
    path.write_bytes(encode_document(entity.to_document(), fmt))
    return path


_ENTITY_CLASSES: dict[EntityType, type[ModelDefinition | ComponentDefinition | RelationshipDefinition]] = {
    EntityType.MODEL: ModelDefinition,
    EntityType.COMPONENT: ComponentDefinition,
    EntityType.RELATIONSHIP: RelationshipDefinition,
}


def entity_from_document(document: Any, source: str) -> Entity:
    """Validate a decoded document into the entity its schemaVersion names.

    Raises:
        EntityDecodeError: If the document has no known schemaVersion or
            fails validation.
    """
    if not isinstance(document, dict):
        raise EntityDecodeError(source, "document is not an object")
    schema_version = document.get("schemaVersion", "")
    entity_type = entity_type_for_schema_version(str(schema_version))
    if entity_type is None:
        raise EntityDecodeError(source, f"unknown schemaVersion {schema_version!r}")
    try:
        return _ENTITY_CLASSES[entity_type].model_validate(document)
    except ValidationError as e:
        raise EntityDecodeError(source, f"invalid {entity_type.value} definition: {e}") from e


def load_entity(path: Path) -> Entity:
    """Read and validate one entity file.

    Raises:
        EntityDecodeError: If the file cannot be read, parsed or validated.
    """
    try:
        data = path.read_bytes()
    except OSError as e:
        raise EntityDecodeError(path.name, f"cannot read file: {e}") from e
    try:
        document = decode_document(data, path.suffix)
    except (orjson.JSONDecodeError, yaml.YAMLError) as e:
        raise EntityDecodeError(path.name, f"cannot parse file: {e}") from e
    return entity_from_document(document, path.name)

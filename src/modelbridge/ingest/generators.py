"""
Generators that turn raw sources into model packages.

Sheet generation and URL scaffolding are pluggable: adapters depend on the
SheetGenerator / ComponentGenerator protocols and these are the default
implementations.

CSV sheets (header names are matched case-insensitively, ignoring spaces
and underscores):
    models:        model, modelDisplayName, description, version, registrant,
                   category, subCategory, primaryColor, secondaryColor, shape,
                   svgColor, svgWhite, svgComplete, isAnnotation, publishToRegistry
    components:    model, component, version, displayName, description, schema,
                   shape, svgColor, svgWhite, svgComplete, isAnnotation
    relationships: model, kind, type, subType, evaluationQuery, selectors (JSON),
                   description
"""

from __future__ import annotations

import csv
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol
from urllib.parse import parse_qs, urlsplit

import orjson
import yaml

from modelbridge.codec import OutputFormat, write_entity
from modelbridge.contracts.entities import (
    DEFAULT_CONTENT_VERSION,
    Category,
    ComponentDefinition,
    ComponentMetadata,
    ComponentSpec,
    ModelDefinition,
    ModelMetadata,
    PackageInfo,
    Registrant,
    RelationshipDefinition,
)
from modelbridge.errors import GenerationError, InvalidManifestError, InvalidSheetError
from modelbridge.layout import layout_for, unique_path

if TYPE_CHECKING:
    from modelbridge.ingest.download import Downloader

logger = logging.getLogger(__name__)

DEFAULT_REGISTRANT = "meshery"

_TRUE_VALUES = frozenset({"true", "t", "yes", "y", "1"})
_VERSION_IN_PATH = re.compile(r"/(v\d+\.\d+\.\d+[^/]*)")


class SheetGenerator(Protocol):
    def generate(
        self,
        model_csv: Path,
        component_csv: Path,
        relationship_csv: Path,
        output_root: Path,
    ) -> list[Path]: ...


@dataclass
class GeneratedPackage:
    """Components scaffolded from a URL source."""

    version: str
    components: list[ComponentSpec] = field(default_factory=list)


class ComponentGenerator(Protocol):
    async def generate(self, registrant: str, url: str, model_name: str) -> GeneratedPackage: ...


def _norm(key: str) -> str:
    return key.replace(" ", "").replace("_", "").lower()


def _read_sheet(path: Path) -> list[dict[str, str]]:
    """Read a CSV sheet into rows keyed by normalized header."""
    with path.open(newline="", encoding="utf-8-sig") as f:
        reader = csv.DictReader(f)
        rows = []
        for row in reader:
            rows.append({_norm(k): (v or "").strip() for k, v in row.items() if k is not None})
    return rows


def _truthy(value: str, *, default: bool = False) -> bool:
    if not value:
        return default
    return value.lower() in _TRUE_VALUES


def _model_from_row(row: dict[str, str]) -> ModelDefinition:
    name = row.get("model", "")
    return ModelDefinition(
        name=name,
        display_name=row.get("modeldisplayname") or name,
        description=row.get("description", ""),
        registrant=Registrant(kind=row.get("registrant") or DEFAULT_REGISTRANT),
        category=Category(name=row.get("category") or "Uncategorized"),
        sub_category=row.get("subcategory") or "Uncategorized",
        metadata=ModelMetadata(
            primary_color=row.get("primarycolor") or None,
            secondary_color=row.get("secondarycolor") or None,
            shape=row.get("shape") or None,
            svg_color=row.get("svgcolor") or None,
            svg_white=row.get("svgwhite") or None,
            svg_complete=row.get("svgcomplete") or None,
            is_annotation=_truthy(row.get("isannotation", "")),
            publish_to_registry=_truthy(row.get("publishtoregistry", ""), default=True),
        ),
        model=PackageInfo(version=row.get("version") or DEFAULT_CONTENT_VERSION),
    )


def _component_from_row(row: dict[str, str], model: ModelDefinition) -> ComponentDefinition:
    kind = row.get("component") or row.get("kind", "")
    return ComponentDefinition(
        display_name=row.get("displayname") or kind,
        description=row.get("description", ""),
        metadata=ComponentMetadata(
            shape=row.get("shape") or None,
            svg_color=row.get("svgcolor") or None,
            svg_white=row.get("svgwhite") or None,
            svg_complete=row.get("svgcomplete") or None,
            is_annotation=_truthy(row.get("isannotation", "")),
        ),
        model=model,
        component=ComponentSpec(
            kind=kind,
            version=row.get("version", ""),
            schema_=row.get("schema", ""),
        ),
    )


def _relationship_from_row(row: dict[str, str], model: ModelDefinition) -> RelationshipDefinition:
    selectors: list[dict[str, Any]] | None = None
    if raw := row.get("selectors"):
        parsed = orjson.loads(raw)
        selectors = parsed if isinstance(parsed, list) else [parsed]
    metadata = {"description": row["description"]} if row.get("description") else {}
    return RelationshipDefinition(
        kind=row.get("kind", ""),
        type=row.get("type", ""),
        sub_type=row.get("subtype", ""),
        evaluation_query=row.get("evaluationquery") or None,
        metadata=metadata,
        selectors=selectors,
        model=model,
    )


class CsvSheetGenerator:
    """Generates one canonical package per row of the model sheet."""

    def __init__(self, fmt: OutputFormat = OutputFormat.JSON) -> None:
        self._fmt = fmt

    def generate(
        self,
        model_csv: Path,
        component_csv: Path,
        relationship_csv: Path,
        output_root: Path,
    ) -> list[Path]:
        """Write packages for every model row.

        Returns:
            Version directories of the generated packages.

        Raises:
            InvalidSheetError: If a sheet cannot be parsed or a row is invalid.
            GenerationError: If a sheet cannot be read or a package cannot be written.
        """
        try:
            model_rows = _read_sheet(model_csv)
            component_rows = _read_sheet(component_csv)
            relationship_rows = _read_sheet(relationship_csv)
        except OSError as e:
            raise GenerationError(f"cannot read CSV sheet: {e}", cause=e) from e
        except (csv.Error, UnicodeDecodeError) as e:
            raise InvalidSheetError(f"cannot parse CSV sheet: {e}", cause=e) from e

        models: dict[str, ModelDefinition] = {}
        for n, row in enumerate(model_rows, start=2):
            if not row.get("model"):
                continue
            try:
                model = _model_from_row(row)
            except ValueError as e:
                raise InvalidSheetError(f"invalid model row {n}: {e}", cause=e) from e
            models[model.name] = model

        components: dict[str, list[ComponentDefinition]] = {name: [] for name in models}
        for n, row in enumerate(component_rows, start=2):
            model = models.get(row.get("model", "").lower())
            if model is None:
                logger.warning("Component row references unknown model", extra={"row": n})
                continue
            try:
                components[model.name].append(_component_from_row(row, model))
            except ValueError as e:
                raise InvalidSheetError(f"invalid component row {n}: {e}", cause=e) from e

        relationships: dict[str, list[RelationshipDefinition]] = {name: [] for name in models}
        for n, row in enumerate(relationship_rows, start=2):
            model = models.get(row.get("model", "").lower())
            if model is None:
                logger.warning("Relationship row references unknown model", extra={"row": n})
                continue
            try:
                relationships[model.name].append(_relationship_from_row(row, model))
            except (ValueError, orjson.JSONDecodeError) as e:
                raise InvalidSheetError(f"invalid relationship row {n}: {e}", cause=e) from e

        generated: list[Path] = []
        for name, model in models.items():
            try:
                layout = layout_for(output_root, model, self._fmt)
            except ValueError as e:
                raise InvalidSheetError(f"invalid model {name}: {e}", cause=e) from e
            try:
                layout.create()
                write_entity(model, layout.model_file, self._fmt)
                for component in components[name]:
                    write_entity(component, unique_path(layout.component_file(component)), self._fmt)
                for relationship in relationships[name]:
                    path = unique_path(layout.relationship_file(relationship))
                    write_entity(relationship, path, self._fmt)
            except OSError as e:
                raise GenerationError(f"cannot write package for model {name}: {e}", cause=e) from e
            logger.info(
                "Generated model package from sheet",
                extra={
                    "model": name,
                    "components": len(components[name]),
                    "relationships": len(relationships[name]),
                },
            )
            generated.append(layout.version_dir)
        return generated


def version_from_url(url: str) -> str:
    """Derive the content version from a source URL.

    Uses the ``version`` or ``ref`` query parameter, then a ``/vX.Y.Z``
    path segment, then the default version.
    """
    parts = urlsplit(url)
    query = parse_qs(parts.query)
    for key in ("version", "ref"):
        if values := query.get(key):
            return values[0]
    if match := _VERSION_IN_PATH.search(parts.path):
        return match.group(1)
    return DEFAULT_CONTENT_VERSION


def _iter_documents(documents: list[Any]) -> list[dict[str, Any]]:
    flat: list[dict[str, Any]] = []
    for doc in documents:
        if not isinstance(doc, dict):
            continue
        if doc.get("kind") == "List" and isinstance(doc.get("items"), list):
            flat.extend(item for item in doc["items"] if isinstance(item, dict))
        else:
            flat.append(doc)
    return flat


def component_from_crd(crd: dict[str, Any]) -> ComponentSpec | None:
    """Build a component spec from a CustomResourceDefinition document.

    The storage version wins when the CRD serves several versions.
    """
    spec = crd.get("spec") or {}
    kind = (spec.get("names") or {}).get("kind")
    group = spec.get("group", "")
    versions = spec.get("versions") or []
    if not kind or not versions:
        return None
    chosen = next((v for v in versions if v.get("storage")), versions[0])
    schema = (chosen.get("schema") or {}).get("openAPIV3Schema") or {}
    api_version = f"{group}/{chosen.get('name', '')}" if group else chosen.get("name", "")
    return ComponentSpec(
        kind=kind,
        version=api_version,
        schema_=orjson.dumps(schema).decode(),
    )


class ManifestComponentGenerator:
    """Scaffolds components from the CRDs in a YAML/JSON manifest URL."""

    def __init__(self, downloader: Downloader) -> None:
        self._downloader = downloader

    async def generate(self, registrant: str, url: str, model_name: str) -> GeneratedPackage:
        """Download ``url`` and turn each CRD into a component spec.

        Raises:
            DownloadError: If the URL cannot be fetched.
            InvalidManifestError: If the body is not YAML.
            GenerationError: If the manifest holds no CRDs.
        """
        data = await self._downloader.fetch(url)
        try:
            documents = list(yaml.safe_load_all(data))
        except yaml.YAMLError as e:
            raise InvalidManifestError(f"source is not a YAML/JSON manifest: {e}", cause=e) from e

        specs: dict[str, ComponentSpec] = {}
        for doc in _iter_documents(documents):
            if doc.get("kind") != "CustomResourceDefinition":
                continue
            spec = component_from_crd(doc)
            if spec is not None and spec.kind not in specs:
                specs[spec.kind] = spec

        if not specs:
            raise GenerationError(f"no CustomResourceDefinitions found for model {model_name}")

        logger.info(
            "Scaffolded components from URL",
            extra={"model": model_name, "registrant": registrant, "components": len(specs)},
        )
        return GeneratedPackage(version=version_from_url(url), components=list(specs.values()))

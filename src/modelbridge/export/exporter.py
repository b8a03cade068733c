"""
Model export packager.

Pulls a registered model (optionally with its components and relationships)
from the registry, writes it out in the canonical package layout under a
scratch directory and packages that tree as an OCI image tar or a gzip
tarball. The scratch directory is removed once the artifact bytes are in
memory, on every exit path.
"""

from __future__ import annotations

import asyncio
import logging
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from modelbridge.codec import write_entity
from modelbridge.contracts.registry import ModelFilter, first_model
from modelbridge.errors import PackagingError, RegistryUnavailableError
from modelbridge.export.query import FILE_TYPE_OCI, FILE_TYPE_TAR_GZ
from modelbridge.layout import layout_for, unique_path
from modelbridge.packaging.archive import compress_directory
from modelbridge.packaging.oci import OCIError, build_image, save_oci_artifact
from modelbridge.svg import inline_svg_references

if TYPE_CHECKING:
    from modelbridge.codec import OutputFormat
    from modelbridge.config import PipelineConfig
    from modelbridge.contracts.entities import (
        ComponentDefinition,
        ModelDefinition,
        RelationshipDefinition,
    )
    from modelbridge.contracts.registry import Registry
    from modelbridge.export.query import ExportQuery
    from modelbridge.metrics import PipelineMetrics

logger = logging.getLogger(__name__)

CONTENT_TYPE_TAR = "application/x-tar"
CONTENT_TYPE_GZIP = "application/gzip"


@dataclass(frozen=True)
class ExportedArtifact:
    """Packaged model bytes plus the response metadata."""

    data: bytes
    content_type: str
    filename: str

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Content-Type": self.content_type,
            "Content-Disposition": f'attachment; filename="{self.filename}"',
            "Content-Length": str(len(self.data)),
        }


@dataclass(frozen=True)
class ModelNotFound:
    """No registered model matched the query."""

    message: str


class ModelExporter:
    """Exports registered models as distributable artifacts."""

    def __init__(
        self,
        registry: Registry,
        config: PipelineConfig,
        metrics: PipelineMetrics | None = None,
    ) -> None:
        self._registry = registry
        self._config = config
        self._metrics = metrics

    async def export(self, query: ExportQuery) -> ExportedArtifact | ModelNotFound:
        """Export the model matching ``query``.

        Returns:
            The artifact, or ModelNotFound when nothing matched.

        Raises:
            RegistryUnavailableError: If the registry query fails.
            PackagingError: If the package cannot be written or archived.
        """
        file_type = FILE_TYPE_OCI if query.is_oci else FILE_TYPE_TAR_GZ
        model_filter = ModelFilter(
            id=query.id,
            name=query.name,
            version=query.version,
            components=query.include_components,
            relationships=query.include_relationships,
            greedy=True,
        )
        try:
            page = await self._registry.get_entities(model_filter)
        except Exception as e:
            self._record(file_type, "failed")
            raise RegistryUnavailableError(f"failed to get models: {e}", cause=e) from e

        model = first_model(page.entities)
        if model is None:
            self._record(file_type, "not_found")
            message = query.not_found_message()
            logger.info("Export model not found", extra={"model_id": query.id, "name": query.name})
            return ModelNotFound(message)

        try:
            artifact = await asyncio.to_thread(self._package, model, query)
        except PackagingError:
            self._record(file_type, "failed")
            raise
        self._record(file_type, "success", len(artifact.data))
        logger.info(
            "Exported model",
            extra={
                "model": model.name,
                "file_type": file_type,
                "size_bytes": len(artifact.data),
            },
        )
        return artifact

    def _record(self, file_type: str, outcome: str, size_bytes: int | None = None) -> None:
        if self._metrics is not None:
            self._metrics.record_export(file_type, outcome, size_bytes)

    def _package(self, model: ModelDefinition, query: ExportQuery) -> ExportedArtifact:
        try:
            if self._config.temp_root is not None:
                self._config.temp_root.mkdir(parents=True, exist_ok=True)
            with tempfile.TemporaryDirectory(
                prefix="modelbridge-export-", dir=self._config.temp_root
            ) as scratch:
                model_dir = write_package(
                    model, Path(scratch), query.output_format, self._config.asset_root
                )
                return package_model_dir(model_dir, model.name, oci=query.is_oci)
        except OSError as e:
            raise PackagingError(f"cannot package model {model.name}: {e}", cause=e) from e


def write_package(model: ModelDefinition, root: Path, fmt: OutputFormat, asset_root: Path) -> Path:
    """Write ``model`` in the canonical layout under ``root``.

    SVG references are inlined from ``asset_root``; every component and
    relationship is written with the model header attached. A component or
    relationship that cannot be written is logged and skipped.

    Returns:
        The model directory (``{root}/{modelName}``).
    """
    model = inline_svg_references(model, asset_root)
    components: list[ComponentDefinition] = list(model.components or [])
    relationships: list[RelationshipDefinition] = list(model.relationships or [])
    header = model.header()

    try:
        layout = layout_for(root, header, fmt)
    except ValueError as e:
        raise PackagingError(str(e), cause=e) from e
    layout.create()
    write_entity(header, layout.model_file, fmt)

    for component in components:
        component = inline_svg_references(component, asset_root)
        component = component.model_copy(update={"model": header})
        try:
            write_entity(component, unique_path(layout.component_file(component)), fmt)
        except OSError as e:
            logger.error(
                "Failed to write component",
                extra={"model": header.name, "component": component.kind, "error": str(e)},
            )
    for relationship in relationships:
        relationship = relationship.model_copy(update={"model": header})
        try:
            write_entity(relationship, unique_path(layout.relationship_file(relationship)), fmt)
        except OSError as e:
            logger.error(
                "Failed to write relationship",
                extra={"model": header.name, "relationship": relationship.name, "error": str(e)},
            )
    return layout.model_dir


def package_model_dir(model_dir: Path, name: str, *, oci: bool) -> ExportedArtifact:
    """Package a written model directory as an OCI image tar or a gzip tarball.

    Intermediate files land next to ``model_dir``.

    Raises:
        PackagingError: If the OCI image cannot be built.
    """
    if not oci:
        archive_path = model_dir.parent / "model.tar.gz"
        archive_path.write_bytes(compress_directory(model_dir))
        return ExportedArtifact(
            data=archive_path.read_bytes(),
            content_type=CONTENT_TYPE_GZIP,
            filename=f"{name}.tar.gz",
        )
    try:
        image = build_image(model_dir)
        tar_path = save_oci_artifact(image, model_dir.parent / "model.tar", name)
    except OCIError as e:
        raise PackagingError(f"cannot build OCI image for model {name}: {e}", cause=e) from e
    return ExportedArtifact(
        data=tar_path.read_bytes(),
        content_type=CONTENT_TYPE_TAR,
        filename=f"{name}.tar",
    )

"""
URL-scaffold adapter.

Builds a model definition from the inline metadata of the request, applies
defaults to unset fields and asks the component generator to scaffold the
components from the source URL. The package is written into the workspace
at the versioned path of the model.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from modelbridge.codec import OutputFormat, write_entity
from modelbridge.contracts.entities import (
    Category,
    ComponentDefinition,
    ComponentMetadata,
    ModelDefinition,
    ModelMetadata,
    PackageInfo,
    Registrant,
)
from modelbridge.contracts.requests import ModelFields, UploadType, UrlImportRequest
from modelbridge.errors import InvalidRequestError, TempResourceError
from modelbridge.ingest.base import Dir, IngestionAdapter, IngestResult
from modelbridge.ingest.generators import DEFAULT_REGISTRANT
from modelbridge.layout import layout_for, unique_path

if TYPE_CHECKING:
    from pathlib import Path

    from modelbridge.config import PipelineConfig
    from modelbridge.ingest.generators import ComponentGenerator, GeneratedPackage

logger = logging.getLogger(__name__)

DEFAULT_PRIMARY_COLOR = "#00b39f"
DEFAULT_SECONDARY_COLOR = "#00D3A9"
DEFAULT_SHAPE = "circle"
DEFAULT_CATEGORY = "Uncategorized"
DEFAULT_SUB_CATEGORY = "Uncategorized"


def apply_model_defaults(fields: ModelFields) -> ModelFields:
    """Return a copy with every unset metadata field defaulted.

    The model name is lower-cased; the display name falls back to the
    name as supplied.
    """
    return fields.model_copy(
        update={
            "model": fields.model.strip().lower(),
            "model_display_name": fields.model_display_name or fields.model.strip(),
            "primary_color": fields.primary_color or DEFAULT_PRIMARY_COLOR,
            "secondary_color": fields.secondary_color or DEFAULT_SECONDARY_COLOR,
            "shape": fields.shape or DEFAULT_SHAPE,
            "category": fields.category or DEFAULT_CATEGORY,
            "sub_category": fields.sub_category or DEFAULT_SUB_CATEGORY,
            "registrant": fields.registrant or DEFAULT_REGISTRANT,
        }
    )


def build_model_definition(fields: ModelFields, content_version: str) -> ModelDefinition:
    return ModelDefinition(
        name=fields.model,
        display_name=fields.model_display_name,
        registrant=Registrant(kind=fields.registrant),
        category=Category(name=fields.category),
        sub_category=fields.sub_category,
        metadata=ModelMetadata(
            primary_color=fields.primary_color,
            secondary_color=fields.secondary_color,
            shape=fields.shape,
            svg_color=fields.svg_color or None,
            svg_white=fields.svg_white or None,
            svg_complete=fields.svg_complete or None,
            is_annotation=fields.is_annotation,
            publish_to_registry=fields.publish_to_registry,
        ),
        model=PackageInfo(version=content_version),
    )


class UrlScaffoldAdapter(IngestionAdapter):
    """Scaffolds a model package from a source URL plus inline metadata."""

    upload_type = UploadType.URL

    def __init__(
        self,
        config: PipelineConfig,
        generator: ComponentGenerator,
        fmt: OutputFormat = OutputFormat.JSON,
    ) -> None:
        super().__init__(config)
        self._generator = generator
        self._fmt = fmt

    async def _prepare(self, request: UrlImportRequest) -> tuple[ModelFields, GeneratedPackage]:  # type: ignore[override]
        fields = apply_model_defaults(request.import_body.model)
        generated = await self._generator.generate(
            fields.registrant, request.import_body.url, fields.model
        )
        return fields, generated

    async def _produce(  # type: ignore[override]
        self, prepared: tuple[ModelFields, GeneratedPackage], workspace: Path
    ) -> IngestResult:
        fields, generated = prepared
        try:
            model = build_model_definition(fields, generated.version)
            layout = layout_for(workspace, model, self._fmt)
        except ValueError as e:
            raise InvalidRequestError(f"invalid model metadata: {e}", cause=e) from e
        header = model.header()
        try:
            layout.create()
            write_entity(model, layout.model_file, self._fmt)
            for spec in generated.components:
                component = ComponentDefinition(
                    display_name=spec.kind,
                    metadata=ComponentMetadata(shape=fields.shape, primary_color=fields.primary_color),
                    model=header,
                    component=spec,
                )
                write_entity(component, unique_path(layout.component_file(component)), self._fmt)
        except OSError as e:
            raise TempResourceError(f"error writing generated model {model.name}: {e}", cause=e) from e

        logger.info(
            "Scaffolded model from URL",
            extra={
                "model": model.name,
                "model_version": model.content_version,
                "components": len(generated.components),
            },
        )
        return IngestResult(
            dirs=[Dir(layout.version_dir)],
            model_name=model.name,
            component_count=len(generated.components),
            root=workspace,
        )

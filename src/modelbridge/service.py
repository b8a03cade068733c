"""
Import/export service.

Ties the pieces together for one request: pick the adapter for the upload
type, materialize the packages, register them when asked, publish events
and schedule the registry summary refresh. Terminal errors publish an
error event and are re-raised; per-entity failures end up in the report.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from modelbridge.contracts.entities import ComponentDefinition, EntityType, RelationshipDefinition
from modelbridge.contracts.registry import Connection
from modelbridge.contracts.requests import (
    EntityRegistrationRequest,
    UploadType,
    parse_body,
    parse_import_request,
)
from modelbridge.errors import InvalidRequestError, ModelBridgeError, RegistryUnavailableError
from modelbridge.events.models import (
    Event,
    Severity,
    error_event,
    import_generated_event,
    registration_event,
)
from modelbridge.export.exporter import ModelExporter
from modelbridge.ingest import build_adapters
from modelbridge.ingest.download import HttpDownloader
from modelbridge.registration.pipeline import RegistrationPipeline
from modelbridge.registration.report import RegistrationReport
from modelbridge.svg import write_svgs_to_filesystem

if TYPE_CHECKING:
    from modelbridge.config import PipelineConfig
    from modelbridge.contracts.registry import PaginationParams, Registry
    from modelbridge.contracts.requests import ImportRequest
    from modelbridge.events.broadcaster import EventBroadcaster
    from modelbridge.export.exporter import ExportedArtifact, ModelNotFound
    from modelbridge.export.query import ExportQuery
    from modelbridge.ingest.base import IngestionAdapter
    from modelbridge.ingest.download import Downloader
    from modelbridge.metrics import PipelineMetrics

logger = logging.getLogger(__name__)

SummaryRefresher = Callable[[], Awaitable[None]]

# Upload types whose adapter generates the package itself
_GENERATING_UPLOAD_TYPES = frozenset({UploadType.CSV, UploadType.URL})

_REGISTRABLE_ENTITY_TYPES: dict[str, type[ComponentDefinition | RelationshipDefinition]] = {
    EntityType.COMPONENT.value: ComponentDefinition,
    EntityType.RELATIONSHIP.value: RelationshipDefinition,
}


@dataclass
class ImportResponse:
    """Outcome of an import request.

    ``report`` is None when the request did not ask for registration.
    """

    upload_type: UploadType
    registered: bool
    generated: int
    report: RegistrationReport | None = None

    @property
    def message(self) -> str:
        if self.report is None:
            return f"Generated {self.generated} package(s) without registering"
        return self.report.message()

    @property
    def error_message(self) -> str:
        return self.report.error_message() if self.report is not None else ""

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "uploadType": self.upload_type.value,
            "registered": self.registered,
            "generated": self.generated,
            "message": self.message,
            "errMsg": self.error_message,
        }
        if self.report is not None:
            data.update(self.report.to_dict())
        return data


class ImportService:
    """Entry point for imports, single-entity registration, export and listing."""

    def __init__(
        self,
        registry: Registry,
        config: PipelineConfig,
        *,
        events: EventBroadcaster | None = None,
        metrics: PipelineMetrics | None = None,
        downloader: Downloader | None = None,
        adapters: dict[UploadType, IngestionAdapter] | None = None,
        summary_refresher: SummaryRefresher | None = None,
    ) -> None:
        self._registry = registry
        self._config = config
        self._events = events
        self._metrics = metrics
        self._owns_downloader = downloader is None
        self._downloader = downloader or HttpDownloader(
            timeout_s=config.download_timeout_s,
            max_bytes=config.max_download_bytes,
        )
        self._adapters = adapters or build_adapters(config, self._downloader)
        self._pipeline = RegistrationPipeline(registry, config, metrics)
        self._exporter = ModelExporter(registry, config, metrics)
        self._summary_refresher = summary_refresher
        self._background: set[asyncio.Task[None]] = set()

    @property
    def exporter(self) -> ModelExporter:
        return self._exporter

    def _publish(self, event: Event) -> None:
        if self._events is not None:
            self._events.publish(event)

    def _refresh_summary(self) -> None:
        """Schedule the registry summary refresh without waiting for it."""
        if self._summary_refresher is None:
            return
        task = asyncio.get_running_loop().create_task(self._run_refresh(self._summary_refresher))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    @staticmethod
    async def _run_refresh(refresher: SummaryRefresher) -> None:
        try:
            await refresher()
        except Exception as e:
            logger.warning("Registry summary refresh failed", extra={"error": str(e)})

    def _record_import(self, upload_type: UploadType, outcome: str) -> None:
        if self._metrics is not None:
            self._metrics.record_import(upload_type.value, outcome)

    async def import_payload(self, body: bytes | str, *, user_id: str = "") -> ImportResponse:
        """Parse a raw import request body and run it.

        Raises:
            InvalidRequestError: If the body is not a valid import request.
        """
        try:
            request = parse_import_request(body)
        except InvalidRequestError as e:
            self._publish(error_event("Error in unmarshalling request body", e, user_id=user_id))
            raise
        return await self.import_model(request, user_id=user_id)

    async def import_model(self, request: ImportRequest, *, user_id: str = "") -> ImportResponse:
        """Materialize the request's packages and register them if asked.

        Raises:
            ModelBridgeError: On any terminal adapter failure.
        """
        upload_type = UploadType(request.upload_type)
        adapter = self._adapters[upload_type]
        logger.info(
            "Import started",
            extra={"upload_type": upload_type.value, "register": request.register_entities},
        )
        try:
            async with adapter.materialize(request) as result:
                if upload_type in _GENERATING_UPLOAD_TYPES:
                    self._publish(
                        import_generated_event(
                            result.model_name,
                            result.component_count,
                            is_csv=upload_type is UploadType.CSV,
                            user_id=user_id,
                        )
                    )
                if not request.register_entities:
                    self._record_import(upload_type, "generated")
                    return ImportResponse(upload_type, registered=False, generated=len(result.dirs))
                report = await self._pipeline.register(result.dirs)
        except ModelBridgeError as e:
            logger.error(
                "Import failed",
                extra={"upload_type": upload_type.value, "error": str(e)},
            )
            self._record_import(upload_type, "failed")
            self._publish(error_event(f"Error importing model ({upload_type.value})", e, user_id=user_id))
            raise

        self._record_import(upload_type, "partial" if report.has_failures else "success")
        self._publish(
            registration_event(report.message(), report.error_message(), report.to_dict(), user_id=user_id)
        )
        self._refresh_summary()
        return ImportResponse(
            upload_type,
            registered=True,
            generated=len(result.dirs),
            report=report,
        )

    async def register_entity_payload(self, body: bytes | str, *, user_id: str = "") -> RegistrationReport:
        """Register one component or relationship sent as JSON.

        Raises:
            InvalidRequestError: If the body or the entity cannot be decoded.
        """
        request = parse_body(EntityRegistrationRequest, body)
        entity_type = request.entity_type.lower()
        entity_cls = _REGISTRABLE_ENTITY_TYPES.get(entity_type)
        if entity_cls is None:
            raise InvalidRequestError(f"unsupported entity type {request.entity_type!r}")
        try:
            entity = entity_cls.model_validate(request.entity)
        except ValidationError as e:
            raise InvalidRequestError(f"invalid {entity_type} definition: {e}", cause=e) from e
        if isinstance(entity, ComponentDefinition):
            entity = await asyncio.to_thread(write_svgs_to_filesystem, entity, self._config.asset_root)

        report = RegistrationReport()
        connection = Connection(kind=request.connection.kind) if request.connection.kind else None
        outcome = await self._pipeline.register_entity(entity, connection)
        report.record(outcome)
        if not outcome.ok:
            self._publish(
                registration_event(report.message(), report.error_message(), report.to_dict(), user_id=user_id)
            )
        self._refresh_summary()
        return report

    async def update_entity_status(
        self,
        entity_type: str,
        entity_id: str,
        status: str,
        *,
        display_name: str = "",
        user_id: str = "",
    ) -> None:
        """Update the status of a registered entity.

        Raises:
            RegistryUnavailableError: If the registry rejects the update.
        """
        label = display_name or entity_id
        try:
            await self._registry.update_entity_status(entity_id, status, entity_type)
        except Exception as e:
            self._publish(
                Event(
                    user_id=user_id,
                    category=entity_type,
                    action="update",
                    severity=Severity.ERROR,
                    description=f"Failed to update '{label}' status to {status}",
                    metadata={"error": str(e)},
                )
            )
            raise RegistryUnavailableError(f"failed to update {entity_type} status: {e}", cause=e) from e

        self._publish(
            Event(
                user_id=user_id,
                category=entity_type,
                action="update",
                severity=Severity.INFO,
                description=f"Status of '{label}' updated to {status}.",
            )
        )

    async def list_registrants(self, params: PaginationParams) -> dict[str, Any]:
        """Return ``{page, page_size, count, registrants}``.

        Raises:
            RegistryUnavailableError: If the registry query fails.
        """
        try:
            page = await self._registry.get_registrants(params.registrant_filter())
        except Exception as e:
            raise RegistryUnavailableError(f"failed to get registrants: {e}", cause=e) from e
        return {
            "page": params.page,
            "page_size": params.limit or page.count,
            "count": page.count,
            "registrants": page.registrants,
        }

    async def export_model(self, query: ExportQuery) -> ExportedArtifact | ModelNotFound:
        return await self._exporter.export(query)

    async def close(self) -> None:
        """Wait for background refreshes and close owned resources."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
        if self._owns_downloader and isinstance(self._downloader, HttpDownloader):
            await self._downloader.close()

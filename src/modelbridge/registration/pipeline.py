"""
Concurrent registration pipeline.

Each Dir is handled by its own worker: discovery runs in a thread, then
every discovered entity is registered against the registry. Workers never
touch the report; they put outcomes on a queue and a single collector task
records them. A failing entity never stops the batch.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from modelbridge.contracts.entities import (
    ComponentDefinition,
    Entity,
    ModelDefinition,
)
from modelbridge.contracts.registry import Connection
from modelbridge.errors import EntityDecodeError
from modelbridge.registration.discovery import DiscoveryResult, PackagingUnit, discover
from modelbridge.registration.report import (
    EntityIdentity,
    FailureKind,
    RegistrationOutcome,
    RegistrationReport,
    classify_failure,
)
from modelbridge.svg import write_svgs_to_filesystem

if TYPE_CHECKING:
    from collections.abc import Sequence

    from modelbridge.config import PipelineConfig
    from modelbridge.contracts.registry import Registry
    from modelbridge.ingest.base import Dir
    from modelbridge.metrics import PipelineMetrics

logger = logging.getLogger(__name__)

_DONE = None


def connection_for(entity: Entity) -> Connection:
    """Connection an entity is registered under: its registrant kind."""
    model = entity if isinstance(entity, ModelDefinition) else entity.model
    return Connection(kind=model.registrant.kind if model is not None else "")


class RegistrationPipeline:
    """
    Registers the entities found in a set of Dirs.

    Flow:
    1. One worker per Dir (bounded by max_concurrent_registrations)
    2. Worker discovers entities, attaches model back-references
    3. Worker registers model first, then components and relationships
    4. Collector records every outcome into one RegistrationReport
    """

    def __init__(
        self,
        registry: Registry,
        config: PipelineConfig,
        metrics: PipelineMetrics | None = None,
    ) -> None:
        self._registry = registry
        self._config = config
        self._metrics = metrics

    async def register(self, dirs: Sequence[Dir]) -> RegistrationReport:
        """Register every entity reachable from ``dirs``.

        Returns:
            Report with one outcome per attempted entity.
        """
        report = RegistrationReport()
        queue: asyncio.Queue[RegistrationOutcome | None] = asyncio.Queue()
        collector = asyncio.create_task(self._collect(queue, report))
        semaphore = asyncio.Semaphore(self._config.max_concurrent_registrations)

        async def worker(dir_: Dir) -> None:
            async with semaphore:
                await self._register_dir(dir_, queue)

        try:
            results = await asyncio.gather(*(worker(d) for d in dirs), return_exceptions=True)
            for dir_, result in zip(dirs, results, strict=True):
                if isinstance(result, Exception):
                    logger.error(
                        "Registration worker failed",
                        extra={"dir": str(dir_), "error": str(result)},
                    )
                    identity = EntityIdentity(None, dir_.path.name)
                    await queue.put(
                        RegistrationOutcome.failed(identity, FailureKind.UNKNOWN, str(result))
                    )
        finally:
            await queue.put(_DONE)
            await collector

        logger.info(
            "Registration finished",
            extra={
                "dirs": len(dirs),
                "total": report.total_count,
                "errors": report.err_count,
            },
        )
        return report

    async def _collect(
        self, queue: asyncio.Queue[RegistrationOutcome | None], report: RegistrationReport
    ) -> None:
        while True:
            outcome = await queue.get()
            if outcome is _DONE:
                return
            report.record(outcome)
            if self._metrics is not None:
                entity_type = outcome.identity.entity_type
                self._metrics.record_registration(
                    entity_type.value if entity_type else "unknown",
                    outcome.failure.kind.value if outcome.failure else "success",
                )

    async def _register_dir(
        self, dir_: Dir, queue: asyncio.Queue[RegistrationOutcome | None]
    ) -> None:
        result, entities = await asyncio.to_thread(self._discover_entities, dir_)
        for failure in result.failures:
            identity = EntityIdentity(None, failure.source)
            await queue.put(RegistrationOutcome.failed(identity, FailureKind.SCHEMA, failure.detail))
        for entity in entities:
            await queue.put(await self.register_entity(entity))

    def _discover_entities(self, dir_: Dir) -> tuple[DiscoveryResult, list[Entity]]:
        """Discover a Dir and build its entity list; blocking, run in a thread."""
        result = discover(dir_, self._config.temp_root)
        entities: list[Entity] = []
        for unit in result.units:
            entities.extend(self._entities_of(unit))
        return result, entities

    def _entities_of(self, unit: PackagingUnit) -> list[Entity]:
        entities: list[Entity] = []
        if unit.model is None:
            entities.extend(unit.components)
            entities.extend(unit.relationships)
            return entities

        header = unit.model.header()
        entities.append(header)
        for component in unit.components:
            component = component.model_copy(update={"model": header})
            entities.append(write_svgs_to_filesystem(component, self._config.asset_root))
        for relationship in unit.relationships:
            entities.append(relationship.model_copy(update={"model": header}))
        return entities

    async def register_entity(
        self, entity: Entity, connection: Connection | None = None
    ) -> RegistrationOutcome:
        """Register one entity and classify the result.

        Registry exceptions are reported as unknown failures, never raised.
        """
        identity = EntityIdentity.of(entity)
        if not isinstance(entity, ModelDefinition) and entity.model is None:
            kind = "component" if isinstance(entity, ComponentDefinition) else "relationship"
            return RegistrationOutcome.failed(
                identity, FailureKind.SCHEMA, f"{kind} has no model reference"
            )
        try:
            result = await self._registry.register_entity(connection or connection_for(entity), entity)
        except EntityDecodeError as e:
            return RegistrationOutcome.failed(identity, FailureKind.SCHEMA, e.detail)
        except Exception as e:
            logger.warning(
                "Registry call failed",
                extra={"entity": identity.describe(), "error": str(e)},
            )
            return RegistrationOutcome.failed(identity, FailureKind.UNKNOWN, str(e))

        kind = classify_failure(result)
        if kind is None:
            return RegistrationOutcome.success(identity)
        detail = str(result.error) if result.error is not None else kind.value.replace("_", " ")
        logger.debug(
            "Entity registration failed",
            extra={"entity": identity.describe(), "kind": kind.value},
        )
        return RegistrationOutcome.failed(identity, kind, detail)

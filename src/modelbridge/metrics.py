"""
Prometheus metrics for the import/export pipeline.

Only low-cardinality labels: upload type, entity type, file type and a
small fixed set of outcomes. Model names, URLs and file names never become
label values.
"""

from __future__ import annotations

from prometheus_client import Counter, Histogram
from prometheus_client.registry import CollectorRegistry

# Labels that would cause cardinality explosion
FORBIDDEN_LABELS = frozenset(
    {
        "model",
        "model_id",
        "url",
        "file_name",
        "path",
        "registrant",
        "user_id",
    }
)

IMPORT_OUTCOMES = ("success", "partial", "failed", "generated")
REGISTRATION_OUTCOMES = ("success", "registrant_conflict", "model_conflict", "schema", "unknown")
EXPORT_OUTCOMES = ("success", "not_found", "failed")


class PipelineMetrics:
    """
    Counters for imports, entity registrations and exports.

    Usage:
        registry = CollectorRegistry()
        metrics = PipelineMetrics(registry=registry)
        metrics.record_import("csv", "success")
        # generate_latest(registry) -> bytes for /metrics endpoint
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry or CollectorRegistry()

        self._imports = Counter(
            "modelbridge_imports",
            "Import requests by upload type and outcome",
            ["upload_type", "outcome"],
            registry=self._registry,
        )
        self._registrations = Counter(
            "modelbridge_entity_registrations",
            "Entity registration attempts by entity type and outcome",
            ["entity_type", "outcome"],
            registry=self._registry,
        )
        self._exports = Counter(
            "modelbridge_exports",
            "Export requests by file type and outcome",
            ["file_type", "outcome"],
            registry=self._registry,
        )
        self._export_bytes = Histogram(
            "modelbridge_export_artifact_bytes",
            "Size of exported artifacts in bytes",
            buckets=(1e3, 1e4, 1e5, 1e6, 1e7, 1e8),
            registry=self._registry,
        )

    @property
    def registry(self) -> CollectorRegistry:
        """Get the Prometheus registry."""
        return self._registry

    def record_import(self, upload_type: str, outcome: str) -> None:
        self._imports.labels(upload_type=upload_type, outcome=outcome).inc()

    def record_registration(self, entity_type: str, outcome: str) -> None:
        self._registrations.labels(entity_type=entity_type, outcome=outcome).inc()

    def record_export(self, file_type: str, outcome: str, size_bytes: int | None = None) -> None:
        self._exports.labels(file_type=file_type, outcome=outcome).inc()
        if size_bytes is not None:
            self._export_bytes.observe(size_bytes)

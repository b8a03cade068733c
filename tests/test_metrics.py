"""Tests for pipeline Prometheus metrics."""

from __future__ import annotations

from prometheus_client import generate_latest
from prometheus_client.registry import CollectorRegistry

from modelbridge.metrics import FORBIDDEN_LABELS, PipelineMetrics


class TestPipelineMetrics:
    def test_own_registry(self) -> None:
        metrics = PipelineMetrics()
        assert isinstance(metrics.registry, CollectorRegistry)

    def test_record_import(self) -> None:
        registry = CollectorRegistry()
        metrics = PipelineMetrics(registry)

        metrics.record_import("csv", "success")
        metrics.record_import("csv", "success")
        metrics.record_import("url", "failed")

        assert registry.get_sample_value("modelbridge_imports_total", {"upload_type": "csv", "outcome": "success"}) == 2
        assert registry.get_sample_value("modelbridge_imports_total", {"upload_type": "url", "outcome": "failed"}) == 1

    def test_record_registration(self) -> None:
        registry = CollectorRegistry()
        PipelineMetrics(registry).record_registration("component", "schema")

        value = registry.get_sample_value(
            "modelbridge_entity_registrations_total", {"entity_type": "component", "outcome": "schema"}
        )
        assert value == 1

    def test_record_export_size(self) -> None:
        registry = CollectorRegistry()
        metrics = PipelineMetrics(registry)

        metrics.record_export("oci", "success", 5_000)
        metrics.record_export("oci", "not_found")

        assert registry.get_sample_value("modelbridge_export_artifact_bytes_count") == 1
        assert registry.get_sample_value("modelbridge_export_artifact_bytes_sum") == 5_000
        assert registry.get_sample_value("modelbridge_exports_total", {"file_type": "oci", "outcome": "not_found"}) == 1

    def test_no_forbidden_labels(self) -> None:
        registry = CollectorRegistry()
        metrics = PipelineMetrics(registry)
        metrics.record_import("csv", "success")
        metrics.record_registration("model", "success")
        metrics.record_export("tar.gz", "success", 10)

        for family in registry.collect():
            for sample in family.samples:
                assert not FORBIDDEN_LABELS & set(sample.labels), sample.name

    def test_exposition(self) -> None:
        registry = CollectorRegistry()
        PipelineMetrics(registry).record_import("file", "generated")

        output = generate_latest(registry).decode()

        assert "# TYPE modelbridge_imports_total counter" in output

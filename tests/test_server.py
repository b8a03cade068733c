"""
Tests for the HTTP surface.

Runs the aiohttp app in-process against the in-memory registry.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import orjson
import pytest
from aiohttp.test_utils import TestClient, TestServer
from prometheus_client.registry import CollectorRegistry

from modelbridge.events.broadcaster import EventBroadcaster
from modelbridge.events.config import EventsConfig
from modelbridge.metrics import PipelineMetrics
from modelbridge.server import USER_ID_HEADER, create_app
from modelbridge.service import ImportService
from tests.fakes import (
    COMPONENT_SHEET,
    MODEL_SHEET,
    RELATIONSHIP_SHEET,
    FakeDownloader,
    FakeRegistry,
    RecordingSink,
    csv_data_url,
    make_component,
    make_model,
)

if TYPE_CHECKING:
    from aiohttp.web import Application

    from modelbridge.config import PipelineConfig


@pytest.fixture
def prom() -> CollectorRegistry:
    return CollectorRegistry()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def registry() -> FakeRegistry:
    return FakeRegistry([make_model(id="m1", components=[make_component("Instance")])])


@pytest.fixture
def events(sink: RecordingSink) -> EventBroadcaster:
    return EventBroadcaster(EventsConfig(), sinks=[sink])


@pytest.fixture
def app(
    config: PipelineConfig, registry: FakeRegistry, prom: CollectorRegistry, events: EventBroadcaster
) -> Application:
    service = ImportService(
        registry,
        config,
        events=events,
        metrics=PipelineMetrics(prom),
        downloader=FakeDownloader(),
    )
    return create_app(service, prom)


def _csv_request(register: bool = True) -> bytes:
    return orjson.dumps(
        {
            "uploadType": "csv",
            "register": register,
            "importBody": {
                "modelCsv": csv_data_url(MODEL_SHEET),
                "componentCsv": csv_data_url(COMPONENT_SHEET),
                "relationshipCsv": csv_data_url(RELATIONSHIP_SHEET),
            },
        }
    )


class TestRegisterRoute:
    @pytest.mark.asyncio
    async def test_csv_import(self, app: Application, registry: FakeRegistry) -> None:
        async with TestClient(TestServer(app)) as client:
            resp = await client.post(
                "/api/meshmodels/register", data=_csv_request(), headers={USER_ID_HEADER: "u1"}
            )
            assert resp.status == 200
            body = await resp.json()

        assert body["uploadType"] == "csv"
        assert body["registered"] is True
        assert body["totalCount"] == 4
        assert body["errCount"] == 0
        assert len(registry.registered) == 4

    @pytest.mark.asyncio
    async def test_malformed_body(self, app: Application) -> None:
        async with TestClient(TestServer(app)) as client:
            resp = await client.post("/api/meshmodels/register", data=b"{not json")
            assert resp.status == 400
            assert "invalid request format" in await resp.text()

    @pytest.mark.asyncio
    async def test_bad_data_url(self, app: Application) -> None:
        request = orjson.loads(_csv_request())
        request["importBody"]["modelCsv"] = "plain text"
        async with TestClient(TestServer(app)) as client:
            resp = await client.post("/api/meshmodels/register", data=orjson.dumps(request))
            assert resp.status == 400

    @pytest.mark.asyncio
    async def test_undecodable_sheet_row_is_client_error(
        self, app: Application, registry: FakeRegistry, events: EventBroadcaster, sink: RecordingSink
    ) -> None:
        request = orjson.loads(_csv_request())
        request["importBody"]["relationshipCsv"] = csv_data_url(
            "model,kind,type,subType,selectors\naws-ec2,edge,binding,network,{not json\n"
        )
        async with TestClient(TestServer(app)) as client:
            resp = await client.post("/api/meshmodels/register", data=orjson.dumps(request))
            assert resp.status == 400
            assert "invalid relationship row 2" in await resp.text()
        await events.flush()

        assert registry.registered == []
        assert sink.descriptions() == ["Error importing model (csv)"]

    @pytest.mark.asyncio
    async def test_blank_url_model_name_is_client_error(
        self, app: Application, events: EventBroadcaster, sink: RecordingSink
    ) -> None:
        request = {
            "uploadType": "url",
            "register": True,
            "importBody": {"url": "https://example.com/crds.yaml", "model": {"model": "   "}},
        }
        async with TestClient(TestServer(app)) as client:
            resp = await client.post("/api/meshmodels/register", data=orjson.dumps(request))
            assert resp.status == 400
            assert "model name must not be blank" in await resp.text()
        await events.flush()

        assert sink.descriptions() == ["Error in unmarshalling request body"]

    @pytest.mark.asyncio
    async def test_download_failure_is_server_error(self, app: Application) -> None:
        request = {"uploadType": "urlImport", "importBody": {"url": "https://example.com/m.tar.gz"}}
        async with TestClient(TestServer(app)) as client:
            resp = await client.post("/api/meshmodels/register", data=orjson.dumps(request))
            assert resp.status == 500
            assert "status code: 404" in await resp.text()


class TestExportRoute:
    @pytest.mark.asyncio
    async def test_export_oci(self, app: Application) -> None:
        async with TestClient(TestServer(app)) as client:
            resp = await client.get("/api/meshmodels/export", params={"id": "m1"})
            assert resp.status == 200
            assert resp.headers["Content-Type"] == "application/x-tar"
            assert resp.headers["Content-Disposition"] == 'attachment; filename="aws-ec2.tar"'
            data = await resp.read()
            assert resp.headers["Content-Length"] == str(len(data))

    @pytest.mark.asyncio
    async def test_export_tar_gz(self, app: Application) -> None:
        async with TestClient(TestServer(app)) as client:
            resp = await client.get("/api/meshmodels/export", params={"name": "aws-ec2", "file_type": "tar.gz"})
            assert resp.status == 200
            assert resp.headers["Content-Type"] == "application/gzip"

    @pytest.mark.asyncio
    async def test_not_found(self, app: Application) -> None:
        async with TestClient(TestServer(app)) as client:
            resp = await client.get("/api/meshmodels/export", params={"id": "nope", "version": "v9"})
            assert resp.status == 404
            assert await resp.text() == "model with id nope version v9 has not been found\n"

    @pytest.mark.asyncio
    async def test_bad_output_format(self, app: Application) -> None:
        async with TestClient(TestServer(app)) as client:
            resp = await client.get("/api/meshmodels/export", params={"id": "m1", "output_format": "toml"})
            assert resp.status == 400

    @pytest.mark.asyncio
    async def test_registry_failure(self, app: Application, registry: FakeRegistry) -> None:
        registry.query_error = RuntimeError("db down")
        async with TestClient(TestServer(app)) as client:
            resp = await client.get("/api/meshmodels/export", params={"id": "m1"})
            assert resp.status == 500
            assert "failed to get models" in await resp.text()


class TestEntityRoutes:
    @pytest.mark.asyncio
    async def test_register_component(self, app: Application, registry: FakeRegistry) -> None:
        body = {
            "connection": {"kind": "github"},
            "entityType": "component",
            "entity": {"component": {"kind": "Instance"}, "model": {"name": "aws-ec2"}},
        }
        async with TestClient(TestServer(app)) as client:
            resp = await client.post("/api/meshmodel/components/register", data=orjson.dumps(body))
            assert resp.status == 200
            report = await resp.json()

        assert report["totalCount"] == 1
        assert report["entityCount"]["compCount"] == 1

    @pytest.mark.asyncio
    async def test_register_unsupported_type(self, app: Application) -> None:
        body = {"entityType": "model", "entity": {"name": "aws-ec2"}}
        async with TestClient(TestServer(app)) as client:
            resp = await client.post("/api/meshmodel/components/register", data=orjson.dumps(body))
            assert resp.status == 400

    @pytest.mark.asyncio
    async def test_update_status(
        self, app: Application, registry: FakeRegistry, events: EventBroadcaster, sink: RecordingSink
    ) -> None:
        body = {"id": "c1", "status": "ignored", "displayname": "EC2 Instance"}
        async with TestClient(TestServer(app)) as client:
            resp = await client.post("/api/meshmodel/update/status/component", data=orjson.dumps(body))
            assert resp.status == 204
        await events.flush()

        assert registry.status_updates == [("c1", "ignored", "component")]
        assert sink.descriptions() == ["Status of 'EC2 Instance' updated to ignored."]

    @pytest.mark.asyncio
    async def test_update_status_failure(self, app: Application, registry: FakeRegistry) -> None:
        registry.status_error = RuntimeError("no such entity")
        body = {"id": "c1", "status": "ignored"}
        async with TestClient(TestServer(app)) as client:
            resp = await client.post("/api/meshmodel/update/status/component", data=orjson.dumps(body))
            assert resp.status == 500

    @pytest.mark.asyncio
    async def test_update_status_missing_id(self, app: Application) -> None:
        async with TestClient(TestServer(app)) as client:
            resp = await client.post("/api/meshmodel/update/status/component", data=b'{"status": "ignored"}')
            assert resp.status == 400

    @pytest.mark.asyncio
    async def test_registrants(self, app: Application, registry: FakeRegistry) -> None:
        registry.registrants = [{"kind": "github", "count": 3}]
        async with TestClient(TestServer(app)) as client:
            resp = await client.get("/api/meshmodels/registrants", params={"pagesize": "all"})
            assert resp.status == 200
            body = await resp.json()

        assert body == {"page": 1, "page_size": 1, "count": 1, "registrants": [{"kind": "github", "count": 3}]}
        assert registry.registrant_filters[0].limit == 0


class TestOperationalRoutes:
    @pytest.mark.asyncio
    async def test_metrics(self, app: Application, prom: CollectorRegistry) -> None:
        async with TestClient(TestServer(app)) as client:
            await client.post("/api/meshmodels/register", data=_csv_request(register=False))
            resp = await client.get("/metrics")
            assert resp.status == 200
            assert "version=0.0.4" in resp.headers["Content-Type"]
            body = await resp.text()

        assert "modelbridge_imports_total" in body
        assert prom.get_sample_value(
            "modelbridge_imports_total", {"upload_type": "csv", "outcome": "generated"}
        ) == 1

    @pytest.mark.asyncio
    async def test_healthz(self, app: Application) -> None:
        async with TestClient(TestServer(app)) as client:
            resp = await client.get("/healthz")
            assert resp.status == 200
            assert await resp.json() == {"status": "ok"}

    @pytest.mark.asyncio
    async def test_custom_health(self, config: PipelineConfig, prom: CollectorRegistry) -> None:
        service = ImportService(FakeRegistry(), config, downloader=FakeDownloader())
        app = create_app(service, prom, health_fn=lambda: {"status": "degraded"})
        async with TestClient(TestServer(app)) as client:
            resp = await client.get("/healthz")
            assert await resp.json() == {"status": "degraded"}

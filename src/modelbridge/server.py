"""
HTTP surface for the import/export pipeline.

Routes:
    POST /api/meshmodels/register                       import request
    GET  /api/meshmodels/export                         export artifact
    POST /api/meshmodel/components/register             single entity
    POST /api/meshmodel/update/status/{entity_type}     entity status
    GET  /api/meshmodels/registrants                    registrant listing
    GET  /metrics                                       Prometheus
    GET  /healthz                                       health

Terminal pipeline errors are mapped to their status code by a middleware.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

import orjson
from aiohttp import web
from prometheus_client import generate_latest

from modelbridge.contracts.registry import PaginationParams
from modelbridge.contracts.requests import StatusUpdateRequest, parse_body
from modelbridge.errors import ModelBridgeError
from modelbridge.export.exporter import ModelNotFound
from modelbridge.export.query import ExportQuery

if TYPE_CHECKING:
    from prometheus_client.registry import CollectorRegistry

    from modelbridge.service import ImportService

logger = logging.getLogger(__name__)

USER_ID_HEADER = "X-User-Id"

SERVICE_KEY = web.AppKey("service", object)

_Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]

HealthFn = Callable[[], dict[str, Any]]


def _json_response(data: Any, status: int = 200) -> web.Response:
    return web.Response(body=orjson.dumps(data), status=status, content_type="application/json")


def _service(request: web.Request) -> ImportService:
    return request.app[SERVICE_KEY]  # type: ignore[return-value]


def _user_id(request: web.Request) -> str:
    return request.headers.get(USER_ID_HEADER, "")


@web.middleware
async def error_middleware(request: web.Request, handler: _Handler) -> web.StreamResponse:
    """Map ModelBridgeError to a plain-text response with its status code."""
    try:
        return await handler(request)
    except ModelBridgeError as e:
        if e.status_code >= 500:
            logger.error(
                "Request failed",
                extra={"path": request.path, "status": e.status_code, "error": e.message},
            )
        return web.Response(text=e.message, status=e.status_code)


async def handle_register(request: web.Request) -> web.Response:
    body = await request.read()
    response = await _service(request).import_payload(body, user_id=_user_id(request))
    return _json_response(response.to_dict())


async def handle_export(request: web.Request) -> web.Response:
    try:
        query = ExportQuery.from_params(request.query)
    except ValueError as e:
        return web.Response(text=str(e), status=400)

    result = await _service(request).export_model(query)
    if isinstance(result, ModelNotFound):
        return web.Response(text=f"{result.message}\n", status=404)
    return web.Response(body=result.data, headers=result.headers)


async def handle_register_entity(request: web.Request) -> web.Response:
    body = await request.read()
    report = await _service(request).register_entity_payload(body, user_id=_user_id(request))
    return _json_response(report.to_dict())


async def handle_update_status(request: web.Request) -> web.Response:
    update = parse_body(StatusUpdateRequest, await request.read())
    await _service(request).update_entity_status(
        request.match_info["entity_type"],
        update.id,
        update.status,
        display_name=update.display_name,
        user_id=_user_id(request),
    )
    return web.Response(status=204)


async def handle_registrants(request: web.Request) -> web.Response:
    params = PaginationParams.from_query(request.query)
    return _json_response(await _service(request).list_registrants(params))


def _make_metrics_handler(registry: CollectorRegistry) -> _Handler:
    async def handler(request: web.Request) -> web.Response:
        return web.Response(
            body=generate_latest(registry),
            content_type="text/plain; version=0.0.4",
            charset="utf-8",
        )

    return handler


def _make_healthz_handler(health_fn: HealthFn | None = None) -> _Handler:
    async def handler(request: web.Request) -> web.Response:
        return _json_response(health_fn() if health_fn is not None else {"status": "ok"})

    return handler


def create_app(
    service: ImportService,
    registry: CollectorRegistry,
    *,
    health_fn: HealthFn | None = None,
) -> web.Application:
    """
    Create the aiohttp Application.

    Args:
        service: Import service handling every pipeline route.
        registry: Prometheus CollectorRegistry served on /metrics.
        health_fn: Optional callback for /healthz.

    Returns:
        aiohttp.web.Application ready to be started.
    """
    app = web.Application(middlewares=[error_middleware])
    app[SERVICE_KEY] = service
    app.router.add_post("/api/meshmodels/register", handle_register)
    app.router.add_get("/api/meshmodels/export", handle_export)
    app.router.add_post("/api/meshmodel/components/register", handle_register_entity)
    app.router.add_post("/api/meshmodel/update/status/{entity_type}", handle_update_status)
    app.router.add_get("/api/meshmodels/registrants", handle_registrants)
    app.router.add_get("/metrics", _make_metrics_handler(registry))
    app.router.add_get("/healthz", _make_healthz_handler(health_fn))

    async def _close_service(app: web.Application) -> None:
        await service.close()

    app.on_cleanup.append(_close_service)
    return app


async def start_server(
    service: ImportService,
    registry: CollectorRegistry,
    host: str = "0.0.0.0",
    port: int = 9081,
) -> web.AppRunner:
    """
    Start the HTTP server.

    Returns:
        AppRunner (call runner.cleanup() on shutdown).
    """
    runner = web.AppRunner(create_app(service, registry), access_log=None)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    logger.info("Server started on http://%s:%d", host, port)
    return runner

# ==============================================================================
# Ingestion HTTP API
# ==============================================================================
"""
FastAPI application exposing the sessions resource.

    POST    {path}                      create (or upsert) a session
    PUT     {path}                      append events, creating the session if absent
    GET     {path}?sessionId=<id>       read one session (alias: ?id=)
    GET     {path}?limit=<n>            list sessions, newest-updated first
    OPTIONS {path}                      cross-origin preflight
    GET     {path}/{id}/timeline        chronological events of a session
    GET     {path}/{id}/heatmap         density buckets and marker geometry
    GET     /health                     liveness and store reachability

Every response carries permissive cross-origin headers so capture agents on
any origin can deliver events.

Start with:
    clicktrail serve
    uvicorn --factory clicktrail.api.server:create_app
"""

import json
import logging
import math
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from clicktrail.base.repositories import SessionRepository
from clicktrail.core.errors import ClicktrailError
from clicktrail.core.reconstruction import bucket_events, build_timeline, heatmap_markers
from clicktrail.infrastructure.repositories import get_session_repository
from clicktrail.service.ingestion import IngestionService
from clicktrail.utils.config import Settings, get_settings
from clicktrail.utils.versions import get_clicktrail_version

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET,POST,PUT,OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def _ok(data) -> JSONResponse:
    return JSONResponse({"ok": True, "data": data})


def _service(request: Request) -> IngestionService:
    return request.app.state.service


async def _call(label: str, func, *args) -> JSONResponse:
    """Run a blocking service call in the threadpool and map domain errors to responses."""
    try:
        result = await run_in_threadpool(func, *args)
    except ClicktrailError as e:
        if e.status_code >= 500:
            logger.error("%s error: %s", label, e)
        else:
            logger.info("%s rejected (%d): %s", label, e.status_code, e)
        return _error(e.status_code, str(e))
    except Exception as e:
        logger.exception("%s failed", label)
        return _error(500, str(e))
    return _ok(result)


def _reject_constant(name: str):
    raise ValueError(f"{name} is not valid JSON")


def _finite_float(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        raise ValueError(f"number out of range: {text}")
    return value


async def _read_json(request: Request):
    """Parse the request body as strict JSON; malformed bodies raise ValueError."""
    return json.loads(
        await request.body(), parse_constant=_reject_constant, parse_float=_finite_float
    )


def build_router(path: str) -> APIRouter:
    """Build the sessions resource router mounted at ``path``."""
    router = APIRouter(prefix=path)

    @router.options("")
    async def preflight() -> JSONResponse:
        return JSONResponse({"ok": True})

    @router.post("")
    async def create_session(request: Request) -> JSONResponse:
        try:
            body = await _read_json(request)
        except ValueError as e:
            logger.error("POST %s error: %s", path, e)
            return _error(500, f"Invalid request body: {e}")
        service = _service(request)
        return await _call(
            f"POST {path}", lambda: service.create(body).to_document()
        )

    @router.put("")
    async def append_events(request: Request) -> JSONResponse:
        try:
            body = await _read_json(request)
        except ValueError as e:
            logger.error("PUT %s error: %s", path, e)
            return _error(500, f"Invalid request body: {e}")
        service = _service(request)
        return await _call(
            f"PUT {path}", lambda: service.append(body).to_document()
        )

    @router.get("")
    async def read_sessions(request: Request) -> JSONResponse:
        params = request.query_params
        session_id = params.get("sessionId") or params.get("id")
        service = _service(request)

        if session_id:
            return await _call(
                f"GET {path}", lambda: service.get(session_id).to_document()
            )

        limit = params.get("limit")
        return await _call(
            f"GET {path}",
            lambda: [session.to_document() for session in service.list_sessions(limit)],
        )

    @router.get("/{session_id}/timeline")
    async def read_timeline(session_id: str, request: Request) -> JSONResponse:
        service = _service(request)
        return await _call(
            f"GET {path}/{{id}}/timeline",
            lambda: [event.to_document() for event in build_timeline(service.get(session_id))],
        )

    @router.get("/{session_id}/heatmap")
    async def read_heatmap(session_id: str, request: Request) -> JSONResponse:
        service = _service(request)

        def heatmap() -> dict:
            session = service.get(session_id)
            markers = heatmap_markers(session)
            buckets = bucket_events(marker.event for marker in markers)
            return {
                "sessionId": session.session_id,
                "startTime": session.start_time.isoformat(),
                "devices": session.device_classes,
                "eventCount": len(markers),
                "buckets": [
                    {"x": x, "y": y, "count": count}
                    for (x, y), count in sorted(buckets.items())
                ],
                "markers": [marker.to_dict() for marker in markers],
            }

        return await _call(f"GET {path}/{{id}}/heatmap", heatmap)

    return router


def create_app(
    settings: Settings | None = None,
    repository: SessionRepository | None = None,
) -> FastAPI:
    """
    Build the ingestion API.

    The repository is connected when the application starts and closed when
    it shuts down; request handlers share it through ``app.state.service``.

    Args:
        settings: Application settings. If None, uses get_settings().
        repository: Session store. If None, built from STORE_IMPL.

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()
    repository = repository or get_session_repository(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        repository.connect()
        logger.info(
            "Clicktrail API v%s ready (store=%s, path=%s)",
            get_clicktrail_version(),
            type(repository).__name__,
            settings.api.path,
        )
        yield
        repository.close()
        logger.info("Clicktrail API shut down")

    app = FastAPI(
        title="Clicktrail Ingestion API",
        version=get_clicktrail_version(),
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.service = IngestionService(
        repository,
        default_limit=settings.api.default_limit,
        max_limit=settings.api.max_limit,
    )

    @app.middleware("http")
    async def cors_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers.update(CORS_HEADERS)
        return response

    @app.get("/health")
    async def health() -> dict:
        store_ok = await run_in_threadpool(repository.ping)
        return {"ok": True, "service": "clicktrail-api", "store": store_ok}

    app.include_router(build_router(settings.api.path))
    return app

"""HTTP API compatible with the OwnTracks recorder ``/api/0`` endpoints.

The handlers are thin: they parse query parameters, call one
:class:`LocationStore` read operation and shape the JSON envelope.
Store reads run in a worker thread so a contended index lock never
stalls the event loop.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any

from aiohttp import web

from pytracks import __version__
from pytracks.exceptions import LockUnavailableError, UnknownEntityError
from pytracks.state.store import LocationStore

_logger = logging.getLogger(__name__)

STORE_KEY = web.AppKey("store", LocationStore)

# Format of the ``from``/``to`` query parameters, always UTC.
QUERY_TIME_FORMAT = "%Y-%m-%dT%H:%M:%S"

# Builds embed no source revision.
GIT_REVISION = "unknown"

_Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def _error(message: str, *, status: int) -> web.Response:
    return web.json_response({"error": message}, status=status)


def _parse_query_time(value: str) -> datetime:
    return datetime.strptime(value, QUERY_TIME_FORMAT).replace(tzinfo=UTC)


@web.middleware
async def cors_middleware(request: web.Request, handler: _Handler) -> web.StreamResponse:
    """Permissive CORS: any origin, preflights answered directly."""
    if request.method == "OPTIONS":
        response: web.StreamResponse = web.Response(status=204)
        response.headers["Access-Control-Allow-Methods"] = "GET, OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = request.headers.get("Access-Control-Request-Headers", "*")
    else:
        try:
            response = await handler(request)
        except web.HTTPException as exc:
            exc.headers["Access-Control-Allow-Origin"] = "*"
            raise
    response.headers["Access-Control-Allow-Origin"] = "*"
    return response


@web.middleware
async def error_middleware(request: web.Request, handler: _Handler) -> web.StreamResponse:
    """Map request-scoped store errors onto JSON error responses."""
    try:
        return await handler(request)
    except LockUnavailableError as exc:
        _logger.warning("%s %s: %s", request.method, request.path, exc)
        return _error(str(exc), status=503)
    except UnknownEntityError:
        # Mirrors the message owntracks/recorder gives for a missing user directory.
        return _error("Cannot open requested directory", status=404)


async def get_version(request: web.Request) -> web.Response:
    return web.json_response({"version": __version__, "git": GIT_REVISION})


async def get_list(request: web.Request) -> web.Response:
    """List users, or the devices of ``?user=``."""
    store = request.app[STORE_KEY]
    user_name = request.query.get("user")
    if user_name is None:
        return web.json_response({"results": sorted(await asyncio.to_thread(store.user_names))})

    device_names = await asyncio.to_thread(store.device_names, user_name)
    if device_names is None:
        raise UnknownEntityError(user_name)
    return web.json_response({"results": sorted(device_names)})


async def get_last(request: web.Request) -> web.Response:
    store = request.app[STORE_KEY]
    return web.json_response([location.to_payload() for location in await asyncio.to_thread(store.last_locations)])


async def get_locations(request: web.Request) -> web.Response:
    """Fixes of ``?user=&device=`` between ``?from=`` and ``?to=`` (inclusive)."""
    store = request.app[STORE_KEY]
    query = request.query

    missing = [name for name in ("user", "device", "from", "to") if name not in query]
    if missing:
        return _error(f"Missing query parameter(s): {', '.join(missing)}", status=400)
    if query.get("format", "json") != "json":
        return _error(f"Unsupported format '{query['format']}'", status=400)
    try:
        start = _parse_query_time(query["from"])
        end = _parse_query_time(query["to"])
    except ValueError as exc:
        return _error(f"Invalid time range: {exc}", status=400)

    started_fetching = time.perf_counter()
    locations = await asyncio.to_thread(store.locations, query["user"], query["device"], start, end)
    _logger.info("Fetched %d locations in %.2fms", len(locations), (time.perf_counter() - started_fetching) * 1000)

    body: dict[str, Any] = {
        "count": len(locations),
        "data": [location.to_payload() for location in locations],
        # Always 200, as in owntracks/recorder.
        "status": 200,
    }
    return web.json_response(body)


def create_app(store: LocationStore) -> web.Application:
    """Build the aiohttp application serving *store*."""
    app = web.Application(middlewares=[cors_middleware, error_middleware])
    app[STORE_KEY] = store
    app.router.add_get("/api/0/version", get_version)
    app.router.add_get("/api/0/list", get_list)
    app.router.add_get("/api/0/last", get_last)
    app.router.add_get("/api/0/locations", get_locations)
    return app

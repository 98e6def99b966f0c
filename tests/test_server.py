from __future__ import annotations

import asyncio
import time
from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from aiohttp import test_utils

from pytracks import __version__
from pytracks.models.location import BatteryStatus, Location, WifiConnection, WifiMetadata
from pytracks.server import GIT_REVISION, create_app
from pytracks.state.index import DeviceStore, LocationIndex, UserStore
from pytracks.state.store import LocationStore


def _loc(tst: int, **kwargs: object) -> Location:
    return Location(latitude=1.0, longitude=2.0, timestamp=tst, battery_status=BatteryStatus.UNPLUGGED, **kwargs)


@pytest.fixture
def store() -> LocationStore:
    index = LocationIndex(
        users={
            "alice": UserStore(
                devices={
                    "phone": DeviceStore(
                        locations=(
                            _loc(50),
                            _loc(100, connection=WifiConnection(metadata=WifiMetadata(ssid="home", bssid="aa:bb"))),
                            _loc(150),
                        )
                    ),
                    "watch": DeviceStore(),
                }
            ),
            "bob": UserStore(devices={"car": DeviceStore(locations=(_loc(10),))}),
        }
    )
    return LocationStore(index, lock_timeout=0.01)


@pytest_asyncio.fixture
async def client(store: LocationStore) -> AsyncIterator[test_utils.TestClient]:
    async with test_utils.TestClient(test_utils.TestServer(create_app(store))) as test_client:
        yield test_client


@pytest.mark.asyncio
async def test_version(client: test_utils.TestClient) -> None:
    resp = await client.get("/api/0/version")

    assert resp.status == 200
    assert await resp.json() == {"version": __version__, "git": GIT_REVISION}


@pytest.mark.asyncio
async def test_list_users(client: test_utils.TestClient) -> None:
    resp = await client.get("/api/0/list")

    assert resp.status == 200
    assert await resp.json() == {"results": ["alice", "bob"]}


@pytest.mark.asyncio
async def test_list_devices_includes_devices_without_history(client: test_utils.TestClient) -> None:
    resp = await client.get("/api/0/list", params={"user": "alice"})

    assert await resp.json() == {"results": ["phone", "watch"]}


@pytest.mark.asyncio
async def test_list_devices_of_unknown_user(client: test_utils.TestClient) -> None:
    resp = await client.get("/api/0/list", params={"user": "dave"})

    assert resp.status == 404
    assert await resp.json() == {"error": "Cannot open requested directory"}


@pytest.mark.asyncio
async def test_last(client: test_utils.TestClient) -> None:
    resp = await client.get("/api/0/last")

    body = await resp.json()
    assert resp.status == 200
    assert sorted(item["tst"] for item in body) == [10, 150]


@pytest.mark.asyncio
async def test_locations(client: test_utils.TestClient) -> None:
    resp = await client.get(
        "/api/0/locations",
        params={
            "user": "alice",
            "device": "phone",
            "from": "1970-01-01T00:00:50",
            "to": "1970-01-01T00:01:40",
            "format": "json",
        },
    )

    body = await resp.json()
    assert resp.status == 200
    assert body["count"] == 2
    assert body["status"] == 200
    assert [item["tst"] for item in body["data"]] == [50, 100]
    assert body["data"][1]["conn"] == "w"
    assert body["data"][1]["SSID"] == "home"
    assert "connection" not in body["data"][1]


@pytest.mark.asyncio
async def test_locations_for_unknown_device_is_empty(client: test_utils.TestClient) -> None:
    resp = await client.get(
        "/api/0/locations",
        params={"user": "alice", "device": "tablet", "from": "1970-01-01T00:00:00", "to": "2100-01-01T00:00:00"},
    )

    assert resp.status == 200
    assert await resp.json() == {"count": 0, "data": [], "status": 200}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "params",
    [
        {"user": "alice", "device": "phone", "from": "1970-01-01T00:00:00"},
        {"user": "alice", "device": "phone", "from": "yesterday", "to": "1970-01-01T00:00:00"},
        {"user": "alice", "device": "phone", "from": "1970-01-01T00:00:00", "to": "1970-01-02T00:00:00", "format": "csv"},
    ],
)
async def test_locations_rejects_bad_parameters(client: test_utils.TestClient, params: dict[str, str]) -> None:
    resp = await client.get("/api/0/locations", params=params)

    assert resp.status == 400
    assert "error" in await resp.json()


@pytest.mark.asyncio
async def test_lock_unavailable_is_a_request_error(client: test_utils.TestClient, store: LocationStore) -> None:
    store._lock.acquire()  # noqa: SLF001
    try:
        resp = await client.get("/api/0/list")
    finally:
        store._lock.release()  # noqa: SLF001

    assert resp.status == 503
    assert await resp.json() == {"error": "Unable to take lock for in memory storage"}

    resp = await client.get("/api/0/list")
    assert resp.status == 200


@pytest.mark.asyncio
async def test_cors_headers(client: test_utils.TestClient) -> None:
    resp = await client.get("/api/0/version")
    assert resp.headers["Access-Control-Allow-Origin"] == "*"

    preflight = await client.options(
        "/api/0/locations",
        headers={"Origin": "https://example.com", "Access-Control-Request-Method": "GET"},
    )
    assert preflight.status == 204
    assert preflight.headers["Access-Control-Allow-Origin"] == "*"


@pytest.mark.asyncio
async def test_contended_lock_does_not_stall_other_requests(store: LocationStore) -> None:
    patient = LocationStore(store._index, lock_timeout=1.0)  # noqa: SLF001
    async with test_utils.TestClient(test_utils.TestServer(create_app(patient))) as patient_client:
        patient._lock.acquire()  # noqa: SLF001
        try:
            pending = asyncio.create_task(patient_client.get("/api/0/list"))
            started = time.perf_counter()
            await asyncio.sleep(0.05)
            assert time.perf_counter() - started < 0.5

            version = await patient_client.get("/api/0/version")
            assert version.status == 200
        finally:
            patient._lock.release()  # noqa: SLF001

        resp = await pending
        assert resp.status == 200
        assert await resp.json() == {"results": ["alice", "bob"]}

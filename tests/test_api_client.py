"""
Tests for the cache-aware browse client.
"""

import asyncio

import httpx
import pytest

from main import app
from routers.browse import get_gateway
from schemas.browse import ContentType
from services.api_client import BrowseApiClient, ResultSource
from services.errors import PathNotFoundError, UpstreamFailureError
from services.path_cache import HOUR

ENDPOINT = "http://gateway.test/api"


class FakeGateway:
    """httpx handler answering /browse with a canned listing per path."""

    def __init__(self, listings=None):
        self.listings = listings or {}
        self.requests = []
        self.fail_with = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.params.get("path")
        content_type = request.url.params.get("type")
        self.requests.append((path, content_type))
        if self.fail_with is not None:
            return self.fail_with
        if path not in self.listings:
            return httpx.Response(404, json={"error": "Path not found", "message": "Folder \"x\" not found in path", "path": path})
        return httpx.Response(200, json={
            "path": path, "type": content_type, "data": self.listings[path], "cached": False, "timestamp": 0,
        })


@pytest.fixture
def fake_gateway():
    return FakeGateway({
        "/": [{"id": "d1", "name": "Computer Science"}],
        "/Computer Science": [{"id": "l1", "name": "100 Level"}],
    })


@pytest.fixture
def api_client(path_cache, fake_gateway):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(fake_gateway))
    return BrowseApiClient(path_cache, endpoint=ENDPOINT, http_client=http_client)


@pytest.mark.asyncio
async def test_miss_fetches_and_populates_cache(api_client, fake_gateway, path_cache):
    result = await api_client.fetch("/Computer Science", ContentType.FOLDERS)

    assert result.source is ResultSource.NETWORK
    assert result.data == [{"id": "l1", "name": "100 Level"}]
    assert fake_gateway.requests == [("/Computer Science", "folders")]
    assert path_cache.get("/Computer Science", "folders").data == result.data


@pytest.mark.asyncio
async def test_fresh_hit_skips_network(api_client, fake_gateway, path_cache):
    path_cache.set("/Computer Science", "folders", ["cached"])

    result = await api_client.fetch("/Computer Science", ContentType.FOLDERS)

    assert result.source is ResultSource.CACHE
    assert result.data == ["cached"]
    assert fake_gateway.requests == []


@pytest.mark.asyncio
async def test_stale_hit_returns_immediately_and_refreshes_in_background(api_client, fake_gateway, path_cache, clock):
    path_cache.set("/Computer Science", "folders", ["stale"])
    written_at = clock.now
    clock.advance(7 * HOUR)

    result = await api_client.fetch("/Computer Science", ContentType.FOLDERS)

    assert result.source is ResultSource.STALE_CACHE
    assert result.data == ["stale"]

    await api_client.drain()

    assert fake_gateway.requests == [("/Computer Science", "folders")]
    entry = path_cache.get("/Computer Science", "folders")
    assert entry.timestamp > written_at
    assert entry.is_stale is False
    assert entry.data == [{"id": "l1", "name": "100 Level"}]


@pytest.mark.asyncio
async def test_background_refresh_failure_is_swallowed(api_client, fake_gateway, path_cache, clock):
    path_cache.set("/Computer Science", "folders", ["stale"])
    clock.advance(7 * HOUR)
    fake_gateway.fail_with = httpx.Response(500, json={"error": "Failed to fetch data", "message": "boom"})

    result = await api_client.fetch("/Computer Science", ContentType.FOLDERS)
    await api_client.drain()

    assert result.data == ["stale"]
    assert path_cache.get("/Computer Science", "folders").data == ["stale"]


@pytest.mark.asyncio
async def test_expired_entry_blocks_on_network(api_client, fake_gateway, path_cache, clock):
    path_cache.set("/Computer Science", "folders", ["ancient"])
    clock.advance(25 * HOUR)

    result = await api_client.fetch("/Computer Science", ContentType.FOLDERS)

    assert result.source is ResultSource.NETWORK
    assert result.data == [{"id": "l1", "name": "100 Level"}]


@pytest.mark.asyncio
async def test_expired_entry_is_never_a_fallback(api_client, fake_gateway, path_cache, clock):
    path_cache.set("/Computer Science", "folders", ["ancient"])
    clock.advance(25 * HOUR)
    fake_gateway.fail_with = httpx.Response(500, json={"error": "Failed to fetch data", "message": "boom"})

    with pytest.raises(UpstreamFailureError):
        await api_client.fetch("/Computer Science", ContentType.FOLDERS, force_refresh=True)


@pytest.mark.asyncio
async def test_concurrent_identical_requests_are_deduplicated(api_client, fake_gateway):
    first, second = await asyncio.gather(
        api_client.fetch("/", ContentType.FOLDERS),
        api_client.fetch("/", ContentType.FOLDERS),
    )

    assert first.data == second.data
    assert fake_gateway.requests == [("/", "folders")]


@pytest.mark.asyncio
async def test_equivalent_path_spellings_share_one_request(api_client, fake_gateway, path_cache):
    results = await asyncio.gather(
        api_client.fetch("/Computer Science", ContentType.FOLDERS),
        api_client.fetch("Computer Science", ContentType.FOLDERS),
        api_client.fetch("/Computer Science/", ContentType.FOLDERS),
    )

    assert fake_gateway.requests == [("/Computer Science", "folders")]
    assert {r.path for r in results} == {"/Computer Science"}
    assert path_cache.get("Computer Science", "folders") is not None


@pytest.mark.asyncio
async def test_different_types_are_not_deduplicated(api_client, fake_gateway):
    await asyncio.gather(
        api_client.fetch("/", ContentType.FOLDERS),
        api_client.fetch("/", ContentType.FILES),
    )
    assert sorted(fake_gateway.requests) == [("/", "files"), ("/", "folders")]


@pytest.mark.asyncio
async def test_force_refresh_bypasses_fresh_cache(api_client, fake_gateway, path_cache):
    path_cache.set("/", "folders", ["cached"])
    path_cache.set("/", "files", ["cached files"])

    result = await api_client.fetch("/", ContentType.FOLDERS, force_refresh=True)

    assert result.source is ResultSource.NETWORK
    assert result.data == [{"id": "d1", "name": "Computer Science"}]
    # Invalidation covers both listings of the path
    assert path_cache.get("/", "files") is None


@pytest.mark.asyncio
async def test_force_refresh_failure_falls_back_to_valid_cache(api_client, fake_gateway, path_cache):
    path_cache.set("/", "folders", ["cached"])
    fake_gateway.fail_with = httpx.Response(503, text="unavailable")

    result = await api_client.fetch("/", ContentType.FOLDERS, force_refresh=True)

    assert result.source is ResultSource.FALLBACK
    assert result.data == ["cached"]
    assert result.warning


@pytest.mark.asyncio
async def test_not_found_is_distinct_from_upstream_failure(api_client, fake_gateway):
    with pytest.raises(PathNotFoundError) as exc_info:
        await api_client.fetch("/NoSuchDept", ContentType.FOLDERS)
    assert exc_info.value.path == "/NoSuchDept"

    fake_gateway.fail_with = httpx.Response(500, json={"error": "Failed to fetch data", "message": "quota"})
    with pytest.raises(UpstreamFailureError) as exc_info:
        await api_client.fetch("/", ContentType.FOLDERS)
    assert exc_info.value.status_code == 500
    assert exc_info.value.message == "quota"


@pytest.mark.asyncio
async def test_transport_error_is_upstream_failure(path_cache):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = BrowseApiClient(
        path_cache, endpoint=ENDPOINT, http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler))
    )
    with pytest.raises(UpstreamFailureError):
        await client.fetch("/", ContentType.FOLDERS)
    assert path_cache.get("/", "folders") is None
    await client.aclose()


@pytest.mark.asyncio
async def test_end_to_end_against_gateway_app(gateway, path_cache):
    app.dependency_overrides[get_gateway] = lambda: gateway
    try:
        http_client = httpx.AsyncClient(transport=httpx.ASGITransport(app=app))
        client = BrowseApiClient(path_cache, endpoint="http://testserver/api", http_client=http_client)

        session = "/Computer Science/100 Level/1st Semester/2024~25 Session"
        result = await client.fetch(session, ContentType.FILES)
        assert [f["name"] for f in result.data] == ["CSC101.pdf", "CSC102.pdf"]

        again = await client.fetch(session, ContentType.FILES)
        assert again.source is ResultSource.CACHE
        assert path_cache.get(session, "files") is not None

        with pytest.raises(PathNotFoundError):
            await client.fetch("/NoSuchDept/100 Level", ContentType.FOLDERS)

        await client.aclose()
    finally:
        app.dependency_overrides.clear()

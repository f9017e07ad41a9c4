import asyncio

import httpx
import pytest

from windstation.core.config import Settings
from windstation.domain.errors import UpstreamError
from windstation.services.source import SourceClient

SOURCE_URL = "http://source.test/api_viento_ultimos.php"


def make_client(handler, **overrides) -> tuple[SourceClient, httpx.AsyncClient]:
    settings = Settings(source_api_url=SOURCE_URL, **overrides)
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SourceClient(http, settings), http


@pytest.mark.asyncio
async def test_fetch_latest_keys_rows_by_station():
    def handler(request: httpx.Request) -> httpx.Response:
        assert not request.url.params
        return httpx.Response(
            200,
            json={
                "ok": True,
                "latest_by_station": {
                    "1": {"id": "10", "estacion": "1"},
                    "2": {"id": "11", "estacion": "2"},
                },
            },
        )

    client, http = make_client(handler)
    async with http:
        rows = await client.fetch_latest()

    assert set(rows) == {1, 2}
    assert rows[2]["id"] == "11"


@pytest.mark.asyncio
async def test_fetch_history_sends_limit_and_station():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.update(request.url.params)
        return httpx.Response(200, json={"ok": True, "items": [{"id": "1"}, {"id": "2"}]})

    client, http = make_client(handler)
    async with http:
        rows = await client.fetch_history(2, 500)

    assert seen == {"limit": "500", "estacion": "2"}
    assert [row["id"] for row in rows] == ["1", "2"]


@pytest.mark.asyncio
async def test_fetch_history_tolerates_missing_items():
    client, http = make_client(lambda request: httpx.Response(200, json={"ok": True}))
    async with http:
        assert await client.fetch_history(1, 10) == []


@pytest.mark.parametrize(
    "response, message",
    [
        (httpx.Response(502, text="bad gateway"), "HTTP 502"),
        (httpx.Response(200, text="<html>"), "invalid JSON"),
        (httpx.Response(200, json={"ok": False, "error": "db down"}), "db down"),
        (httpx.Response(200, json={"ok": False}), "ok=false"),
        (httpx.Response(200, json=[1, 2]), "ok=false"),
    ],
)
@pytest.mark.asyncio
async def test_bad_responses_raise_upstream_error(response, message):
    client, http = make_client(lambda request: response)
    async with http:
        with pytest.raises(UpstreamError, match=message):
            await client.fetch_latest()


@pytest.mark.asyncio
async def test_transport_errors_raise_upstream_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client, http = make_client(handler)
    async with http:
        with pytest.raises(UpstreamError, match="request failed"):
            await client.fetch_latest()


@pytest.mark.asyncio
async def test_slow_source_times_out():
    async def handler(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(5)
        return httpx.Response(200, json={"ok": True})

    client, http = make_client(handler, source_timeout=0.05)
    async with http:
        with pytest.raises(UpstreamError, match="timed out"):
            await client.fetch_latest()

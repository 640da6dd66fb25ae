"""Tests for the Realtime Database REST fast store."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from chillin.models.samples import RawSample
from chillin.stores.base import StoreError
from chillin.stores.fast import RealtimeDatabaseStore

BASE_URL = "https://chillin-test.firebaseio.com"


def _mock_client(body: object = None) -> MagicMock:
    response = MagicMock()
    response.raise_for_status = MagicMock()
    response.json = MagicMock(return_value=body)

    client = MagicMock()
    client.get = AsyncMock(return_value=response)
    client.put = AsyncMock(return_value=response)
    client.delete = AsyncMock(return_value=response)
    client.aclose = AsyncMock()
    return client


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class TestRequests:
    @pytest.mark.asyncio
    async def test_clear_partition_deletes_raw_data_node(self) -> None:
        client = _mock_client()
        store = RealtimeDatabaseStore(BASE_URL + "/", http_client=client)

        await store.clear_partition("alice")

        client.delete.assert_awaited_once_with(
            f"{BASE_URL}/alice/RawData.json", params={}
        )

    @pytest.mark.asyncio
    async def test_set_leaf_puts_record_under_timestamp(self) -> None:
        client = _mock_client()
        store = RealtimeDatabaseStore(BASE_URL, auth_token="secret", http_client=client)
        sample = RawSample(timestamp=1000, heart_rate=70.0, skin_temperature=36.5)

        await store.set_leaf("alice", sample)

        client.put.assert_awaited_once_with(
            f"{BASE_URL}/alice/RawData/1000.json",
            params={"auth": "secret"},
            json={"timestamp": 1000, "heartrateSensor": 70.0, "skinTemperatureSensor": 36.5},
        )

    @pytest.mark.asyncio
    async def test_account_key_is_url_quoted(self) -> None:
        client = _mock_client()
        store = RealtimeDatabaseStore(BASE_URL, http_client=client)

        await store.read_partition("john,doe")

        url = client.get.await_args.args[0]
        assert url == f"{BASE_URL}/john%2Cdoe/RawData.json"

    @pytest.mark.asyncio
    async def test_ping_uses_shallow_root_read(self) -> None:
        client = _mock_client(body={"alice": True})
        store = RealtimeDatabaseStore(BASE_URL, auth_token="secret", http_client=client)

        await store.ping()

        client.get.assert_awaited_once_with(
            f"{BASE_URL}/.json", params={"shallow": "true", "auth": "secret"}
        )

    @pytest.mark.asyncio
    async def test_injected_client_is_not_closed(self) -> None:
        client = _mock_client()
        store = RealtimeDatabaseStore(BASE_URL, http_client=client)
        await store.aclose()
        client.aclose.assert_not_awaited()


# ---------------------------------------------------------------------------
# Partition decoding
# ---------------------------------------------------------------------------


class TestReadPartition:
    @pytest.mark.asyncio
    async def test_missing_partition_is_empty(self) -> None:
        store = RealtimeDatabaseStore(BASE_URL, http_client=_mock_client(body=None))
        assert await store.read_partition("alice") == {}

    @pytest.mark.asyncio
    async def test_object_partition_returned_as_is(self) -> None:
        body = {"1000": {"timestamp": 1000, "heartrateSensor": 70.0, "skinTemperatureSensor": 36.5}}
        store = RealtimeDatabaseStore(BASE_URL, http_client=_mock_client(body=body))
        assert await store.read_partition("alice") == body

    @pytest.mark.asyncio
    async def test_array_partition_is_keyed_by_index(self) -> None:
        leaf = {"heartrateSensor": 70.0, "skinTemperatureSensor": 36.5}
        store = RealtimeDatabaseStore(BASE_URL, http_client=_mock_client(body=[None, leaf, None, leaf]))
        assert await store.read_partition("alice") == {"1": leaf, "3": leaf}

    @pytest.mark.asyncio
    async def test_scalar_partition_raises(self) -> None:
        store = RealtimeDatabaseStore(BASE_URL, http_client=_mock_client(body="oops"))
        with pytest.raises(StoreError):
            await store.read_partition("alice")

    @pytest.mark.asyncio
    async def test_invalid_json_raises(self) -> None:
        client = _mock_client()
        client.get.return_value.json.side_effect = json.JSONDecodeError("bad", "", 0)
        store = RealtimeDatabaseStore(BASE_URL, http_client=client)
        with pytest.raises(StoreError):
            await store.read_partition("alice")


# ---------------------------------------------------------------------------
# HTTP errors (real httpx client over a mock transport)
# ---------------------------------------------------------------------------


class TestHTTPErrors:
    @pytest.mark.asyncio
    async def test_error_status_raises(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(401, json={"error": "Permission denied"})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            store = RealtimeDatabaseStore(BASE_URL, auth_token="bad", http_client=client)
            with pytest.raises(httpx.HTTPStatusError):
                await store.clear_partition("alice")

        assert seen[0].method == "DELETE"
        assert seen[0].url.params["auth"] == "bad"

    @pytest.mark.asyncio
    async def test_round_trip_over_transport(self) -> None:
        tree: dict[str, dict] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            path = request.url.path.removesuffix(".json").strip("/").split("/")
            account = path[0]
            if request.method == "PUT":
                tree.setdefault(account, {})[path[2]] = json.loads(request.content)
                return httpx.Response(200, json=json.loads(request.content))
            if request.method == "DELETE":
                tree.pop(account, None)
                return httpx.Response(200, json=None)
            return httpx.Response(200, json=tree.get(account))

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            store = RealtimeDatabaseStore(BASE_URL, http_client=client)
            await store.set_leaf("alice", RawSample(timestamp=5, heart_rate=1.0, skin_temperature=2.0))
            await store.clear_partition("alice")
            await store.set_leaf("alice", RawSample(timestamp=7, heart_rate=3.0, skin_temperature=4.0))
            partition = await store.read_partition("alice")

        assert partition == {
            "7": {"timestamp": 7, "heartrateSensor": 3.0, "skinTemperatureSensor": 4.0}
        }

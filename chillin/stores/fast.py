"""Realtime Database fast store, accessed over the REST API.

Layout::

    {base_url}/{account_key}/RawData/{timestamp}.json
        → {"timestamp": ..., "heartrateSensor": ..., "skinTemperatureSensor": ...}

REST verbs used:
    DELETE  .../RawData.json          — clear the account partition
    PUT     .../RawData/{ts}.json     — set one leaf
    GET     .../RawData.json          — read the whole partition
    GET     /.json?shallow=true       — connectivity probe

When ``auth_token`` is set it is sent as the ``auth`` query parameter
(database secret or Firebase ID token).
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from chillin.models.samples import RawSample
from chillin.stores.base import FastStore, StoreError

logger = logging.getLogger("chillin.stores.fast")

PARTITION_NODE = "RawData"


class RealtimeDatabaseStore(FastStore):
    """Fast keyed store over the Realtime Database REST API."""

    def __init__(
        self,
        base_url: str,
        auth_token: str | None = None,
        timeout: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            base_url:    Database root URL, without a trailing ``.json``.
            auth_token:  Optional token appended as ``?auth=``.
            timeout:     Per-request timeout in seconds for the owned client.
            http_client: Optional pre-configured httpx client (for testing).
                         When given, the caller owns its lifecycle.
        """
        self._base_url = base_url.rstrip("/")
        self._auth_token = auth_token or None
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # FastStore interface
    # ------------------------------------------------------------------

    async def clear_partition(self, account_key: str) -> None:
        response = await self._client.delete(
            self._url(account_key), params=self._params()
        )
        response.raise_for_status()

    async def set_leaf(self, account_key: str, sample: RawSample) -> None:
        response = await self._client.put(
            self._url(account_key, str(sample.timestamp)),
            params=self._params(),
            json=sample.to_record(),
        )
        response.raise_for_status()

    async def read_partition(self, account_key: str) -> dict[str, Any]:
        response = await self._client.get(self._url(account_key), params=self._params())
        response.raise_for_status()
        try:
            body = response.json()
        except ValueError as exc:
            raise StoreError(f"Invalid JSON from fast store: {exc}") from exc

        if body is None:
            return {}
        if isinstance(body, list):
            # The database coerces objects with small integer keys into arrays
            return {str(i): leaf for i, leaf in enumerate(body) if leaf is not None}
        if not isinstance(body, dict):
            raise StoreError(f"Unexpected partition type: {type(body).__name__}")
        return body

    async def ping(self) -> None:
        response = await self._client.get(
            f"{self._base_url}/.json", params={"shallow": "true", **self._params()}
        )
        response.raise_for_status()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _url(self, account_key: str, *children: str) -> str:
        path = "/".join(quote(part, safe="") for part in (account_key, PARTITION_NODE, *children))
        return f"{self._base_url}/{path}.json"

    def _params(self) -> dict[str, str]:
        return {"auth": self._auth_token} if self._auth_token else {}

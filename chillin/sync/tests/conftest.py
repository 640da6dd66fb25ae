"""Shared fixtures and in-memory stores for synchronization tests."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from chillin.models.samples import RawSample
from chillin.stores.base import DurableStore, FastStore, StoreError
from chillin.sync.engine import SyncEngine

TEST_ACCOUNT = "alice"


class InMemoryDurableStore(DurableStore):
    """Durable store keeping rows in a dict keyed by ``(account, timestamp)``.

    ``fail_at`` makes the n-th upsert call (1-based) raise; ``fail_reads``
    makes every query raise.
    """

    def __init__(self, fail_at: int | None = None, fail_reads: bool = False) -> None:
        self.rows: dict[tuple[str, int], RawSample] = {}
        self.upsert_calls = 0
        self.query_calls = 0
        self.fail_at = fail_at
        self.fail_reads = fail_reads

    async def upsert(self, account_key: str, sample: RawSample) -> None:
        self.upsert_calls += 1
        if self.fail_at is not None and self.upsert_calls == self.fail_at:
            raise StoreError("durable store unreachable")
        self.rows[(account_key, sample.timestamp)] = sample

    async def query(
        self,
        account_key: str,
        limit: int,
        since: int | None = None,
        until: int | None = None,
    ) -> list[RawSample]:
        self.query_calls += 1
        if self.fail_reads:
            raise StoreError("durable store unreachable")
        samples = sorted(
            (s for (key, _), s in self.rows.items() if key == account_key),
            key=lambda s: s.timestamp,
        )
        if since is not None:
            samples = [s for s in samples if s.timestamp >= since]
        if until is not None:
            samples = [s for s in samples if s.timestamp < until]
        return samples[:limit]

    def timestamps(self, account_key: str = TEST_ACCOUNT) -> set[int]:
        return {ts for key, ts in self.rows if key == account_key}


class InMemoryFastStore(FastStore):
    """Keyed tree ``{account: {timestamp_key: leaf}}`` with an operation log.

    ``fail_on`` holds operation names ("clear", "set", "read") that raise.
    ``yield_between`` inserts a suspension point in every operation so
    concurrent writers get a chance to interleave.
    """

    def __init__(self, fail_on: set[str] | None = None, yield_between: bool = False) -> None:
        self.tree: dict[str, dict[str, Any]] = {}
        self.ops: list[tuple[str, str, int | None]] = []
        self.fail_on = fail_on or set()
        self.yield_between = yield_between

    async def _op(self, name: str, account_key: str, timestamp: int | None = None) -> None:
        if self.yield_between:
            await asyncio.sleep(0)
        if name in self.fail_on:
            raise StoreError(f"fast store {name} failed")
        self.ops.append((name, account_key, timestamp))

    async def clear_partition(self, account_key: str) -> None:
        await self._op("clear", account_key)
        self.tree.pop(account_key, None)

    async def set_leaf(self, account_key: str, sample: RawSample) -> None:
        await self._op("set", account_key, sample.timestamp)
        self.tree.setdefault(account_key, {})[str(sample.timestamp)] = sample.to_record()

    async def read_partition(self, account_key: str) -> dict[str, Any]:
        await self._op("read", account_key)
        return dict(self.tree.get(account_key, {}))


def make_batch(count: int, start: int = 1000, step: int = 1000) -> list[RawSample]:
    """``count`` realistic samples spaced ``step`` ms apart."""
    return [
        RawSample(
            timestamp=start + i * step,
            heart_rate=60.0 + (i % 25),
            skin_temperature=36.0 + (i % 10) / 10,
        )
        for i in range(count)
    ]


@pytest.fixture
def durable() -> InMemoryDurableStore:
    return InMemoryDurableStore()


@pytest.fixture
def fast() -> InMemoryFastStore:
    return InMemoryFastStore()


@pytest.fixture
def engine(durable: InMemoryDurableStore, fast: InMemoryFastStore) -> SyncEngine:
    return SyncEngine(durable, fast)


@pytest.fixture
def alice_batch() -> list[RawSample]:
    return [
        RawSample(timestamp=1000, heart_rate=70.0, skin_temperature=36.5),
        RawSample(timestamp=2000, heart_rate=72.0, skin_temperature=36.6),
    ]


@pytest.fixture
def full_batch() -> list[RawSample]:
    return make_batch(30)

"""Dual-store synchronization engine.

A batch is written twice:

1. **Durable phase** — every sample, in order, is upserted as its own record
   keyed by ``(account_key, timestamp)``.  This is the record of truth; rows
   written before a failure stay retrievable.
2. **Fast phase** (``fast_insert``) — the account partition in the fast store
   is cleared and every sample of the batch is written into it, leaving an
   exact mirror of the latest batch.

The verdict is successful only when both phases succeed.  A durable failure
is terminal: the fast phase is not attempted, so a healthy fast store can
never mask a lost durable write.

Error kinds:
    NETWORK_ERROR          — durable store operation failed
    COMMUNICATION_PROBLEM  — fast store operation failed
    NO_ACCOUNT             — no account key; no store is contacted

No exception crosses this boundary except ``asyncio.CancelledError``.
Cancellation gives no rollback: the durable store may be ahead of the fast
store, which the next successful write repairs.  There is no internal retry.
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from chillin.models.samples import Batch, RawSample, SyncErrorKind, SyncResult
from chillin.stores.base import DurableStore, FastStore

logger = logging.getLogger("chillin.sync.engine")

_LEAF_FIELDS = ("heartrateSensor", "skinTemperatureSensor")


def parse_fast_leaf(key: str, leaf: Any) -> RawSample | None:
    """Convert one fast-store leaf into a RawSample, or None if malformed.

    The timestamp comes from the leaf key; both sensor fields must be
    present and numeric.
    """
    try:
        timestamp = int(key)
    except (TypeError, ValueError):
        return None
    if not isinstance(leaf, dict):
        return None

    values = []
    for name in _LEAF_FIELDS:
        value = leaf.get(name)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        values.append(value)

    try:
        return RawSample(
            timestamp=timestamp,
            heart_rate=float(values[0]),
            skin_temperature=float(values[1]),
        )
    except (ValueError, OverflowError):
        return None


class SyncEngine:
    """Write batches to both stores and read them back.

    Usage::

        engine = SyncEngine(PostgresDurableStore(), RealtimeDatabaseStore(url))
        result = await engine.write("alice", batch)
        if not result.success:
            logger.warning("sync failed: %s", result.error_kind)
    """

    def __init__(self, durable: DurableStore, fast: FastStore) -> None:
        self._durable = durable
        self._fast = fast
        # clear-then-write on the fast store is not atomic
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: Counter[str] = Counter()

    @asynccontextmanager
    async def _exclusive(self, account_key: str) -> AsyncIterator[None]:
        """Hold the account's lock; it is dropped once nobody holds or awaits it."""
        lock = self._locks.setdefault(account_key, asyncio.Lock())
        self._lock_users[account_key] += 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[account_key] -= 1
            if not self._lock_users[account_key]:
                del self._lock_users[account_key]
                del self._locks[account_key]

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    async def write(self, account_key: str | None, batch: Batch) -> SyncResult:
        """Write ``batch`` to the durable store, then mirror it to the fast store.

        Args:
            account_key: Partition key, or None when no account is signed in.
            batch:       Samples in acquisition order.

        Returns:
            SyncResult: success only if both phases succeed.
        """
        if not account_key:
            return SyncResult.failed(SyncErrorKind.NO_ACCOUNT)

        async with self._exclusive(account_key):
            written = 0
            try:
                for sample in batch:
                    await self._durable.upsert(account_key, sample)
                    written += 1
            except Exception as exc:
                logger.warning(
                    "Durable write failed for %s at sample %d/%d: %s",
                    account_key, written + 1, len(batch), exc,
                )
                return SyncResult.failed(SyncErrorKind.NETWORK_ERROR)

            logger.debug("Durable write complete for %s: %d records", account_key, written)
            return await self._mirror(account_key, batch)

    async def fast_insert(self, account_key: str | None, batch: Batch) -> SyncResult:
        """Replace the account's fast-store partition with ``batch``.

        Returns:
            SyncResult: NO_ACCOUNT without any store call when the key is
            missing, COMMUNICATION_PROBLEM on any fast store failure.
        """
        if not account_key:
            return SyncResult.failed(SyncErrorKind.NO_ACCOUNT)

        async with self._exclusive(account_key):
            return await self._mirror(account_key, batch)

    async def _mirror(self, account_key: str, batch: Batch) -> SyncResult:
        try:
            await self._fast.clear_partition(account_key)
            for sample in batch:
                await self._fast.set_leaf(account_key, sample)
        except Exception as exc:
            logger.error("Fast insert failed for %s: %s", account_key, exc)
            return SyncResult.failed(SyncErrorKind.COMMUNICATION_PROBLEM)

        logger.info("Insert completed for %s: %d samples", account_key, len(batch))
        return SyncResult.ok()

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------

    async def read_durable(
        self,
        account_key: str | None,
        n: int,
        since: int | None = None,
        until: int | None = None,
    ) -> SyncResult:
        """Read up to ``n`` records from the durable store, oldest first.

        Args:
            account_key: Partition key.
            n:           Maximum number of records.
            since:       Inclusive lower timestamp bound.
            until:       Exclusive upper timestamp bound.
        """
        if not account_key:
            return SyncResult.failed(SyncErrorKind.NO_ACCOUNT)
        if n <= 0:
            return SyncResult.ok([])

        try:
            samples = await self._durable.query(account_key, n, since=since, until=until)
        except Exception as exc:
            logger.warning("Durable read failed for %s: %s", account_key, exc)
            return SyncResult.failed(SyncErrorKind.NETWORK_ERROR)
        return SyncResult.ok(list(samples))

    async def read_fast(self, account_key: str | None) -> SyncResult:
        """Read the whole fast-store mirror for the account.

        Malformed leaves are skipped; the rest is returned sorted by timestamp.
        """
        if not account_key:
            return SyncResult.failed(SyncErrorKind.NO_ACCOUNT)

        try:
            partition = await self._fast.read_partition(account_key)
        except Exception as exc:
            logger.error("Fast read failed for %s: %s", account_key, exc)
            return SyncResult.failed(SyncErrorKind.COMMUNICATION_PROBLEM)

        samples: list[RawSample] = []
        for key, leaf in partition.items():
            sample = parse_fast_leaf(key, leaf)
            if sample is None:
                logger.debug("Skipping malformed fast-store leaf %s/%s", account_key, key)
                continue
            samples.append(sample)

        samples.sort(key=lambda s: s.timestamp)
        return SyncResult.ok(samples)

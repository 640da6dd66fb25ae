"""Abstract store interfaces used by the synchronization engine.

Both stores are partitioned by account key.  Implementations raise on
failure; turning failures into result values is the engine's job.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from chillin.models.samples import RawSample


class StoreError(RuntimeError):
    """Raised by a store backend when a response cannot be used."""


class DurableStore(ABC):
    """Per-record store addressed by ``(account_key, timestamp)``.

    Expensive per write, supports range / limit queries on the timestamp key.
    """

    @abstractmethod
    async def upsert(self, account_key: str, sample: RawSample) -> None:
        """Insert or overwrite the record for ``sample.timestamp``."""

    @abstractmethod
    async def query(
        self,
        account_key: str,
        limit: int,
        since: int | None = None,
        until: int | None = None,
    ) -> list[RawSample]:
        """Return up to ``limit`` records ordered by timestamp.

        Args:
            account_key: Partition to read.
            limit:       Maximum number of records.
            since:       Inclusive lower timestamp bound.
            until:       Exclusive upper timestamp bound.
        """

    async def ping(self) -> None:
        """Raise if the store is unreachable.  Default is a no-op."""


class FastStore(ABC):
    """Keyed tree addressed by ``account_key/RawData/timestamp``.

    Cheap bulk overwrite; only whole-partition reads.
    """

    @abstractmethod
    async def clear_partition(self, account_key: str) -> None:
        """Delete the whole ``account_key/RawData`` subtree."""

    @abstractmethod
    async def set_leaf(self, account_key: str, sample: RawSample) -> None:
        """Write one sample under its timestamp key."""

    @abstractmethod
    async def read_partition(self, account_key: str) -> dict[str, Any]:
        """Return the raw partition as ``{timestamp_key: leaf}``.

        Leaves are returned as stored; validating them is up to the caller.
        """

    async def ping(self) -> None:
        """Raise if the store is unreachable.  Default is a no-op."""

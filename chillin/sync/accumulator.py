"""Fixed-size batch accumulation.

Samples are buffered until ``batch_size`` is reached, then handed to a sink
(normally ``SyncEngine.write`` bound to an account).  The buffer is cleared
only once the sink has returned, i.e. once the engine has taken ownership of
the batch; if the sink raises, the samples stay buffered.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from chillin.config_loader import get_pipeline_config
from chillin.models.samples import RawSample, SyncResult
from chillin.sync.engine import SyncEngine

logger = logging.getLogger("chillin.sync.accumulator")

BatchSink = Callable[[tuple[RawSample, ...]], Awaitable[SyncResult]]


class BatchAccumulator:
    """Single-producer / single-consumer batch buffer."""

    def __init__(self, sink: BatchSink, batch_size: int | None = None) -> None:
        """Initialize the accumulator.

        Args:
            sink:       Async callable receiving each completed batch.
            batch_size: Samples per batch; defaults to the pipeline config (30).
        """
        self._sink = sink
        self._batch_size = batch_size or get_pipeline_config().batching.batch_size
        self._buffer: list[RawSample] = []
        self._lock = asyncio.Lock()

    @property
    def batch_size(self) -> int:
        return self._batch_size

    def __len__(self) -> int:
        return len(self._buffer)

    async def add(self, sample: RawSample) -> SyncResult | None:
        """Append a sample; hand off the batch when it is full.

        Returns:
            The sink's result when this sample completed a batch, else None.
        """
        async with self._lock:
            self._buffer.append(sample)
            if len(self._buffer) < self._batch_size:
                return None
            return await self._handoff()

    async def flush(self) -> SyncResult | None:
        """Hand off a partial batch (stream shutdown).  No-op when empty."""
        async with self._lock:
            if not self._buffer:
                return None
            return await self._handoff()

    async def _handoff(self) -> SyncResult:
        batch = tuple(self._buffer)
        result = await self._sink(batch)
        # the sink has acknowledged ownership; drop only what it received
        del self._buffer[: len(batch)]
        if not result.success:
            logger.warning(
                "Batch of %d samples not synchronized: %s", len(batch), result.error_kind
            )
        return result


class AccumulatorRegistry:
    """One accumulator per account, each feeding ``engine.write`` for that account."""

    def __init__(self, engine: SyncEngine, batch_size: int | None = None) -> None:
        self._engine = engine
        self._batch_size = batch_size
        self._accumulators: dict[str, BatchAccumulator] = {}

    def get(self, account_key: str) -> BatchAccumulator:
        accumulator = self._accumulators.get(account_key)
        if accumulator is None:

            async def sink(batch: tuple[RawSample, ...]) -> SyncResult:
                return await self._engine.write(account_key, batch)

            accumulator = BatchAccumulator(sink, self._batch_size)
            self._accumulators[account_key] = accumulator
        return accumulator

    async def flush_all(self) -> dict[str, SyncResult]:
        """Flush every account's partial batch (service shutdown).

        Accumulators left empty are dropped; ``get`` recreates them on demand.
        """
        results: dict[str, SyncResult] = {}
        for account_key, accumulator in list(self._accumulators.items()):
            result = await accumulator.flush()
            if result is not None:
                results[account_key] = result
            if not len(accumulator):
                del self._accumulators[account_key]
        return results

    def __len__(self) -> int:
        return len(self._accumulators)

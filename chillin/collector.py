"""Device-side collection pipeline.

Wires the pieces together in data-flow order::

    positioning fixes → AdaptiveSamplingController ──tick──▶ SensorReader.read()
        → BatchAccumulator (30 samples) → SyncEngine.write(account_key, batch)

The account key is resolved from the identity callable at hand-off time, so
a sign-out mid-stream turns the next batch into a NO_ACCOUNT result instead
of writing under a stale key.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Callable

from chillin.config_loader import PipelineConfig, get_pipeline_config
from chillin.models.samples import RawSample, SyncResult
from chillin.sampling.controller import AdaptiveSamplingController
from chillin.sampling.positioning import PositioningService
from chillin.sync.accumulator import BatchAccumulator
from chillin.sync.engine import SyncEngine

logger = logging.getLogger("chillin.collector")

IdentityProvider = Callable[[], str | None]


class SensorReader(ABC):
    """Source of physiological samples, read once per acquisition tick."""

    @abstractmethod
    async def read(self) -> RawSample:
        """Return the current heart rate / skin temperature sample."""


class Collector:
    """Run sampling, batching and synchronization for one device."""

    def __init__(
        self,
        positioning: PositioningService,
        sensor: SensorReader,
        engine: SyncEngine,
        identity: IdentityProvider,
        config: PipelineConfig | None = None,
    ) -> None:
        cfg = config or get_pipeline_config()
        self._sensor = sensor
        self._engine = engine
        self._identity = identity
        self._accumulator = BatchAccumulator(self._sync_batch, cfg.batching.batch_size)
        self._controller = AdaptiveSamplingController(
            positioning, on_tick=self._acquire, config=cfg.sampling
        )
        self.results: list[SyncResult] = []

    @property
    def controller(self) -> AdaptiveSamplingController:
        return self._controller

    @property
    def accumulator(self) -> BatchAccumulator:
        return self._accumulator

    async def start(self) -> None:
        await self._controller.seed_location()
        await self._controller.start()
        logger.info("Collector started")

    async def stop(self) -> None:
        """Stop sampling and synchronize whatever is still buffered."""
        await self._controller.stop()
        await self._accumulator.flush()
        logger.info("Collector stopped after %d batches", len(self.results))

    async def _acquire(self) -> None:
        sample = await self._sensor.read()
        await self._accumulator.add(sample)

    async def _sync_batch(self, batch: tuple[RawSample, ...]) -> SyncResult:
        result = await self._engine.write(self._identity(), batch)
        self.results.append(result)
        return result

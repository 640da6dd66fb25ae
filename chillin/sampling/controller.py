"""Adaptive sampling controller.

Owns the current sampling period and the last known location.  Fixes from
the positioning service are queued and handled one at a time by a single
worker task, so the period and the cadence timer only ever have one writer.

Lifecycle::

    controller = AdaptiveSamplingController(positioning, on_tick=acquire)
    await controller.start()        # updates + ticks at the slow period
    ...                             # fixes arrive via controller.submit
    await controller.stop()         # no further ticks

Restart rule: a new period is applied only when it differs from the current
one by more than the hysteresis threshold, so speed noise around the current
period does not churn the cadence.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from chillin.config_loader import SamplingConfig, get_pipeline_config
from chillin.models.samples import LocationFix
from chillin.sampling.estimator import estimate_period
from chillin.sampling.positioning import PositioningService

logger = logging.getLogger("chillin.sampling.controller")

TickCallback = Callable[[], Awaitable[None]]


class AdaptiveSamplingController:
    """Single-owner state machine over the sampling period."""

    def __init__(
        self,
        positioning: PositioningService,
        *,
        on_tick: TickCallback | None = None,
        config: SamplingConfig | None = None,
    ) -> None:
        """Initialize the controller.

        Args:
            positioning: Service asked to deliver fixes at the current period.
            on_tick:     Async callback fired once per period (acquisition tick).
            config:      Sampling settings; defaults to the pipeline config.
        """
        self._positioning = positioning
        self._on_tick = on_tick
        self._config = config or get_pipeline_config().sampling
        self._period = self._config.slow_period_s
        self._last_fix: LocationFix | None = None
        self._fixes: asyncio.Queue[LocationFix] = asyncio.Queue()
        self._worker: asyncio.Task | None = None
        self._ticker: asyncio.Task | None = None
        self._acquisitions: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def period(self) -> int:
        return self._period

    @property
    def last_fix(self) -> LocationFix | None:
        """Last fix seen, already rounded to ``location_decimals``."""
        return self._last_fix

    @property
    def is_running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def seed_location(self) -> LocationFix | None:
        """Prime the last known location from the service's cached fix.

        The period is left untouched.
        """
        fix = await self._positioning.last_known_fix()
        if fix is not None:
            self._last_fix = fix.rounded(self._config.location_decimals)
        return self._last_fix

    async def start(self) -> None:
        """Request updates at the current period and start processing fixes."""
        if self.is_running:
            raise RuntimeError("controller already started")
        await self._restart(self._period)
        self._worker = asyncio.create_task(self._process_fixes())

    async def stop(self) -> None:
        """Cancel pending ticks, stop positioning updates and the fix worker."""
        tasks = [t for t in (self._ticker, self._worker) if t is not None]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._ticker = None
        self._worker = None
        # acquisitions already under way, including ones started before a
        # restart, hand over their sample before stop returns
        while self._acquisitions:
            await asyncio.gather(*self._acquisitions, return_exceptions=True)
        await self._positioning.stop_updates()
        logger.info("Sampling stopped at period %ds", self._period)

    def submit(self, fix: LocationFix) -> None:
        """Queue a fix for processing.  Registered as the positioning handler."""
        self._fixes.put_nowait(fix)

    async def drain(self) -> None:
        """Wait until every queued fix has been handled."""
        await self._fixes.join()

    # ------------------------------------------------------------------
    # Internals (only the worker task calls these after start())
    # ------------------------------------------------------------------

    async def _process_fixes(self) -> None:
        while True:
            fix = await self._fixes.get()
            try:
                await self._handle_fix(fix)
            except Exception:
                logger.exception("Failed to apply location fix %s", fix)
            finally:
                self._fixes.task_done()

    async def _handle_fix(self, fix: LocationFix) -> None:
        self._last_fix = fix.rounded(self._config.location_decimals)

        target = estimate_period(fix.speed, self._config)
        if target is None:
            return

        if abs(target - self._period) > self._config.hysteresis_s:
            logger.debug(
                "Speed %.2f m/s → period %ds (was %ds)", fix.speed, target, self._period
            )
            await self._restart(target)

    async def _restart(self, period: int) -> None:
        if self._ticker is not None:
            self._ticker.cancel()
            self._ticker = None
        self._period = period
        await self._positioning.stop_updates()
        await self._positioning.start_updates(period, self.submit)
        self._ticker = asyncio.create_task(self._tick_loop(period))
        logger.info("Location updates started with sampling period: %ds", period)

    async def _tick_loop(self, period: int) -> None:
        # acquisitions outlive a restart; never overlap the next one with them
        if self._acquisitions:
            await asyncio.shield(
                asyncio.gather(*self._acquisitions, return_exceptions=True)
            )
        while True:
            await asyncio.sleep(period)
            if self._on_tick is None:
                continue
            # a restart cancels the timer, never an acquisition in progress
            acquisition = asyncio.ensure_future(self._run_tick())
            self._acquisitions.add(acquisition)
            acquisition.add_done_callback(self._acquisitions.discard)
            await asyncio.shield(acquisition)

    async def _run_tick(self) -> None:
        try:
            await self._on_tick()  # type: ignore[misc]
        except Exception:
            logger.exception("Acquisition tick failed")

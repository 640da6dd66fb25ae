"""Shared fixtures for the adaptive sampling tests."""

from __future__ import annotations

import pytest

from chillin.config_loader import SamplingConfig
from chillin.models.samples import LocationFix
from chillin.sampling.positioning import FixHandler, PositioningService


class FakePositioning(PositioningService):
    """Records start/stop requests and lets tests push fixes by hand."""

    def __init__(self, cached: LocationFix | None = None) -> None:
        self.calls: list[tuple[str, int | None]] = []
        self.handler: FixHandler | None = None
        self.cached = cached

    async def start_updates(self, period_s: int, handler: FixHandler) -> None:
        self.calls.append(("start", period_s))
        self.handler = handler

    async def stop_updates(self) -> None:
        self.calls.append(("stop", None))
        self.handler = None

    async def last_known_fix(self) -> LocationFix | None:
        return self.cached

    def emit(self, fix: LocationFix) -> None:
        assert self.handler is not None, "updates not started"
        self.handler(fix)

    @property
    def started_periods(self) -> list[int]:
        return [p for op, p in self.calls if op == "start" and p is not None]


@pytest.fixture
def positioning() -> FakePositioning:
    return FakePositioning()


@pytest.fixture
def sampling_config() -> SamplingConfig:
    """The production constants."""
    return SamplingConfig()


def fix_at(speed: float, latitude: float = 45.0, longitude: float = 9.0) -> LocationFix:
    return LocationFix(latitude=latitude, longitude=longitude, speed=speed)

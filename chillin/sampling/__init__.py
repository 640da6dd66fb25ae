"""Adaptive sampling for the wearable collector.

Modules:
    estimator   — Pure speed → sampling period mapping
    positioning — Positioning service boundary (start / stop updates)
    controller  — Single-owner state machine over the sampling period
"""

from chillin.sampling.controller import AdaptiveSamplingController
from chillin.sampling.estimator import estimate_period
from chillin.sampling.positioning import FixHandler, PositioningService

__all__ = [
    "AdaptiveSamplingController",
    "FixHandler",
    "PositioningService",
    "estimate_period",
]

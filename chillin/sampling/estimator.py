"""Motion-derived sampling period.

The faster the subject moves, the sooner a fresh fix is worth taking: the
period is the time needed to cover ``reference_distance_m`` at the current
speed, clamped to ``[fast_period_s, slow_period_s]``.
"""

from __future__ import annotations

from chillin.config_loader import SamplingConfig

_DEFAULTS = SamplingConfig()


def estimate_period(speed: float, config: SamplingConfig | None = None) -> int | None:
    """Return the target sampling period in whole seconds for ``speed`` (m/s).

    Returns None when there is no usable motion signal (zero, negative or NaN
    speed).  The caller keeps its current period in that case.

    Examples:
        >>> estimate_period(20.0)
        5
        >>> estimate_period(1.0)
        60
        >>> estimate_period(0.0) is None
        True
    """
    cfg = config or _DEFAULTS
    if not speed > 0:
        return None

    time_to_cross = cfg.reference_distance_m / speed
    # clamp before truncating: tiny speeds overflow int()
    if time_to_cross >= cfg.slow_period_s:
        return cfg.slow_period_s
    return max(int(time_to_cross), cfg.fast_period_s)

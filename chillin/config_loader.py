"""Load, validate, and hot-reload the sampling pipeline configuration.

The config lives in ``pipeline_config.yaml`` alongside this module.  At startup
it is loaded once and cached.  Call ``reload_pipeline_config()`` to re-read
from disk after an update; no restart required.

Usage::

    from chillin.config_loader import get_pipeline_config

    config = get_pipeline_config()
    config.sampling.slow_period_s     # 60
    config.batching.batch_size        # 30
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger("chillin.config")

# Path to the YAML file sitting next to this module
_CONFIG_PATH = Path(__file__).parent / "pipeline_config.yaml"


# ---------------------------------------------------------------------------
# Typed config sections
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SamplingConfig:
    """Adaptive sampling settings.

    Attributes:
        fast_period_s:        Lower bound of the sampling period (seconds).
        slow_period_s:        Upper bound and initial sampling period (seconds).
        reference_distance_m: Distance used to turn speed into a period.
        hysteresis_s:         A new period must differ by more than this to apply.
        location_decimals:    Decimal places kept on latitude / longitude.
    """

    fast_period_s: int = 5
    slow_period_s: int = 60
    reference_distance_m: float = 100.0
    hysteresis_s: int = 5
    location_decimals: int = 3


@dataclass(frozen=True)
class BatchingConfig:
    """Batch accumulation settings."""

    batch_size: int = 30


@dataclass(frozen=True)
class PipelineConfig:
    """Complete, validated pipeline configuration.

    Attributes:
        version:  Config schema version string.
        sampling: Adaptive sampling controller settings.
        batching: Batch accumulator settings.
    """

    version: str = "1.0"
    sampling: SamplingConfig = field(default_factory=SamplingConfig)
    batching: BatchingConfig = field(default_factory=BatchingConfig)


# ---------------------------------------------------------------------------
# Loader / validation
# ---------------------------------------------------------------------------


class ConfigValidationError(ValueError):
    """Raised when pipeline_config.yaml fails validation."""


def _load_yaml(path: Path) -> dict:
    """Read and parse a YAML file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigValidationError: If the YAML is malformed.
    """
    if not path.exists():
        raise FileNotFoundError(f"Pipeline config not found: {path}")

    with path.open("r", encoding="utf-8") as fh:
        try:
            return yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigValidationError(f"YAML parse error in {path}: {exc}") from exc


def _validate_and_build(raw: dict) -> PipelineConfig:
    """Validate the raw YAML dict and construct a PipelineConfig.

    Missing keys fall back to the dataclass defaults.

    Raises:
        ConfigValidationError: If any value is malformed or inconsistent.
    """
    errors: list[str] = []
    defaults = SamplingConfig()

    def _number(section: dict, key: str, default: float, cast: type) -> float:
        value = section.get(key, default)
        try:
            return cast(value)
        except (TypeError, ValueError):
            errors.append(f"{key} must be a number, got {value!r}")
            return default

    version = str(raw.get("version", "1.0"))

    # ── Sampling ──
    s_raw = raw.get("sampling") or {}
    if not isinstance(s_raw, dict):
        errors.append("'sampling' must be a mapping")
        s_raw = {}
    sampling = SamplingConfig(
        fast_period_s=_number(s_raw, "fast_period_s", defaults.fast_period_s, int),
        slow_period_s=_number(s_raw, "slow_period_s", defaults.slow_period_s, int),
        reference_distance_m=_number(
            s_raw, "reference_distance_m", defaults.reference_distance_m, float
        ),
        hysteresis_s=_number(s_raw, "hysteresis_s", defaults.hysteresis_s, int),
        location_decimals=_number(
            s_raw, "location_decimals", defaults.location_decimals, int
        ),
    )
    if sampling.fast_period_s <= 0:
        errors.append(f"sampling.fast_period_s must be positive, got {sampling.fast_period_s}")
    if sampling.slow_period_s < sampling.fast_period_s:
        errors.append(
            f"sampling.slow_period_s ({sampling.slow_period_s}) is below "
            f"fast_period_s ({sampling.fast_period_s})"
        )
    if sampling.reference_distance_m <= 0:
        errors.append("sampling.reference_distance_m must be positive")
    if sampling.hysteresis_s < 0:
        errors.append("sampling.hysteresis_s must not be negative")
    if sampling.location_decimals < 0:
        errors.append("sampling.location_decimals must not be negative")

    # ── Batching ──
    b_raw = raw.get("batching") or {}
    if not isinstance(b_raw, dict):
        errors.append("'batching' must be a mapping")
        b_raw = {}
    batching = BatchingConfig(
        batch_size=_number(b_raw, "batch_size", BatchingConfig.batch_size, int),
    )
    if batching.batch_size < 1:
        errors.append(f"batching.batch_size must be at least 1, got {batching.batch_size}")

    if errors:
        raise ConfigValidationError(
            f"pipeline_config.yaml has {len(errors)} validation error(s):\n"
            + "\n".join(f"  • {e}" for e in errors)
        )

    return PipelineConfig(version=version, sampling=sampling, batching=batching)


def load_pipeline_config(path: Path | None = None) -> PipelineConfig:
    """Load and validate the pipeline config from disk.

    Args:
        path: Override path to YAML. Uses the bundled pipeline_config.yaml by default.
    """
    target = path or _CONFIG_PATH
    raw = _load_yaml(target)
    config = _validate_and_build(raw)
    logger.info("Loaded pipeline config v%s from %s", config.version, target)
    return config


# ---------------------------------------------------------------------------
# Global singleton with hot-reload support
# ---------------------------------------------------------------------------

_config: PipelineConfig | None = None
_config_lock = threading.Lock()


def get_pipeline_config() -> PipelineConfig:
    """Return the global PipelineConfig singleton, loading it on first call."""
    global _config
    if _config is None:
        with _config_lock:
            if _config is None:  # double-checked locking
                _config = load_pipeline_config()
    return _config


def reload_pipeline_config(path: Path | None = None) -> PipelineConfig:
    """Reload the pipeline config from disk and replace the global singleton.

    If validation fails, the old config is retained and the error is re-raised.

    Raises:
        ConfigValidationError: If the new config is invalid.
        FileNotFoundError:     If the config file is missing.
    """
    global _config
    new_config = load_pipeline_config(path)  # validate before acquiring lock
    with _config_lock:
        old_version = _config.version if _config else "none"
        _config = new_config
    logger.info("Reloaded pipeline config: %s → %s", old_version, new_config.version)
    return new_config

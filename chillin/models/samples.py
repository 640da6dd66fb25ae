"""Pydantic models for raw wearable samples, location fixes, and sync results."""

from __future__ import annotations

import math
from decimal import ROUND_HALF_EVEN, Decimal
from enum import Enum
from typing import Sequence

from pydantic import ConfigDict, Field, field_validator, model_validator

from chillin.models.base import ChillinBase


# ---------- Raw samples ----------

class RawSample(ChillinBase):
    """One physiological reading from the wearable.

    ``timestamp`` (monotonic milliseconds) is the natural key of a sample
    within an account's stream; writing the same timestamp again overwrites.
    Field aliases are the record field names used in both stores.
    """

    model_config = ConfigDict(frozen=True)

    timestamp: int = Field(ge=0)
    heart_rate: float = Field(alias="heartrateSensor")
    skin_temperature: float = Field(alias="skinTemperatureSensor")

    @field_validator("heart_rate", "skin_temperature")
    @classmethod
    def _finite(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("sensor readings must be finite")
        return value

    def to_record(self) -> dict:
        """Return the store representation (``timestamp``, ``heartrateSensor``, ``skinTemperatureSensor``)."""
        return self.model_dump(by_alias=True)


Batch = Sequence[RawSample]


# ---------- Location ----------

def round_coordinate(value: float, decimals: int) -> float:
    """Round a coordinate half-even on its exact binary value."""
    quantum = Decimal(1).scaleb(-decimals)
    return float(Decimal(value).quantize(quantum, rounding=ROUND_HALF_EVEN))


class LocationFix(ChillinBase):
    """A position report from the positioning service."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    speed: float = Field(default=0.0, ge=0)  # m/s

    def rounded(self, decimals: int) -> "LocationFix":
        return LocationFix(
            latitude=round_coordinate(self.latitude, decimals),
            longitude=round_coordinate(self.longitude, decimals),
            speed=self.speed,
        )


# ---------- Sync results ----------

class SyncErrorKind(str, Enum):
    NETWORK_ERROR = "NETWORK_ERROR"                  # durable store failed
    COMMUNICATION_PROBLEM = "COMMUNICATION_PROBLEM"  # fast store failed
    NO_ACCOUNT = "NO_ACCOUNT"                        # no resolvable account key


class SyncResult(ChillinBase):
    """Outcome of an engine operation.

    Exactly one of ``success=True`` or ``error_kind`` is set; ``payload`` is
    only populated by successful reads.
    """

    model_config = ConfigDict(frozen=True)

    success: bool
    payload: list[RawSample] | None = None
    error_kind: SyncErrorKind | None = None

    @model_validator(mode="after")
    def _exactly_one_outcome(self) -> "SyncResult":
        if self.success == (self.error_kind is not None):
            raise ValueError("a result is either successful or carries an error kind")
        return self

    @classmethod
    def ok(cls, payload: list[RawSample] | None = None) -> "SyncResult":
        return cls(success=True, payload=payload)

    @classmethod
    def failed(cls, error_kind: SyncErrorKind) -> "SyncResult":
        return cls(success=False, error_kind=error_kind)

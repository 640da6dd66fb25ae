"""Sample synchronization for ChillIn.

Modules:
    keys        — Account key derivation from the authenticated e-mail
    engine      — Dual-store synchronization engine (write / fast insert / reads)
    accumulator — Fixed-size batch accumulation with ownership handoff
"""

from chillin.sync.accumulator import AccumulatorRegistry, BatchAccumulator
from chillin.sync.engine import SyncEngine
from chillin.sync.keys import account_key_from_email

__all__ = [
    "AccumulatorRegistry",
    "BatchAccumulator",
    "SyncEngine",
    "account_key_from_email",
]

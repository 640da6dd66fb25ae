"""Backing stores for raw samples.

Modules:
    base    — DurableStore / FastStore ABCs and StoreError
    durable — Postgres per-record store (record of truth)
    fast    — Realtime Database keyed tree (whole-partition mirror)
"""

from chillin.stores.base import DurableStore, FastStore, StoreError

__all__ = ["DurableStore", "FastStore", "StoreError"]

"""Postgres-backed durable per-record store.

Each sample is one row keyed by ``(account_key, timestamp)``.  Writes are
idempotent upserts, so re-sending a batch after a partial failure simply
overwrites the rows that already made it.

Schema::

    raw_samples (
        account_key              TEXT,
        timestamp                BIGINT,      -- monotonic ms, natural key
        heartrate_sensor         DOUBLE PRECISION,
        skin_temperature_sensor  DOUBLE PRECISION,
        updated_at               TIMESTAMPTZ,
        PRIMARY KEY (account_key, timestamp)
    )

Row-level security limits every statement to the rows whose ``account_key``
matches ``app.current_account_key``, which ``chillin.services.database`` sets
per transaction.  The table owner bypasses the policy unless it is forced.
"""

from __future__ import annotations

import logging
from typing import Any

from chillin.models.samples import RawSample
from chillin.services.database import execute, fetch
from chillin.stores.base import DurableStore

logger = logging.getLogger("chillin.stores.durable")

TABLE = "raw_samples"
POLICY = "raw_samples_account_isolation"

_COLUMNS = ["account_key", "timestamp", "heartrate_sensor", "skin_temperature_sensor"]
_KEY_COLUMNS = ["account_key", "timestamp"]

SCHEMA_SQL = f"""
CREATE TABLE IF NOT EXISTS {TABLE} (
    account_key TEXT NOT NULL,
    timestamp BIGINT NOT NULL,
    heartrate_sensor DOUBLE PRECISION NOT NULL,
    skin_temperature_sensor DOUBLE PRECISION NOT NULL,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    PRIMARY KEY (account_key, timestamp)
);

ALTER TABLE {TABLE} ENABLE ROW LEVEL SECURITY;

DO $$
BEGIN
    IF NOT EXISTS (
        SELECT 1 FROM pg_policies
        WHERE tablename = '{TABLE}' AND policyname = '{POLICY}'
    ) THEN
        CREATE POLICY {POLICY} ON {TABLE}
            USING (account_key = current_setting('app.current_account_key', true))
            WITH CHECK (account_key = current_setting('app.current_account_key', true));
    END IF;
END
$$;
"""


def _build_upsert_sql() -> str:
    """INSERT one sample; on a repeated ``(account_key, timestamp)`` overwrite the readings."""
    values = ", ".join(f"${i}" for i in range(1, len(_COLUMNS) + 1))
    readings = [c for c in _COLUMNS if c not in _KEY_COLUMNS]
    assignments = ", ".join(f"{c} = EXCLUDED.{c}" for c in readings)
    return (
        f"INSERT INTO {TABLE} ({', '.join(_COLUMNS)}) VALUES ({values}) "
        f"ON CONFLICT ({', '.join(_KEY_COLUMNS)}) "
        f"DO UPDATE SET {assignments}, updated_at = NOW()"
    )


_UPSERT_SQL = _build_upsert_sql()


class PostgresDurableStore(DurableStore):
    """Durable store over the shared asyncpg pool (see ``chillin.services.database``)."""

    async def ensure_schema(self) -> None:
        """Create ``raw_samples`` and its per-account row-level security policy."""
        await execute(SCHEMA_SQL)
        logger.info("Ensured table %s", TABLE)

    async def upsert(self, account_key: str, sample: RawSample) -> None:
        await execute(
            _UPSERT_SQL,
            account_key,
            sample.timestamp,
            sample.heart_rate,
            sample.skin_temperature,
            account_key=account_key,
        )

    async def query(
        self,
        account_key: str,
        limit: int,
        since: int | None = None,
        until: int | None = None,
    ) -> list[RawSample]:
        conditions = ["account_key = $1"]
        params: list[Any] = [account_key]
        idx = 2

        if since is not None:
            conditions.append(f"timestamp >= ${idx}")
            params.append(since)
            idx += 1
        if until is not None:
            conditions.append(f"timestamp < ${idx}")
            params.append(until)
            idx += 1

        where = " AND ".join(conditions)
        rows = await fetch(
            f"SELECT timestamp, heartrate_sensor, skin_temperature_sensor FROM {TABLE} "
            f"WHERE {where} ORDER BY timestamp LIMIT ${idx}",
            *params,
            limit,
            account_key=account_key,
        )
        return [
            RawSample(
                timestamp=r["timestamp"],
                heart_rate=r["heartrate_sensor"],
                skin_temperature=r["skin_temperature_sensor"],
            )
            for r in rows
        ]

    async def ping(self) -> None:
        await fetch("SELECT 1")

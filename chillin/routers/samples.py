"""Sample ingestion and read-back endpoints.

All endpoints act on the caller's own account.  Engine error kinds map to
HTTP errors: NO_ACCOUNT → 401, store failures → 502.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Query
from pydantic import Field

from chillin.dependencies import AccountKey, Accumulators, Engine
from chillin.models.base import ChillinBase, ErrorDetail
from chillin.models.samples import RawSample, SyncErrorKind, SyncResult

router = APIRouter(
    prefix="/samples",
    tags=["samples"],
    responses={401: {"model": ErrorDetail}, 502: {"model": ErrorDetail}},
)

_ERROR_STATUS: dict[SyncErrorKind, int] = {
    SyncErrorKind.NO_ACCOUNT: 401,
    SyncErrorKind.NETWORK_ERROR: 502,
    SyncErrorKind.COMMUNICATION_PROBLEM: 502,
}


class IngestResponse(ChillinBase):
    accepted: int
    buffered: int
    batches: list[SyncResult] = Field(default_factory=list)


def _unwrap(result: SyncResult) -> SyncResult:
    if not result.success and result.error_kind is not None:
        raise HTTPException(
            status_code=_ERROR_STATUS[result.error_kind],
            detail=result.error_kind.value,
        )
    return result


def _require_account(account_key: str | None) -> str:
    if not account_key:
        raise HTTPException(status_code=401, detail=SyncErrorKind.NO_ACCOUNT.value)
    return account_key


# ---------- Write path ----------

@router.post("", response_model=IngestResponse)
async def ingest_samples(
    account_key: AccountKey, accumulators: Accumulators, body: list[RawSample]
) -> Any:
    """Buffer samples; every completed batch of 30 is synchronized immediately."""
    accumulator = accumulators.get(_require_account(account_key))
    batches: list[SyncResult] = []
    for sample in body:
        result = await accumulator.add(sample)
        if result is not None:
            batches.append(result)
    return IngestResponse(accepted=len(body), buffered=len(accumulator), batches=batches)


@router.post("/flush", response_model=SyncResult)
async def flush_samples(account_key: AccountKey, accumulators: Accumulators) -> Any:
    """Synchronize the caller's partial batch."""
    result = await accumulators.get(_require_account(account_key)).flush()
    if result is None:
        return SyncResult.ok()
    return _unwrap(result)


@router.post("/batch", response_model=SyncResult)
async def write_batch(account_key: AccountKey, engine: Engine, body: list[RawSample]) -> Any:
    """Write a whole batch to both stores."""
    return _unwrap(await engine.write(account_key, body))


@router.put("/mirror", response_model=SyncResult)
async def replace_mirror(account_key: AccountKey, engine: Engine, body: list[RawSample]) -> Any:
    """Replace the fast-store mirror without touching the durable store."""
    return _unwrap(await engine.fast_insert(account_key, body))


# ---------- Read path ----------

@router.get("/durable", response_model=SyncResult)
async def read_durable(
    account_key: AccountKey,
    engine: Engine,
    n: int = Query(default=30, ge=1, le=1000),
    since: int | None = Query(default=None, ge=0),
    until: int | None = Query(default=None, ge=0),
) -> Any:
    return _unwrap(await engine.read_durable(account_key, n, since=since, until=until))


@router.get("/fast", response_model=SyncResult)
async def read_fast(account_key: AccountKey, engine: Engine) -> Any:
    return _unwrap(await engine.read_fast(account_key))

"""Health check endpoint — public, no auth required."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Request

from chillin.dependencies import AppSettings

router = APIRouter(tags=["system"])
logger = logging.getLogger("chillin.health")


@router.get("/health")
async def health_check(request: Request, settings: AppSettings) -> dict:
    """Liveness probe. Returns 200 if the API process is up.

    Also probes both backing stores.
    """
    durable_ok = False
    fast_ok = False

    try:
        await request.app.state.durable_store.ping()
        durable_ok = True
    except Exception as exc:
        logger.warning("Health check durable store probe failed: %s", exc)

    try:
        await request.app.state.fast_store.ping()
        fast_ok = True
    except Exception as exc:
        logger.warning("Health check fast store probe failed: %s", exc)

    return {
        "status": "healthy" if durable_ok and fast_ok else "degraded",
        "version": settings.app_version,
        "environment": settings.environment,
        "durable_store": "connected" if durable_ok else "unreachable",
        "fast_store": "connected" if fast_ok else "unreachable",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

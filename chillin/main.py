"""ChillIn Sync API — FastAPI application entry point.

Run locally:
    uvicorn chillin.main:app --reload --port 8000
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chillin.config import get_settings
from chillin.middleware.identity import IdentityMiddleware
from chillin.routers import health, samples
from chillin.services.database import close_pool, init_pool
from chillin.stores.durable import PostgresDurableStore
from chillin.stores.fast import RealtimeDatabaseStore
from chillin.sync.accumulator import AccumulatorRegistry
from chillin.sync.engine import SyncEngine

# ---------- Logging ----------

logging.basicConfig(
    level=get_settings().log_level,
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stdout,
)
logger = logging.getLogger("chillin")


# ---------- Lifespan ----------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup / shutdown hooks."""
    settings = get_settings()
    logger.info(
        "Starting ChillIn Sync API v%s [%s]",
        settings.app_version,
        settings.environment,
    )
    await init_pool(settings)

    durable = PostgresDurableStore()
    await durable.ensure_schema()
    fast = RealtimeDatabaseStore(
        settings.realtime_db_url,
        auth_token=settings.realtime_db_auth,
        timeout=settings.fast_store_timeout_s,
    )
    engine = SyncEngine(durable, fast)

    app.state.durable_store = durable
    app.state.fast_store = fast
    app.state.engine = engine
    app.state.accumulators = AccumulatorRegistry(engine)
    yield

    # partial batches are synchronized rather than dropped
    results = await app.state.accumulators.flush_all()
    if results:
        logger.info("Flushed %d partial batches on shutdown", len(results))
    await fast.aclose()
    await close_pool()
    logger.info("ChillIn Sync API shut down")


# ---------- App factory ----------

def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title="ChillIn Sync API",
        description=(
            "Wearable sample ingestion with dual-store synchronization: "
            "a durable per-record store and a fast partition mirror."
        ),
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ---------- Middleware (the last one added runs first) ----------

    # Bearer token → request.state.auth
    app.add_middleware(IdentityMiddleware, settings=settings)

    # CORS is outermost so preflight requests never reach identity checks
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ---------- Health check (outside the v1 prefix, always at /health) ----------
    app.include_router(health.router)

    # ---------- API v1 routes ----------
    app.include_router(samples.router, prefix="/api/v1")

    return app


app = create_app()

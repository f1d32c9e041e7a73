"""FastAPI application entrypoint: lifespan, routers, middleware."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from redis.asyncio import Redis
from sqlalchemy import text

from app.config import get_settings
from app.database import engine
from app.middleware.logging import RequestLoggingMiddleware, configure_structured_logging
from app.routes import (
    activity,
    auth,
    crops,
    inventory,
    jobs,
    navigation,
    planting,
    pricing,
    recurring_orders,
)
from app.scheduler import PeriodicScheduler

SERVICE_NAME = "trayline"
SERVICE_VERSION = "0.1.0"

logger = structlog.get_logger("trayline")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application startup / shutdown lifecycle.

    Startup:
      1. Initialize structured logging
      2. Verify the database connection
      3. Connect to Redis (optional; task locks fall back to in-process)
      4. Start the periodic task scheduler

    Shutdown:
      1. Stop the scheduler loop
      2. Close Redis connection pool
      3. Dispose SQLAlchemy engine
    """
    configure_structured_logging()
    settings = get_settings()
    logger.info(
        "trayline_starting",
        log_level=settings.log_level,
        scheduler_enabled=settings.scheduler_enabled,
    )

    redis: Redis | None = None
    scheduler: PeriodicScheduler | None = None
    try:
        async with engine.connect() as connection:
            await connection.execute(text("SELECT 1"))

        try:
            redis = Redis.from_url(settings.redis_url, decode_responses=True)
            await redis.ping()
        except Exception as exc:
            logger.warning("redis_unavailable", error=str(exc))
            if redis is not None:
                await redis.aclose()
            redis = None
        app.state.redis = redis

        if settings.scheduler_enabled:
            scheduler = PeriodicScheduler(redis_client=redis, settings=settings)
            scheduler.start()
        app.state.scheduler = scheduler
    except Exception as exc:
        logger.exception("startup_failure", error=str(exc))
        raise

    yield

    logger.info("trayline_shutting_down")
    if scheduler is not None:
        await scheduler.stop()
    if redis is not None:
        await redis.aclose()
    await engine.dispose()


app = FastAPI(
    title="Trayline API",
    description=(
        "Microgreens production back office: crop stage tracking, planting "
        "schedules driven by recurring orders, customer-type pricing and "
        "activity auditing."
    ),
    version=SERVICE_VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── Middleware ──────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)


async def _check_database() -> dict[str, Any]:
    try:
        async with engine.connect() as connection:
            await connection.execute(text("SELECT 1"))
    except Exception as exc:
        return {"ok": False, "message": str(exc)}
    return {"ok": True, "message": "ok"}


async def _check_redis(app: FastAPI) -> dict[str, Any]:
    redis = getattr(app.state, "redis", None)
    if redis is None:
        return {"ok": True, "message": "not configured"}
    try:
        await redis.ping()
    except Exception as exc:
        return {"ok": False, "message": str(exc)}
    return {"ok": True, "message": "ok"}


def _check_scheduler(app: FastAPI) -> dict[str, Any]:
    scheduler = getattr(app.state, "scheduler", None)
    if scheduler is None:
        return {"ok": True, "message": "disabled"}
    return {"ok": True, "message": "running"}


async def _run_readiness_checks(app: FastAPI) -> dict[str, dict[str, Any]]:
    return {
        "database": await _check_database(),
        "redis": await _check_redis(app),
        "scheduler": _check_scheduler(app),
    }


# ── Health check ────────────────────────────────────────────────────────────
@app.get("/health", tags=["system"])
async def health_check() -> dict[str, str]:
    """Basic health check: verifies the API process is alive."""
    return {
        "status": "ok",
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
    }


@app.get("/health/ready", tags=["system"])
async def readiness_check() -> JSONResponse:
    """Readiness: database, Redis and scheduler state."""
    checks = await _run_readiness_checks(app)
    ready = all(check["ok"] for check in checks.values())
    return JSONResponse(
        status_code=200 if ready else 503,
        content={"status": "ok" if ready else "degraded", "checks": checks},
    )


# ── Router registration ────────────────────────────────────────────────────
app.include_router(auth.router, prefix="/api/v1")
app.include_router(crops.router, prefix="/api/v1")
app.include_router(planting.router, prefix="/api/v1")
app.include_router(recurring_orders.router, prefix="/api/v1")
app.include_router(pricing.router, prefix="/api/v1")
app.include_router(activity.router, prefix="/api/v1")
app.include_router(navigation.router, prefix="/api/v1")
app.include_router(inventory.router, prefix="/api/v1")
app.include_router(jobs.router, prefix="/api/v1")

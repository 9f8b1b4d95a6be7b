"""Health and readiness endpoints.

  /health (liveness):
    Answers "is the process alive?".  Always 200 while the process can
    respond; the body reports each backing service so a partial outage
    is visible without triggering a restart.

  /ready (readiness):
    Answers "should traffic be routed here?".  The database is critical
    when configured: without it no assessment can be read or written, so
    an unreachable database returns 503.  Redis is never critical
    because insights fall back to being recomputed.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Response
from sqlalchemy import text

from portal.db import engine as db_engine
from portal.db.redis import redis_pool

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


async def _check_redis() -> str:
    if redis_pool is None:
        return "not_configured"
    try:
        await redis_pool.ping()  # type: ignore[misc]
    except Exception:
        logger.warning("Redis health check failed", exc_info=True)
        return "degraded"
    return "ok"


async def _check_database() -> str:
    if db_engine.engine is None:
        return "not_configured"
    try:
        async with db_engine.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception:
        logger.warning("Database health check failed", exc_info=True)
        return "degraded"
    return "ok"


@router.get("/health")
async def health() -> dict:
    """Liveness probe plus dependency status.

    Returns 200 even when degraded; the status field carries the verdict.
    """
    checks = {
        "database": await _check_database(),
        "redis": await _check_redis(),
    }
    overall = "degraded" if "degraded" in checks.values() else "ok"
    return {"status": overall, "checks": checks}


@router.get("/ready")
async def ready() -> Response:
    if await _check_database() == "degraded":
        return Response(status_code=503)
    return Response(status_code=200)

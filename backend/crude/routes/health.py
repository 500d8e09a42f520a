"""
Crude — Health Check Route
============================

What:  Liveness/readiness probe for load balancers and container health checks.
Why:   Every CRUD page depends on the database; an instance that can't reach
       it should be taken out of rotation.
How:   Runs SELECT 1 on the engine and reports the result with the app
       version and uptime.

Status levels:
    healthy:   database reachable
    unhealthy: database unreachable (still HTTP 200; the body carries the verdict)
"""

import logging
import time

from fastapi import APIRouter
from sqlalchemy import text

from crude import __version__
from crude import database
from crude.schemas.view import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check() -> HealthResponse:
    """Probe the database and report aggregate status."""
    db_status = "connected"
    overall = "healthy"

    try:
        async with database.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )

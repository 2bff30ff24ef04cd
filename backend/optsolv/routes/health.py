"""
OptSolv Backend — Health Check Route
======================================

What:  GET /health for container probes and load balancers.
How:   Runs SELECT 1 against the database and asks the Gemini client for its
       circuit state and reachability.

Status levels:
    healthy:   database and Gemini fine                        (HTTP 200)
    degraded:  Gemini unavailable, unconfigured or circuit open (HTTP 200)
    unhealthy: database unreachable                            (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text

from optsolv import __version__
from optsolv.database import engine
from optsolv.schemas.common import HealthResponse
from optsolv.services.gemini_client import CircuitBreaker, gemini_client

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get("/health", response_model=HealthResponse, summary="Service health check")
async def health_check():
    db_status = "connected"
    overall = "healthy"

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    if not gemini_client.is_configured:
        gemini_status = "not_configured"
    elif gemini_client.circuit_breaker.state == CircuitBreaker.OPEN:
        gemini_status = "circuit_open"
    elif await gemini_client.health_check():
        gemini_status = "available"
    else:
        gemini_status = "unavailable"

    if gemini_status != "available" and overall == "healthy":
        overall = "degraded"

    body = HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        gemini=gemini_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
    if overall == "unhealthy":
        return JSONResponse(status_code=503, content=body.model_dump(by_alias=True))
    return body

"""
Sloka API — Health Check Route
===============================

What:  GET /health for Docker health checks and load balancer checks.
How:   Reports process uptime and a lightweight database check (SELECT 1).
       Always answers 200: a disconnected database is reported in the body,
       never as a failure of the endpoint itself.
"""

import logging
import time

from fastapi import APIRouter, Request

from sloka_api.schemas.verse import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

# Process start, for uptime reporting
_start_time = time.monotonic()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(request: Request) -> HealthResponse:
    database = request.app.state.database
    connected = await database.ping()
    status = "connected" if connected else "disconnected"
    return HealthResponse(
        uptime=round(time.monotonic() - _start_time, 3),
        mongodb=status,
        database=status,
    )

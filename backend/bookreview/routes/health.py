"""
BookReview Backend: Health Check Route
========================================

What:  GET / for monitoring and load balancer probes.
How:   Runs SELECT 1 through the application's Database and reports uptime.
       The endpoint always answers 200; `status` and `database` carry the
       probe result so the check itself never fails closed.
"""

import logging
import time

from fastapi import APIRouter, Request

from bookreview import __version__
from bookreview.constants import Messages
from bookreview.schemas.common import ApiResponse, HealthData

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/",
    response_model=ApiResponse[HealthData],
    summary="Service health check",
    description="Reports service status, version, database connectivity and uptime.",
)
async def health_check(request: Request) -> ApiResponse[HealthData]:
    database_ok = await request.app.state.database.ping()
    if not database_ok:
        logger.warning("Health check: database unreachable")

    return ApiResponse[HealthData](
        message=Messages.SERVER_RUNNING,
        data=HealthData(
            status="healthy" if database_ok else "unhealthy",
            version=__version__,
            database="connected" if database_ok else "disconnected",
            uptime_seconds=round(time.time() - _start_time, 2),
        ),
    )

"""
StudyGenie Backend — Health Check Route
=========================================

What:  Health check endpoint for monitoring and container probes.
How:   Runs SELECT 1 against the database and reports each provider as
       "available" or "mock" from configuration alone (no provider calls).

Status levels:
    - healthy:   Database reachable (HTTP 200), whatever the provider modes
    - unhealthy: Database unreachable (HTTP 503)

Providers in mock mode do not make the service degraded: every feature still
returns a structured response.
"""

import logging
import time

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app import __version__
from app.config import settings
from app.database import check_database
from app.schemas.history import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"description": "Database unreachable", "model": HealthResponse}},
    summary="Service health check",
)
async def health_check():
    db_status = "connected"
    overall = "healthy"

    try:
        await check_database()
    except (SQLAlchemyError, OSError) as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", e)

    body = HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        providers=settings.provider_status(),
        uptime_seconds=round(time.time() - _start_time, 2),
    )
    if overall != "healthy":
        return JSONResponse(status_code=503, content=body.model_dump())
    return body

"""
IdeaStore Backend — Health Check Route
========================================

What:  Health check endpoint for the hosting platform and monitoring.
How:   Probes the database (SELECT 1) and Google Drive (about.get).

Status levels:
    - healthy:   database and Drive reachable
    - degraded:  database reachable, Drive unavailable or not configured
    - unhealthy: database unreachable
"""

import logging
import time

from fastapi import APIRouter, Depends
from sqlalchemy import text

from ideastore import __version__
from ideastore.config import settings
from ideastore.dependencies import get_blob_store
from ideastore.schemas.entry import HealthResponse
from ideastore.services.blob_store import BlobStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(blob_store: BlobStore = Depends(get_blob_store)) -> HealthResponse:
    db_status = "connected"
    blob_status = "available"
    overall = "healthy"

    # ── Check Database ────────────────────────────────────────────────────
    try:
        from ideastore.database import engine
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    # ── Check Google Drive ────────────────────────────────────────────────
    if not settings.has_drive_credentials:
        blob_status = "not_configured"
    elif not await blob_store.health_check():
        blob_status = "unavailable"
    if blob_status != "available" and overall != "unhealthy":
        overall = "degraded"

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        blob_store=blob_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )

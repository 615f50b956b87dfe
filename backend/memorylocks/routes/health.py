"""
Memory Locks API — Health Check Routes
=======================================

What:  Liveness endpoints for load balancers and the sibling workers, and
       a protected status summary for operators.
How:   Runs SELECT 1 against the database. The service is only useful with
       a database, so a failed check means "unhealthy" and HTTP 503.

    GET /, /health, /public/health   public, no API key
    GET /api/status                  Worker-API-Key required
"""

import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text

from memorylocks import __version__
from memorylocks.config import settings
from memorylocks.database import engine
from memorylocks.middleware.rate_limit import POLICIES
from memorylocks.schemas.common import ApiResponse, HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


async def _database_status() -> str:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning("Health check: database unreachable: %s", e)
        return "disconnected"
    return "connected"


@router.get("/", response_model=HealthResponse, summary="Service health check")
@router.get("/health", response_model=HealthResponse, include_in_schema=False)
@router.get("/public/health", response_model=HealthResponse, include_in_schema=False)
async def health_check():
    db_status = await _database_status()
    healthy = db_status == "connected"
    health = HealthResponse(
        success=healthy,
        status="healthy" if healthy else "unhealthy",
        message="Memory Locks API is running" if healthy else "Database unavailable",
        version=__version__,
        environment=settings.environment,
        database=db_status,
        timestamp=datetime.now(timezone.utc).isoformat(),
        uptime_seconds=round(time.time() - _start_time, 2),
    )
    if not healthy:
        return JSONResponse(status_code=503, content=health.model_dump(by_alias=True))
    return health


@router.get(
    "/api/status",
    response_model=ApiResponse[dict],
    summary="Operational summary",
    description="Version, uptime, database state and the active rate-limit policies.",
)
async def api_status():
    return ApiResponse(
        message="Status retrieved successfully",
        data={
            "Version": __version__,
            "Environment": settings.environment,
            "Database": await _database_status(),
            "UptimeSeconds": round(time.time() - _start_time, 2),
            "ScanMilestones": settings.scan_milestones_list,
            "RateLimits": {
                name: {"WindowSeconds": p.window_seconds, "MaxRequests": p.max_requests}
                for name, p in POLICIES.items()
            },
            "NotificationsConfigured": bool(
                settings.core_api_base_url and settings.core_api_shared_secret
            ),
        },
    )

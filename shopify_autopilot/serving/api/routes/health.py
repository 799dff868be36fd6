"""
Health Check Endpoints

Liveness and readiness probes plus a dependency report.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Response
from pydantic import BaseModel
from redis.exceptions import RedisError

from shopify_autopilot.config import get_settings
from shopify_autopilot.database.connection import check_database_health
from shopify_autopilot.serving.cache import get_redis

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    version: str
    environment: str
    timestamp: datetime
    checks: Dict[str, Any]


async def _redis_health() -> Dict[str, Any]:
    redis = get_redis()
    if redis is None:
        return {"status": "unavailable"}
    try:
        await redis.ping()
    except RedisError as e:
        return {"status": "unhealthy", "error": str(e)}
    return {"status": "healthy"}


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Checks database connectivity (required) and Redis (run locks only, so a
    Redis outage degrades rather than fails the service).
    """
    settings = get_settings()
    checks = {
        "database": await check_database_health(),
        "redis": await _redis_health(),
    }

    if checks["database"]["status"] != "healthy":
        overall_status = "unhealthy"
    elif checks["redis"]["status"] != "healthy":
        overall_status = "degraded"
    else:
        overall_status = "healthy"

    return HealthResponse(
        status=overall_status,
        version=settings.version,
        environment=settings.app_env,
        timestamp=datetime.now(timezone.utc),
        checks=checks,
    )


@router.get("/health/live")
async def liveness_check() -> Dict[str, str]:
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_check(response: Response) -> Dict[str, str]:
    """Returns 503 until the database answers."""
    db_health = await check_database_health()
    if db_health.get("status") != "healthy":
        response.status_code = 503
        return {"status": "not_ready", "reason": "database_unavailable"}
    return {"status": "ready"}

"""Health check endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.orm import Session

from ..core.config import get_settings
from ..core.locks import get_redis_client
from ..db import get_session_dependency

router = APIRouter(tags=["health"])


@router.get("/health/live")
def liveness() -> dict[str, str]:
    return {"status": "live"}


@router.get("/health/ready")
def readiness(session: Session = Depends(get_session_dependency)) -> dict[str, str]:
    """Check the database and, when regeneration locks use it, Redis."""

    session.execute(text("SELECT 1"))
    result = {"status": "ready", "database": "ok", "locks": "process"}

    settings = get_settings()
    if settings.redis_enabled:
        try:
            get_redis_client().ping()
            result["locks"] = "redis"
        except RedisError:
            result["status"] = "degraded"
            result["locks"] = "unavailable"
    return result


@router.get("/metrics")
def metrics() -> Response:
    """Expose Prometheus metrics."""

    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

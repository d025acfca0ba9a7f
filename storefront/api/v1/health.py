"""
Health check endpoints.

Provides multiple levels of health checks:
- /health: Quick overview of system health
- /health/detailed: Component checks with metrics
- /health/ready: Container readiness probe
- /health/live: Container liveness probe
- /health/metrics: Application metrics
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from storefront.config import settings
from storefront.core.database import get_db
from storefront.core.events import event_hub
from storefront.core.metrics import metrics
from storefront.core.rate_limit import rate_limiter
from storefront.models.schemas import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])


def _database_ok(db: Session) -> bool:
    try:
        db.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False


@router.get("", response_model=HealthResponse)
async def health_check(db: Session = Depends(get_db)) -> HealthResponse:
    """
    Check health of the API.

    Returns:
        HealthResponse with database status and open realtime sockets
    """
    db_healthy = _database_ok(db)
    return HealthResponse(
        status="healthy" if db_healthy else "degraded",
        version=settings.APP_VERSION,
        database=db_healthy,
        websocket_connections=event_hub.connection_count(),
        timestamp=datetime.now(timezone.utc),
    )


@router.get("/ready")
async def readiness_check(db: Session = Depends(get_db)) -> dict:
    """
    Container readiness probe.
    Returns 200 if service is ready to accept traffic.
    """
    if _database_ok(db):
        return {"status": "ready"}
    # Don't expose internal error details
    return {"status": "not ready", "error": "Database connection failed"}


@router.get("/live")
async def liveness_check() -> dict:
    """
    Container liveness probe.
    Returns 200 if service is alive.
    """
    return {"status": "alive"}


@router.get("/detailed")
async def detailed_health_check(db: Session = Depends(get_db)) -> Dict[str, Any]:
    """
    Component-level health for monitoring dashboards.

    Includes database row counts, realtime sockets, rate limiter usage
    and application metrics.
    """
    checks: Dict[str, Any] = {}

    try:
        db.execute(text("SELECT 1"))
        checks["database"] = {
            "status": "healthy",
            "users_count": db.execute(text("SELECT COUNT(*) FROM users")).scalar(),
            "orders_count": db.execute(text("SELECT COUNT(*) FROM orders")).scalar(),
        }
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        checks["database"] = {"status": "unhealthy", "error": "Connection failed"}

    checks["realtime"] = {"status": "healthy", "connections": event_hub.connection_count()}
    checks["rate_limiter"] = {
        "status": "healthy" if settings.RATE_LIMIT_ENABLED else "disabled",
        "active_keys": rate_limiter.active_key_count,
        "max_keys": rate_limiter.MAX_KEYS,
    }
    checks["metrics"] = metrics.to_dict()

    unhealthy = [
        name for name, check in checks.items()
        if isinstance(check, dict) and check.get("status") == "unhealthy"
    ]

    return {
        "status": "unhealthy" if unhealthy else "healthy",
        "version": settings.APP_VERSION,
        "environment": "production" if settings.is_production else "development",
        "checks": checks,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/metrics")
async def get_metrics() -> Dict[str, Any]:
    """
    Get application metrics.

    Returns business counters (quotes, orders, bookings, checkouts),
    login outcomes, realtime fan-out and latency statistics.
    """
    return {
        "metrics": metrics.to_dict(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

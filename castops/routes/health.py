# castops/routes/health.py
"""
Health check endpoints with database pool and integration status.
"""

import time

from fastapi import APIRouter, Depends

from castops.config import settings
from castops.db.pool import DatabasePoolManager
from castops.dependencies import get_db_pool

router = APIRouter()


@router.get("/healthz")
async def healthz():
    """Basic health check - always returns 200 if app is running."""
    return {"status": "ok", "service": "castops"}


@router.get("/readyz")
async def readyz(pool: DatabasePoolManager = Depends(get_db_pool)):
    """
    Readiness check: database pool plus which integrations are configured.
    Only the database and Slack gate readiness; calendar and Notion are optional.
    """
    checks = {}
    overall_ok = True

    t0 = time.time()
    db_health = await pool.health_check()
    is_healthy = db_health.get("healthy", False)
    checks["database"] = {
        "ok": is_healthy,
        "latency_ms": round((time.time() - t0) * 1000, 1),
    }
    if "pool_stats" in db_health:
        checks["database"].update(db_health["pool_stats"])
    if not is_healthy:
        checks["database"]["error"] = db_health.get("error", "Database unhealthy")
    overall_ok = overall_ok and is_healthy

    slack_ok = settings.slack_configured()
    checks["slack"] = {"ok": slack_ok, "configured": slack_ok}
    overall_ok = overall_ok and slack_ok

    checks["calendar"] = {"ok": True, "configured": settings.calendar_configured()}
    checks["notion"] = {"ok": True, "configured": settings.notion_configured()}

    return {"overall_ok": overall_ok, "checks": checks, "timestamp": time.time()}

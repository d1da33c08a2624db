# autosend/routes/health.py
"""
Health check endpoints with rate limit backend monitoring.
"""

import time

from fastapi import APIRouter

from autosend.config import settings
from autosend.services.redis_client import redis_client

router = APIRouter()


@router.get("/healthz")
def healthz():
    """Basic health check - always returns 200 if app is running."""
    return {"status": "ok", "service": "autosend-decision-engine"}


@router.get("/readyz")
def readyz():
    """
    Readiness check. Redis is only checked when it backs the rate limiter.
    """
    checks = {}
    overall_ok = True
    backend = settings.get_rate_limit_config()["backend"]

    if redis_client.enabled:
        t0 = time.time()
        redis_ok = redis_client.ping()
        checks["redis"] = {
            "ok": redis_ok,
            "latency_ms": round((time.time() - t0) * 1000, 1),
        }
        overall_ok = overall_ok and redis_ok
    else:
        checks["redis"] = {"ok": True, "skipped": True}

    checks["rate_limiter"] = {"ok": True, "backend": backend}

    return {"overall_ok": overall_ok, "checks": checks}

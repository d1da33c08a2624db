"""
FastAPI app exposing the auto-send decision engine, with Redis lifecycle
management for the shared rate limit store.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from autosend.config import settings
from autosend.infrastructure.observability.logging import get_logger, log_request, setup_logging
from autosend.routes import autosend, health
from autosend.services.redis_client import redis_client

# Setup logging before creating the app
setup_logging(log_level=settings.LOG_LEVEL)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown."""

    logger.info(
        "Application starting",
        environment=settings.environment,
        debug=settings.debug,
        rate_limit_backend=settings.get_rate_limit_config()["backend"],
        quota_policy=settings.AUTOSEND_QUOTA_POLICY,
    )

    if redis_client.enabled:
        logger.info("Initializing Redis connection")
        redis_client.initialize()

    yield

    logger.info("Application shutting down")
    if redis_client.enabled:
        try:
            redis_client.close()
        except Exception as e:
            logger.error("Error closing Redis", error=str(e))


app = FastAPI(
    title="Auto-send Decision Engine",
    description="Decides whether an AI-drafted reply may be sent without human review",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health.router)
app.include_router(autosend.router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log HTTP requests with timing."""
    start_time = time.time()
    response = await call_next(request)
    process_time = (time.time() - start_time) * 1000

    log_request(
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round(process_time, 2),
    )
    return response

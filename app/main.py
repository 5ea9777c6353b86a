"""
Main FastAPI application for the Turkish Stars stats sync service.
"""
from contextlib import asynccontextmanager
from typing import AsyncGenerator
from pathlib import Path

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from prometheus_fastapi_instrumentator import Instrumentator
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import get_db, init_db
from app.core.exceptions import (
    AthleteNotFoundError, ConfigurationError, SyncError, UnauthorizedError,
)
from app.core.logging import configure_logging, get_logger
from app.core.middleware import CorrelationIdMiddleware
from app.core import metrics
from app.api.routes import sync
from app.services.core.circuit_breaker import get_all_breaker_states

# Load environment variables from .env file
from dotenv import load_dotenv

env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

# Configure structured logging with JSON formatter
configure_logging(
    level=settings.LOG_LEVEL,
    json_output=settings.LOG_JSON
)
logger = get_logger(__name__)


# Configure rate limiting
def get_rate_limit_key(request: Request) -> str:
    """
    Get the rate limit key for a request.

    Uses IP address, with fallback to X-Forwarded-For for proxied requests.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return get_remote_address(request)


limiter = Limiter(
    key_func=get_rate_limit_key,
    default_limits=["60/minute"],
    storage_uri=settings.REDIS_URL if settings.RATE_LIMIT_STORAGE == "redis" else "memory://",
    enabled=settings.RATE_LIMIT_ENABLED
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan events."""
    # Startup
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    init_db()

    if settings.SCHEDULER_ENABLED:
        from app.core.scheduler import start_scheduler
        await start_scheduler()
        logger.info("Sync scheduler started")
    else:
        logger.info("Sync scheduler disabled (SCHEDULER_ENABLED=false)")

    metrics.update_scheduler_metrics()
    logger.info("Application started")

    yield

    # Shutdown
    if settings.SCHEDULER_ENABLED:
        from app.core.scheduler import stop_scheduler
        await stop_scheduler()
        logger.info("Sync scheduler stopped")

    metrics.update_scheduler_metrics()
    logger.info("Shutting down application")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Stats ingestion and sync for Turkish athletes abroad (football and NBA)",
    lifespan=lifespan
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Add correlation ID middleware (must be added before CORS for proper header handling)
app.add_middleware(CorrelationIdMiddleware)

# Initialize Prometheus metrics BEFORE including routes
instrumentator = Instrumentator()
instrumentator.instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)
logger.info("Prometheus metrics initialized at /metrics")

# Sync endpoints are called cross-origin by the admin UI and the cron
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["x-webhook-secret", "authorization", "apikey", "content-type", "x-client-info"],
    expose_headers=["x-webhook-secret", "authorization", "apikey", "content-type", "X-Correlation-ID"],
)

# API v1
app.include_router(sync.router, prefix="/api/v1")


@app.get("/health")
@limiter.limit("120/minute")  # Higher limit for health checks
async def health_check(request: Request, db: Session = Depends(get_db)):
    """Health check with database and circuit breaker status."""
    breakers = get_all_breaker_states()
    metrics.update_breaker_metrics(breakers)

    try:
        db.execute(text("SELECT 1"))
        database = "healthy"
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        database = "unhealthy"

    degraded = database != "healthy" or any(state == "open" for state in breakers.values())
    return {
        "status": "degraded" if degraded else "healthy",
        "version": settings.APP_VERSION,
        "database": database,
        "circuit_breakers": breakers,
    }


# ============================================================================
# EXCEPTION HANDLERS
# ============================================================================

@app.exception_handler(UnauthorizedError)
async def unauthorized_handler(request: Request, exc: UnauthorizedError):
    return JSONResponse(
        status_code=401,
        content={"error": "Unauthorized", "reason": exc.reason}
    )


@app.exception_handler(AthleteNotFoundError)
async def athlete_not_found_handler(request: Request, exc: AthleteNotFoundError):
    return JSONResponse(status_code=404, content={"error": str(exc)})


@app.exception_handler(ValueError)
async def bad_request_handler(request: Request, exc: ValueError):
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(ConfigurationError)
@app.exception_handler(SyncError)
async def sync_error_handler(request: Request, exc: SyncError):
    """Fatal sync errors (missing key, storage down); the SyncLog row is already written."""
    logger.error(f"Sync failed on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": str(exc)}
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.exception(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error"}
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG
    )

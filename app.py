# app.py
import logging
from datetime import datetime

from fastapi import FastAPI, HTTPException
from core.config import settings
from core.database import init_db
from core.rate_limiter_slowapi import setup_rate_limiting, check_redis_health
from components import harvest, factories, flag, admin_jobs
from jobs.registry import build_jobs, start_jobs, stop_jobs

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("darkframe")

app = FastAPI(
    title="DarkFrame Backend",
    description="Harvesting, factory regeneration and flag bot services on FastAPI and Beanie ODM.",
    version="1.0.0"
)

# Setup rate limiting
setup_rate_limiting(app)
app.state.jobs = {}


@app.on_event("startup")
async def on_startup():
    """Initialize the application on startup."""
    logger.info("Initializing database connection...")
    await init_db()
    logger.info("Database connection successful.")

    if await check_redis_health():
        logger.info("Redis connection successful - rate limiting active")
    else:
        logger.warning("Redis connection failed - rate limiting will use in-memory fallback")

    if settings.JOBS_ENABLED:
        logger.info("Starting background jobs...")
        app.state.jobs = build_jobs()
        await start_jobs(app.state.jobs)
    else:
        logger.info("Background jobs disabled (JOBS_ENABLED=false)")

    logger.info("DarkFrame Backend is ready.")

@app.on_event("shutdown")
async def on_shutdown():
    """Clean shutdown of the application."""
    logger.info("Shutting down DarkFrame Backend...")
    stop_jobs(app.state.jobs)
    logger.info("Shutdown complete.")

# --- Include Component Routers ---
app.include_router(harvest.router)
app.include_router(factories.router)
app.include_router(flag.router)
app.include_router(admin_jobs.router)


@app.get("/api/timestamp", response_model=dict)
async def get_server_time():
    """Returns the current server time, used by clients for reset countdowns."""
    return {"timestamp": datetime.utcnow().isoformat()}


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for load balancers."""
    try:
        from data.models import Player
        await Player.count()
    except Exception:
        raise HTTPException(
            status_code=503,
            detail={
                "status": "unhealthy",
                "timestamp": datetime.utcnow().isoformat(),
                "error": "Database connection failed"
            }
        )

    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "version": "1.0.0",
        "database": "connected",
        "redis": "connected" if await check_redis_health() else "disconnected",
        "jobs": {
            key: {"running": job.is_running, "errors": job.get_stats().error_count}
            for key, (job, _store) in app.state.jobs.items()
        },
    }

@app.get("/health/ready", tags=["Health"])
async def readiness_check():
    """Readiness check for Kubernetes deployments."""
    try:
        from data.models import Player
        await Player.count()
    except Exception:
        raise HTTPException(status_code=503, detail="Service not ready")

    jobs_ready = all(job.is_running for job, _store in app.state.jobs.values())
    return {
        "status": "ready",
        "timestamp": datetime.utcnow().isoformat(),
        "services": {
            "database": "ready",
            "api": "ready",
            "redis": "ready" if await check_redis_health() else "degraded",
            "jobs": "ready" if jobs_ready or not settings.JOBS_ENABLED else "degraded",
        }
    }

@app.get("/", tags=["Root"])
async def read_root():
    return {"message": "Welcome to the DarkFrame API v1!"}

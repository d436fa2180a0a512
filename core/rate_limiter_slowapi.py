# core/rate_limiter_slowapi.py
import logging
from datetime import datetime

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from fastapi import Request
from fastapi.responses import JSONResponse
import redis.asyncio as redis
from core.config import settings

logger = logging.getLogger(__name__)

# Create Redis connection
try:
    redis_client = redis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
        socket_connect_timeout=10,
        socket_timeout=10,
        retry_on_timeout=True,
        health_check_interval=30
    )
except Exception as e:
    # Fallback to in-memory if Redis not available
    logger.warning(f"Redis client unavailable, rate limiting in memory: {e}")
    redis_client = None

# Create limiter instance
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=settings.REDIS_URL if redis_client else "memory://",
    default_limits=["1000/hour"]  # Default fallback limit
)

def get_api_key(request: Request) -> str:
    """Get key for general API endpoints."""
    return f"api:{get_remote_address(request)}"

# Rate limit decorator for gameplay endpoints
api_limiter = Limiter(
    key_func=get_api_key,
    storage_uri=settings.REDIS_URL if redis_client else "memory://",
)

# Custom exception handler for consistent error responses
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    """Custom rate limit exceeded handler."""
    description = getattr(exc, 'detail', None) or getattr(exc, 'description', 'Too many requests')
    retry_after = getattr(exc, 'retry_after', 60)

    return JSONResponse(
        status_code=429,
        content={
            "error": True,
            "message": f"Rate limit exceeded: {description}",
            "status_code": 429,
            "timestamp": datetime.utcnow().isoformat(),
            "retry_after": retry_after
        },
        headers={"Retry-After": str(retry_after)}
    )

def setup_rate_limiting(app):
    """Setup SlowAPI rate limiting for the FastAPI app."""
    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    return app

async def check_redis_health() -> bool:
    """Check if Redis is available for rate limiting."""
    if not redis_client:
        return False
    try:
        await redis_client.ping()
        return True
    except Exception:
        return False

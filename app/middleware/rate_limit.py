from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse
import redis
from app.config import settings
from app.utils.logger import get_logger

logger = get_logger(__name__)


def _redis_available() -> bool:
    if not settings.RATE_LIMIT_ENABLED:
        return False
    try:
        client = redis.Redis(
            host=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2
        )
        client.ping()
        logger.info(f"Rate limiting Redis connected: {settings.REDIS_HOST}:{settings.REDIS_PORT}")
        return True
    except Exception as e:
        logger.warning(f"Rate limiting Redis connection failed: {e}. Using in-memory fallback.")
        return False


# Create limiter instance
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=f"redis://{settings.REDIS_HOST}:{settings.REDIS_PORT}" if _redis_available() else "memory://",
    default_limits=["1000/hour"],
    enabled=settings.RATE_LIMIT_ENABLED,
)

# Rate limiting configurations for different endpoint groups
RATE_LIMITS = {
    "streak_read": "300/hour",
    "streak_write": "100/hour",
    "admin": "10/minute",
}

def get_rate_limit_for_endpoint(endpoint: str) -> str:
    """Get rate limit configuration for specific endpoint group."""
    return RATE_LIMITS.get(endpoint, "100/hour")

async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """Rate limit exceeded handler with the error body shape used across the API."""
    return JSONResponse(
        status_code=429,
        content={
            "error": "rate_limited",
            "detail": f"Rate limit exceeded: {exc.detail}. Please try again later.",
            "request_id": getattr(request.state, "request_id", None),
        },
        headers={"Retry-After": "60"},
    )

def rate_limit_read(func):
    """Rate limit for streak read endpoints."""
    return limiter.limit(get_rate_limit_for_endpoint("streak_read"))(func)

def rate_limit_write(func):
    """Rate limit for streak write endpoints."""
    return limiter.limit(get_rate_limit_for_endpoint("streak_write"))(func)

def rate_limit_admin(func):
    """Rate limit for admin endpoints."""
    return limiter.limit(get_rate_limit_for_endpoint("admin"))(func)

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded

from app.config import settings
from app.database import init_schema
from app.exceptions import StreakError, streak_error_handler
from app.logging_config import configure_logging
from app.middleware.rate_limit import limiter, rate_limit_exceeded_handler
from app.middleware.request_id import RequestIDMiddleware
from app.routers import admin, streaks
from app.services.streak_engine import StreakEngine
from app.utils.clock import Clock
from app.utils.logger import get_logger

# Configure logging first
configure_logging()
logger = get_logger(__name__)

# Initialize database tables
init_schema()

# Conditional docs configuration
docs_config = {}
if settings.DEBUG:
    docs_config = {
        "docs_url": "/docs",
        "redoc_url": "/redoc",
        "openapi_url": "/openapi.json"
    }
    logger.info("DEBUG mode: Swagger docs enabled at /docs")
else:
    docs_config = {
        "docs_url": None,
        "redoc_url": None,
        "openapi_url": None
    }
    logger.info("Production mode: Swagger docs disabled")

app = FastAPI(
    title="FitCoach Streak API",
    description="Activity logging and streak tracking for the FitCoach fitness assistant",
    version="1.0.0",
    **docs_config
)

# One engine per process so its per-account locks are shared by all requests
app.state.streak_engine = StreakEngine(
    Clock(settings.STREAK_TIMEZONE),
    warning_hours=settings.STREAK_WARNING_HOURS,
    max_retries=settings.STREAK_MAX_RETRIES,
)

# Set up rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
app.add_exception_handler(StreakError, streak_error_handler)

logger.info(f"CORS_ORIGINS: {settings.CORS_ORIGINS}")

# Add Request ID middleware first for proper request tracing
app.add_middleware(RequestIDMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(streaks.router)
app.include_router(admin.router)

@app.on_event("startup")
async def startup_event():
    """Log application startup information."""
    logger.info(
        f"FitCoach Streak API started: account={settings.STREAK_ACCOUNT_ID}, "
        f"timezone={settings.STREAK_TIMEZONE}, debug={settings.DEBUG}"
    )

@app.get("/")
async def root():
    return {"message": "FitCoach Streak API", "version": "1.0.0"}

# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint for load balancers and monitoring."""
    return {"status": "healthy", "service": "fitcoach-streak-api"}

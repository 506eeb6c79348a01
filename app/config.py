import os
from pydantic_settings import BaseSettings
from typing import List

class Settings(BaseSettings):
    """Application settings."""
    # Base settings
    DEBUG: bool = False

    # CORS settings
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",  # Frontend development server
        "http://localhost:8000",  # Backend server
    ]

    # Database settings
    DB_HOST: str = os.getenv("DB_HOST", "localhost")
    DB_PORT: str = os.getenv("DB_PORT", "5432")
    DB_USER: str = os.getenv("DB_USER", "postgres")
    DB_PASSWORD: str = os.getenv("DB_PASSWORD", "postgres")
    DB_NAME: str = os.getenv("DB_NAME", "fitcoach")
    DATABASE_URL: str = os.getenv(
        "DATABASE_URL",
        f"postgresql://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}"
    )
    # Upper bounds for storage calls, in seconds
    DB_POOL_TIMEOUT: int = int(os.getenv("DB_POOL_TIMEOUT", "10"))
    DB_CONNECT_TIMEOUT: int = int(os.getenv("DB_CONNECT_TIMEOUT", "5"))

    # Redis settings (rate limiting storage)
    REDIS_HOST: str = os.getenv("REDIS_HOST", "localhost")
    REDIS_PORT: int = int(os.getenv("REDIS_PORT", "6379"))
    RATE_LIMIT_ENABLED: bool = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"

    # Streak engine settings
    STREAK_ACCOUNT_ID: str = os.getenv("STREAK_ACCOUNT_ID", "local")
    # IANA zone used to decide calendar days; never taken from the host
    STREAK_TIMEZONE: str = os.getenv("STREAK_TIMEZONE", "UTC")
    STREAK_WARNING_HOURS: int = int(os.getenv("STREAK_WARNING_HOURS", "2"))
    STREAK_MAX_RETRIES: int = int(os.getenv("STREAK_MAX_RETRIES", "3"))

    # Admin operations (streak reset)
    ADMIN_API_KEY: str = os.getenv("ADMIN_API_KEY", "")

    class Config:
        env_file = ".env"
        case_sensitive = True

# Create settings instance
settings = Settings()

# Activity kinds that count toward a streak, with display metadata
ACTIVITY_TYPES = {
    "workout": {
        "label": "Workout",
        "description": "Complete a workout session",
    },
    "recovery": {
        "label": "Recovery Day",
        "description": "Active recovery, stretching, or light activity",
    },
    "rest": {
        "label": "Rest Day",
        "description": "Planned rest day for muscle recovery",
    },
}

# API Routers
from app.routers import streaks, admin

__all__ = ["streaks", "admin"]

from app.database import Base
from app.models.streak import StreakRecord, ActivityEntry

__all__ = ["Base", "StreakRecord", "ActivityEntry"]

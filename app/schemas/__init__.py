from app.schemas.streak import (
    RegisterActivityRequest, RegistrationResult, BreakResult, StatusSnapshot,
    ActivityEntryResponse, ActivityHistoryResponse, ActivityTypeInfo,
    CalendarDay, MonthCalendarResponse,
)

__all__ = [
    "RegisterActivityRequest", "RegistrationResult", "BreakResult", "StatusSnapshot",
    "ActivityEntryResponse", "ActivityHistoryResponse", "ActivityTypeInfo",
    "CalendarDay", "MonthCalendarResponse",
]

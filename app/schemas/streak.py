from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from datetime import date, datetime


class RegisterActivityRequest(BaseModel):
    kind: str
    payload: Dict[str, Any] = Field(default_factory=dict)


class RegistrationResult(BaseModel):
    current_streak: int
    longest_streak: int
    kind: str
    day: date
    already_registered_today: bool = False


class BreakResult(BaseModel):
    broken: bool
    days_since_last_activity: Optional[int] = None
    missed_days_added: int = 0


class StatusSnapshot(BaseModel):
    account_id: str
    current_streak: int
    longest_streak: int
    missed_days: int
    last_activity_day: Optional[date]
    today: date
    today_registered: bool
    today_activity: Optional[str] = None
    needs_activity: bool
    broken: bool
    days_since_last_activity: Optional[int] = None
    next_reset_at: datetime
    warn_at: datetime
    timezone: str


class ActivityEntryResponse(BaseModel):
    day: date
    kind: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    registered_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ActivityHistoryResponse(BaseModel):
    account_id: str
    start: Optional[date] = None
    end: Optional[date] = None
    entries: List[ActivityEntryResponse]


class ActivityTypeInfo(BaseModel):
    kind: str
    label: str
    description: str


class CalendarDay(BaseModel):
    day: date
    completed: bool
    kind: Optional[str] = None


class MonthCalendarResponse(BaseModel):
    year: int
    month: int
    month_name: str
    completed_days: int
    days: List[CalendarDay]

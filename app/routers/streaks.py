from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_account_id, get_streak_engine
from app.exceptions import StreakError
from app.middleware.rate_limit import rate_limit_read, rate_limit_write
from app.schemas.streak import (
    ActivityEntryResponse, ActivityHistoryResponse, ActivityTypeInfo, BreakResult,
    MonthCalendarResponse, RegisterActivityRequest, RegistrationResult, StatusSnapshot,
)
from app.services.streak_engine import StreakEngine
from app.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/streaks", tags=["streaks"])


@router.post("/activities", response_model=RegistrationResult)
@rate_limit_write
async def register_activity(
    request: Request,
    body: RegisterActivityRequest,
    account_id: str = Depends(get_account_id),
    engine: StreakEngine = Depends(get_streak_engine),
    db: Session = Depends(get_db),
):
    """Register today's workout, recovery or rest activity."""
    try:
        return engine.register_activity(db, account_id, body.kind, body.payload)
    except StreakError:
        raise
    except Exception as e:
        logger.exception(f"Failed to register activity for {account_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to register activity")


@router.get("/activities", response_model=ActivityHistoryResponse)
@rate_limit_read
async def list_activities(
    request: Request,
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    account_id: str = Depends(get_account_id),
    engine: StreakEngine = Depends(get_streak_engine),
    db: Session = Depends(get_db),
):
    entries = engine.list_activity(db, account_id, start, end)
    return ActivityHistoryResponse(
        account_id=account_id,
        start=start,
        end=end,
        entries=[ActivityEntryResponse.model_validate(e) for e in entries],
    )


@router.get("/activity-types", response_model=List[ActivityTypeInfo])
async def activity_types():
    return StreakEngine.activity_types()


@router.get("/status", response_model=StatusSnapshot)
@rate_limit_read
async def get_status(
    request: Request,
    account_id: str = Depends(get_account_id),
    engine: StreakEngine = Depends(get_streak_engine),
    db: Session = Depends(get_db),
):
    """Current streak state; applies a pending break before answering."""
    try:
        return engine.get_status(db, account_id)
    except StreakError:
        raise
    except Exception as e:
        logger.exception(f"Failed to get streak status for {account_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to get streak information")


@router.post("/evaluate", response_model=BreakResult)
@rate_limit_write
async def evaluate_break(
    request: Request,
    account_id: str = Depends(get_account_id),
    engine: StreakEngine = Depends(get_streak_engine),
    db: Session = Depends(get_db),
):
    return engine.evaluate_break(db, account_id)


@router.get("/calendar", response_model=MonthCalendarResponse)
@rate_limit_read
async def month_calendar(
    request: Request,
    year: Optional[int] = Query(None),
    month: Optional[int] = Query(None),
    account_id: str = Depends(get_account_id),
    engine: StreakEngine = Depends(get_streak_engine),
    db: Session = Depends(get_db),
):
    return engine.month_calendar(db, account_id, year, month)

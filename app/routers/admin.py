from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_account_id, get_streak_engine, require_admin_key
from app.middleware.rate_limit import rate_limit_admin
from app.services.streak_engine import StreakEngine
from app.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin_key)])


@router.post("/streaks/reset")
@rate_limit_admin
async def reset_streak(
    request: Request,
    account_id: str = Depends(get_account_id),
    engine: StreakEngine = Depends(get_streak_engine),
    db: Session = Depends(get_db),
):
    """Clear the activity log and zero current streak and missed days."""
    logger.info(f"Administrative streak reset requested for {account_id}")
    engine.administrative_reset(db, account_id)
    return {"status": "ok"}

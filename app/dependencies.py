import hmac
from fastapi import Header, HTTPException, Request, status
from typing import Optional

from app.config import settings
from app.services.streak_engine import StreakEngine
from app.utils.logger import set_account_context


def get_streak_engine(request: Request) -> StreakEngine:
    """The process-wide engine created at startup and stored on app.state."""
    return request.app.state.streak_engine


def get_account_id() -> str:
    """
    Account whose streak the request operates on.

    The deployment serves a single configured account; handlers still pass
    it explicitly to every engine call.
    """
    account_id = settings.STREAK_ACCOUNT_ID
    set_account_context(account_id)
    return account_id


def require_admin_key(x_admin_key: Optional[str] = Header(None, alias="X-Admin-Key")) -> None:
    """Guard for administrative endpoints."""
    if not settings.ADMIN_API_KEY:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin operations are disabled",
        )
    if x_admin_key is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-Admin-Key header is required",
        )
    if not hmac.compare_digest(x_admin_key, settings.ADMIN_API_KEY):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid admin key",
        )

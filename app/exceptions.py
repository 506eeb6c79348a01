"""Error taxonomy for the streak engine and its HTTP rendering."""

from typing import Optional

from fastapi import Request
from fastapi.responses import JSONResponse

from app.utils.logger import get_logger

logger = get_logger(__name__)


class StreakError(Exception):
    code = "streak_error"
    status_code = 500

    def __init__(self, message: str, *, code: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code


class InvalidArgument(StreakError, ValueError):
    code = "invalid_argument"
    status_code = 400


class StorageError(StreakError):
    code = "storage_error"
    status_code = 503


class ConcurrentUpdateConflict(StreakError):
    """Raised when a record changed between load and commit; retried by the engine."""
    code = "concurrent_update_conflict"
    status_code = 409


async def streak_error_handler(request: Request, exc: StreakError) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None)
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.code, "detail": exc.message, "request_id": request_id},
    )

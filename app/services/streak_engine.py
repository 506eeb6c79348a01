from __future__ import annotations
import calendar
import threading
from datetime import date, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Tuple, TypeVar

from sqlalchemy.orm import Session

from app.config import ACTIVITY_TYPES
from app.crud import streak as streak_store
from app.exceptions import ConcurrentUpdateConflict, InvalidArgument, StorageError
from app.models.streak import ActivityEntry, StreakRecord
from app.schemas.streak import (
    ActivityTypeInfo, BreakResult, CalendarDay, MonthCalendarResponse,
    RegistrationResult, StatusSnapshot,
)
from app.utils.clock import Clock
from app.utils.logger import get_logger, set_account_context

logger = get_logger(__name__)

T = TypeVar("T")

# Consecutive days without activity a streak survives
GRACE_DAYS = 1


def compute_current_streak(days: Iterable[date], today: date, floor: Optional[date] = None) -> int:
    """
    Count activity days walking backward from ``today``.

    A run of up to GRACE_DAYS empty days is skipped without being counted;
    a longer run ends the walk. Days before ``floor`` are never counted.

    The grace skip departs from a plain "stop at the first empty day" walk
    so a single missed day does not shorten a surviving streak. The result
    therefore depends on whether a break was applied first: activity on
    days 2 and 4 gives 2 when registered directly on day 4, but 1 when
    EvaluateBreak (or GetStatus) ran on day 4 beforehand and set ``floor``
    to that day.
    """
    active = set(days)
    if not active:
        return 0

    earliest = min(active)
    if floor and floor > earliest:
        earliest = floor

    count = 0
    empty_run = 0
    day = today
    while day >= earliest:
        if day in active:
            count += 1
            empty_run = 0
        else:
            empty_run += 1
            if empty_run > GRACE_DAYS:
                break
        day -= timedelta(days=1)
    return count


class StreakEngine:
    """
    Register activities and derive streak state for one account at a time.

    Each public mutation is a read-modify-write of the account's record,
    serialized in-process by a per-account lock and across processes by the
    record's version column. Conflicts are retried up to ``max_retries``
    times before surfacing as StorageError.
    """

    def __init__(self, clock: Clock, warning_hours: int = 2, max_retries: int = 3):
        self.clock = clock
        self.warning_hours = warning_hours
        self.max_retries = max_retries
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    # Public operations -------------------------------------------------

    def register_activity(self, db: Session, account_id: str, kind: str, payload: Optional[dict] = None) -> RegistrationResult:
        if kind not in ACTIVITY_TYPES:
            raise InvalidArgument(
                f"Invalid activity type '{kind}'. Must be one of: {', '.join(ACTIVITY_TYPES)}"
            )
        payload = dict(payload or {})

        def unit() -> RegistrationResult:
            record = streak_store.get_or_create_record(db, account_id)
            today = self.clock.today()
            now = self.clock.now()

            existed = streak_store.upsert_entry(db, record, today, kind, payload, now)
            self._recompute(record, today)
            record.last_updated_at = now
            streak_store.commit_record(db, record)

            logger.info(
                f"Registered {kind} for {today}: current={record.current_streak}, "
                f"longest={record.longest_streak}, already_registered={existed}"
            )
            return RegistrationResult(
                current_streak=record.current_streak,
                longest_streak=record.longest_streak,
                kind=kind,
                day=today,
                already_registered_today=existed,
            )

        return self._run(db, account_id, unit)

    def evaluate_break(self, db: Session, account_id: str) -> BreakResult:
        def unit() -> BreakResult:
            record = streak_store.get_record(db, account_id)
            if record is None:
                return BreakResult(broken=False)
            result, changed = self._apply_break(record, self.clock.today())
            if changed:
                record.last_updated_at = self.clock.now()
                streak_store.commit_record(db, record)
            return result

        return self._run(db, account_id, unit)

    def get_status(self, db: Session, account_id: str) -> StatusSnapshot:
        """
        Snapshot of the account's streak. Applies any pending break and
        re-derives the counters first, so this call may write.
        """
        def unit() -> StatusSnapshot:
            record = streak_store.get_or_create_record(db, account_id)
            today = self.clock.today()

            result, broke = self._apply_break(record, today)
            recomputed = self._recompute(record, today)
            if broke or recomputed:
                record.last_updated_at = self.clock.now()
                streak_store.commit_record(db, record)

            today_entry = record.entry_for(today)
            next_reset_at = self.clock.next_midnight()
            return StatusSnapshot(
                account_id=account_id,
                current_streak=record.current_streak,
                longest_streak=record.longest_streak,
                missed_days=record.missed_days,
                last_activity_day=record.last_activity_day,
                today=today,
                today_registered=today_entry is not None,
                today_activity=today_entry.kind if today_entry else None,
                needs_activity=today_entry is None,
                broken=result.broken,
                days_since_last_activity=result.days_since_last_activity,
                next_reset_at=next_reset_at,
                warn_at=next_reset_at - timedelta(hours=self.warning_hours),
                timezone=self.clock.tz_name,
            )

        return self._run(db, account_id, unit)

    def administrative_reset(self, db: Session, account_id: str) -> None:
        """Empty the activity log and zero the counters; longest_streak is kept."""
        def unit() -> None:
            record = streak_store.get_record(db, account_id)
            if record is None:
                logger.info("Administrative reset requested for account without a streak record")
                return
            removed = streak_store.clear_entries(record)
            record.current_streak = 0
            record.missed_days = 0
            record.streak_floor = None
            record.last_updated_at = self.clock.now()
            streak_store.commit_record(db, record)
            logger.info(f"Administrative reset removed {removed} activity entries; longest={record.longest_streak} kept")

        self._run(db, account_id, unit)

    @staticmethod
    def activity_types() -> List[ActivityTypeInfo]:
        return [ActivityTypeInfo(kind=kind, **info) for kind, info in ACTIVITY_TYPES.items()]

    def list_activity(self, db: Session, account_id: str, start: Optional[date] = None, end: Optional[date] = None) -> List[ActivityEntry]:
        if start and end and start > end:
            raise InvalidArgument(f"start ({start}) must not be after end ({end})")
        return streak_store.list_entries(db, account_id, start, end)

    def month_calendar(self, db: Session, account_id: str, year: Optional[int] = None, month: Optional[int] = None) -> MonthCalendarResponse:
        today = self.clock.today()
        year = today.year if year is None else year
        month = today.month if month is None else month
        if not 1 <= month <= 12:
            raise InvalidArgument(f"month must be between 1 and 12, got {month}")
        if not 1 <= year <= 9999:
            raise InvalidArgument(f"year out of range: {year}")

        days_in_month = calendar.monthrange(year, month)[1]
        first = date(year, month, 1)
        last = date(year, month, days_in_month)
        by_day = {entry.day: entry.kind for entry in streak_store.list_entries(db, account_id, first, last)}

        days = [
            CalendarDay(day=d, completed=d in by_day, kind=by_day.get(d))
            for d in (first + timedelta(days=i) for i in range(days_in_month))
        ]
        return MonthCalendarResponse(
            year=year,
            month=month,
            month_name=calendar.month_name[month],
            completed_days=len(by_day),
            days=days,
        )

    # Internal helpers -------------------------------------------------

    def _recompute(self, record: StreakRecord, today: date) -> bool:
        """Re-derive current/longest streak; returns True if either changed."""
        current = compute_current_streak((e.day for e in record.activity_log), today, record.streak_floor)
        longest = max(record.longest_streak or 0, current)
        changed = current != record.current_streak or longest != record.longest_streak
        record.current_streak = current
        record.longest_streak = longest
        return changed

    def _apply_break(self, record: StreakRecord, today: date) -> Tuple[BreakResult, bool]:
        last_day = record.last_activity_day
        if last_day is None:
            return BreakResult(broken=False), False

        days_since = (today - last_day).days
        if days_since <= GRACE_DAYS:
            return BreakResult(broken=False, days_since_last_activity=days_since), False

        # Missed days already counted by an earlier evaluation of this gap end at floor - 1
        counted_through = last_day
        if record.streak_floor and record.streak_floor - timedelta(days=1) > counted_through:
            counted_through = record.streak_floor - timedelta(days=1)
        newly_missed = max(0, (today - timedelta(days=1) - counted_through).days)

        changed = newly_missed > 0 or record.current_streak != 0 or record.streak_floor != today
        if changed:
            record.missed_days = (record.missed_days or 0) + newly_missed
            record.current_streak = 0
            record.streak_floor = today
            logger.info(
                f"Streak broken: last activity {last_day}, {days_since} days ago; "
                f"missed_days +{newly_missed} -> {record.missed_days}"
            )
        return BreakResult(
            broken=True,
            days_since_last_activity=days_since,
            missed_days_added=newly_missed,
        ), changed

    def _lock_for(self, account_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(account_id)
            if lock is None:
                lock = self._locks[account_id] = threading.Lock()
            return lock

    def _run(self, db: Session, account_id: str, unit: Callable[[], T]) -> T:
        set_account_context(account_id)
        with self._lock_for(account_id):
            for attempt in range(1, self.max_retries + 1):
                try:
                    return unit()
                except ConcurrentUpdateConflict as e:
                    logger.warning(f"Concurrent update on attempt {attempt}/{self.max_retries}: {e}")
                    db.expire_all()
            raise StorageError(
                f"Streak record for {account_id} kept changing; gave up after {self.max_retries} attempts"
            )

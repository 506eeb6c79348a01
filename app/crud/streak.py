from __future__ import annotations
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.exceptions import ConcurrentUpdateConflict, StorageError
from app.models.streak import ActivityEntry, StreakRecord
from app.utils.logger import get_logger

logger = get_logger(__name__)


def get_record(db: Session, account_id: str) -> Optional[StreakRecord]:
    try:
        return db.query(StreakRecord).filter(StreakRecord.account_id == account_id).first()
    except SQLAlchemyError as e:
        db.rollback()
        raise StorageError(f"Failed to load streak record for {account_id}: {e}") from e


def get_or_create_record(db: Session, account_id: str) -> StreakRecord:
    """
    Load the account's streak record, creating a zeroed one on first use.

    Creation is committed immediately; a concurrent creator wins the primary
    key and this call surfaces ConcurrentUpdateConflict so the caller retries
    against the stored row.
    """
    record = get_record(db, account_id)
    if record:
        return record

    record = StreakRecord(
        account_id=account_id,
        current_streak=0,
        longest_streak=0,
        missed_days=0,
    )
    db.add(record)
    commit_record(db, record)
    logger.info(f"Created streak record for account {account_id}", account_id=account_id)
    return record


def upsert_entry(db: Session, record: StreakRecord, day: date, kind: str, payload: dict, now: datetime) -> bool:
    """
    Set the activity for ``day``. Returns True when an entry for that day
    already existed and was overwritten in place.
    """
    entry = record.entry_for(day)
    if entry:
        entry.kind = kind
        entry.payload = payload
        entry.updated_at = now
        return True

    record.activity_log.append(
        ActivityEntry(
            account_id=record.account_id,
            day=day,
            kind=kind,
            payload=payload,
            registered_at=now,
            updated_at=now,
        )
    )
    return False


def clear_entries(record: StreakRecord) -> int:
    removed = len(record.activity_log)
    record.activity_log.clear()
    return removed


def list_entries(db: Session, account_id: str, start: Optional[date] = None, end: Optional[date] = None) -> List[ActivityEntry]:
    try:
        query = db.query(ActivityEntry).filter(ActivityEntry.account_id == account_id)
        if start:
            query = query.filter(ActivityEntry.day >= start)
        if end:
            query = query.filter(ActivityEntry.day <= end)
        return query.order_by(ActivityEntry.day).all()
    except SQLAlchemyError as e:
        db.rollback()
        raise StorageError(f"Failed to list activity for {account_id}: {e}") from e


def commit_record(db: Session, record: StreakRecord) -> None:
    """
    Commit pending changes to ``record`` as one unit.

    The version column makes the UPDATE conditional on the row being
    unchanged since it was loaded; a lost race becomes ConcurrentUpdateConflict,
    any other database failure becomes StorageError.
    """
    account_id = record.account_id
    try:
        db.commit()
    except (StaleDataError, IntegrityError) as e:
        db.rollback()
        raise ConcurrentUpdateConflict(
            f"Streak record for {account_id} changed concurrently"
        ) from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Failed to persist streak record for {account_id}: {e}", account_id=account_id)
        raise StorageError(f"Failed to persist streak record for {account_id}") from e

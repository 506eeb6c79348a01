from datetime import date, datetime, timedelta

import pytest
import pytz
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.crud import streak as streak_store
from app.database import Base
from app.exceptions import ConcurrentUpdateConflict, InvalidArgument, StorageError
from app.models.streak import StreakRecord
from app.services.streak_engine import StreakEngine, compute_current_streak
from app.utils.clock import Clock, FixedClock

ACCOUNT = "local"


def test_first_registration_starts_streak(streak_engine, db_session):
    result = streak_engine.register_activity(db_session, ACCOUNT, "workout", {"notes": "legs"})

    assert result.current_streak == 1
    assert result.longest_streak == 1
    assert result.day == date(2026, 3, 10)
    assert result.already_registered_today is False


def test_same_day_registration_is_idempotent(streak_engine, db_session):
    streak_engine.register_activity(db_session, ACCOUNT, "workout", {"notes": "morning"})
    second = streak_engine.register_activity(db_session, ACCOUNT, "recovery", {"notes": "stretching"})

    assert second.current_streak == 1
    assert second.longest_streak == 1
    assert second.already_registered_today is True

    entries = streak_engine.list_activity(db_session, ACCOUNT)
    assert len(entries) == 1
    assert entries[0].kind == "recovery"
    assert entries[0].payload == {"notes": "stretching"}


def test_consecutive_days_count(streak_engine, db_session, clock):
    for _ in range(3):
        result = streak_engine.register_activity(db_session, ACCOUNT, "workout")
        clock.advance(days=1)

    assert result.current_streak == 3
    assert result.longest_streak == 3


def test_unknown_kind_rejected_without_creating_record(streak_engine, db_session):
    with pytest.raises(InvalidArgument):
        streak_engine.register_activity(db_session, ACCOUNT, "nap")

    assert streak_store.get_record(db_session, ACCOUNT) is None


def test_single_missed_day_does_not_break(streak_engine, db_session, clock):
    streak_engine.register_activity(db_session, ACCOUNT, "workout")

    clock.advance(days=1)
    result = streak_engine.evaluate_break(db_session, ACCOUNT)
    assert result.broken is False
    assert result.days_since_last_activity == 1

    status = streak_engine.get_status(db_session, ACCOUNT)
    assert status.broken is False
    assert status.current_streak == 1
    assert status.needs_activity is True

    clock.advance(days=1)
    registered = streak_engine.register_activity(db_session, ACCOUNT, "workout")
    assert registered.current_streak == 2


def test_two_missed_days_break_streak(streak_engine, db_session, clock):
    streak_engine.register_activity(db_session, ACCOUNT, "workout")

    clock.advance(days=2)
    status = streak_engine.get_status(db_session, ACCOUNT)

    assert status.broken is True
    assert status.current_streak == 0
    assert status.missed_days == 1
    assert status.days_since_last_activity == 2
    assert status.longest_streak == 1


def test_repeated_evaluation_counts_each_missed_day_once(streak_engine, db_session, clock):
    streak_engine.register_activity(db_session, ACCOUNT, "workout")
    clock.advance(days=2)

    first = streak_engine.evaluate_break(db_session, ACCOUNT)
    again = streak_engine.evaluate_break(db_session, ACCOUNT)
    assert first.broken and again.broken
    assert first.missed_days_added == 1
    assert again.missed_days_added == 0
    assert streak_engine.get_status(db_session, ACCOUNT).missed_days == 1

    clock.advance(days=1)
    later = streak_engine.evaluate_break(db_session, ACCOUNT)
    assert later.missed_days_added == 1
    assert streak_engine.get_status(db_session, ACCOUNT).missed_days == 2


def test_full_week_scenario(streak_engine, db_session, clock):
    day_one = streak_engine.register_activity(db_session, ACCOUNT, "workout")
    assert (day_one.current_streak, day_one.longest_streak) == (1, 1)

    clock.advance(days=1)
    day_two = streak_engine.register_activity(db_session, ACCOUNT, "recovery")
    assert (day_two.current_streak, day_two.longest_streak) == (2, 2)

    clock.advance(days=2)
    status = streak_engine.get_status(db_session, ACCOUNT)
    assert status.current_streak == 0
    assert status.broken is True
    assert status.missed_days == 1

    day_four = streak_engine.register_activity(db_session, ACCOUNT, "rest")
    assert (day_four.current_streak, day_four.longest_streak) == (1, 2)

    clock.advance(days=1)
    day_five = streak_engine.register_activity(db_session, ACCOUNT, "workout")
    assert (day_five.current_streak, day_five.longest_streak) == (2, 2)


def test_unevaluated_single_gap_keeps_streak(streak_engine, db_session, clock):
    streak_engine.register_activity(db_session, ACCOUNT, "workout")
    clock.advance(days=1)
    streak_engine.register_activity(db_session, ACCOUNT, "recovery")

    # No status query on day four, so no break is applied before registering
    clock.advance(days=2)
    result = streak_engine.register_activity(db_session, ACCOUNT, "rest")

    assert (result.current_streak, result.longest_streak) == (3, 3)


def test_registration_after_long_absence_starts_fresh(streak_engine, db_session, clock):
    streak_engine.register_activity(db_session, ACCOUNT, "workout")
    clock.advance(days=1)
    streak_engine.register_activity(db_session, ACCOUNT, "workout")

    clock.advance(days=3)
    result = streak_engine.register_activity(db_session, ACCOUNT, "workout")

    assert result.current_streak == 1
    assert result.longest_streak == 2


def test_longest_streak_never_decreases(streak_engine, db_session, clock):
    observed = []
    plan = ["workout", "workout", "workout", None, None, "rest", None, "recovery", "workout"]
    for kind in plan:
        if kind:
            observed.append(streak_engine.register_activity(db_session, ACCOUNT, kind).longest_streak)
        observed.append(streak_engine.get_status(db_session, ACCOUNT).longest_streak)
        clock.advance(days=1)

    assert observed == sorted(observed)
    assert max(observed) == 3


def test_reset_clears_log_and_keeps_longest(streak_engine, db_session, clock):
    streak_engine.register_activity(db_session, ACCOUNT, "workout")
    clock.advance(days=1)
    streak_engine.register_activity(db_session, ACCOUNT, "workout")
    clock.advance(days=3)
    streak_engine.get_status(db_session, ACCOUNT)

    streak_engine.administrative_reset(db_session, ACCOUNT)

    status = streak_engine.get_status(db_session, ACCOUNT)
    assert status.current_streak == 0
    assert status.missed_days == 0
    assert status.longest_streak == 2
    assert status.last_activity_day is None
    assert streak_engine.list_activity(db_session, ACCOUNT) == []

    assert streak_engine.register_activity(db_session, ACCOUNT, "rest").current_streak == 1


def test_reset_without_record_is_noop(streak_engine, db_session):
    streak_engine.administrative_reset(db_session, ACCOUNT)
    assert streak_store.get_record(db_session, ACCOUNT) is None


def test_evaluate_without_record_does_not_create_one(streak_engine, db_session):
    result = streak_engine.evaluate_break(db_session, ACCOUNT)

    assert result.broken is False
    assert result.days_since_last_activity is None
    assert streak_store.get_record(db_session, ACCOUNT) is None


def test_status_creates_record_lazily(streak_engine, db_session):
    status = streak_engine.get_status(db_session, ACCOUNT)

    assert status.current_streak == 0
    assert status.last_activity_day is None
    assert status.today_registered is False
    assert streak_store.get_record(db_session, ACCOUNT) is not None


def test_status_reset_boundaries(streak_engine, db_session):
    streak_engine.register_activity(db_session, ACCOUNT, "rest")
    status = streak_engine.get_status(db_session, ACCOUNT)

    assert status.today_registered is True
    assert status.today_activity == "rest"
    assert status.needs_activity is False
    assert status.next_reset_at == datetime(2026, 3, 11, 0, 0, tzinfo=pytz.utc)
    assert status.warn_at == datetime(2026, 3, 10, 22, 0, tzinfo=pytz.utc)
    assert status.timezone == "UTC"


def test_calendar_day_follows_configured_timezone(db_session):
    # 03:00 UTC is still the previous evening in New York
    clock = FixedClock(datetime(2026, 3, 10, 3, 0, tzinfo=pytz.utc), tz_name="America/New_York")
    engine = StreakEngine(clock)

    result = engine.register_activity(db_session, ACCOUNT, "workout")
    status = engine.get_status(db_session, ACCOUNT)

    assert result.day == date(2026, 3, 9)
    assert status.today == date(2026, 3, 9)
    assert status.next_reset_at == pytz.timezone("America/New_York").localize(datetime(2026, 3, 10))


def test_clock_treats_naive_now_as_utc():
    clock = Clock("Asia/Kolkata", now_fn=lambda: datetime(2026, 3, 10, 20, 0))
    assert clock.today() == date(2026, 3, 11)


def test_month_calendar(streak_engine, db_session, clock):
    streak_engine.register_activity(db_session, ACCOUNT, "workout")
    clock.advance(days=1)
    streak_engine.register_activity(db_session, ACCOUNT, "recovery")

    calendar = streak_engine.month_calendar(db_session, ACCOUNT)

    assert (calendar.year, calendar.month, calendar.month_name) == (2026, 3, "March")
    assert len(calendar.days) == 31
    assert calendar.completed_days == 2
    by_day = {d.day: d for d in calendar.days}
    assert by_day[date(2026, 3, 10)].kind == "workout"
    assert by_day[date(2026, 3, 11)].completed is True
    assert by_day[date(2026, 3, 12)].completed is False

    assert streak_engine.month_calendar(db_session, ACCOUNT, 2026, 2).completed_days == 0
    with pytest.raises(InvalidArgument):
        streak_engine.month_calendar(db_session, ACCOUNT, 2026, 13)


def test_list_activity_range(streak_engine, db_session, clock):
    for _ in range(4):
        streak_engine.register_activity(db_session, ACCOUNT, "workout")
        clock.advance(days=1)

    entries = streak_engine.list_activity(db_session, ACCOUNT, date(2026, 3, 11), date(2026, 3, 12))
    assert [e.day for e in entries] == [date(2026, 3, 11), date(2026, 3, 12)]

    with pytest.raises(InvalidArgument):
        streak_engine.list_activity(db_session, ACCOUNT, date(2026, 3, 12), date(2026, 3, 11))


def test_activity_types_catalog():
    kinds = [t.kind for t in StreakEngine.activity_types()]
    assert kinds == ["workout", "recovery", "rest"]


def test_conflict_is_retried(streak_engine, db_session, monkeypatch):
    streak_engine.get_status(db_session, ACCOUNT)
    real_commit = streak_store.commit_record
    calls = []

    def flaky_commit(db, record):
        calls.append(1)
        if len(calls) == 1:
            db.rollback()
            raise ConcurrentUpdateConflict("simulated")
        return real_commit(db, record)

    monkeypatch.setattr(streak_store, "commit_record", flaky_commit)
    result = streak_engine.register_activity(db_session, ACCOUNT, "workout")

    assert len(calls) == 2
    assert result.current_streak == 1
    assert len(streak_engine.list_activity(db_session, ACCOUNT)) == 1


def test_persistent_conflict_surfaces_storage_error(streak_engine, db_session, monkeypatch):
    streak_engine.get_status(db_session, ACCOUNT)

    def always_conflict(db, record):
        db.rollback()
        raise ConcurrentUpdateConflict("simulated")

    monkeypatch.setattr(streak_store, "commit_record", always_conflict)
    with pytest.raises(StorageError):
        streak_engine.register_activity(db_session, ACCOUNT, "workout")


def test_stale_write_detected_by_version(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'streaks.db'}")
    Base.metadata.create_all(bind=engine)
    SessionLocal = sessionmaker(autoflush=False, expire_on_commit=False, bind=engine)

    setup = SessionLocal()
    setup.add(StreakRecord(account_id=ACCOUNT, current_streak=0, longest_streak=0, missed_days=0))
    setup.commit()
    setup.close()

    first, second = SessionLocal(), SessionLocal()
    record_a = streak_store.get_record(first, ACCOUNT)
    record_b = streak_store.get_record(second, ACCOUNT)

    record_a.missed_days = 1
    streak_store.commit_record(first, record_a)

    record_b.missed_days = 5
    with pytest.raises(ConcurrentUpdateConflict):
        streak_store.commit_record(second, record_b)

    first.close()
    second.close()
    engine.dispose()


@pytest.mark.parametrize(
    "offsets, floor_offset, expected",
    [
        ([], None, 0),
        ([0, 1, 2], None, 3),
        ([1, 2], None, 2),
        ([0, 2, 3], None, 3),
        ([0, 3, 4], None, 1),
        ([2, 3], None, 0),
        ([0, 2, 3], 0, 1),
    ],
)
def test_compute_current_streak(offsets, floor_offset, expected):
    today = date(2026, 3, 10)
    days = [today - timedelta(days=o) for o in offsets]
    floor = today - timedelta(days=floor_offset) if floor_offset is not None else None
    assert compute_current_streak(days, today, floor) == expected


def test_same_day_race_between_engines_becomes_update(tmp_path, clock, monkeypatch):
    engine = create_engine(f"sqlite:///{tmp_path / 'race.db'}")
    Base.metadata.create_all(bind=engine)
    SessionLocal = sessionmaker(autoflush=False, expire_on_commit=False, bind=engine)
    session_a, session_b = SessionLocal(), SessionLocal()
    # Separate engines hold separate locks, like two worker processes
    engine_a, engine_b = StreakEngine(clock), StreakEngine(clock)

    engine_a.register_activity(session_a, ACCOUNT, "workout")
    clock.advance(days=1)

    real_upsert = streak_store.upsert_entry
    interleaved = []

    def upsert_after_other_worker(db, record, day, kind, payload, now):
        if db is session_a and not interleaved:
            interleaved.append(engine_b.register_activity(session_b, ACCOUNT, "rest", {"by": "b"}))
        return real_upsert(db, record, day, kind, payload, now)

    monkeypatch.setattr(streak_store, "upsert_entry", upsert_after_other_worker)
    result = engine_a.register_activity(session_a, ACCOUNT, "workout", {"by": "a"})

    assert interleaved[0].already_registered_today is False
    assert result.already_registered_today is True
    assert result.current_streak == 2
    assert result.longest_streak == 2

    # session_b still holds its own copy of today's entry
    session_b.expire_all()
    entries = streak_store.list_entries(session_b, ACCOUNT)
    assert len(entries) == 2
    today_entry = streak_store.list_entries(session_b, ACCOUNT, clock.today(), clock.today())[0]
    assert today_entry.kind == "workout"
    assert today_entry.payload == {"by": "a"}

    session_a.close()
    session_b.close()
    engine.dispose()

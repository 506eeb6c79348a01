from sqlalchemy import Column, String, Date, DateTime, Integer, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base


class StreakRecord(Base):
    __tablename__ = "streak_records"

    # One row per account
    account_id = Column(String, primary_key=True)

    # Streak counters
    current_streak = Column(Integer, nullable=False, default=0)
    longest_streak = Column(Integer, nullable=False, default=0)
    missed_days = Column(Integer, nullable=False, default=0)

    # Day the last break was applied; earlier entries never count toward current_streak
    streak_floor = Column(Date, nullable=True)

    last_updated_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Optimistic concurrency counter
    version = Column(Integer, nullable=False, default=1)

    activity_log = relationship(
        "ActivityEntry",
        back_populates="record",
        order_by="ActivityEntry.day",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}

    def entry_for(self, day):
        for entry in self.activity_log:
            if entry.day == day:
                return entry
        return None

    @property
    def last_activity_day(self):
        if not self.activity_log:
            return None
        return max(entry.day for entry in self.activity_log)

    def __repr__(self) -> str:
        return (
            f"<StreakRecord account_id={self.account_id} current={self.current_streak} "
            f"longest={self.longest_streak} missed={self.missed_days} entries={len(self.activity_log)}>"
        )


class ActivityEntry(Base):
    __tablename__ = "activity_entries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    account_id = Column(String, ForeignKey("streak_records.account_id", ondelete="CASCADE"), nullable=False, index=True)
    day = Column(Date, nullable=False)
    kind = Column(String(16), nullable=False)  # "workout" | "recovery" | "rest"
    payload = Column(JSON, nullable=False, default=dict)

    registered_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    record = relationship("StreakRecord", back_populates="activity_log")

    __table_args__ = (
        UniqueConstraint("account_id", "day", name="uq_activity_entries_account_day"),
    )

    def __repr__(self) -> str:
        return f"<ActivityEntry account_id={self.account_id} day={self.day} kind={self.kind}>"

"""Create streak tracking schema

Revision ID: v1
Revises: 
Create Date: 2026-10-19 00:00:00

Streak record per account plus one activity entry per account and calendar day
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'v1'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "streak_records",
        sa.Column("account_id", sa.String(), nullable=False),
        sa.Column("current_streak", sa.Integer(), nullable=False, server_default='0'),
        sa.Column("longest_streak", sa.Integer(), nullable=False, server_default='0'),
        sa.Column("missed_days", sa.Integer(), nullable=False, server_default='0'),
        sa.Column("streak_floor", sa.Date(), nullable=True),
        sa.Column("last_updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("version", sa.Integer(), nullable=False, server_default='1'),
        sa.PrimaryKeyConstraint("account_id"),
    )

    op.create_table(
        "activity_entries",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("account_id", sa.String(), nullable=False),
        sa.Column("day", sa.Date(), nullable=False),
        sa.Column("kind", sa.String(16), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("registered_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["account_id"], ["streak_records.account_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("account_id", "day", name="uq_activity_entries_account_day"),
    )
    op.create_index(op.f("ix_activity_entries_account_id"), "activity_entries", ["account_id"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_activity_entries_account_id"), table_name="activity_entries")
    op.drop_table("activity_entries")
    op.drop_table("streak_records")

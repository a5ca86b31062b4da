"""poll vote history

Revision ID: 0002_poll_vote_history
Revises: 0001_initial
Create Date: 2026-10-16 14:00:00.000000

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "0002_poll_vote_history"
down_revision: Union[str, Sequence[str], None] = "0001_initial"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Add per-option vote count snapshots for poll analytics."""
    op.create_table(
        "poll_vote_history",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("poll_id", sa.String(length=36), nullable=False),
        sa.Column("option_id", sa.String(length=36), nullable=False),
        sa.Column("vote_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("recorded_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("interval_type", sa.String(length=10), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "interval_type IN ('hourly', 'daily')",
            name="ck_poll_vote_history_interval",
        ),
        sa.ForeignKeyConstraint(["poll_id"], ["polls.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["option_id"], ["poll_options.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_poll_vote_history_poll_recorded",
        "poll_vote_history",
        ["poll_id", "recorded_at"],
    )
    op.create_index(
        "ix_poll_vote_history_option_recorded",
        "poll_vote_history",
        ["option_id", "recorded_at"],
    )
    op.create_index(
        "ix_poll_vote_history_poll_interval_recorded",
        "poll_vote_history",
        ["poll_id", "interval_type", "recorded_at"],
    )


def downgrade() -> None:
    """Drop the vote history table."""
    op.drop_index("ix_poll_vote_history_poll_interval_recorded", table_name="poll_vote_history")
    op.drop_index("ix_poll_vote_history_option_recorded", table_name="poll_vote_history")
    op.drop_index("ix_poll_vote_history_poll_recorded", table_name="poll_vote_history")
    op.drop_table("poll_vote_history")

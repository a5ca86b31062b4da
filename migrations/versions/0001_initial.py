"""initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-16 09:00:00.000000

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_PREFERENCE_SWITCHES = (
    "comments_on_post",
    "comment_replies",
    "post_votes",
    "poll_votes",
    "comment_votes",
    "bookings",
    "booking_requests",
    "community_invites",
    "artist_responses",
    "event_reminders",
    "direct_messages",
    "booking_messages",
    "mentions",
    "moderation_actions",
)


def upgrade() -> None:
    """Create users, notifications, preferences and poll tables."""
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("display_name", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "notifications",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("type", sa.String(length=64), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("link", sa.Text(), nullable=True),
        sa.Column("actor_id", sa.String(length=36), nullable=True),
        sa.Column("entity_id", sa.String(length=36), nullable=True),
        sa.Column("entity_type", sa.String(length=64), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("batch_key", sa.Text(), nullable=True),
        sa.Column("batch_count", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("data", sa.JSON(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_notifications_user_created_id",
        "notifications",
        ["user_id", "created_at", "id"],
    )
    op.create_index(
        "ix_notifications_batch_key",
        "notifications",
        ["batch_key", "created_at"],
    )

    op.create_table(
        "notification_preferences",
        sa.Column("user_id", sa.String(length=36), nullable=False),
        *[
            sa.Column(name, sa.Boolean(), nullable=False, server_default=sa.true())
            for name in _PREFERENCE_SWITCHES
        ],
        sa.Column(
            "email_digest_enabled", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column(
            "email_digest_frequency",
            sa.String(length=16),
            nullable=False,
            server_default="weekly",
        ),
        sa.Column(
            "quiet_hours_enabled", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column(
            "quiet_hours_start", sa.String(length=8), nullable=False, server_default="22:00:00"
        ),
        sa.Column(
            "quiet_hours_end", sa.String(length=8), nullable=False, server_default="08:00:00"
        ),
        sa.Column(
            "quiet_hours_timezone", sa.String(length=64), nullable=False, server_default="UTC"
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("user_id"),
    )

    op.create_table(
        "polls",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("question", sa.Text(), nullable=False),
        sa.Column("created_by", sa.String(length=36), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("total_votes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "poll_options",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("poll_id", sa.String(length=36), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("vote_count", sa.Integer(), nullable=False, server_default="0"),
        sa.CheckConstraint("vote_count >= 0", name="ck_poll_options_vote_count"),
        sa.ForeignKeyConstraint(["poll_id"], ["polls.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("poll_id", "position", name="uq_poll_options_position"),
    )

    # No user column: votes are linked to voters only through vote_hash.
    op.create_table(
        "poll_votes",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("poll_id", sa.String(length=36), nullable=False),
        sa.Column("option_id", sa.String(length=36), nullable=False),
        sa.Column("vote_hash", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["poll_id"], ["polls.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["option_id"], ["poll_options.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("poll_id", "vote_hash", name="uq_poll_votes_poll_hash"),
    )
    op.create_index("ix_poll_votes_option_id", "poll_votes", ["option_id"])


def downgrade() -> None:
    """Drop every table created by this revision."""
    op.drop_index("ix_poll_votes_option_id", table_name="poll_votes")
    op.drop_table("poll_votes")
    op.drop_table("poll_options")
    op.drop_table("polls")
    op.drop_table("notification_preferences")
    op.drop_index("ix_notifications_batch_key", table_name="notifications")
    op.drop_index("ix_notifications_user_created_id", table_name="notifications")
    op.drop_table("notifications")
    op.drop_table("users")

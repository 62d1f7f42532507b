"""Initial schema: organizations, users, tasks, meetings, notifications, activity logs.

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "0001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _uuid(name: str, **kwargs) -> sa.Column:
    return sa.Column(name, postgresql.UUID(as_uuid=True), **kwargs)


def _timestamps(updated: bool = True) -> list:
    cols = [sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("now()"))]
    if updated:
        cols.append(sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")))
    return cols


# ---------------------------------------------------------------------------
# UPGRADE
# ---------------------------------------------------------------------------


def upgrade() -> None:
    op.create_table(
        "organizations",
        _uuid("id", primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("slug", sa.String(), nullable=False, unique=True),
        *_timestamps(),
    )
    op.create_index("ix_organizations_name", "organizations", ["name"])
    op.create_index("ix_organizations_created_at", "organizations", ["created_at"])

    op.create_table(
        "users",
        _uuid("id", primary_key=True),
        sa.Column("email", sa.String(), nullable=False, unique=True),
        sa.Column("first_name", sa.String(), nullable=False),
        sa.Column("last_name", sa.String(), nullable=True),
        sa.Column("full_name", sa.String(), nullable=False),
        sa.Column("password_hash", sa.String(), nullable=False, server_default=""),
        sa.Column("avatar_url", sa.String(), nullable=True),
        sa.Column("role", sa.String(), nullable=False, server_default="member"),
        _uuid("organization_id", sa.ForeignKey("organizations.id"), nullable=True),
        sa.Column("is_email_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("verification_otp", sa.String(), nullable=True),
        sa.Column("otp_expires", sa.DateTime(), nullable=True),
        sa.Column("reset_token", sa.String(), nullable=True),
        sa.Column("reset_token_exp", sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_users_organization_id", "users", ["organization_id"])
    op.create_index("ix_users_reset_token", "users", ["reset_token"])
    op.create_index("ix_users_created_at", "users", ["created_at"])

    op.create_table(
        "tasks",
        _uuid("id", primary_key=True),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("date", sa.DateTime(), nullable=False),
        sa.Column("due_date", sa.DateTime(), nullable=True),
        sa.Column("created_day", sa.String(), nullable=False),
        sa.Column("priority", sa.String(), nullable=False, server_default="medium"),
        sa.Column("status", sa.String(), nullable=False, server_default="todo"),
        sa.Column("blocker", sa.String(), nullable=True),
        _uuid("assigned_to_id", sa.ForeignKey("users.id"), nullable=True),
        _uuid("created_by_id", sa.ForeignKey("users.id"), nullable=False),
        _uuid("organization_id", sa.ForeignKey("organizations.id"), nullable=True),
        *_timestamps(),
    )
    for col in ("assigned_to_id", "created_by_id", "organization_id", "created_at"):
        op.create_index(f"ix_tasks_{col}", "tasks", [col])

    op.create_table(
        "meetings",
        _uuid("id", primary_key=True),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("start_time", sa.DateTime(), nullable=False),
        sa.Column("end_time", sa.DateTime(), nullable=False),
        sa.Column("meeting_link", sa.String(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="scheduled"),
        sa.Column("is_recurring", sa.Boolean(), nullable=False, server_default=sa.false()),
        _uuid("organization_id", sa.ForeignKey("organizations.id"), nullable=True),
        _uuid("created_by_id", sa.ForeignKey("users.id"), nullable=False),
        *_timestamps(),
    )
    for col in ("start_time", "organization_id", "created_by_id", "created_at"):
        op.create_index(f"ix_meetings_{col}", "meetings", [col])

    op.create_table(
        "meeting_participants",
        _uuid("id", primary_key=True),
        _uuid("meeting_id", sa.ForeignKey("meetings.id"), nullable=False),
        _uuid("user_id", sa.ForeignKey("users.id"), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="accepted"),
        sa.Column("joined_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint("meeting_id", "user_id"),
    )
    op.create_index("ix_meeting_participants_meeting_id", "meeting_participants", ["meeting_id"])
    op.create_index("ix_meeting_participants_user_id", "meeting_participants", ["user_id"])

    op.create_table(
        "notifications",
        _uuid("id", primary_key=True),
        _uuid("user_id", sa.ForeignKey("users.id"), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("message", sa.String(), nullable=False),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(updated=False),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index("ix_notifications_created_at", "notifications", ["created_at"])

    # Append-only; entity_id is text so entries survive entity deletion
    op.create_table(
        "activity_logs",
        _uuid("id", primary_key=True),
        _uuid("user_id", sa.ForeignKey("users.id"), nullable=False),
        sa.Column("action", sa.String(), nullable=False),
        sa.Column("entity_type", sa.String(), nullable=False),
        sa.Column("entity_id", sa.String(), nullable=True),
        sa.Column("details", postgresql.JSONB(), nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index("ix_activity_logs_user_id", "activity_logs", ["user_id"])
    op.create_index("ix_activity_logs_action", "activity_logs", ["action"])
    op.create_index("ix_activity_logs_created_at", "activity_logs", ["created_at"])


# ---------------------------------------------------------------------------
# DOWNGRADE
# ---------------------------------------------------------------------------


def downgrade() -> None:
    for table in (
        "activity_logs",
        "notifications",
        "meeting_participants",
        "meetings",
        "tasks",
        "users",
        "organizations",
    ):
        op.drop_table(table)

"""Meeting and participant models."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin, _utcnow


class Meeting(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "meetings"

    title: str = Field(nullable=False)
    description: Optional[str] = None
    start_time: datetime = Field(nullable=False, index=True, sa_type=sa.DateTime())
    end_time: datetime = Field(nullable=False, sa_type=sa.DateTime())
    meeting_link: Optional[str] = None
    status: str = Field(nullable=False, default="scheduled")  # scheduled | ongoing | completed | cancelled
    is_recurring: bool = Field(default=False, nullable=False)
    organization_id: Optional[uuid.UUID] = Field(
        default=None, foreign_key="organizations.id", index=True
    )
    created_by_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)


class MeetingParticipant(UUIDMixin, SQLModel, table=True):
    __tablename__ = "meeting_participants"
    __table_args__ = (sa.UniqueConstraint("meeting_id", "user_id"),)

    meeting_id: uuid.UUID = Field(foreign_key="meetings.id", nullable=False, index=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    status: str = Field(nullable=False, default="accepted")  # invited | accepted | declined
    joined_at: datetime = Field(default_factory=_utcnow, nullable=False, sa_type=sa.DateTime())

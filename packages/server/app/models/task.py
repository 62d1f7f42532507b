"""Task model."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Task(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "tasks"

    title: str = Field(nullable=False)
    description: Optional[str] = None
    date: datetime = Field(nullable=False, sa_type=sa.DateTime())
    due_date: Optional[datetime] = Field(default=None, sa_type=sa.DateTime())
    created_day: str = Field(nullable=False)  # weekday name of `date`
    priority: str = Field(nullable=False, default="medium")  # low | medium | high
    status: str = Field(nullable=False, default="todo")  # todo | in-progress | completed
    blocker: Optional[str] = None
    assigned_to_id: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id", index=True)
    created_by_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    organization_id: Optional[uuid.UUID] = Field(
        default=None, foreign_key="organizations.id", index=True
    )

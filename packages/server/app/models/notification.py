"""Notification model."""

import uuid

from sqlmodel import Field, SQLModel

from .base import CreatedAtMixin, UUIDMixin


class Notification(UUIDMixin, CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "notifications"

    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    title: str = Field(nullable=False)
    message: str = Field(nullable=False)
    type: str = Field(nullable=False)  # TASK_ASSIGNMENT | TASK_REASSIGNMENT
    read: bool = Field(default=False, nullable=False)

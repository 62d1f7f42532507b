"""Activity log model. Rows are append-only."""

from typing import Any, Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import CreatedAtMixin, UUIDMixin


class ActivityLog(UUIDMixin, CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "activity_logs"

    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    action: str = Field(nullable=False, index=True)
    entity_type: str = Field(nullable=False)
    entity_id: Optional[str] = None  # kept as text so entries outlive deleted entities
    details: Optional[dict[str, Any]] = Field(default=None, sa_type=sa.JSON)

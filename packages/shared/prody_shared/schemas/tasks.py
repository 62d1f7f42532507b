"""Task-related Pydantic schemas for shared use across server and frontend codegen."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from .common import CamelModel, PageMeta, TaskPriority, TaskStatus


# ---------------------------------------------------------------------------
# Task CRUD
# ---------------------------------------------------------------------------

class TaskCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    date: Optional[datetime] = None  # defaults to now
    due_date: Optional[datetime] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.TODO
    blocker: Optional[str] = None
    assigned_to_id: Optional[uuid.UUID] = None


class TaskUpdate(CamelModel):
    """Request body for POST /api/tasks/update. Only fields that are sent are changed."""
    task_id: uuid.UUID
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    priority: Optional[TaskPriority] = None
    status: Optional[TaskStatus] = None
    blocker: Optional[str] = None
    assigned_to_id: Optional[uuid.UUID] = None


class TaskRead(CamelModel):
    id: uuid.UUID
    title: str
    description: Optional[str] = None
    date: datetime
    due_date: Optional[datetime] = None
    created_day: str
    priority: TaskPriority
    status: TaskStatus
    blocker: Optional[str] = None
    assigned_to_id: Optional[uuid.UUID] = None
    created_by_id: uuid.UUID
    organization_id: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime


class TaskPage(CamelModel):
    items: List[TaskRead]
    meta: PageMeta

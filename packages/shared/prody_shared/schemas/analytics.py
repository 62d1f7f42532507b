"""
Analytics response schemas.

Admins get organization-wide numbers; everyone else gets numbers for the
records they created.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from .activity_logs import ActivityLogRead
from .common import CamelModel


class Timeframe(CamelModel):
    from_: Optional[datetime] = Field(None, alias="from")
    to: Optional[datetime] = None


class DashboardStats(CamelModel):
    total_tasks: int
    total_meetings: int
    new_users_in_period: Optional[int] = None  # admins only


class StatusCount(CamelModel):
    status: str
    count: int


class PriorityCount(CamelModel):
    priority: str
    count: int


class DashboardSummary(CamelModel):
    scope: str  # "Organization-wide" | "Personal"
    timeframe: Timeframe
    stats: DashboardStats
    task_status_distribution: List[StatusCount]
    recent_activity: List[ActivityLogRead]


class TaskAnalytics(CamelModel):
    priority_breakdown: List[PriorityCount]
    overdue_tasks: int


class MeetingAnalytics(CamelModel):
    total_meetings_in_period: int
    total_hours_spent: float
    average_meeting_duration: int  # minutes


class UserActivity(CamelModel):
    user_id: uuid.UUID
    full_name: str
    email: str
    action_count: int
    last_activity_at: Optional[datetime] = None

"""
Analytics service: dashboard counts, task and meeting statistics, and the
admin per-user activity report.

Scope: admins see their organization, everyone else sees what they created.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import Principal
from app.models.activity_log import ActivityLog
from app.models.base import _utcnow, as_naive_utc
from app.models.meeting import Meeting
from app.models.task import Task
from app.models.user import User
from app.services.activity_logs import ActivityLogService
from prody_shared.schemas.analytics import (
    DashboardStats,
    DashboardSummary,
    MeetingAnalytics,
    PriorityCount,
    StatusCount,
    TaskAnalytics,
    Timeframe,
    UserActivity,
)
from prody_shared.schemas.common import TaskStatus

RECENT_ACTIVITY_LIMIT = 5


class AnalyticsService:
    def __init__(self, activity_log: ActivityLogService):
        self._activity = activity_log

    @staticmethod
    def _scope(model, principal: Principal, start: Optional[datetime], end: Optional[datetime]) -> list:
        if principal.is_admin and principal.org_id is not None:
            filters = [model.organization_id == principal.org_id]
        else:
            filters = [model.created_by_id == principal.user_id]
        if start:
            filters.append(model.created_at >= as_naive_utc(start))
        if end:
            filters.append(model.created_at <= as_naive_utc(end))
        return filters

    async def _count(self, session: AsyncSession, model, filters: list) -> int:
        result = await session.execute(select(func.count()).select_from(model).where(*filters))
        return result.scalar_one()

    async def dashboard(
        self,
        session: AsyncSession,
        principal: Principal,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> DashboardSummary:
        task_filters = self._scope(Task, principal, start, end)
        meeting_filters = self._scope(Meeting, principal, start, end)
        org_wide = principal.is_admin and principal.org_id is not None

        new_users = None
        if org_wide:
            user_filters = [User.organization_id == principal.org_id]
            if start:
                user_filters.append(User.created_at >= as_naive_utc(start))
            if end:
                user_filters.append(User.created_at <= as_naive_utc(end))
            new_users = await self._count(session, User, user_filters)

        status_rows = await session.execute(
            select(Task.status, func.count()).where(*task_filters).group_by(Task.status)
        )
        recent = await self._activity.list_for(
            session, principal.user_id, principal.role, limit=RECENT_ACTIVITY_LIMIT
        )

        return DashboardSummary(
            scope="Organization-wide" if org_wide else "Personal",
            timeframe=Timeframe(from_=start, to=end),
            stats=DashboardStats(
                total_tasks=await self._count(session, Task, task_filters),
                total_meetings=await self._count(session, Meeting, meeting_filters),
                new_users_in_period=new_users,
            ),
            task_status_distribution=[
                StatusCount(status=status, count=count) for status, count in status_rows.all()
            ],
            recent_activity=recent,
        )

    async def tasks(
        self,
        session: AsyncSession,
        principal: Principal,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> TaskAnalytics:
        filters = self._scope(Task, principal, start, end)
        priority_rows = await session.execute(
            select(Task.priority, func.count()).where(*filters).group_by(Task.priority)
        )
        overdue = await self._count(
            session,
            Task,
            filters + [Task.status != TaskStatus.COMPLETED.value, Task.due_date < _utcnow()],
        )
        return TaskAnalytics(
            priority_breakdown=[
                PriorityCount(priority=priority, count=count)
                for priority, count in priority_rows.all()
            ],
            overdue_tasks=overdue,
        )

    async def meetings(
        self,
        session: AsyncSession,
        principal: Principal,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> MeetingAnalytics:
        result = await session.execute(
            select(Meeting.start_time, Meeting.end_time).where(
                *self._scope(Meeting, principal, start, end)
            )
        )
        durations = [(e - s).total_seconds() / 60 for s, e in result.all()]
        total_minutes = sum(durations)
        return MeetingAnalytics(
            total_meetings_in_period=len(durations),
            total_hours_spent=round(total_minutes / 60, 1),
            average_meeting_duration=round(total_minutes / len(durations)) if durations else 0,
        )

    async def user_activity(self, session: AsyncSession, principal: Principal) -> list[UserActivity]:
        """Per-member action counts for the admin's organization."""
        if principal.org_id is None:
            return []
        result = await session.execute(
            select(User, func.count(ActivityLog.id), func.max(ActivityLog.created_at))
            .join(ActivityLog, ActivityLog.user_id == User.id, isouter=True)
            .where(User.organization_id == principal.org_id)
            .group_by(User.id)
            .order_by(func.count(ActivityLog.id).desc())
        )
        return [
            UserActivity(
                user_id=user.id,
                full_name=user.full_name,
                email=user.email,
                action_count=count,
                last_activity_at=last,
            )
            for user, count, last in result.all()
        ]

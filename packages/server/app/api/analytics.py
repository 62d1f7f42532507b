"""
Analytics endpoints. ``from`` / ``to`` bound records by creation time.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_analytics_service, get_principal, require_admin
from app.core.auth import Principal
from app.core.database import get_session
from app.services.analytics import AnalyticsService
from prody_shared.schemas.analytics import (
    DashboardSummary,
    MeetingAnalytics,
    TaskAnalytics,
    UserActivity,
)

router = APIRouter()

FROM = Query(None, alias="from")


@router.get("/dashboard", response_model=DashboardSummary)
async def dashboard(
    start: Optional[datetime] = FROM,
    to: Optional[datetime] = None,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(get_session),
    analytics: AnalyticsService = Depends(get_analytics_service),
):
    return await analytics.dashboard(session, principal, start, to)


@router.get("/tasks", response_model=TaskAnalytics)
async def task_analytics(
    start: Optional[datetime] = FROM,
    to: Optional[datetime] = None,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(get_session),
    analytics: AnalyticsService = Depends(get_analytics_service),
):
    return await analytics.tasks(session, principal, start, to)


@router.get("/meetings", response_model=MeetingAnalytics)
async def meeting_analytics(
    start: Optional[datetime] = FROM,
    to: Optional[datetime] = None,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(get_session),
    analytics: AnalyticsService = Depends(get_analytics_service),
):
    return await analytics.meetings(session, principal, start, to)


@router.get("/admin/user-activity", response_model=List[UserActivity])
async def user_activity(
    principal: Principal = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
    analytics: AnalyticsService = Depends(get_analytics_service),
):
    """Admin only: action counts per member of the caller's organization."""
    return await analytics.user_activity(session, principal)

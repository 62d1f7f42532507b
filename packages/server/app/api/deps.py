"""
FastAPI dependencies.

Thin wrappers that feed the plain auth pipeline in ``app.core.auth`` and
build domain services from the collaborators ``create_app`` stored on
``app.state``.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import APIKeyHeader
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import (
    Principal,
    TokenIssuer,
    authenticate,
    authorize,
    extract_bearer_token,
    resolve_principal,
)
from app.core.database import get_session
from app.core.realtime import RealtimeBroadcaster
from app.services.activity_logs import ActivityLogService
from app.services.analytics import AnalyticsService
from app.services.auth import AuthService
from app.services.meetings import MeetingService
from app.services.notifications import NotificationService
from app.services.organizations import OrganizationService
from app.services.tasks import TaskService
from prody_shared.schemas.common import Role

authorization_header = APIKeyHeader(name="Authorization", auto_error=False)


# ---------------------------------------------------------------------------
# Authentication / authorization
# ---------------------------------------------------------------------------

def get_tokens(request: Request) -> TokenIssuer:
    return request.app.state.tokens


async def get_principal(
    authorization: Optional[str] = Depends(authorization_header),
    tokens: TokenIssuer = Depends(get_tokens),
    session: AsyncSession = Depends(get_session),
) -> Principal:
    """authenticate -> resolve role/org from the user row."""
    claims = authenticate(tokens, extract_bearer_token(authorization))
    return await resolve_principal(session, claims)


async def require_admin(principal: Principal = Depends(get_principal)) -> Principal:
    return authorize(principal, Role.ADMIN.value)


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------

def get_broadcaster(request: Request) -> RealtimeBroadcaster:
    return request.app.state.broadcaster


def get_activity_log(broadcaster: RealtimeBroadcaster = Depends(get_broadcaster)) -> ActivityLogService:
    return ActivityLogService(broadcaster)


def get_auth_service(
    request: Request,
    tokens: TokenIssuer = Depends(get_tokens),
    activity_log: ActivityLogService = Depends(get_activity_log),
) -> AuthService:
    state = request.app.state
    return AuthService(tokens, state.mailer, state.identity_verifier, activity_log, state.settings)


def get_notification_service() -> NotificationService:
    return NotificationService()


def get_task_service(
    activity_log: ActivityLogService = Depends(get_activity_log),
    notifications: NotificationService = Depends(get_notification_service),
    broadcaster: RealtimeBroadcaster = Depends(get_broadcaster),
) -> TaskService:
    return TaskService(activity_log, notifications, broadcaster)


def get_meeting_service(
    activity_log: ActivityLogService = Depends(get_activity_log),
    broadcaster: RealtimeBroadcaster = Depends(get_broadcaster),
) -> MeetingService:
    return MeetingService(activity_log, broadcaster)


def get_organization_service(
    activity_log: ActivityLogService = Depends(get_activity_log),
    broadcaster: RealtimeBroadcaster = Depends(get_broadcaster),
) -> OrganizationService:
    return OrganizationService(activity_log, broadcaster)


def get_analytics_service(
    activity_log: ActivityLogService = Depends(get_activity_log),
) -> AnalyticsService:
    return AnalyticsService(activity_log)

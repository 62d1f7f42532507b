"""Activity log endpoint."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_activity_log, get_principal
from app.core.auth import Principal
from app.core.database import get_session
from app.services.activity_logs import ActivityLogService
from prody_shared.schemas.activity_logs import ActivityLogRead

router = APIRouter()


@router.get("", response_model=List[ActivityLogRead])
async def list_activity_logs(
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(get_session),
    activity_log: ActivityLogService = Depends(get_activity_log),
):
    """Most recent 100 entries: the caller's own, or their organization's for admins."""
    return await activity_log.list_for(session, principal.user_id, principal.role)

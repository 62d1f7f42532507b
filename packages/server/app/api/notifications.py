"""Notification endpoints. Recipients only."""

from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_notification_service, get_principal
from app.core.auth import Principal
from app.core.database import UnitOfWork, get_session, get_uow
from app.services.notifications import NotificationService
from prody_shared.schemas.common import MessageResponse
from prody_shared.schemas.notifications import NotificationRead

router = APIRouter()


@router.get("", response_model=List[NotificationRead])
async def list_notifications(
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(get_session),
    notifications: NotificationService = Depends(get_notification_service),
):
    return await notifications.list_for(session, principal.user_id)


@router.put("/{notification_id}/read", response_model=NotificationRead)
async def mark_read(
    notification_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    uow: UnitOfWork = Depends(get_uow),
    notifications: NotificationService = Depends(get_notification_service),
):
    return await notifications.mark_read(uow, principal.user_id, notification_id)


@router.delete("/{notification_id}", response_model=MessageResponse)
async def delete_notification(
    notification_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    uow: UnitOfWork = Depends(get_uow),
    notifications: NotificationService = Depends(get_notification_service),
):
    return await notifications.remove(uow, principal.user_id, notification_id)

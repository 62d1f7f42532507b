"""Notification service: records created by other services, read and cleared by the recipient."""

from __future__ import annotations

import uuid
from enum import Enum

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.database import UnitOfWork
from app.core.errors import NotFound
from app.models.notification import Notification
from prody_shared.schemas.common import MessageResponse
from prody_shared.schemas.notifications import NotificationRead

log = structlog.get_logger()


class NotificationService:
    async def create(
        self,
        uow: UnitOfWork,
        user_id: uuid.UUID,
        title: str,
        message: str,
        type: str | Enum,
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            title=title,
            message=message,
            type=type.value if isinstance(type, Enum) else type,
        )
        uow.session.add(notification)
        await uow.session.flush()
        log.info("notification.created", user_id=str(user_id), type=notification.type)
        return notification

    async def list_for(self, session: AsyncSession, user_id: uuid.UUID) -> list[NotificationRead]:
        result = await session.execute(
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc())
        )
        return [NotificationRead.model_validate(n) for n in result.scalars().all()]

    async def _get_owned(
        self, session: AsyncSession, user_id: uuid.UUID, notification_id: uuid.UUID
    ) -> Notification:
        notification = await session.get(Notification, notification_id)
        if not notification or notification.user_id != user_id:
            raise NotFound("Notification not found or access denied")
        return notification

    async def mark_read(
        self, uow: UnitOfWork, user_id: uuid.UUID, notification_id: uuid.UUID
    ) -> NotificationRead:
        notification = await self._get_owned(uow.session, user_id, notification_id)
        async with uow.transaction():
            notification.read = True
            uow.session.add(notification)
        return NotificationRead.model_validate(notification)

    async def remove(
        self, uow: UnitOfWork, user_id: uuid.UUID, notification_id: uuid.UUID
    ) -> MessageResponse:
        notification = await self._get_owned(uow.session, user_id, notification_id)
        async with uow.transaction():
            await uow.session.delete(notification)
        log.info("notification.deleted", notification_id=str(notification_id))
        return MessageResponse(message="Notification deleted")

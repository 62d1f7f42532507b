"""
Activity log service: the append-only audit trail.

Entries are written inside the caller's unit of work. When the actor
belongs to an organization, the entry is pushed to that organization's
room after the commit; a failed push never removes the entry.
"""

from __future__ import annotations

import uuid
from enum import Enum
from functools import partial
from typing import Any, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.database import UnitOfWork
from app.core.errors import NotFound
from app.core.realtime import RealtimeBroadcaster
from app.models.activity_log import ActivityLog
from app.models.user import User
from prody_shared.schemas.activity_logs import ActivityLogRead, ActorSummary
from prody_shared.schemas.common import RealtimeEvent, Role

log = structlog.get_logger()

LIST_LIMIT = 100


def to_read(entry: ActivityLog, actor: Optional[User] = None) -> ActivityLogRead:
    read = ActivityLogRead.model_validate(entry)
    if actor is not None:
        read.user = ActorSummary(
            first_name=actor.first_name,
            last_name=actor.last_name,
            email=actor.email,
            organization_id=actor.organization_id,
        )
    return read


class ActivityLogService:
    def __init__(self, broadcaster: RealtimeBroadcaster):
        self._broadcaster = broadcaster

    async def record(
        self,
        uow: UnitOfWork,
        actor_user_id: uuid.UUID,
        action: str | Enum,
        entity_type: str,
        entity_id: uuid.UUID | str | None = None,
        details: Optional[dict[str, Any]] = None,
    ) -> ActivityLog:
        actor = await uow.session.get(User, actor_user_id)
        if actor is None:
            raise NotFound("Actor not found")

        entry = ActivityLog(
            user_id=actor.id,
            action=action.value if isinstance(action, Enum) else action,
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id is not None else None,
            details=details,
        )
        uow.session.add(entry)
        await uow.session.flush()

        if actor.organization_id is not None:
            payload = to_read(entry, actor).model_dump(mode="json", by_alias=True)
            uow.on_commit(
                "activity_log.broadcast",
                partial(
                    self._broadcaster.send_to_org,
                    actor.organization_id,
                    RealtimeEvent.NEW_ACTIVITY_LOG,
                    payload,
                ),
            )

        log.info("activity.recorded", action=entry.action, user_id=str(actor.id))
        return entry

    async def list_for(
        self,
        session: AsyncSession,
        requester_user_id: uuid.UUID,
        requester_role: str,
        limit: int = LIST_LIMIT,
    ) -> list[ActivityLogRead]:
        """Admins see their organization's entries; everyone else sees their own."""
        stmt = select(ActivityLog, User).join(User, User.id == ActivityLog.user_id)

        org_id = None
        if requester_role == Role.ADMIN.value:
            requester = await session.get(User, requester_user_id)
            org_id = requester.organization_id if requester else None

        if org_id is not None:
            stmt = stmt.where(User.organization_id == org_id)
        else:
            stmt = stmt.where(ActivityLog.user_id == requester_user_id)

        stmt = stmt.order_by(ActivityLog.created_at.desc()).limit(min(limit, LIST_LIMIT))
        result = await session.execute(stmt)
        return [to_read(entry, actor) for entry, actor in result.all()]

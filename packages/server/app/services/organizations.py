"""
Organization service: creation, slugging and the member roster.
"""

from __future__ import annotations

import re
import uuid
from functools import partial

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import Principal
from app.core.database import UnitOfWork
from app.core.errors import Conflict, InvalidInput, NotFound
from app.core.realtime import RealtimeBroadcaster
from app.models.organization import Organization
from app.models.user import User
from app.services.activity_logs import ActivityLogService
from prody_shared.schemas.common import ActivityAction, RealtimeEvent, Role
from prody_shared.schemas.organizations import OrgDetail, OrgMember, OrgRead

log = structlog.get_logger()

_NON_SLUG_CHARS = re.compile(r"[^\w-]+")

SLUG_TAKEN = "Organization name or slug already taken"


def slugify(name: str) -> str:
    """Lowercase, spaces to dashes, drop everything but word characters and dashes."""
    return _NON_SLUG_CHARS.sub("", name.strip().lower().replace(" ", "-"))


class OrganizationService:
    def __init__(self, activity_log: ActivityLogService, broadcaster: RealtimeBroadcaster):
        self._activity = activity_log
        self._broadcaster = broadcaster

    async def create(self, uow: UnitOfWork, name: str, user_id: uuid.UUID) -> OrgRead:
        """Create an org and make the creator its admin."""
        slug = slugify(name)
        if not slug:
            raise InvalidInput("Organization name must contain letters or digits")

        existing = await uow.session.execute(
            select(Organization).where(Organization.slug == slug)
        )
        if existing.scalar_one_or_none():
            raise Conflict(SLUG_TAKEN)

        creator = await uow.session.get(User, user_id)
        if not creator:
            raise NotFound("User not found")

        async with uow.transaction():
            org = Organization(name=name.strip(), slug=slug)
            uow.session.add(org)
            try:
                await uow.session.flush()
            except IntegrityError as exc:
                # Lost a race with a concurrent create of the same slug
                raise Conflict(SLUG_TAKEN) from exc

            creator.organization_id = org.id
            creator.role = Role.ADMIN.value
            uow.session.add(creator)
            await uow.session.flush()

            await self._activity.record(
                uow, user_id, ActivityAction.ORG_CREATED, "Organization", org.id,
                {"name": org.name, "slug": slug},
            )
            uow.on_commit(
                "organization.joined",
                partial(
                    self._broadcaster.send_to_user,
                    user_id,
                    RealtimeEvent.ORG_JOINED,
                    {
                        "orgId": str(org.id),
                        "role": Role.ADMIN.value,
                        "message": f"Welcome to {org.name}",
                    },
                ),
            )

        log.info("org.created", org_id=str(org.id), slug=slug, creator=str(user_id))
        return OrgRead.model_validate(org)

    async def get_my_organization(self, session: AsyncSession, principal: Principal) -> OrgDetail:
        if principal.org_id is None:
            raise NotFound("You are not part of any organization")
        org = await session.get(Organization, principal.org_id)
        if not org:
            raise NotFound("Organization not found")

        result = await session.execute(
            select(User).where(User.organization_id == org.id).order_by(User.created_at)
        )
        detail = OrgDetail.model_validate(org)
        detail.members = [OrgMember.model_validate(u) for u in result.scalars().all()]
        return detail

"""
Meeting service: scheduling with conflict detection, participation and
creator-only edits.

Intervals are half-open: [start, end). Two meetings by the same creator
conflict iff each starts before the other ends, so back-to-back meetings
are allowed.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from functools import partial
from typing import Optional, Sequence

import structlog
from sqlalchemy import delete, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import Principal
from app.core.database import UnitOfWork
from app.core.errors import Conflict, Forbidden, InvalidInput, NotFound
from app.core.realtime import RealtimeBroadcaster
from app.models.base import _utcnow, as_naive_utc
from app.models.meeting import Meeting, MeetingParticipant
from app.services.activity_logs import ActivityLogService
from prody_shared.schemas.common import (
    CLOSED_MEETING_STATUSES,
    ActivityAction,
    MeetingStatus,
    MessageResponse,
    ParticipantStatus,
    RealtimeEvent,
)
from prody_shared.schemas.meetings import MeetingCreate, MeetingRead, MeetingUpdate, ParticipantRead

log = structlog.get_logger()


def intervals_overlap(s1: datetime, e1: datetime, s2: datetime, e2: datetime) -> bool:
    """Half-open overlap test for [s1, e1) and [s2, e2)."""
    return s1 < e2 and s2 < e1


def validate_interval(start: datetime, end: datetime) -> None:
    if start >= end:
        raise InvalidInput("End time must be after start time")


def to_read(meeting: Meeting, participants: Sequence[MeetingParticipant] = ()) -> MeetingRead:
    read = MeetingRead.model_validate(meeting)
    read.participants = [ParticipantRead.model_validate(p) for p in participants]
    return read


class MeetingService:
    def __init__(self, activity_log: ActivityLogService, broadcaster: RealtimeBroadcaster):
        self._activity = activity_log
        self._broadcaster = broadcaster

    async def find_conflict(
        self,
        session: AsyncSession,
        creator_id: uuid.UUID,
        start: datetime,
        end: datetime,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> Optional[Meeting]:
        """First meeting by ``creator_id`` overlapping [start, end), if any."""
        stmt = select(Meeting).where(
            Meeting.created_by_id == creator_id,
            Meeting.start_time < end,
            Meeting.end_time > start,
        )
        if exclude_id is not None:
            stmt = stmt.where(Meeting.id != exclude_id)
        result = await session.execute(stmt.order_by(Meeting.start_time).limit(1))
        return result.scalars().first()

    async def _get(self, session: AsyncSession, meeting_id: uuid.UUID) -> Meeting:
        meeting = await session.get(Meeting, meeting_id)
        if not meeting:
            raise NotFound("Meeting not found")
        return meeting

    async def _get_owned(self, session: AsyncSession, principal: Principal, meeting_id: uuid.UUID) -> Meeting:
        meeting = await self._get(session, meeting_id)
        if meeting.created_by_id != principal.user_id:
            raise Forbidden("Only the meeting creator can modify this meeting")
        return meeting

    async def _participants(self, session: AsyncSession, meeting_id: uuid.UUID) -> list[MeetingParticipant]:
        result = await session.execute(
            select(MeetingParticipant)
            .where(MeetingParticipant.meeting_id == meeting_id)
            .order_by(MeetingParticipant.joined_at)
        )
        return list(result.scalars().all())

    async def _find_participant(
        self, session: AsyncSession, meeting_id: uuid.UUID, user_id: uuid.UUID
    ) -> Optional[MeetingParticipant]:
        result = await session.execute(
            select(MeetingParticipant).where(
                MeetingParticipant.meeting_id == meeting_id,
                MeetingParticipant.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def _reject_conflict(
        self,
        session: AsyncSession,
        creator_id: uuid.UUID,
        start: datetime,
        end: datetime,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        conflict = await self.find_conflict(session, creator_id, start, end, exclude_id)
        if conflict:
            raise Conflict(
                f'Schedule conflict: You already have a meeting "{conflict.title}" at this time.'
            )

    # -----------------------------------------------------------------------
    # Reads
    # -----------------------------------------------------------------------

    async def list_for(self, session: AsyncSession, principal: Principal) -> list[MeetingRead]:
        """Meetings the caller created or joined, by start time."""
        joined = select(MeetingParticipant.meeting_id).where(
            MeetingParticipant.user_id == principal.user_id
        )
        result = await session.execute(
            select(Meeting)
            .where(or_(Meeting.created_by_id == principal.user_id, Meeting.id.in_(joined)))
            .order_by(Meeting.start_time)
        )
        meetings = list(result.scalars().all())
        return [to_read(m, await self._participants(session, m.id)) for m in meetings]

    async def get(self, session: AsyncSession, principal: Principal, meeting_id: uuid.UUID) -> MeetingRead:
        meeting = await self._get(session, meeting_id)
        participants = await self._participants(session, meeting.id)
        visible = (
            meeting.created_by_id == principal.user_id
            or any(p.user_id == principal.user_id for p in participants)
            or (principal.org_id is not None and meeting.organization_id == principal.org_id)
        )
        if not visible:
            raise NotFound("Meeting not found")
        return to_read(meeting, participants)

    # -----------------------------------------------------------------------
    # Writes
    # -----------------------------------------------------------------------

    async def create(self, uow: UnitOfWork, principal: Principal, req: MeetingCreate) -> MeetingRead:
        start, end = as_naive_utc(req.start_time), as_naive_utc(req.end_time)
        validate_interval(start, end)
        await self._reject_conflict(uow.session, principal.user_id, start, end)

        async with uow.transaction():
            meeting = Meeting(
                title=req.title,
                description=req.description,
                start_time=start,
                end_time=end,
                meeting_link=req.meeting_link,
                status=req.status.value,
                is_recurring=req.is_recurring,
                organization_id=principal.org_id,
                created_by_id=principal.user_id,
            )
            uow.session.add(meeting)
            await uow.session.flush()
            await self._activity.record(
                uow, principal.user_id, ActivityAction.MEETING_CREATED, "Meeting", meeting.id,
                {"title": meeting.title},
            )
            created = to_read(meeting)
            uow.on_commit(
                "meeting.broadcast_created",
                partial(
                    self._broadcaster.send_to_org,
                    principal.org_id,
                    RealtimeEvent.MEETING_CREATED,
                    created.model_dump(mode="json", by_alias=True),
                ),
            )

        log.info("meeting.created", meeting_id=str(meeting.id), user_id=str(principal.user_id))
        return created

    async def update(
        self, uow: UnitOfWork, principal: Principal, meeting_id: uuid.UUID, req: MeetingUpdate
    ) -> MeetingRead:
        meeting = await self._get_owned(uow.session, principal, meeting_id)
        changes = {k: v for k, v in req.model_dump(exclude_unset=True).items() if v is not None}

        start = as_naive_utc(changes.get("start_time", meeting.start_time))
        end = as_naive_utc(changes.get("end_time", meeting.end_time))
        if "start_time" in changes or "end_time" in changes:
            validate_interval(start, end)
            await self._reject_conflict(uow.session, principal.user_id, start, end, exclude_id=meeting.id)

        cancelled = changes.get("status") == MeetingStatus.CANCELLED
        async with uow.transaction():
            for field, value in changes.items():
                setattr(meeting, field, value.value if isinstance(value, MeetingStatus) else value)
            meeting.start_time, meeting.end_time = start, end
            meeting.updated_at = _utcnow()
            uow.session.add(meeting)
            await uow.session.flush()

            action = ActivityAction.MEETING_CANCELLED if cancelled else ActivityAction.MEETING_UPDATED
            await self._activity.record(
                uow, principal.user_id, action, "Meeting", meeting.id,
                {"title": meeting.title, "fields": sorted(changes)},
            )
            updated = to_read(meeting, await self._participants(uow.session, meeting.id))
            uow.on_commit(
                "meeting.broadcast_updated",
                partial(
                    self._broadcaster.send_to_org,
                    meeting.organization_id,
                    RealtimeEvent.MEETING_UPDATED,
                    updated.model_dump(mode="json", by_alias=True),
                ),
            )

        log.info("meeting.updated", meeting_id=str(meeting.id), fields=sorted(changes))
        return updated

    async def delete(self, uow: UnitOfWork, principal: Principal, meeting_id: uuid.UUID) -> MessageResponse:
        meeting = await self._get_owned(uow.session, principal, meeting_id)

        async with uow.transaction():
            await self._activity.record(
                uow, principal.user_id, ActivityAction.MEETING_DELETED, "Meeting", meeting.id,
                {"title": meeting.title},
            )
            await uow.session.execute(
                delete(MeetingParticipant).where(MeetingParticipant.meeting_id == meeting.id)
            )
            await uow.session.delete(meeting)

        log.info("meeting.deleted", meeting_id=str(meeting_id))
        return MessageResponse(message="Meeting deleted successfully")

    async def join(self, uow: UnitOfWork, principal: Principal, meeting_id: uuid.UUID) -> MeetingRead:
        meeting = await self._get(uow.session, meeting_id)
        if meeting.status in {s.value for s in CLOSED_MEETING_STATUSES}:
            raise InvalidInput(f"Cannot join a {meeting.status} meeting")

        if await self._find_participant(uow.session, meeting.id, principal.user_id):
            raise Conflict("You are already a participant")

        async with uow.transaction():
            uow.session.add(
                MeetingParticipant(
                    meeting_id=meeting.id,
                    user_id=principal.user_id,
                    status=ParticipantStatus.ACCEPTED.value,
                )
            )
            try:
                await uow.session.flush()
            except IntegrityError as exc:
                # Lost a race with a concurrent join by the same user
                raise Conflict("You are already a participant") from exc
            await self._activity.record(
                uow, principal.user_id, ActivityAction.MEETING_JOINED, "Meeting", meeting.id,
                {"title": meeting.title},
            )
            joined = to_read(meeting, await self._participants(uow.session, meeting.id))
            uow.on_commit(
                "meeting.notify_creator",
                partial(
                    self._broadcaster.send_to_user,
                    meeting.created_by_id,
                    RealtimeEvent.PARTICIPANT_JOINED,
                    {
                        "meetingId": str(meeting.id),
                        "userId": str(principal.user_id),
                        "message": f"{principal.email} joined your meeting: {meeting.title}",
                    },
                ),
            )

        log.info("meeting.joined", meeting_id=str(meeting.id), user_id=str(principal.user_id))
        return joined

"""
Meeting endpoints: scheduling with conflict detection, creator-only edits, joining.
"""

from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_meeting_service, get_principal
from app.core.auth import Principal
from app.core.database import UnitOfWork, get_session, get_uow
from app.services.meetings import MeetingService
from prody_shared.schemas.common import MessageResponse
from prody_shared.schemas.meetings import MeetingCreate, MeetingRead, MeetingUpdate

router = APIRouter()


@router.get("", response_model=List[MeetingRead])
async def list_meetings(
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(get_session),
    meetings: MeetingService = Depends(get_meeting_service),
):
    return await meetings.list_for(session, principal)


@router.post("", response_model=MeetingRead, status_code=201)
async def create_meeting(
    body: MeetingCreate,
    principal: Principal = Depends(get_principal),
    uow: UnitOfWork = Depends(get_uow),
    meetings: MeetingService = Depends(get_meeting_service),
):
    """Schedule a meeting; rejected if it overlaps another of the caller's meetings."""
    return await meetings.create(uow, principal, body)


@router.get("/{meeting_id}", response_model=MeetingRead)
async def get_meeting(
    meeting_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(get_session),
    meetings: MeetingService = Depends(get_meeting_service),
):
    return await meetings.get(session, principal, meeting_id)


@router.put("/{meeting_id}", response_model=MeetingRead)
async def update_meeting(
    meeting_id: uuid.UUID,
    body: MeetingUpdate,
    principal: Principal = Depends(get_principal),
    uow: UnitOfWork = Depends(get_uow),
    meetings: MeetingService = Depends(get_meeting_service),
):
    return await meetings.update(uow, principal, meeting_id, body)


@router.delete("/{meeting_id}", response_model=MessageResponse)
async def delete_meeting(
    meeting_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    uow: UnitOfWork = Depends(get_uow),
    meetings: MeetingService = Depends(get_meeting_service),
):
    return await meetings.delete(uow, principal, meeting_id)


@router.post("/{meeting_id}/join", response_model=MeetingRead)
async def join_meeting(
    meeting_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    uow: UnitOfWork = Depends(get_uow),
    meetings: MeetingService = Depends(get_meeting_service),
):
    return await meetings.join(uow, principal, meeting_id)

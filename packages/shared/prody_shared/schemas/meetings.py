"""Meeting schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from .common import CamelModel, MeetingStatus, ParticipantStatus


class MeetingCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    start_time: datetime
    end_time: datetime
    meeting_link: Optional[str] = None
    status: MeetingStatus = MeetingStatus.SCHEDULED
    is_recurring: bool = False


class MeetingUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    meeting_link: Optional[str] = None
    status: Optional[MeetingStatus] = None
    is_recurring: Optional[bool] = None


class ParticipantRead(CamelModel):
    user_id: uuid.UUID
    status: ParticipantStatus
    joined_at: datetime


class MeetingRead(CamelModel):
    id: uuid.UUID
    title: str
    description: Optional[str] = None
    start_time: datetime
    end_time: datetime
    meeting_link: Optional[str] = None
    status: MeetingStatus
    is_recurring: bool
    organization_id: Optional[uuid.UUID] = None
    created_by_id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    participants: List[ParticipantRead] = Field(default_factory=list)

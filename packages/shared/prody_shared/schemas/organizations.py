"""
Organization schemas: creation request, read model and the member roster.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from .common import CamelModel, Role


class OrgCreateRequest(CamelModel):
    name: str = Field(..., min_length=1, max_length=100, description="Organization display name")


class OrgRead(CamelModel):
    id: uuid.UUID
    name: str
    slug: str
    created_at: datetime


class OrgMember(CamelModel):
    id: uuid.UUID
    first_name: str
    last_name: Optional[str] = None
    email: str
    role: Role


class OrgDetail(OrgRead):
    members: List[OrgMember] = Field(default_factory=list)

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Optional

from .common import CamelModel


class ActorSummary(CamelModel):
    first_name: str
    last_name: Optional[str] = None
    email: Optional[str] = None
    organization_id: Optional[uuid.UUID] = None


class ActivityLogRead(CamelModel):
    id: uuid.UUID
    user_id: uuid.UUID
    action: str
    entity_type: str
    entity_id: Optional[str] = None
    details: Optional[dict[str, Any]] = None
    created_at: datetime
    user: Optional[ActorSummary] = None

from __future__ import annotations

import uuid
from datetime import datetime

from .common import CamelModel


class NotificationRead(CamelModel):
    id: uuid.UUID
    user_id: uuid.UUID
    title: str
    message: str
    type: str
    read: bool
    created_at: datetime

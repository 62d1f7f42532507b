# SQLModel definitions, imported here to ensure metadata is populated for Alembic.
from .base import UUIDMixin, TimestampMixin  # noqa: F401
from .organization import Organization  # noqa: F401
from .user import User  # noqa: F401
from .task import Task  # noqa: F401
from .meeting import Meeting, MeetingParticipant  # noqa: F401
from .notification import Notification  # noqa: F401
from .activity_log import ActivityLog  # noqa: F401

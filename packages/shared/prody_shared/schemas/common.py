from enum import Enum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class Role(str, Enum):
    MEMBER = "member"
    ADMIN = "admin"


class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class MeetingStatus(str, Enum):
    SCHEDULED = "scheduled"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Meetings in these states can no longer be joined
CLOSED_MEETING_STATUSES = (MeetingStatus.CANCELLED, MeetingStatus.COMPLETED)


class ParticipantStatus(str, Enum):
    INVITED = "invited"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class NotificationType(str, Enum):
    TASK_ASSIGNMENT = "TASK_ASSIGNMENT"
    TASK_REASSIGNMENT = "TASK_REASSIGNMENT"


class ActivityAction(str, Enum):
    USER_SIGNUP_INITIATED = "USER_SIGNUP_INITIATED"
    EMAIL_VERIFIED = "EMAIL_VERIFIED"
    USER_LOGIN = "USER_LOGIN"
    PASSWORD_RESET_REQUEST = "PASSWORD_RESET_REQUEST"
    PASSWORD_CHANGED = "PASSWORD_CHANGED"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    TASK_CREATED = "TASK_CREATED"
    TASK_UPDATED = "TASK_UPDATED"
    TASK_DELETED = "TASK_DELETED"
    MEETING_CREATED = "MEETING_CREATED"
    MEETING_UPDATED = "MEETING_UPDATED"
    MEETING_CANCELLED = "MEETING_CANCELLED"
    MEETING_DELETED = "MEETING_DELETED"
    MEETING_JOINED = "MEETING_JOINED"
    ORG_CREATED = "ORG_CREATED"


class RealtimeEvent(str, Enum):
    CONNECTED = "CONNECTED"
    PONG = "PONG"
    NEW_ACTIVITY_LOG = "NEW_ACTIVITY_LOG"
    MEETING_CREATED = "MEETING_CREATED"
    MEETING_UPDATED = "MEETING_UPDATED"
    PARTICIPANT_JOINED = "PARTICIPANT_JOINED"
    ORG_JOINED = "ORG_JOINED"
    NEW_NOTIFICATION = "NEW_NOTIFICATION"
    TASK_CREATED = "TASK_CREATED"


class CamelModel(BaseModel):
    """Base for API models: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class PageMeta(CamelModel):
    total: int
    page: int
    last_page: int


class MessageResponse(BaseModel):
    message: str

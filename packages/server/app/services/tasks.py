"""
Task service layer: business logic for tasks and their assignment notifications.

Handles:
- Task CRUD scoped to creator, assignee and organization
- Assignment notifications written in the same transaction as the task
- Post-commit pushes: the assignee's notification and the org-wide
  ``TASK_CREATED`` event (creation only, never on reassignment)
"""

from __future__ import annotations

import math
import uuid
from datetime import datetime
from enum import Enum
from functools import partial
from typing import Any, Optional

import structlog
from sqlalchemy import func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import Principal
from app.core.database import UnitOfWork
from app.core.errors import Forbidden, NotFound
from app.core.realtime import RealtimeBroadcaster
from app.models.base import _utcnow, as_naive_utc
from app.models.task import Task
from app.models.user import User
from app.services.activity_logs import ActivityLogService
from app.services.notifications import NotificationService
from prody_shared.schemas.common import (
    ActivityAction,
    MessageResponse,
    NotificationType,
    PageMeta,
    RealtimeEvent,
    TaskPriority,
    TaskStatus,
)
from prody_shared.schemas.notifications import NotificationRead
from prody_shared.schemas.tasks import TaskCreate, TaskPage, TaskRead, TaskUpdate

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _column_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return as_naive_utc(value)
    return value


def _can_see(task: Task, principal: Principal) -> bool:
    return (
        task.created_by_id == principal.user_id
        or task.assigned_to_id == principal.user_id
        or (principal.org_id is not None and task.organization_id == principal.org_id)
    )


def _dump(model) -> dict:
    return model.model_dump(mode="json", by_alias=True)


class TaskService:
    def __init__(
        self,
        activity_log: ActivityLogService,
        notifications: NotificationService,
        broadcaster: RealtimeBroadcaster,
    ):
        self._activity = activity_log
        self._notifications = notifications
        self._broadcaster = broadcaster

    async def _get_visible(
        self, session: AsyncSession, principal: Principal, task_id: uuid.UUID
    ) -> Task:
        task = await session.get(Task, task_id)
        if not task or not _can_see(task, principal):
            raise NotFound("Task not found")
        return task

    async def _require_user(self, session: AsyncSession, user_id: uuid.UUID) -> User:
        user = await session.get(User, user_id)
        if not user:
            raise NotFound("Assigned user not found")
        return user

    async def _notify(
        self,
        uow: UnitOfWork,
        user_id: uuid.UUID,
        title: str,
        message: str,
        type: NotificationType,
    ) -> None:
        """Write the notification record now; push it to the user after commit."""
        notification = await self._notifications.create(uow, user_id, title, message, type)
        uow.on_commit(
            "task.notify_assignee",
            partial(
                self._broadcaster.send_to_user,
                user_id,
                RealtimeEvent.NEW_NOTIFICATION,
                _dump(NotificationRead.model_validate(notification)),
            ),
        )

    # -----------------------------------------------------------------------
    # Reads
    # -----------------------------------------------------------------------

    async def list_mine(self, session: AsyncSession, principal: Principal) -> list[TaskRead]:
        """Tasks the caller created or is assigned to, newest first."""
        result = await session.execute(
            select(Task)
            .where(
                or_(
                    Task.created_by_id == principal.user_id,
                    Task.assigned_to_id == principal.user_id,
                )
            )
            .order_by(Task.created_at.desc())
        )
        return [TaskRead.model_validate(t) for t in result.scalars().all()]

    async def search(
        self,
        session: AsyncSession,
        principal: Principal,
        status: Optional[TaskStatus] = None,
        priority: Optional[TaskPriority] = None,
        page: int = 1,
        limit: int = 10,
    ) -> TaskPage:
        """Organization-wide (or personal, without an org) search with pagination."""
        if principal.org_id is not None:
            scope = Task.organization_id == principal.org_id
        else:
            scope = or_(
                Task.created_by_id == principal.user_id,
                Task.assigned_to_id == principal.user_id,
            )
        filters = [scope]
        if status:
            filters.append(Task.status == status.value)
        if priority:
            filters.append(Task.priority == priority.value)

        total = (
            await session.execute(select(func.count()).select_from(Task).where(*filters))
        ).scalar_one()
        result = await session.execute(
            select(Task)
            .where(*filters)
            .order_by(Task.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return TaskPage(
            items=[TaskRead.model_validate(t) for t in result.scalars().all()],
            meta=PageMeta(total=total, page=page, last_page=math.ceil(total / limit)),
        )

    async def get(self, session: AsyncSession, principal: Principal, task_id: uuid.UUID) -> TaskRead:
        return TaskRead.model_validate(await self._get_visible(session, principal, task_id))

    # -----------------------------------------------------------------------
    # Writes
    # -----------------------------------------------------------------------

    async def create(self, uow: UnitOfWork, principal: Principal, req: TaskCreate) -> TaskRead:
        if req.assigned_to_id:
            await self._require_user(uow.session, req.assigned_to_id)

        date = as_naive_utc(req.date) or _utcnow()
        async with uow.transaction():
            task = Task(
                title=req.title,
                description=req.description,
                date=date,
                due_date=as_naive_utc(req.due_date),
                created_day=date.strftime("%A"),
                priority=req.priority.value,
                status=req.status.value,
                blocker=req.blocker,
                assigned_to_id=req.assigned_to_id,
                created_by_id=principal.user_id,
                organization_id=principal.org_id,
            )
            uow.session.add(task)
            await uow.session.flush()

            await self._activity.record(
                uow, principal.user_id, ActivityAction.TASK_CREATED, "Task", task.id,
                {"title": task.title},
            )

            if task.assigned_to_id:
                await self._notify(
                    uow,
                    task.assigned_to_id,
                    "New Task Assigned",
                    f"You have been assigned to task: {task.title}",
                    NotificationType.TASK_ASSIGNMENT,
                )

            created = TaskRead.model_validate(task)
            uow.on_commit(
                "task.broadcast_created",
                partial(
                    self._broadcaster.send_to_org,
                    principal.org_id,
                    RealtimeEvent.TASK_CREATED,
                    _dump(created),
                ),
            )

        log.info("task.created", task_id=str(task.id), user_id=str(principal.user_id))
        return created

    async def update(self, uow: UnitOfWork, principal: Principal, req: TaskUpdate) -> TaskRead:
        task = await self._get_visible(uow.session, principal, req.task_id)
        changes = req.model_dump(exclude_unset=True, exclude={"task_id"})
        if changes.get("assigned_to_id"):
            await self._require_user(uow.session, changes["assigned_to_id"])
        # Required columns cannot be cleared
        for field in ("title", "date", "priority", "status"):
            if field in changes and changes[field] is None:
                del changes[field]

        previous_assignee = task.assigned_to_id
        async with uow.transaction():
            for field, value in changes.items():
                setattr(task, field, _column_value(value))
            if "date" in changes:
                task.created_day = task.date.strftime("%A")
            task.updated_at = _utcnow()
            uow.session.add(task)
            await uow.session.flush()

            await self._activity.record(
                uow, principal.user_id, ActivityAction.TASK_UPDATED, "Task", task.id,
                {"title": task.title, "fields": sorted(changes)},
            )

            assignee = task.assigned_to_id
            if assignee and assignee != previous_assignee:
                await self._notify(
                    uow,
                    assignee,
                    "Task Assignment Updated",
                    f'Task "{task.title}" has been reassigned to you.',
                    NotificationType.TASK_REASSIGNMENT,
                )
            elif assignee and assignee != principal.user_id:
                uow.on_commit(
                    "task.notify_update",
                    partial(
                        self._broadcaster.send_to_user,
                        assignee,
                        RealtimeEvent.NEW_NOTIFICATION,
                        {
                            "title": "Task Updated",
                            "message": f'Task "{task.title}" has been updated.',
                            "taskId": str(task.id),
                        },
                    ),
                )

        log.info("task.updated", task_id=str(task.id), fields=sorted(changes))
        return TaskRead.model_validate(task)

    async def delete(self, uow: UnitOfWork, principal: Principal, task_id: uuid.UUID) -> MessageResponse:
        task = await self._get_visible(uow.session, principal, task_id)
        if task.created_by_id != principal.user_id and not principal.is_admin:
            raise Forbidden("Only the task creator or an admin can delete this task")

        async with uow.transaction():
            await self._activity.record(
                uow, principal.user_id, ActivityAction.TASK_DELETED, "Task", task.id,
                {"title": task.title},
            )
            await uow.session.delete(task)

        log.info("task.deleted", task_id=str(task_id))
        return MessageResponse(message="Task deleted successfully")

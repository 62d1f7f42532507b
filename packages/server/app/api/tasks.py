"""
Task endpoints.

- Creation notifies the assignee and the creator's organization
- Reassignment notifies only the new assignee
- Reads and deletes never touch notifications
"""

from __future__ import annotations

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_principal, get_task_service
from app.core.auth import Principal
from app.core.database import UnitOfWork, get_session, get_uow
from app.services.tasks import TaskService
from prody_shared.schemas.common import MessageResponse, TaskPriority, TaskStatus
from prody_shared.schemas.tasks import TaskCreate, TaskPage, TaskRead, TaskUpdate

router = APIRouter()


@router.get("", response_model=List[TaskRead])
async def list_tasks(
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(get_session),
    tasks: TaskService = Depends(get_task_service),
):
    """Tasks the caller created or is assigned to."""
    return await tasks.list_mine(session, principal)


@router.get("/search", response_model=TaskPage)
async def search_tasks(
    status: Optional[TaskStatus] = None,
    priority: Optional[TaskPriority] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(get_session),
    tasks: TaskService = Depends(get_task_service),
):
    return await tasks.search(session, principal, status, priority, page, limit)


@router.post("", response_model=TaskRead, status_code=201)
async def create_task(
    body: TaskCreate,
    principal: Principal = Depends(get_principal),
    uow: UnitOfWork = Depends(get_uow),
    tasks: TaskService = Depends(get_task_service),
):
    return await tasks.create(uow, principal, body)


@router.post("/update", response_model=TaskRead)
async def update_task(
    body: TaskUpdate,
    principal: Principal = Depends(get_principal),
    uow: UnitOfWork = Depends(get_uow),
    tasks: TaskService = Depends(get_task_service),
):
    return await tasks.update(uow, principal, body)


@router.delete("/delete/{task_id}", response_model=MessageResponse)
async def delete_task(
    task_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    uow: UnitOfWork = Depends(get_uow),
    tasks: TaskService = Depends(get_task_service),
):
    return await tasks.delete(uow, principal, task_id)


@router.get("/{task_id}", response_model=TaskRead)
async def get_task(
    task_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(get_session),
    tasks: TaskService = Depends(get_task_service),
):
    return await tasks.get(session, principal, task_id)

"""
Integration tests for task endpoints and their assignment notifications.

Tests cover:
- Task creation with and without an assignee (exactly one notification)
- Atomicity: a failed notification insert leaves no task behind
- Reassignment notifies only the new assignee
- Update pushes to an unchanged assignee, never to the updater
- Listing, search filters and pagination metadata
- Visibility and delete permissions
"""

from __future__ import annotations

import uuid
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func
from sqlmodel import select

from app.core.auth import Principal
from app.core.database import UnitOfWork
from app.core.realtime import RealtimeBroadcaster, org_room, user_room
from app.models.activity_log import ActivityLog
from app.models.notification import Notification
from app.models.task import Task
from app.services.activity_logs import ActivityLogService
from app.services.tasks import TaskService
from prody_shared.schemas.common import Role
from prody_shared.schemas.tasks import TaskCreate


async def _count(session_factory, model, *filters) -> int:
    async with session_factory() as session:
        result = await session.execute(select(func.count()).select_from(model).where(*filters))
        return result.scalar_one()


async def _notifications(session_factory, user_id) -> list[Notification]:
    async with session_factory() as session:
        result = await session.execute(select(Notification).where(Notification.user_id == user_id))
        return list(result.scalars().all())


@pytest.fixture
async def team(make_org, make_user):
    """An organization with an admin and two members."""
    org = await make_org("Acme")
    admin = await make_user("boss@example.com", role=Role.ADMIN, org=org)
    alice = await make_user("alice@example.com", org=org)
    bob = await make_user("bob@example.com", org=org)
    return org, admin, alice, bob


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------

class TestCreateTask:
    @pytest.mark.asyncio
    async def test_create_without_assignee(self, client, team, session_factory, broadcaster):
        org, _, (alice, headers), _ = team
        resp = await client.post(
            "/api/tasks",
            json={"title": "Write docs", "date": "2026-03-02T10:00:00Z", "priority": "high"},
            headers=headers,
        )
        assert resp.status_code == 201
        data = resp.json()
        assert data["createdDay"] == "Monday"
        assert data["priority"] == "high"
        assert data["status"] == "todo"
        assert data["createdById"] == str(alice.id)
        assert data["organizationId"] == str(org.id)

        assert await _count(session_factory, Notification) == 0
        assert await _count(session_factory, ActivityLog, ActivityLog.action == "TASK_CREATED") == 1
        assert [room for room, _ in broadcaster.events("TASK_CREATED")] == [org_room(org.id)]
        assert broadcaster.events("NEW_NOTIFICATION") == []

    @pytest.mark.asyncio
    async def test_create_with_assignee_notifies_once(self, client, team, session_factory, broadcaster):
        _, _, (alice, headers), (bob, _) = team
        resp = await client.post(
            "/api/tasks",
            json={"title": "Fix login", "assignedToId": str(bob.id)},
            headers=headers,
        )
        assert resp.status_code == 201

        notes = await _notifications(session_factory, bob.id)
        assert len(notes) == 1
        assert notes[0].type == "TASK_ASSIGNMENT"
        assert notes[0].title == "New Task Assigned"
        assert notes[0].message == "You have been assigned to task: Fix login"
        assert await _count(session_factory, Notification) == 1

        pushes = broadcaster.events("NEW_NOTIFICATION")
        assert [room for room, _ in pushes] == [user_room(bob.id)]
        assert pushes[0][1]["id"] == str(notes[0].id)

    @pytest.mark.asyncio
    async def test_unknown_assignee(self, client, team, session_factory):
        _, _, (_, headers), _ = team
        resp = await client.post(
            "/api/tasks", json={"title": "Ghost work", "assignedToId": str(uuid.uuid4())}, headers=headers
        )
        assert resp.status_code == 404
        assert resp.json()["message"] == "Assigned user not found"
        assert await _count(session_factory, Task) == 0

    @pytest.mark.asyncio
    async def test_personal_task_without_org_is_not_broadcast(self, client, make_user, broadcaster):
        _, headers = await make_user("solo@example.com")
        resp = await client.post("/api/tasks", json={"title": "Mine"}, headers=headers)
        assert resp.status_code == 201
        assert resp.json()["organizationId"] is None
        assert broadcaster.sent == []

    @pytest.mark.asyncio
    async def test_title_is_required(self, client, team):
        _, _, (_, headers), _ = team
        resp = await client.post("/api/tasks", json={"description": "no title"}, headers=headers)
        assert resp.status_code == 400
        assert "title" in resp.json()["message"]

    @pytest.mark.asyncio
    async def test_requires_credential(self, client):
        resp = await client.post("/api/tasks", json={"title": "x"})
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_failed_notification_rolls_back_task(self, team, session_factory):
        """The task, its log entry and its notification commit together or not at all."""
        org, _, (alice, _), (bob, _) = team
        broadcaster = AsyncMock(spec=RealtimeBroadcaster)
        notifications = AsyncMock()
        notifications.create.side_effect = RuntimeError("insert failed")
        service = TaskService(ActivityLogService(broadcaster), notifications, broadcaster)
        principal = Principal(user_id=alice.id, email=alice.email, role="member", org_id=org.id)

        async with session_factory() as session:
            with pytest.raises(RuntimeError):
                await service.create(
                    UnitOfWork(session), principal, TaskCreate(title="Doomed", assigned_to_id=bob.id)
                )

        assert await _count(session_factory, Task) == 0
        assert await _count(session_factory, ActivityLog) == 0
        broadcaster.send_to_org.assert_not_called()
        broadcaster.send_to_user.assert_not_called()


# ---------------------------------------------------------------------------
# Update
# ---------------------------------------------------------------------------

class TestUpdateTask:
    @pytest.fixture
    async def task(self, client, team):
        _, _, (_, headers), (bob, _) = team
        resp = await client.post(
            "/api/tasks", json={"title": "Ship it", "assignedToId": str(bob.id)}, headers=headers
        )
        return resp.json()

    @pytest.mark.asyncio
    async def test_partial_update(self, client, team, task, session_factory):
        _, _, (_, headers), _ = team
        resp = await client.post(
            "/api/tasks/update", json={"taskId": task["id"], "status": "in-progress"}, headers=headers
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "in-progress"
        assert resp.json()["title"] == "Ship it"

        async with session_factory() as session:
            entry = (
                await session.execute(select(ActivityLog).where(ActivityLog.action == "TASK_UPDATED"))
            ).scalar_one()
        assert entry.details["fields"] == ["status"]

    @pytest.mark.asyncio
    async def test_reassignment_notifies_only_new_assignee(
        self, client, team, task, session_factory, broadcaster
    ):
        _, (admin, _), (alice, headers), (bob, _) = team
        broadcaster.sent.clear()

        resp = await client.post(
            "/api/tasks/update", json={"taskId": task["id"], "assignedToId": str(admin.id)}, headers=headers
        )
        assert resp.status_code == 200

        notes = await _notifications(session_factory, admin.id)
        assert [n.type for n in notes] == ["TASK_REASSIGNMENT"]
        assert notes[0].message == 'Task "Ship it" has been reassigned to you.'
        assert len(await _notifications(session_factory, bob.id)) == 1
        assert [room for room, _ in broadcaster.events("NEW_NOTIFICATION")] == [user_room(admin.id)]
        assert broadcaster.events("TASK_CREATED") == []

    @pytest.mark.asyncio
    async def test_unchanged_assignee_gets_update_push(self, client, team, task, session_factory, broadcaster):
        _, _, (_, headers), (bob, _) = team
        broadcaster.sent.clear()

        await client.post("/api/tasks/update", json={"taskId": task["id"], "priority": "low"}, headers=headers)

        pushes = broadcaster.events("NEW_NOTIFICATION")
        assert [room for room, _ in pushes] == [user_room(bob.id)]
        assert pushes[0][1]["title"] == "Task Updated"
        assert len(await _notifications(session_factory, bob.id)) == 1

    @pytest.mark.asyncio
    async def test_assignee_updating_own_task_gets_no_push(self, client, team, task, broadcaster):
        _, _, _, (_, bob_headers) = team
        broadcaster.sent.clear()

        resp = await client.post(
            "/api/tasks/update", json={"taskId": task["id"], "status": "completed"}, headers=bob_headers
        )
        assert resp.status_code == 200
        assert broadcaster.events("NEW_NOTIFICATION") == []

    @pytest.mark.asyncio
    async def test_update_unknown_task(self, client, team):
        _, _, (_, headers), _ = team
        resp = await client.post(
            "/api/tasks/update", json={"taskId": str(uuid.uuid4()), "title": "x"}, headers=headers
        )
        assert resp.status_code == 404
        assert resp.json()["message"] == "Task not found"


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

class TestReadTasks:
    @pytest.mark.asyncio
    async def test_list_returns_created_and_assigned(self, client, team):
        _, (admin, admin_headers), (_, alice_headers), (bob, bob_headers) = team
        await client.post("/api/tasks", json={"title": "Mine"}, headers=bob_headers)
        await client.post(
            "/api/tasks", json={"title": "For bob", "assignedToId": str(bob.id)}, headers=alice_headers
        )
        await client.post("/api/tasks", json={"title": "Unrelated"}, headers=admin_headers)

        resp = await client.get("/api/tasks", headers=bob_headers)
        assert resp.status_code == 200
        assert sorted(t["title"] for t in resp.json()) == ["For bob", "Mine"]

    @pytest.mark.asyncio
    async def test_search_filters_and_paginates(self, client, team):
        _, _, (_, headers), _ = team
        for n in range(5):
            await client.post(
                "/api/tasks",
                json={"title": f"T{n}", "priority": "high" if n % 2 == 0 else "low"},
                headers=headers,
            )

        resp = await client.get("/api/tasks/search?priority=high&page=1&limit=2", headers=headers)
        assert resp.status_code == 200
        data = resp.json()
        assert data["meta"] == {"total": 3, "page": 1, "lastPage": 2}
        assert len(data["items"]) == 2
        assert all(t["priority"] == "high" for t in data["items"])

        page_2 = (await client.get("/api/tasks/search?priority=high&page=2&limit=2", headers=headers)).json()
        assert len(page_2["items"]) == 1

    @pytest.mark.asyncio
    async def test_search_rejects_bad_limit(self, client, team):
        _, _, (_, headers), _ = team
        resp = await client.get("/api/tasks/search?limit=1000", headers=headers)
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_get_task_visibility(self, client, team, make_user):
        _, _, (_, headers), (_, bob_headers) = team
        task = (await client.post("/api/tasks", json={"title": "Team task"}, headers=headers)).json()
        _, stranger_headers = await make_user("stranger@example.com")

        assert (await client.get(f"/api/tasks/{task['id']}", headers=bob_headers)).status_code == 200
        assert (await client.get(f"/api/tasks/{task['id']}", headers=stranger_headers)).status_code == 404


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------

class TestDeleteTask:
    @pytest.mark.asyncio
    async def test_creator_can_delete(self, client, team, session_factory):
        _, _, (_, headers), _ = team
        task = (await client.post("/api/tasks", json={"title": "Temp"}, headers=headers)).json()

        resp = await client.delete(f"/api/tasks/delete/{task['id']}", headers=headers)
        assert resp.status_code == 200
        assert resp.json() == {"message": "Task deleted successfully"}
        assert await _count(session_factory, Task) == 0
        assert await _count(session_factory, ActivityLog, ActivityLog.action == "TASK_DELETED") == 1

    @pytest.mark.asyncio
    async def test_other_member_cannot_delete(self, client, team):
        _, _, (_, headers), (_, bob_headers) = team
        task = (await client.post("/api/tasks", json={"title": "Temp"}, headers=headers)).json()
        resp = await client.delete(f"/api/tasks/delete/{task['id']}", headers=bob_headers)
        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_admin_can_delete(self, client, team):
        _, (_, admin_headers), (_, headers), _ = team
        task = (await client.post("/api/tasks", json={"title": "Temp"}, headers=headers)).json()
        resp = await client.delete(f"/api/tasks/delete/{task['id']}", headers=admin_headers)
        assert resp.status_code == 200

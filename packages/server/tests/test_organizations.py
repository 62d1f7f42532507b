"""
Tests for organizations.

Tests cover:
- Slug derivation from the display name
- Creation makes the caller an admin and announces it on their user room
- Duplicate slugs conflict
- The caller's organization with its member roster
"""

from __future__ import annotations

import pytest
from sqlmodel import select

from app.core.realtime import user_room
from app.models.activity_log import ActivityLog
from app.models.user import User
from app.services.organizations import slugify
from prody_shared.schemas.common import Role


class TestSlugify:
    @pytest.mark.parametrize(
        "name,slug",
        [
            ("My Company", "my-company"),
            ("  Acme  ", "acme"),
            ("R&D Team!", "rd-team"),
            ("already-slugged", "already-slugged"),
        ],
    )
    def test_slugify(self, name, slug):
        assert slugify(name) == slug


class TestCreateOrganization:
    @pytest.mark.asyncio
    async def test_creator_becomes_admin(self, client, make_user, session_factory, broadcaster):
        user, headers = await make_user("founder@example.com")

        resp = await client.post("/api/organizations", json={"name": "My Company"}, headers=headers)
        assert resp.status_code == 201
        org = resp.json()
        assert org["name"] == "My Company"
        assert org["slug"] == "my-company"

        async with session_factory() as session:
            stored = await session.get(User, user.id)
            actions = (
                await session.execute(select(ActivityLog.action).where(ActivityLog.user_id == user.id))
            ).scalars().all()
        assert stored.role == Role.ADMIN.value
        assert str(stored.organization_id) == org["id"]
        assert actions == ["ORG_CREATED"]

        joined = broadcaster.events("ORG_JOINED")
        assert [room for room, _ in joined] == [user_room(user.id)]
        assert joined[0][1] == {"orgId": org["id"], "role": "admin", "message": "Welcome to My Company"}

    @pytest.mark.asyncio
    async def test_duplicate_slug_conflicts(self, client, make_user):
        _, first = await make_user("first@example.com")
        _, second = await make_user("second@example.com")

        assert (await client.post("/api/organizations", json={"name": "My Company"}, headers=first)).status_code == 201
        resp = await client.post("/api/organizations", json={"name": "my company"}, headers=second)
        assert resp.status_code == 409
        assert resp.json()["success"] is False

    @pytest.mark.asyncio
    async def test_name_without_slug_characters(self, client, make_user):
        _, headers = await make_user("founder@example.com")
        resp = await client.post("/api/organizations", json={"name": "!!!"}, headers=headers)
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_empty_name_rejected(self, client, make_user):
        _, headers = await make_user("founder@example.com")
        resp = await client.post("/api/organizations", json={"name": ""}, headers=headers)
        assert resp.status_code == 400


class TestMyOrganization:
    @pytest.mark.asyncio
    async def test_lists_members(self, client, make_org, make_user):
        org = await make_org("Acme")
        await make_user("boss@example.com", role=Role.ADMIN, org=org, first_name="Boss")
        _, headers = await make_user("alice@example.com", org=org, first_name="Alice")
        await make_user("outsider@example.com")

        resp = await client.get("/api/organizations/me", headers=headers)
        assert resp.status_code == 200
        data = resp.json()
        assert data["slug"] == "acme"
        assert sorted(m["email"] for m in data["members"]) == ["alice@example.com", "boss@example.com"]
        roles = {m["firstName"]: m["role"] for m in data["members"]}
        assert roles == {"Boss": "admin", "Alice": "member"}

    @pytest.mark.asyncio
    async def test_without_organization(self, client, make_user):
        _, headers = await make_user("solo@example.com")
        resp = await client.get("/api/organizations/me", headers=headers)
        assert resp.status_code == 404
        assert resp.json()["message"] == "You are not part of any organization"

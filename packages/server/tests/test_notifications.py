"""
Tests for notification endpoints: listing, marking read and deleting, all
restricted to the recipient.
"""

from __future__ import annotations

import uuid

import pytest


@pytest.fixture
async def assigned(client, make_org, make_user):
    """Bob with one assignment notification from Alice."""
    org = await make_org("Acme")
    _, alice_headers = await make_user("alice@example.com", org=org)
    bob, bob_headers = await make_user("bob@example.com", org=org)
    await client.post(
        "/api/tasks", json={"title": "Review PR", "assignedToId": str(bob.id)}, headers=alice_headers
    )
    notes = (await client.get("/api/notifications", headers=bob_headers)).json()
    return alice_headers, bob_headers, notes


class TestNotifications:
    @pytest.mark.asyncio
    async def test_list_own_notifications(self, client, assigned):
        alice_headers, _, notes = assigned
        assert len(notes) == 1
        assert notes[0]["type"] == "TASK_ASSIGNMENT"
        assert notes[0]["read"] is False
        assert (await client.get("/api/notifications", headers=alice_headers)).json() == []

    @pytest.mark.asyncio
    async def test_mark_read(self, client, assigned):
        _, bob_headers, notes = assigned
        resp = await client.put(f"/api/notifications/{notes[0]['id']}/read", headers=bob_headers)
        assert resp.status_code == 200
        assert resp.json()["read"] is True

    @pytest.mark.asyncio
    async def test_delete(self, client, assigned):
        _, bob_headers, notes = assigned
        resp = await client.delete(f"/api/notifications/{notes[0]['id']}", headers=bob_headers)
        assert resp.status_code == 200
        assert resp.json() == {"message": "Notification deleted"}
        assert (await client.get("/api/notifications", headers=bob_headers)).json() == []

    @pytest.mark.asyncio
    async def test_other_users_cannot_touch(self, client, assigned):
        alice_headers, bob_headers, notes = assigned
        note_id = notes[0]["id"]

        read = await client.put(f"/api/notifications/{note_id}/read", headers=alice_headers)
        delete = await client.delete(f"/api/notifications/{note_id}", headers=alice_headers)
        assert read.status_code == delete.status_code == 404
        assert read.json()["message"] == "Notification not found or access denied"
        assert len((await client.get("/api/notifications", headers=bob_headers)).json()) == 1

    @pytest.mark.asyncio
    async def test_unknown_notification(self, client, assigned):
        _, bob_headers, _ = assigned
        resp = await client.put(f"/api/notifications/{uuid.uuid4()}/read", headers=bob_headers)
        assert resp.status_code == 404

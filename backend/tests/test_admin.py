"""
Tests for admin moderation endpoints.
"""

import pytest
from httpx import AsyncClient

from conftest import make_event
from ticketing.services import inventory_ledger
from ticketing.services.inventory_ledger import PaymentConfirmation


@pytest.mark.asyncio
async def test_admin_routes_require_admin(client: AsyncClient, organizer_headers, attendee_headers):
    for headers in (organizer_headers, attendee_headers):
        response = await client.get("/api/v1/admin/users", headers=headers)
        assert response.status_code == 403

    response = await client.get("/api/v1/admin/users")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_approve_event_publishes_it(client: AsyncClient, db_session, organizer, admin_headers):
    draft = make_event(organizer, [("General", "10.00", 5)], title="Awaiting Review", status="draft", is_approved=False)
    db_session.add(draft)
    await db_session.commit()

    assert (await client.get("/api/v1/events/")).json()["total"] == 0

    response = await client.put(
        f"/api/v1/admin/events/{draft.id}/approve", json={"is_approved": True}, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["status"] == "published"
    assert response.json()["is_approved"] is True

    listing = (await client.get("/api/v1/events/")).json()
    assert [e["title"] for e in listing["events"]] == ["Awaiting Review"]


@pytest.mark.asyncio
async def test_reject_event_unpublishes_it(client: AsyncClient, admin_headers, test_event):
    response = await client.put(
        f"/api/v1/admin/events/{test_event.id}/approve", json={"is_approved": False}, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["status"] == "pending"
    assert (await client.get("/api/v1/events/")).json()["total"] == 0


@pytest.mark.asyncio
async def test_approve_missing_event(client: AsyncClient, admin_headers):
    response = await client.put(
        "/api/v1/admin/events/9999/approve", json={"is_approved": True}, headers=admin_headers
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_list_events_filters(client: AsyncClient, db_session, organizer, admin_headers, test_event):
    db_session.add(make_event(organizer, [("General", "10.00", 5)], title="Draft", status="draft", is_approved=False))
    await db_session.commit()

    everything = await client.get("/api/v1/admin/events", headers=admin_headers)
    assert everything.status_code == 200
    assert len(everything.json()) == 2

    drafts = await client.get("/api/v1/admin/events?status=draft", headers=admin_headers)
    assert [e["title"] for e in drafts.json()] == ["Draft"]

    approved = await client.get("/api/v1/admin/events?is_approved=true", headers=admin_headers)
    assert [e["id"] for e in approved.json()] == [test_event.id]


@pytest.mark.asyncio
async def test_list_users(client: AsyncClient, attendee, organizer, admin, admin_headers):
    response = await client.get("/api/v1/admin/users", headers=admin_headers)
    assert response.status_code == 200
    assert {u["email"] for u in response.json()} == {
        "attendee@eventhub.dev",
        "organizer@eventhub.dev",
        "admin@eventhub.dev",
    }


@pytest.mark.asyncio
async def test_delete_user(client: AsyncClient, attendee, admin_headers):
    response = await client.delete(f"/api/v1/admin/users/{attendee.id}", headers=admin_headers)
    assert response.status_code == 200
    assert response.json() == {"message": "User removed"}

    users = (await client.get("/api/v1/admin/users", headers=admin_headers)).json()
    assert attendee.id not in [u["id"] for u in users]


@pytest.mark.asyncio
async def test_delete_self(client: AsyncClient, admin, admin_headers):
    response = await client.delete(f"/api/v1/admin/users/{admin.id}", headers=admin_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_delete_missing_user(client: AsyncClient, admin_headers):
    response = await client.delete("/api/v1/admin/users/9999", headers=admin_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_organizer_with_events(client: AsyncClient, organizer, admin_headers, test_event):
    response = await client.delete(f"/api/v1/admin/users/{organizer.id}", headers=admin_headers)
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_delete_user_with_paid_registration(
    client: AsyncClient, db_session, register, attendee, admin_headers, test_event
):
    registration = await register(attendee, test_event, ("General", 1))
    await inventory_ledger.commit(db_session, registration.id, PaymentConfirmation())

    response = await client.delete(f"/api/v1/admin/users/{attendee.id}", headers=admin_headers)
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_list_registrations(client: AsyncClient, register, attendee, other_attendee, admin_headers, test_event):
    await register(attendee, test_event, ("General", 1))
    await register(other_attendee, test_event, ("VIP", 1))

    response = await client.get("/api/v1/admin/registrations", headers=admin_headers)
    assert response.status_code == 200
    assert len(response.json()) == 2

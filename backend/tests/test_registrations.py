"""
Tests for registration endpoints: purchase, payment and cancellation.
"""

from decimal import Decimal

import pytest
from httpx import AsyncClient


async def _register(client: AsyncClient, headers: dict, event_id: int, *lines, **extra):
    return await client.post(
        "/api/v1/registrations/",
        json={
            "event_id": event_id,
            "tickets": [{"ticket_type": name, "quantity": quantity} for name, quantity in lines],
            **extra,
        },
        headers=headers,
    )


async def _pay(client: AsyncClient, headers: dict, registration_id: int):
    return await client.put(
        f"/api/v1/registrations/{registration_id}/payment",
        json={"payment_intent_id": "pi_123", "transaction_id": "txn_456"},
        headers=headers,
    )


async def _tier(client: AsyncClient, event_id: int, name: str) -> dict:
    event = (await client.get(f"/api/v1/events/{event_id}")).json()
    return next(tier for tier in event["ticket_tiers"] if tier["name"] == name)


@pytest.mark.asyncio
async def test_create_registration(client: AsyncClient, attendee, attendee_headers, test_event):
    """Registration is priced and pending; no tickets are sold yet."""
    response = await _register(
        client, attendee_headers, test_event.id, ("General", 2), ("VIP", 1),
        attendee_info={"name": "Ada", "email": "ada@eventhub.dev", "special_requirements": "Vegan"},
    )
    assert response.status_code == 201
    data = response.json()
    assert data["user_id"] == attendee.id
    assert data["payment_status"] == "pending"
    assert data["status"] == "active"
    assert Decimal(data["total_amount"]) == Decimal("249.98")
    assert [(t["ticket_type"], Decimal(t["price"]), t["quantity"]) for t in data["tickets"]] == [
        ("General", Decimal("49.99"), 2),
        ("VIP", Decimal("150.00"), 1),
    ]
    assert data["attendee_name"] == "Ada"
    assert data["special_requirements"] == "Vegan"

    general = await _tier(client, test_event.id, "General")
    assert general["sold"] == 0
    assert general["available"] == 10


@pytest.mark.asyncio
async def test_create_registration_unauthenticated(client: AsyncClient, test_event):
    response = await _register(client, {}, test_event.id, ("General", 1))
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_create_registration_unknown_tier(client: AsyncClient, attendee_headers, test_event):
    response = await _register(client, attendee_headers, test_event.id, ("Backstage", 1))
    assert response.status_code == 400
    assert response.json()["code"] == "UNKNOWN_TICKET_TYPE"
    assert "Backstage" in response.json()["detail"]


@pytest.mark.asyncio
async def test_create_registration_insufficient(client: AsyncClient, attendee_headers, test_event):
    response = await _register(client, attendee_headers, test_event.id, ("VIP", 3))
    assert response.status_code == 400
    data = response.json()
    assert data["code"] == "INSUFFICIENT_INVENTORY"
    assert "Requested: 3, Available: 2" in data["detail"]


@pytest.mark.asyncio
async def test_create_registration_missing_event(client: AsyncClient, attendee_headers):
    response = await _register(client, attendee_headers, 9999, ("General", 1))
    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_create_registration_invalid_attendee_email(client: AsyncClient, attendee_headers, test_event):
    response = await _register(
        client, attendee_headers, test_event.id, ("General", 1),
        attendee_info={"name": "Ada", "email": "not-an-email"},
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_create_registration_invalid_quantity(client: AsyncClient, attendee_headers, test_event):
    response = await _register(client, attendee_headers, test_event.id, ("General", 0))
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_create_registration_requires_tickets(client: AsyncClient, attendee_headers, test_event):
    response = await _register(client, attendee_headers, test_event.id)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_confirm_payment_sells_tickets(client: AsyncClient, attendee_headers, test_event):
    registration = (await _register(client, attendee_headers, test_event.id, ("General", 3))).json()

    response = await _pay(client, attendee_headers, registration["id"])
    assert response.status_code == 200
    data = response.json()
    assert data["payment_status"] == "completed"
    assert data["payment_intent_id"] == "pi_123"
    assert data["transaction_id"] == "txn_456"

    event = (await client.get(f"/api/v1/events/{test_event.id}")).json()
    general = next(t for t in event["ticket_tiers"] if t["name"] == "General")
    assert general["sold"] == 3
    assert general["available"] == 7
    assert event["total_tickets_sold"] == 3
    assert Decimal(event["total_revenue"]) == Decimal("149.97")


@pytest.mark.asyncio
async def test_confirm_payment_twice(client: AsyncClient, attendee_headers, test_event):
    registration = (await _register(client, attendee_headers, test_event.id, ("General", 1))).json()
    await _pay(client, attendee_headers, registration["id"])

    response = await _pay(client, attendee_headers, registration["id"])
    assert response.status_code == 400
    assert response.json()["code"] == "ALREADY_COMPLETED"

    general = await _tier(client, test_event.id, "General")
    assert general["sold"] == 1


@pytest.mark.asyncio
async def test_confirm_payment_other_user(client: AsyncClient, attendee_headers, other_attendee_headers, test_event):
    registration = (await _register(client, attendee_headers, test_event.id, ("General", 1))).json()

    response = await _pay(client, other_attendee_headers, registration["id"])
    assert response.status_code == 403

    general = await _tier(client, test_event.id, "General")
    assert general["sold"] == 0


@pytest.mark.asyncio
async def test_confirm_payment_missing_registration(client: AsyncClient, attendee_headers):
    response = await _pay(client, attendee_headers, 9999)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_last_ticket_goes_to_first_payer(
    client: AsyncClient, attendee_headers, other_attendee_headers, last_ticket_event
):
    first = (await _register(client, attendee_headers, last_ticket_event.id, ("Final", 1))).json()
    second = (await _register(client, other_attendee_headers, last_ticket_event.id, ("Final", 1))).json()

    assert (await _pay(client, attendee_headers, first["id"])).status_code == 200

    response = await _pay(client, other_attendee_headers, second["id"])
    assert response.status_code == 400
    assert response.json()["code"] == "INSUFFICIENT_INVENTORY"

    final = await _tier(client, last_ticket_event.id, "Final")
    assert final["sold"] == 1
    assert final["available"] == 0


@pytest.mark.asyncio
async def test_cancel_paid_registration_restores_inventory(client: AsyncClient, attendee_headers, test_event):
    registration = (await _register(client, attendee_headers, test_event.id, ("VIP", 2))).json()
    await _pay(client, attendee_headers, registration["id"])

    response = await client.put(
        f"/api/v1/registrations/{registration['id']}/cancel", headers=attendee_headers
    )
    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Registration cancelled successfully"
    assert data["registration_id"] == registration["id"]
    assert data["status"] == "cancelled"
    assert data["payment_status"] == "completed"

    event = (await client.get(f"/api/v1/events/{test_event.id}")).json()
    vip = next(t for t in event["ticket_tiers"] if t["name"] == "VIP")
    assert vip["sold"] == 0
    assert event["total_tickets_sold"] == 0
    assert Decimal(event["total_revenue"]) == Decimal("0")


@pytest.mark.asyncio
async def test_cancel_pending_registration(client: AsyncClient, attendee_headers, test_event):
    registration = (await _register(client, attendee_headers, test_event.id, ("General", 2))).json()

    response = await client.put(
        f"/api/v1/registrations/{registration['id']}/cancel", headers=attendee_headers
    )
    assert response.status_code == 200
    assert response.json()["payment_status"] == "pending"

    general = await _tier(client, test_event.id, "General")
    assert general["sold"] == 0


@pytest.mark.asyncio
async def test_cancel_twice(client: AsyncClient, attendee_headers, test_event):
    registration = (await _register(client, attendee_headers, test_event.id, ("General", 1))).json()
    url = f"/api/v1/registrations/{registration['id']}/cancel"
    await client.put(url, headers=attendee_headers)

    response = await client.put(url, headers=attendee_headers)
    assert response.status_code == 400
    assert response.json() == {"detail": "Registration already cancelled", "code": "ALREADY_CANCELLED"}


@pytest.mark.asyncio
async def test_pay_after_cancel(client: AsyncClient, attendee_headers, test_event):
    registration = (await _register(client, attendee_headers, test_event.id, ("General", 1))).json()
    await client.put(f"/api/v1/registrations/{registration['id']}/cancel", headers=attendee_headers)

    response = await _pay(client, attendee_headers, registration["id"])
    assert response.status_code == 400
    assert response.json()["code"] == "ALREADY_CANCELLED"


@pytest.mark.asyncio
async def test_cancel_other_users_registration(client: AsyncClient, attendee_headers, other_attendee_headers, test_event):
    registration = (await _register(client, attendee_headers, test_event.id, ("General", 1))).json()

    response = await client.put(
        f"/api/v1/registrations/{registration['id']}/cancel", headers=other_attendee_headers
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_my_registrations(client: AsyncClient, attendee_headers, other_attendee_headers, test_event):
    mine = (await _register(client, attendee_headers, test_event.id, ("General", 1))).json()
    await _register(client, other_attendee_headers, test_event.id, ("General", 1))

    response = await client.get("/api/v1/registrations/my-registrations", headers=attendee_headers)
    assert response.status_code == 200
    assert [r["id"] for r in response.json()] == [mine["id"]]


@pytest.mark.asyncio
async def test_get_registration_access(
    client: AsyncClient, attendee_headers, other_attendee_headers, organizer_headers, admin_headers, test_event
):
    registration = (await _register(client, attendee_headers, test_event.id, ("General", 1))).json()
    url = f"/api/v1/registrations/{registration['id']}"

    assert (await client.get(url, headers=attendee_headers)).status_code == 200
    assert (await client.get(url, headers=organizer_headers)).status_code == 200
    assert (await client.get(url, headers=admin_headers)).status_code == 200
    assert (await client.get(url, headers=other_attendee_headers)).status_code == 403


@pytest.mark.asyncio
async def test_event_registrations_lists_paid_only(
    client: AsyncClient, attendee_headers, other_attendee_headers, organizer_headers, test_event
):
    paid = (await _register(client, attendee_headers, test_event.id, ("General", 1))).json()
    await _pay(client, attendee_headers, paid["id"])
    await _register(client, other_attendee_headers, test_event.id, ("General", 1))

    response = await client.get(
        f"/api/v1/registrations/event/{test_event.id}", headers=organizer_headers
    )
    assert response.status_code == 200
    assert [r["id"] for r in response.json()] == [paid["id"]]


@pytest.mark.asyncio
async def test_event_registrations_forbidden_for_other_organizer(
    client: AsyncClient, other_organizer_headers, test_event
):
    response = await client.get(
        f"/api/v1/registrations/event/{test_event.id}", headers=other_organizer_headers
    )
    assert response.status_code == 403

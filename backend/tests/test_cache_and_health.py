"""
Tests for the listing cache, health, metrics and request tracing.
"""

import fnmatch

import pytest
from httpx import AsyncClient

from ticketing.services import cache_service


class FakeRedis:
    """In-memory stand-in for the few redis.asyncio calls the cache makes."""

    def __init__(self):
        self.store = {}

    async def get(self, key):
        return self.store.get(key)

    async def setex(self, key, ttl, value):
        self.store[key] = value

    async def delete(self, key):
        self.store.pop(key, None)

    async def scan_iter(self, match="*", count=None):
        for key in list(self.store):
            if fnmatch.fnmatch(key, match):
                yield key


@pytest.fixture
def fake_redis(monkeypatch) -> FakeRedis:
    fake = FakeRedis()

    async def get_fake_redis():
        return fake

    monkeypatch.setattr(cache_service, "get_redis", get_fake_redis)
    return fake


def test_list_key_ignores_param_order_and_empty_filters():
    first = cache_service.make_event_list_key({"page": 1, "city": "Lisbon", "search": None})
    second = cache_service.make_event_list_key({"city": "Lisbon", "page": 1})
    assert first == second
    assert first.startswith("events:list:")
    assert "search" not in first


@pytest.mark.asyncio
async def test_disabled_cache_is_a_miss():
    assert await cache_service.get_redis() is None
    assert await cache_service.get_cached_events({"page": 1}) is None
    await cache_service.set_cached_events({"page": 1}, {"events": []})
    await cache_service.invalidate_event_cache()


@pytest.mark.asyncio
async def test_listing_served_from_cache(client: AsyncClient, fake_redis, test_event):
    first = await client.get("/api/v1/events/")
    second = await client.get("/api/v1/events/")

    assert first.json()["cached"] is False
    assert second.json()["cached"] is True
    assert second.json()["events"] == first.json()["events"]
    assert len(fake_redis.store) == 1


@pytest.mark.asyncio
async def test_payment_invalidates_listing(client: AsyncClient, fake_redis, attendee_headers, test_event):
    await client.get("/api/v1/events/")
    assert fake_redis.store

    registration = (await client.post(
        "/api/v1/registrations/",
        json={"event_id": test_event.id, "tickets": [{"ticket_type": "General", "quantity": 2}]},
        headers=attendee_headers,
    )).json()
    await client.put(f"/api/v1/registrations/{registration['id']}/payment", json={}, headers=attendee_headers)

    assert fake_redis.store == {}
    listing = (await client.get("/api/v1/events/")).json()
    assert listing["cached"] is False
    general = next(t for t in listing["events"][0]["ticket_tiers"] if t["name"] == "General")
    assert general["sold"] == 2


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["cache"] == {"status": "disabled"}


@pytest.mark.asyncio
async def test_root(client: AsyncClient):
    response = await client.get("/")
    assert response.status_code == 200
    assert response.json()["docs"] == "/docs"


@pytest.mark.asyncio
async def test_metrics_exposes_ledger_counters(client: AsyncClient, attendee_headers, test_event):
    await client.post(
        "/api/v1/registrations/",
        json={"event_id": test_event.id, "tickets": [{"ticket_type": "General", "quantity": 1}]},
        headers=attendee_headers,
    )
    response = await client.get("/metrics")
    assert response.status_code == 200
    assert "ledger_operations_total" in response.text
    assert 'operation="reserve"' in response.text


@pytest.mark.asyncio
async def test_request_id_header(client: AsyncClient):
    generated = await client.get("/health")
    assert generated.headers["X-Request-ID"]
    assert generated.headers["X-Response-Time"].endswith("ms")

    echoed = await client.get("/health", headers={"X-Request-ID": "trace-me"})
    assert echoed.headers["X-Request-ID"] == "trace-me"

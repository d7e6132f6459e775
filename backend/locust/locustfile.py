"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Test overselling on payment
  locust -f locustfile.py --tags throughput   # Test listing cache
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests
"""

import random
import string
from locust import HttpUser, task, between, tag, events
from datetime import datetime, timezone, timedelta

PASSWORD = "loadtest123"
TIER_NAME = "General"
TIER_QUANTITY = 10

# Shared state
EVENT_IDS = []
CONCURRENCY_EVENT_ID = None


def random_email():
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=10))
    return f"load_{suffix}@eventhub.dev"


def signup(client, role="attendee"):
    """Register and log in a fresh user; returns auth headers or {}."""
    email = random_email()
    client.post("/api/v1/auth/register", json={
        "email": email,
        "name": f"Load {role}",
        "password": PASSWORD,
        "role": role,
    })
    resp = client.post("/api/v1/auth/login", json={"email": email, "password": PASSWORD})
    if resp.status_code != 200:
        return {}
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


def event_payload(title, quantity):
    start = datetime.now(timezone.utc) + timedelta(days=random.randint(7, 90))
    return {
        "title": title,
        "description": "Load test event",
        "category": "Conference",
        "start_date": start.isoformat(),
        "end_date": (start + timedelta(hours=4)).isoformat(),
        "venue": "Test Hall",
        "address": "1 Load Street",
        "city": "Lisbon",
        "country": "Portugal",
        "total_capacity": quantity,
        "ticket_tiers": [{"name": TIER_NAME, "price": "20.00", "quantity": quantity}],
    }


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print(f"SETUP: first concurrency user creates a {TIER_QUANTITY}-ticket event")
    print("=" * 60)


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - 100 attendees -> 10 tickets

    Every user registers (which holds nothing) and immediately pays.
    Only 10 payments may succeed; the rest must get INSUFFICIENT_INVENTORY.

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT sold, quantity FROM ticket_tiers WHERE event_id = X;
    sold should be <= quantity, and equal to
      SELECT SUM(rt.quantity) FROM registrations r
      JOIN registration_tickets rt ON rt.registration_id = r.id
      WHERE r.event_id = X AND r.payment_status = 'completed' AND r.status = 'active';
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        if not CONCURRENCY_EVENT_ID:
            organizer = signup(self.client, role="organizer")
            resp = self.client.post(
                "/api/v1/events/",
                json=event_payload("Concurrency Test Event", TIER_QUANTITY),
                headers=organizer,
            )
            if resp.status_code == 201:
                globals()["CONCURRENCY_EVENT_ID"] = resp.json()["id"]
                print(f"\nCreated event {CONCURRENCY_EVENT_ID} with {TIER_QUANTITY} tickets\n")
        self.headers = signup(self.client)

    @tag("concurrency")
    @task
    def register_and_pay(self):
        """All users fight for the same tickets at the payment step."""
        if not CONCURRENCY_EVENT_ID or not self.headers:
            return

        with self.client.post("/api/v1/registrations/",
            json={"event_id": CONCURRENCY_EVENT_ID, "tickets": [{"ticket_type": TIER_NAME, "quantity": 1}]},
            headers=self.headers,
            name="/api/v1/registrations/",
            catch_response=True
        ) as resp:
            if resp.status_code == 201:
                resp.success()
                registration_id = resp.json()["id"]
            elif resp.status_code == 400:
                resp.success()  # Expected: sold out
                return
            else:
                resp.failure(f"Unexpected: {resp.status_code}")
                return

        with self.client.put(f"/api/v1/registrations/{registration_id}/payment",
            json={"payment_intent_id": f"pi_{registration_id}"},
            headers=self.headers,
            name="/api/v1/registrations/{id}/payment",
            catch_response=True
        ) as resp:
            if resp.status_code == 200:
                resp.success()
            elif resp.status_code in (400, 409):
                resp.success()  # Expected: lost the race or retries exhausted
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - Cache effectiveness

    Run twice:
      1. With Redis: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
      2. Without Redis: REDIS_ENABLED=false, run again

    Compare:
      - Avg response time
      - Requests/sec
      - P95/P99 latency
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def list_events_cached(self):
        """Hammer the cached endpoint."""
        resp = self.client.get(f"/api/v1/events/?page={random.randint(1, 5)}&page_size=20",
            name="/api/v1/events/ [cached]")
        if resp.status_code == 200:
            for event in resp.json().get("events", []):
                if event["id"] not in EVENT_IDS:
                    EVENT_IDS.append(event["id"])

    @tag("throughput", "read")
    @task(3)
    def get_event_detail(self):
        """Live reads: count a view, show current availability."""
        if EVENT_IDS:
            self.client.get(f"/api/v1/events/{random.choice(EVENT_IDS)}",
                name="/api/v1/events/{id}")

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def on_start(self):
        self.headers = signup(self.client)

    def expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def invalid_event_id(self):
        with self.client.post("/api/v1/registrations/",
            json={"event_id": 999999, "tickets": [{"ticket_type": TIER_NAME, "quantity": 1}]},
            headers=self.headers,
            catch_response=True
        ) as resp:
            self.expect(resp, [404])

    @tag("edge")
    @task
    def unknown_tier(self):
        if not EVENT_IDS:
            return
        with self.client.post("/api/v1/registrations/",
            json={"event_id": random.choice(EVENT_IDS), "tickets": [{"ticket_type": "Nope", "quantity": 1}]},
            headers=self.headers,
            catch_response=True
        ) as resp:
            self.expect(resp, [400])

    @tag("edge")
    @task
    def zero_quantity(self):
        with self.client.post("/api/v1/registrations/",
            json={"event_id": 1, "tickets": [{"ticket_type": TIER_NAME, "quantity": 0}]},
            headers=self.headers,
            catch_response=True
        ) as resp:
            self.expect(resp, [422])

    @tag("edge")
    @task
    def pay_unknown_registration(self):
        with self.client.put("/api/v1/registrations/999999/payment",
            json={},
            headers=self.headers,
            catch_response=True
        ) as resp:
            self.expect(resp, [404])

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post("/api/v1/registrations/",
            data="not json at all",
            headers=self.headers,
            catch_response=True
        ) as resp:
            self.expect(resp, [400, 422])

    @tag("edge")
    @task
    def missing_auth(self):
        with self.client.post("/api/v1/registrations/",
            json={"event_id": 1, "tickets": [{"ticket_type": TIER_NAME, "quantity": 1}]},
            catch_response=True
        ) as resp:
            self.expect(resp, [401])

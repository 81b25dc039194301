"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Test double booking
  locust -f locustfile.py --tags throughput   # Test cache
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests

The concurrency scenario needs an admin account (SEED_ADMIN=true) to create
its room; credentials come from LOCUST_ADMIN_EMAIL / LOCUST_ADMIN_PASSWORD.
"""

import os
import random
import string
from datetime import datetime, timezone, timedelta

from locust import HttpUser, task, between, tag, events

ADMIN_EMAIL = os.getenv("LOCUST_ADMIN_EMAIL", "admin@coworking.example.com")
ADMIN_PASSWORD = os.getenv("LOCUST_ADMIN_PASSWORD", "admin12345")

# Shared state
ROOM_IDS = []
CONCURRENCY_ROOM_ID = None

# Every concurrency user fights for the same hour
CONTESTED_START = (datetime.now(timezone.utc) + timedelta(days=30)).replace(
    minute=0, second=0, microsecond=0
)


def random_email():
    return f"load_{random.randint(10000, 99999)}@test.com"


def random_username():
    return "u_" + "".join(random.choices(string.ascii_lowercase, k=8))


def register_and_login(client) -> dict:
    email = random_email()
    client.post("/api/v1/auth/register", json={
        "email": email,
        "username": random_username(),
        "password": "test123",
    })
    resp = client.post("/api/v1/auth/login", json={"email": email, "password": "test123"})
    if resp.status_code == 200:
        return {"Authorization": f"Bearer {resp.json()['access_token']}"}
    return {}


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print(f"SETUP: contested slot starts at {CONTESTED_START.isoformat()}")
    print("=" * 60)


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - 100 users -> one room, one hour

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT COUNT(*) FROM bookings WHERE room_id = X AND status = 'confirmed';
    Should be 1
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.headers = register_and_login(self.client)

        if CONCURRENCY_ROOM_ID is None:
            resp = self.client.post("/api/v1/auth/login", json={
                "email": ADMIN_EMAIL,
                "password": ADMIN_PASSWORD,
            })
            if resp.status_code != 200:
                return
            admin_headers = {"Authorization": f"Bearer {resp.json()['access_token']}"}
            resp = self.client.post("/api/v1/rooms/", json={
                "name": f"Contested {random.randint(1000, 9999)}",
                "capacity": 4,
                "type": "workspace",
            }, headers=admin_headers)
            if resp.status_code == 201:
                globals()["CONCURRENCY_ROOM_ID"] = resp.json()["id"]
                print(f"\n✓ Created room {CONCURRENCY_ROOM_ID}\n")

    @tag("concurrency")
    @task
    def book_contested_slot(self):
        """All users fight for the same hour of the same room."""
        if not CONCURRENCY_ROOM_ID or not self.headers:
            return

        with self.client.post("/api/v1/bookings/",
            json={
                "room_id": CONCURRENCY_ROOM_ID,
                "start_time": CONTESTED_START.isoformat(),
                "end_time": (CONTESTED_START + timedelta(hours=1)).isoformat(),
            },
            headers=self.headers,
            catch_response=True
        ) as resp:
            if resp.status_code == 201:
                resp.success()
            elif resp.status_code == 409:
                resp.success()  # Expected: slot taken
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
    def list_rooms_cached(self):
        """Hammer the cached endpoint."""
        resp = self.client.get("/api/v1/rooms/", name="/api/v1/rooms/ [cached]")
        if resp.status_code == 200:
            for room in resp.json().get("rooms", []):
                if room["id"] not in ROOM_IDS:
                    ROOM_IDS.append(room["id"])

    @tag("throughput", "read")
    @task(3)
    def get_room_schedule(self):
        if ROOM_IDS:
            room_id = random.choice(ROOM_IDS)
            self.client.get(f"/api/v1/rooms/{room_id}/schedule",
                name="/api/v1/rooms/{id}/schedule")

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
        self.headers = register_and_login(self.client)

    def _expect(self, resp, allowed):
        if resp.status_code in allowed:
            resp.success()
        else:
            resp.failure(f"Expected {allowed}, got {resp.status_code}")

    def _window(self, start_offset: timedelta, length: timedelta) -> dict:
        start = datetime.now(timezone.utc) + start_offset
        return {"start_time": start.isoformat(), "end_time": (start + length).isoformat()}

    @tag("edge")
    @task
    def unknown_room(self):
        with self.client.post("/api/v1/bookings/",
            json={"room_id": 999999, **self._window(timedelta(days=2), timedelta(hours=1))},
            headers=self.headers,
            catch_response=True
        ) as resp:
            self._expect(resp, [404])

    @tag("edge")
    @task
    def reversed_window(self):
        with self.client.post("/api/v1/bookings/",
            json={"room_id": 1, **self._window(timedelta(days=2), timedelta(hours=-1))},
            headers=self.headers,
            catch_response=True
        ) as resp:
            self._expect(resp, [400, 404])

    @tag("edge")
    @task
    def past_window(self):
        with self.client.post("/api/v1/bookings/",
            json={"room_id": 1, **self._window(timedelta(days=-1), timedelta(hours=1))},
            headers=self.headers,
            catch_response=True
        ) as resp:
            self._expect(resp, [400])

    @tag("edge")
    @task
    def zero_participants(self):
        with self.client.post("/api/v1/bookings/",
            json={
                "room_id": 1,
                "number_of_participants": 0,
                **self._window(timedelta(days=2), timedelta(hours=1)),
            },
            headers=self.headers,
            catch_response=True
        ) as resp:
            self._expect(resp, [422])

    @tag("edge")
    @task
    def huge_party(self):
        with self.client.post("/api/v1/bookings/",
            json={
                "room_id": 1,
                "number_of_participants": 999999,
                **self._window(timedelta(days=2), timedelta(hours=1)),
            },
            headers=self.headers,
            catch_response=True
        ) as resp:
            self._expect(resp, [400, 404])

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post("/api/v1/bookings/",
            data="not json at all",
            headers=self.headers,
            catch_response=True
        ) as resp:
            self._expect(resp, [400, 422])

    @tag("edge")
    @task
    def missing_auth(self):
        with self.client.post("/api/v1/bookings/",
            json={"room_id": 1, **self._window(timedelta(days=2), timedelta(hours=1))},
            catch_response=True
        ) as resp:
            self._expect(resp, [401])


class RealisticUser(HttpUser):
    """
    TEST 4: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

    Simulates real traffic:
      - Mostly browsing rooms and schedules
      - Some bookings at random future hours (409s expected)
      - Occasional cancellations of the user's own bookings
    """
    wait_time = between(1, 3)

    def on_start(self):
        self.headers = register_and_login(self.client)
        self.my_bookings = []

    @task(50)
    def browse_rooms(self):
        resp = self.client.get("/api/v1/rooms/")
        if resp.status_code == 200:
            for room in resp.json().get("rooms", []):
                if room["id"] not in ROOM_IDS:
                    ROOM_IDS.append(room["id"])

    @task(20)
    def view_schedule(self):
        if ROOM_IDS:
            self.client.get(f"/api/v1/rooms/{random.choice(ROOM_IDS)}/schedule",
                name="/api/v1/rooms/{id}/schedule")

    @task(10)
    def book_room(self):
        if not ROOM_IDS or not self.headers:
            return
        start = (datetime.now(timezone.utc) + timedelta(
            days=random.randint(1, 14), hours=random.randint(0, 23)
        )).replace(minute=0, second=0, microsecond=0)
        with self.client.post("/api/v1/bookings/",
            json={
                "room_id": random.choice(ROOM_IDS),
                "start_time": start.isoformat(),
                "end_time": (start + timedelta(hours=random.randint(1, 3))).isoformat(),
            },
            headers=self.headers,
            catch_response=True
        ) as resp:
            if resp.status_code == 201:
                self.my_bookings.append(resp.json()["id"])
                resp.success()
            elif resp.status_code in (400, 404, 409):
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")

    @task(3)
    def cancel_booking(self):
        if self.my_bookings:
            booking_id = self.my_bookings.pop()
            self.client.post(f"/api/v1/bookings/{booking_id}/cancel",
                headers=self.headers,
                name="/api/v1/bookings/{id}/cancel")

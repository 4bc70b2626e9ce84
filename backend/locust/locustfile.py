"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags opening   # Signup rush when a window opens
  locust -f locustfile.py --tags read      # Occupancy and guest list reads
  locust -f locustfile.py --tags edge      # Test bad input
  locust -f locustfile.py                  # All tests

Point the server at a schedule whose windows are open (or open a few
seconds into the run) before starting the opening scenario.
"""

import os
import random
import string

from locust import HttpUser, between, events, tag, task


def random_email():
    return f"load_{random.randint(10000, 99999)}@test.com"


def random_name():
    return "".join(random.choices(string.ascii_lowercase, k=8)).capitalize()


def signup_payload(invited: bool = False) -> dict:
    payload = {
        "email": random_email(),
        "firstName": random_name(),
        "lastName": random_name(),
        "alcohol": random.choice(["yes", "no"]),
        "tableGroup": f"Table {random.randint(1, 15)}",
        "gift": random.choice(["yes", "no"]),
        "invited": invited,
    }
    if invited:
        # Same code the server has in INVITE_CODE
        payload["inviteCode"] = os.environ.get("INVITE_CODE", "")
    return payload


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print("Signup load test against", environment.host)
    print("=" * 60)


class OpeningRushUser(HttpUser):
    """
    TEST 1: Window opening rush - everyone submits at once

    Run: locust -f locustfile.py --tags opening -u 300 -r 100 --run-time 30s

    Before the window opens every submission must get 405; afterwards 201.
    503 means the database connection was being re-established.
    After test, verify:
      GET /spots  usedSpots equals the number of 201 responses
    """
    wait_time = between(0, 0.1)

    @tag("opening")
    @task
    def submit(self):
        with self.client.post(
            "/signup",
            json=signup_payload(invited=random.random() < 0.2),
            catch_response=True,
        ) as resp:
            if resp.status_code in (201, 405):
                resp.success()
            elif resp.status_code == 503:
                resp.failure("Database reconnecting")
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ReadUser(HttpUser):
    """
    TEST 2: Read throughput - occupancy counter and guest list

    Run: locust -f locustfile.py --tags read -u 100 -r 20 --run-time 60s
    """
    wait_time = between(0.1, 0.5)

    @tag("read")
    @task(10)
    def spots(self):
        self.client.get("/spots")

    @tag("read")
    @task(3)
    def participants(self):
        self.client.get("/participants")

    @tag("read")
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

    def _expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def bad_email(self):
        payload = {**signup_payload(), "email": "not-an-email"}
        with self.client.post("/signup", json=payload, catch_response=True) as resp:
            self._expect(resp, [422])

    @tag("edge")
    @task
    def missing_names(self):
        payload = {**signup_payload(), "firstName": "", "lastName": ""}
        with self.client.post("/signup", json=payload, catch_response=True) as resp:
            self._expect(resp, [422])

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post(
            "/signup",
            data="not json at all",
            headers={"Content-Type": "application/json"},
            catch_response=True,
        ) as resp:
            self._expect(resp, [400, 422])

    @tag("edge")
    @task
    def dump_without_auth(self):
        with self.client.get("/all", catch_response=True) as resp:
            self._expect(resp, [401])

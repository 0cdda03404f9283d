"""
FIFO Ledger Load Testing with Locust

Drives concurrent transfers of one item between two stores while other users
receive deliveries and read FIFO recommendations. Quantity must be conserved
however the transfers interleave; compare the active lot totals before and
after a run.

Prepare reference data first (from backend/):
    python -m flask catalog add-store --name "Store A" --capability both
    python -m flask catalog add-store --name "Store B" --capability both
    python -m flask catalog add-item --name "Tonic Water"
    python -m flask catalog add-staff --name "Load Test"

Run with:
    locust -f tests/stress/locustfile.py --host http://127.0.0.1:5001

Or headless:
    locust -f tests/stress/locustfile.py --host http://127.0.0.1:5001 \
           --users 10 --spawn-rate 2 --run-time 60s --headless

Environment (defaults in parentheses):
    FIFO_STORE_A (1), FIFO_STORE_B (2), FIFO_ITEM_ID (1), FIFO_STAFF_ID (1)

Pass thresholds:
- p95 response time < 500ms for reads
- p95 response time < 1000ms for writes
- Error rate < 1% (409 insufficient/concurrent on transfers is an expected outcome, not an error)
"""

import os
import time
import random
import uuid
from datetime import date, timedelta
from typing import Dict, List

from locust import HttpUser, task, between, events


# =============================================================================
# CONFIGURATION
# =============================================================================

STORE_A = int(os.environ.get("FIFO_STORE_A", "1"))
STORE_B = int(os.environ.get("FIFO_STORE_B", "2"))
ITEM_ID = int(os.environ.get("FIFO_ITEM_ID", "1"))
STAFF_ID = int(os.environ.get("FIFO_STAFF_ID", "1"))


# =============================================================================
# METRICS TRACKING
# =============================================================================

class MetricsCollector:
    """Collect and report metrics."""

    def __init__(self):
        self.request_counts: Dict[str, int] = {}
        self.error_counts: Dict[str, int] = {}
        self.response_times: Dict[str, List[float]] = {}

    def record(self, name: str, response_time: float, success: bool):
        if name not in self.request_counts:
            self.request_counts[name] = 0
            self.error_counts[name] = 0
            self.response_times[name] = []

        self.request_counts[name] += 1
        if not success:
            self.error_counts[name] += 1
        self.response_times[name].append(response_time)

    def get_summary(self) -> Dict:
        summary = {}
        for name in self.request_counts:
            times = sorted(self.response_times[name])
            count = len(times)
            if count == 0:
                continue

            p50_idx = int(count * 0.50)
            p95_idx = int(count * 0.95)

            summary[name] = {
                "count": self.request_counts[name],
                "errors": self.error_counts[name],
                "error_rate": self.error_counts[name] / self.request_counts[name] * 100,
                "avg_ms": sum(times) / count,
                "p50_ms": times[p50_idx] if p50_idx < count else times[-1],
                "p95_ms": times[p95_idx] if p95_idx < count else times[-1],
            }
        return summary


metrics = MetricsCollector()


# =============================================================================
# USER BEHAVIORS
# =============================================================================

class TransferUser(HttpUser):
    """
    Moves small quantities back and forth between the two stores.
    Every request carries a fresh idempotency key.
    """
    wait_time = between(0.1, 0.5)
    weight = 3

    @task
    def create_transfer(self):
        source, destination = random.choice([(STORE_A, STORE_B), (STORE_B, STORE_A)])
        start = time.time()
        response = self.client.post(
            "/api/transfers",
            json={
                "item_id": ITEM_ID,
                "from_store_id": source,
                "to_store_id": destination,
                "quantity": random.choice([1, 2, "0.5"]),
                "performed_by_staff_id": STAFF_ID,
                "idempotency_key": uuid.uuid4().hex,
            },
            name="transfers/create",
        )
        metrics.record("transfers/create", (time.time() - start) * 1000, response.status_code in (201, 409))


class ReceivingUser(HttpUser):
    """Keeps both stores stocked with lots of varying expiry."""
    wait_time = between(1, 3)
    weight = 1

    @task
    def receive_lot(self):
        expiration = date.today() + timedelta(days=random.randint(1, 45))
        start = time.time()
        response = self.client.post(
            "/api/lots/receive",
            json={
                "store_id": random.choice([STORE_A, STORE_B]),
                "item_id": ITEM_ID,
                "quantity": random.randint(5, 25),
                "expiration_date": expiration.isoformat(),
                "performed_by_staff_id": STAFF_ID,
            },
            name="lots/receive",
        )
        metrics.record("lots/receive", (time.time() - start) * 1000, response.status_code == 201)


class BrowsingUser(HttpUser):
    """Dashboard polling: recommendations, activity feed, changes, health."""
    wait_time = between(0.5, 2)
    weight = 2

    @task(4)
    def recommendations(self):
        start = time.time()
        response = self.client.get(
            "/api/lots/recommendations",
            params={"store_id": random.choice([STORE_A, STORE_B])},
            name="lots/recommendations",
        )
        metrics.record("lots/recommendations", (time.time() - start) * 1000, response.status_code == 200)

    @task(2)
    def activity_feed(self):
        start = time.time()
        response = self.client.get("/api/activity", params={"limit": 50}, name="activity/list")
        metrics.record("activity/list", (time.time() - start) * 1000, response.status_code == 200)

    @task(1)
    def expiring(self):
        start = time.time()
        response = self.client.get("/api/lots/expiring", params={"within_days": 7}, name="lots/expiring")
        metrics.record("lots/expiring", (time.time() - start) * 1000, response.status_code == 200)

    @task(1)
    def health_check(self):
        """System health check."""
        start = time.time()
        response = self.client.get("/health", name="system/health")
        metrics.record("system/health", (time.time() - start) * 1000, response.status_code == 200)


@events.test_stop.add_listener
def on_test_stop(environment, **kwargs):
    """Print summary when test stops."""
    print("\n" + "=" * 80)
    print("LOAD TEST SUMMARY")
    print("=" * 80)

    summary = metrics.get_summary()

    print(f"\n{'Endpoint':<30} {'Count':>8} {'Errors':>8} {'Err%':>8} {'Avg(ms)':>10} {'P95(ms)':>10}")
    print("-" * 80)

    total_requests = 0
    total_errors = 0
    all_pass = True

    for name, stats in sorted(summary.items()):
        total_requests += stats["count"]
        total_errors += stats["errors"]

        # Check thresholds
        p95_threshold = 1000 if "create" in name or "receive" in name else 500
        passed = stats["p95_ms"] < p95_threshold and stats["error_rate"] < 1

        status = "PASS" if passed else "FAIL"
        if not passed:
            all_pass = False

        print(f"{name:<30} {stats['count']:>8} {stats['errors']:>8} {stats['error_rate']:>7.2f}% {stats['avg_ms']:>9.1f} {stats['p95_ms']:>9.1f} [{status}]")

    print("-" * 80)
    print(f"{'TOTAL':<30} {total_requests:>8} {total_errors:>8} {total_errors/max(total_requests,1)*100:>7.2f}%")
    print("=" * 80)

    if all_pass:
        print("\n[PASS] All endpoints within thresholds")
    else:
        print("\n[FAIL] Some endpoints exceeded thresholds")
        print("  - Reads: P95 < 500ms, Error rate < 1%")
        print("  - Writes (transfers/receives): P95 < 1000ms, Error rate < 1%")

    print("=" * 80)

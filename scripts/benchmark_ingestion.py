#!/usr/bin/env python3
"""
Load test for the Event Ingestion API

Ramps virtual users posting single events to /events and reports how many
came back 200 along with latency figures.

Usage:
    python scripts/benchmark_ingestion.py [base_url]
"""

import sys
import time
import random
import statistics
import threading
import requests
from concurrent.futures import ThreadPoolExecutor

# (duration in seconds, target virtual users)
STAGES = [
    (30, 50),
    (60, 50),
    (10, 0),
]


def make_payload() -> dict:
    return {
        "event_type": "button_click",
        "url": "/checkout",
        "user_id": f"user-{random.random()}"
    }


class LoadStats:
    """Thread-safe tally of request outcomes"""

    def __init__(self):
        self.lock = threading.Lock()
        self.latencies = []
        self.ok = 0
        self.failed = 0

    def record(self, latency: float, ok: bool):
        with self.lock:
            self.latencies.append(latency)
            if ok:
                self.ok += 1
            else:
                self.failed += 1


def virtual_user(base_url: str, stats: LoadStats, user_index: int, active: list, stop: threading.Event):
    """Post an event, sleep a second, repeat while this user is active"""
    session = requests.Session()

    while not stop.is_set():
        if user_index >= active[0]:
            time.sleep(0.1)
            continue

        start = time.time()
        try:
            response = session.post(f"{base_url}/events", json=make_payload(), timeout=30)
            ok = response.status_code == 200
        except requests.RequestException:
            ok = False
        stats.record(time.time() - start, ok)

        time.sleep(1)


def target_at(elapsed: float) -> int:
    """Linearly interpolated number of virtual users at a point in time"""
    previous = 0
    for duration, target in STAGES:
        if elapsed < duration:
            return round(previous + (target - previous) * elapsed / duration)
        elapsed -= duration
        previous = target
    return 0


def run_load_test(base_url: str) -> LoadStats:
    total_duration = sum(duration for duration, _ in STAGES)
    max_users = max(target for _, target in STAGES)

    print(f"\n{'=' * 60}")
    print(f"LOAD TEST: up to {max_users} users for {total_duration}s")
    print(f"{'=' * 60}")

    stats = LoadStats()
    active = [0]
    stop = threading.Event()

    with ThreadPoolExecutor(max_workers=max_users) as pool:
        for i in range(max_users):
            pool.submit(virtual_user, base_url, stats, i, active, stop)

        start_time = time.time()
        last_report = 0
        while True:
            elapsed = time.time() - start_time
            if elapsed >= total_duration:
                break
            active[0] = target_at(elapsed)

            if elapsed - last_report >= 10:
                last_report = elapsed
                print(f"Progress: {elapsed:.0f}s | users: {active[0]} | "
                      f"ok: {stats.ok:,} | failed: {stats.failed:,}")
            time.sleep(0.5)

        stop.set()

    return stats


def print_results(stats: LoadStats):
    total = stats.ok + stats.failed

    print(f"\n{'=' * 60}")
    print(f"LOAD TEST RESULTS")
    print(f"{'=' * 60}")
    print(f"Requests:            {total:,}")
    print(f"Status 200:          {stats.ok:,}")
    print(f"Failed:              {stats.failed:,}")
    if stats.latencies:
        latencies = sorted(stats.latencies)
        p95 = latencies[int(len(latencies) * 0.95) - 1] if len(latencies) >= 20 else latencies[-1]
        print(f"Avg latency:         {statistics.mean(latencies) * 1000:.1f}ms")
        print(f"Median latency:      {statistics.median(latencies) * 1000:.1f}ms")
        print(f"p95 latency:         {p95 * 1000:.1f}ms")
        print(f"Max latency:         {latencies[-1] * 1000:.1f}ms")
    print(f"{'=' * 60}\n")


def main():
    base_url = sys.argv[1] if len(sys.argv) > 1 else "http://localhost:8000"

    print("\n" + "=" * 60)
    print("EVENT INGESTION API - LOAD TEST")
    print("=" * 60)
    print(f"Target: {base_url}")
    print("=" * 60)

    # Test connection
    try:
        response = requests.get(f"{base_url}/health", timeout=5)
        if response.status_code != 200:
            print("Error: API is not healthy")
            sys.exit(1)
    except Exception as e:
        print(f"Error: Cannot connect to API: {e}")
        sys.exit(1)

    stats = run_load_test(base_url)
    print_results(stats)

    if stats.failed:
        sys.exit(1)


if __name__ == "__main__":
    main()

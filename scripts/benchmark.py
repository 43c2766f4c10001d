#!/usr/bin/env python3
"""
Load and latency benchmark for the plugin analytics API.

Posts synthetic plugin sessions to the ingest endpoint, then replays the
dashboard reads a few times each and reports latency percentiles.

Usage:
    python scripts/benchmark.py [base_url] [total_events]
"""

import random
import statistics
import sys
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path

import requests

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from app.core.config import settings

API_PREFIX = "/api/plugin-analytics"
BATCH_SIZE = 500
QUERY_ROUNDS = 5

TOOLS = ["palettable", "frame-gallery", "import-tool", "unit-converter", "wayfall-game"]
ACTIONS = [
    ("ui_click", {"action": "click:export-button"}),
    ("ui_click", {"action": "tab:settings"}),
    ("palette_export_performed", {"exportType": "css", "mode": "hex"}),
    ("import_file_selected", {"fileSizeBytes": 7_000_000}),
    ("pdf_export_requested", {"dpi": 300, "compression": "optimal", "colorMode": "CMYK"}),
    ("session_heartbeat", {}),
    ("tool_time_spent", {"durationMs": 45_000}),
]

QUERIES = [
    ("summary", "/summary", {}),
    ("tool usage", "/tool-usage", {}),
    ("heatmap compact", "/heatmap", {"compact": "true"}),
    ("heatmap points", "/heatmap", {"compact": "false", "limit": 3000}),
    ("sessions", "/sessions", {"limit": 300}),
    ("features", "/features", {}),
    ("dashboard", "/dashboard", {}),
    ("dashboard palettable", "/dashboard", {"tool": "palettable"}),
]


def banner(title: str):
    print(f"\n{title}\n{'-' * len(title)}")


def build_envelope(count: int, start: datetime, session_id: str, device_id: str) -> dict:
    """One envelope of events belonging to a single session"""
    events = []
    for offset in range(count):
        event_type, payload = ACTIONS[offset % len(ACTIONS)]
        payload = dict(payload)
        if event_type == "ui_click":
            payload["normalizedX"] = round(random.random(), 4)
            payload["normalizedY"] = round(random.random(), 4)
        events.append({
            "eventType": event_type,
            "eventAt": (start + timedelta(seconds=offset)).isoformat(),
            "tool": TOOLS[offset % len(TOOLS)],
            "payload": payload,
        })

    return {
        "source": "benchmark",
        "sessionId": session_id,
        "deviceId": device_id,
        "plugin": {"version": "bench"},
        "events": events,
    }


def run_ingestion(session: requests.Session, base_url: str, total_events: int) -> None:
    banner(f"Ingesting {total_events:,} events in batches of {BATCH_SIZE}")

    origin = datetime.now(timezone.utc) - timedelta(days=3)
    accepted = inserted = failures = 0
    durations = []
    began = time.perf_counter()

    for batch_number, first in enumerate(range(0, total_events, BATCH_SIZE)):
        envelope = build_envelope(
            min(BATCH_SIZE, total_events - first),
            origin + timedelta(seconds=first),
            session_id=f"bench-session-{batch_number}",
            device_id=f"bench-device-{batch_number % 200}",
        )

        sent = time.perf_counter()
        try:
            response = session.post(f"{base_url}{API_PREFIX}/ingest", json=envelope, timeout=30)
        except requests.RequestException as e:
            failures += 1
            print(f"batch {batch_number} failed: {e}")
            continue
        durations.append(time.perf_counter() - sent)

        if response.status_code != 202:
            failures += 1
            print(f"batch {batch_number} rejected with {response.status_code}")
            continue
        body = response.json()
        accepted += body["accepted"]
        inserted += body["inserted"]

        if batch_number % 10 == 0:
            print(f"  {first + len(envelope['events']):>10,} sent, last batch {durations[-1]:.2f}s")

    elapsed = time.perf_counter() - began
    print(f"  accepted {accepted:,} / inserted {inserted:,} / failed batches {failures}")
    print(f"  {elapsed:.2f}s total, {total_events / elapsed:,.0f} events/s")
    if durations:
        print(f"  batch latency mean {statistics.mean(durations):.2f}s, max {max(durations):.2f}s")


def run_queries(session: requests.Session, base_url: str) -> list[dict]:
    banner(f"Query latency over {QUERY_ROUNDS} rounds")

    report = []
    for name, path, params in QUERIES:
        samples = []
        for _ in range(QUERY_ROUNDS):
            sent = time.perf_counter()
            try:
                response = session.get(f"{base_url}{API_PREFIX}{path}", params=params, timeout=60)
            except requests.RequestException as e:
                print(f"  {name}: {e}")
                break
            if response.status_code != 200:
                print(f"  {name}: status {response.status_code}")
                break
            samples.append((time.perf_counter() - sent) * 1000)

        if samples:
            report.append({
                "name": name,
                "p50": statistics.median(samples),
                "mean": statistics.mean(samples),
                "max": max(samples),
            })

    print(f"  {'query':<24}{'p50':>10}{'mean':>10}{'max':>10}")
    for row in report:
        print(f"  {row['name']:<24}{row['p50']:>8.0f}ms{row['mean']:>8.0f}ms{row['max']:>8.0f}ms")
    return report


def main():
    base_url = sys.argv[1] if len(sys.argv) > 1 else "http://localhost:8000"
    total_events = int(sys.argv[2]) if len(sys.argv) > 2 else 100000

    session = requests.Session()
    if settings.ingest_token:
        session.headers["X-Ingest-Token"] = settings.ingest_token
    if settings.dashboard_basic_auth_user and settings.dashboard_basic_auth_pass:
        session.auth = (settings.dashboard_basic_auth_user, settings.dashboard_basic_auth_pass)

    try:
        health = session.get(f"{base_url}/health", timeout=5)
    except requests.RequestException as e:
        sys.exit(f"Cannot reach {base_url}: {e}")
    if health.status_code != 200:
        sys.exit(f"{base_url} is not healthy ({health.status_code})")

    run_ingestion(session, base_url, total_events)
    run_queries(session, base_url)


if __name__ == "__main__":
    main()

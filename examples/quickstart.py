#!/usr/bin/env python3
"""
streamhub Quickstart — open two streams for one subscriber, publish, watch.

Mints tokens locally (same STREAMHUB_JWT_SECRET as the server), opens two
streams for user:42 in background threads, then broadcasts and sends a
targeted message through the admin API.

Run with: python examples/quickstart.py

Requires: pip install -e .
Server must be running: streamhub serve
"""

import json
import sys
import threading
import time

import httpx

from streamhub.auth.jwt import create_access_token

BASE = "http://localhost:8000"


def listen(name: str, token: str, stop: threading.Event) -> None:
    """Print every event a stream receives until `stop` is set."""
    with httpx.Client(base_url=BASE, timeout=None) as client:
        with client.stream("GET", "/sse/stream", params={"token": token}) as resp:
            event = "message"
            for line in resp.iter_lines():
                if stop.is_set():
                    return
                if line.startswith("event:"):
                    event = line[6:].strip()
                elif line.startswith("data:"):
                    print(f"   [{name}] {event}: {line[5:].strip()}")


def main():
    # ── Health check ──────────────────────────────────────────────
    print("Checking server health...")
    try:
        health = httpx.get(f"{BASE}/api/v1/health", timeout=5).json()
    except httpx.ConnectError:
        print(f"Server not reachable at {BASE}. Start it with: streamhub serve")
        sys.exit(1)
    print(f"  Status: {health['status']} ({health['connections']} open streams)")

    admin = httpx.Client(
        base_url=f"{BASE}/api/v1",
        timeout=10,
        headers={"Authorization": f"Bearer {create_access_token('ops', scopes=['admin'])}"},
    )

    # ── Open two streams for the same subscriber ──────────────────
    print("\n1. Opening two streams for user:42...")
    stop = threading.Event()
    user_token = create_access_token("user:42")
    for name in ("tab-1", "tab-2"):
        threading.Thread(target=listen, args=(name, user_token, stop), daemon=True).start()
    time.sleep(1)

    stats = admin.get("/sse/stats").json()["data"]
    print(f"   Streams for user:42: {stats['subscriber_connections'].get('user:42', 0)}")

    # ── Broadcast ─────────────────────────────────────────────────
    print("\n2. Broadcasting an announcement...")
    resp = admin.post("/sse/broadcast", json={
        "event": "announcement",
        "data": {"text": "Deploy at 17:00"},
    })
    print(f"   Delivered to {resp.json()['delivered']} stream(s)")
    time.sleep(0.5)

    # ── Targeted ──────────────────────────────────────────────────
    print("\n3. Sending a message to user:42 only...")
    resp = admin.post("/sse/send-to-subscriber", json={
        "subscriber_key": "user:42",
        "event": "new_message",
        "data": {"from": "user:7", "text": "hi"},
    })
    print(f"   Delivered to {resp.json()['delivered']} stream(s)")
    time.sleep(0.5)

    # ── Stats ─────────────────────────────────────────────────────
    print("\n4. Hub stats:")
    print(json.dumps(admin.get("/sse/stats").json()["data"]["totals"], indent=2))

    stop.set()
    print("\nDone.")


if __name__ == "__main__":
    main()

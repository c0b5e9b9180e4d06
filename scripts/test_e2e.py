#!/usr/bin/env python3
"""End-to-end smoke test for kinnect-server.

Exercises the main endpoints against a running server.

Usage:
    # Set environment variables:
    export API_KEY="kinnect_dev_key"
    export USER_ID="e2e-user"
    export BASE_URL="http://localhost:8000"

    # Run tests:
    python scripts/test_e2e.py
"""

import asyncio
import os
import sys
from datetime import date

import httpx

# Configuration from environment
API_KEY = os.environ.get("API_KEY", "kinnect_dev_key")
USER_ID = os.environ.get("USER_ID", "e2e-user")
BASE_URL = os.environ.get("BASE_URL", "http://localhost:8000")
API_BASE = f"{BASE_URL}/api/v1"
HEADERS = {"X-API-Key": API_KEY}


async def test_health() -> bool:
    """Test health endpoint (no auth required)."""
    async with httpx.AsyncClient() as client:
        r = await client.get(f"{BASE_URL}/health")
        if r.status_code != 200:
            print(f"  FAIL: Health check returned {r.status_code}")
            return False
        print(f"  OK: Server up, version {r.json().get('version')}")
        return True


async def test_unauthorized() -> bool:
    """Test that user endpoints require the API key."""
    async with httpx.AsyncClient() as client:
        r = await client.get(f"{API_BASE}/users/{USER_ID}/progress")
        if r.status_code != 401:
            print(f"  FAIL: Expected 401, got {r.status_code}")
            return False
        print("  OK: Unauthorized request correctly rejected")
        return True


async def test_rejected_activity() -> bool:
    """Test that an implausible activity is rejected and not stored."""
    body = {"type": "run", "distance_km": 150, "duration_minutes": 600}
    async with httpx.AsyncClient() as client:
        r = await client.post(f"{API_BASE}/users/{USER_ID}/activities", json=body, headers=HEADERS)
        if r.status_code != 400:
            print(f"  FAIL: Expected 400, got {r.status_code}")
            return False
        errors = r.json().get("extra", {}).get("errors", [])
        print(f"  OK: Rejected with {len(errors)} error(s)")
        return True


async def test_log_activity() -> bool:
    """Test logging a valid activity and reading progress back."""
    body = {
        "type": "walk",
        "distance_km": 5,
        "duration_minutes": 40,
        "date": date.today().isoformat(),
    }
    async with httpx.AsyncClient() as client:
        r = await client.post(f"{API_BASE}/users/{USER_ID}/activities", json=body, headers=HEADERS)
        if r.status_code != 201:
            print(f"  FAIL: Expected 201, got {r.status_code}")
            return False
        logged = r.json()
        print(
            f"  OK: Logged, {logged['points_earned']} points, "
            f"{len(logged['warnings'])} warning(s)"
        )

        r = await client.get(f"{API_BASE}/users/{USER_ID}/progress", headers=HEADERS)
        if r.status_code != 200:
            print(f"  FAIL: progress returned {r.status_code}")
            return False
        progress = r.json()
        print(f"  OK: progress - {progress['points']} points, streak {progress['streak']}")
    return True


async def test_qc_endpoints() -> bool:
    """Test QC rule snapshot and dry-run validation."""
    async with httpx.AsyncClient() as client:
        r = await client.get(f"{API_BASE}/qc/rules")
        if r.status_code != 200:
            print(f"  FAIL: qc/rules returned {r.status_code}")
            return False
        print(f"  OK: qc/rules - {len(r.json()['activity_types'])} activity types")

        r = await client.post(
            f"{API_BASE}/activities/validate",
            json={"type": "run", "distance_km": 10, "duration_minutes": 50},
        )
        if r.status_code != 200 or not r.json()["valid"]:
            print(f"  FAIL: validate returned {r.status_code} {r.text}")
            return False
        print(f"  OK: validate - score {r.json()['score']}")
    return True


async def main() -> int:
    """Run all E2E tests."""
    print("=" * 60)
    print("Kinnect Server - End-to-End Tests")
    print("=" * 60)
    print(f"Base URL: {BASE_URL}")
    print(f"User ID: {USER_ID}")
    print("=" * 60)

    tests = [
        ("Health Check", test_health),
        ("Authorization", test_unauthorized),
        ("Rejected Activity", test_rejected_activity),
        ("Log Activity", test_log_activity),
        ("QC Endpoints", test_qc_endpoints),
    ]

    passed = 0
    failed = 0

    for name, test_func in tests:
        print(f"\n[{name}]")
        try:
            if await test_func():
                passed += 1
            else:
                failed += 1
        except httpx.HTTPError as e:
            print(f"  ERROR: {e}")
            failed += 1

    print("\n" + "=" * 60)
    print(f"Results: {passed} passed, {failed} failed")
    print("=" * 60)

    return 0 if failed == 0 else 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))

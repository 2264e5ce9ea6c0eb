"""Seed script for development data.

Run with:  python -m approvalflow.seed
Loads the demo directory, opening balances and the 2025 company calendar through
the HTTP API, then files a few sample requests.
"""

from __future__ import annotations

import asyncio
import os
import sys

import httpx

BASE_URL = os.environ.get("APPROVALFLOW_URL", "http://localhost:8000")
ADMIN_USER_ID = "00000000-0000-0000-0000-000000000001"

ADMIN_HEADERS = {
    "Content-Type": "application/json",
    "X-User-Id": ADMIN_USER_ID,
    "X-Role": "admin",
}

# Well-known employee UUIDs
RAMYA_ID = "00000000-0000-0000-0000-000000000002"
SAM_ID = "00000000-0000-0000-0000-000000000003"
JORDAN_ID = "00000000-0000-0000-0000-000000000004"

EMPLOYEES = [
    {
        "id": RAMYA_ID,
        "name": "Ramya Manager",
        "email": "ramya.manager@example.com",
        "level": "elevated",
        "manager_id": None,
        "hire_date": "2018-06-01",
    },
    {
        "id": SAM_ID,
        "name": "Sam Senior",
        "email": "sam.senior@example.com",
        "level": "elevated",
        "manager_id": RAMYA_ID,
        "hire_date": "2021-09-01",
    },
    {
        "id": JORDAN_ID,
        "name": "Jordan Junior",
        "email": "jordan.junior@example.com",
        "level": "standard",
        "manager_id": RAMYA_ID,
        "hire_date": "2024-02-15",
    },
]

# (employee_id, days, reason)
OPENING_BALANCES = [
    (RAMYA_ID, "38.0", "Opening balance"),
    (SAM_ID, "22.0", "Opening balance"),
    (JORDAN_ID, "12.5", "Opening balance"),
]

CALENDAR_2025 = [
    ("holiday", "New Year's Day", "2025-01-01", "2025-01-01"),
    ("holiday", "Martin Luther King Jr. Day", "2025-01-20", "2025-01-20"),
    ("holiday", "Presidents' Day", "2025-02-17", "2025-02-17"),
    ("holiday", "Memorial Day", "2025-05-26", "2025-05-26"),
    ("holiday", "Juneteenth", "2025-06-19", "2025-06-19"),
    ("holiday", "Independence Day", "2025-07-04", "2025-07-04"),
    ("holiday", "Labor Day", "2025-09-01", "2025-09-01"),
    ("holiday", "Thanksgiving Day", "2025-11-27", "2025-11-27"),
    ("holiday", "Day after Thanksgiving", "2025-11-28", "2025-11-28"),
    ("holiday", "Christmas Day", "2025-12-25", "2025-12-25"),
    ("blackout", "Q1 Fiscal Quarter End", "2025-03-24", "2025-03-31"),
    ("blackout", "Q2 Fiscal Quarter End", "2025-06-23", "2025-06-30"),
    ("blackout", "Q3 Fiscal Quarter End", "2025-09-22", "2025-09-30"),
    ("blackout", "Q4 Fiscal Quarter End", "2025-12-22", "2025-12-31"),
    ("blackout", "New Year Planning Week", "2026-01-02", "2026-01-09"),
    ("holiday", "New Year's Day", "2026-01-01", "2026-01-01"),
    ("holiday", "Martin Luther King Jr. Day", "2026-01-19", "2026-01-19"),
]


def _employee_headers(employee_id: str) -> dict[str, str]:
    return {"Content-Type": "application/json", "X-User-Id": employee_id, "X-Role": "employee"}


async def _safe_post(
    client: httpx.AsyncClient,
    url: str,
    json: dict,
    label: str,
    headers: dict[str, str] = ADMIN_HEADERS,
) -> dict | None:
    """POST with 409-conflict tolerance for idempotency."""
    resp = await client.post(url, json=json, headers=headers)
    if resp.status_code in (200, 201):
        print(f"  [OK] {label}")
        return resp.json()
    if resp.status_code == 409:
        print(f"  [SKIP] {label} (conflict)")
        return None
    print(f"  [ERROR] {label}: {resp.status_code} {resp.text[:200]}")
    return None


async def seed_employees(client: httpx.AsyncClient) -> None:
    """Seed the stub directory via PUT (upsert)."""
    print("\n--- Seeding employees ---")
    for emp in EMPLOYEES:
        body = {k: v for k, v in emp.items() if k != "id"}
        resp = await client.put(f"{BASE_URL}/employees/{emp['id']}", json=body, headers=ADMIN_HEADERS)
        status = "OK" if resp.status_code == 200 else f"ERROR {resp.status_code}"
        print(f"  [{status}] {emp['name']}")


async def seed_calendar(client: httpx.AsyncClient) -> None:
    """Seed holidays and blackout periods, skipping years already loaded."""
    print("\n--- Seeding company calendar ---")
    resp = await client.get(f"{BASE_URL}/calendar/events", params={"limit": 200}, headers=ADMIN_HEADERS)
    existing = set()
    if resp.status_code == 200:
        existing = {(e["kind"], e["name"], e["start_date"]) for e in resp.json().get("items", [])}

    for kind, name, start, end in CALENDAR_2025:
        if (kind, name, start) in existing:
            print(f"  [SKIP] {kind}: {name} {start}")
            continue
        await _safe_post(
            client,
            f"{BASE_URL}/calendar/events",
            {"kind": kind, "name": name, "start_date": start, "end_date": end},
            f"{kind}: {name} {start}",
        )


async def seed_balances(client: httpx.AsyncClient) -> None:
    """Post opening PTO balances (skip employees that already have one)."""
    print("\n--- Seeding opening balances ---")
    for employee_id, days, reason in OPENING_BALANCES:
        resp = await client.get(f"{BASE_URL}/employees/{employee_id}/balance", headers=ADMIN_HEADERS)
        if resp.status_code == 200 and float(resp.json()["current_balance"]) > 0:
            print(f"  [SKIP] {employee_id[-4:]} (balance already {resp.json()['current_balance']})")
            continue
        await _safe_post(
            client,
            f"{BASE_URL}/adjustments",
            {"employee_id": employee_id, "amount": days, "reason": reason},
            f"Balance {employee_id[-4:]} +{days} days",
        )


async def seed_requests(client: httpx.AsyncClient) -> None:
    """File sample requests covering each evaluator outcome."""
    print("\n--- Seeding requests ---")
    samples = [
        (JORDAN_ID, "/requests/pto", {"start_date": "2025-10-14", "end_date": "2025-10-15"}, "Jordan 2-day PTO"),
        (JORDAN_ID, "/requests/pto", {"start_date": "2025-12-01", "end_date": "2025-12-05"}, "Jordan week off"),
        (SAM_ID, "/requests/pto", {"start_date": "2025-12-22", "end_date": "2025-12-23"}, "Sam during blackout"),
        (
            SAM_ID,
            "/requests/expense",
            {"category": "training", "amount": "750.00", "description": "Conference ticket"},
            "Sam conference ticket",
        ),
    ]
    for employee_id, path, body, label in samples:
        result = await _safe_post(client, f"{BASE_URL}{path}", body, label, _employee_headers(employee_id))
        if result:
            print(f"         -> {result['request']['status']}: {result['message']}")


async def _seed() -> None:
    print("=" * 60)
    print("  ApprovalFlow: Development Seed Script")
    print("=" * 60)

    async with httpx.AsyncClient(timeout=30.0) as client:
        try:
            resp = await client.get(f"{BASE_URL}/health")
            if resp.status_code != 200:
                print(f"API health check failed: {resp.status_code}")
                sys.exit(1)
            print("\n[OK] API is healthy")
        except httpx.ConnectError:
            print("ERROR: Cannot connect to API at", BASE_URL)
            sys.exit(1)

        await seed_employees(client)
        await seed_calendar(client)
        await seed_balances(client)
        await seed_requests(client)

    print("\n" + "=" * 60)
    print("  Seeding complete!")
    print("=" * 60)


def main() -> None:
    asyncio.run(_seed())


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""
Demo seed script — populates the ledger with sample transactions for demos.

!! NOT FOR PRODUCTION !!
This script logs in with the passkey and creates random deposits and
withdrawals. It is intended ONLY for local demos and frontend development.

Roughly a third of the transactions get a relative due date (a few days
after an earlier transaction), so chains show up in the listing.

Usage:
    # With the API server running on localhost:8000:
    python demo/seed.py

    # More transactions, custom passkey:
    python demo/seed.py --count 200 --passkey 9876

    # Reset the database and re-seed:
    python demo/seed.py --reset

    # Custom server URL:
    python demo/seed.py --base-url http://localhost:9000
"""

import argparse
import asyncio
import os
import random
import sys
from datetime import date, timedelta

import httpx

BASE_URL = "http://localhost:8000"

DEPOSIT_PARTIES = [
    "Employer", "Freelance client", "Tax office", "Family", "Marketplace buyer",
]

WITHDRAW_PARTIES = [
    "Landlord", "Grocery store", "Utility company", "Phone carrier",
    "Insurance", "Gym", "Bookstore", "Pharmacy", "Car repair shop",
]

DESCRIPTIONS = {
    "deposit": ["Salary", "Invoice payment", "Refund", "Gift", "Second-hand sale"],
    "withdraw": [
        "Monthly rent", "Weekly shop", "Electricity bill", "Phone bill",
        "Premium", "Membership", "Books", "Prescription", "Brake pads",
    ],
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def log(msg: str) -> None:
    print(f"  {msg}")


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


async def login(client: httpx.AsyncClient, passkey: str) -> str:
    """Log in with the passkey, return JWT token."""
    resp = await client.post(f"{BASE_URL}/auth/login", json={"passkey": passkey})
    resp.raise_for_status()
    return resp.json()["token"]


def random_transaction(created_ids: list[str]) -> dict:
    """Build a random create body; sometimes relative to an earlier transaction."""
    txn_type = random.choice(["deposit", "withdraw"])
    parties = DEPOSIT_PARTIES if txn_type == "deposit" else WITHDRAW_PARTIES
    body: dict = {
        "type": txn_type,
        "amount": random.randint(1000, 1000000) * 50,
        "party": random.choice(parties),
        "description": random.choice(DESCRIPTIONS[txn_type]),
    }

    if created_ids and random.random() < 0.35:
        body["relative_due_date_transaction_id"] = random.choice(created_ids)
        body["relative_due_date_offset_days"] = random.randint(1, 45)
    else:
        body["date"] = (date.today() - timedelta(days=random.randint(0, 365))).isoformat()

    return body


# ---------------------------------------------------------------------------
# Seed logic
# ---------------------------------------------------------------------------

async def seed(base_url: str, count: int, passkey: str) -> None:
    global BASE_URL
    BASE_URL = base_url

    print("\n========================================")
    print("  DEMO SEED — NOT FOR PRODUCTION")
    print("========================================\n")

    async with httpx.AsyncClient(timeout=30.0) as client:
        try:
            health = await client.get(f"{BASE_URL}/health")
            health.raise_for_status()
        except (httpx.ConnectError, httpx.HTTPStatusError):
            print(f"  ERROR: Cannot connect to {BASE_URL}")
            print("  Start the server first: uvicorn app.main:app --reload\n")
            sys.exit(1)

        token = await login(client, passkey)
        log("Logged in")

        created_ids: list[str] = []
        relative = 0
        for _ in range(count):
            body = random_transaction(created_ids)
            resp = await client.post(
                f"{BASE_URL}/transactions", json=body, headers=auth_header(token)
            )
            resp.raise_for_status()
            created_ids.append(resp.json()["id"])
            if "relative_due_date_transaction_id" in body:
                relative += 1

        log(f"Created {len(created_ids)} transactions ({relative} with relative due dates)")

        summary = await client.get(f"{BASE_URL}/balance", headers=auth_header(token))
        summary.raise_for_status()
        data = summary.json()
        log(f"Balance as of {data['as_of']}: {data['balance_as_of']}")
        log(f"Projected balance: {data['projected_balance']}")

    print()


def reset_database() -> None:
    """Delete the SQLite database file so the server recreates it on restart."""
    db_path = os.path.join(os.path.dirname(__file__), "..", "data", "ledger.db")
    db_path = os.path.normpath(db_path)

    if os.path.exists(db_path):
        os.remove(db_path)
        print(f"\n  Deleted {db_path}")
        print("  Restart the server to recreate empty tables.\n")
    else:
        print(f"\n  No database found at {db_path}\n")


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

async def main() -> None:
    parser = argparse.ArgumentParser(
        description="Demo seed script — NOT FOR PRODUCTION",
        epilog="Creates sample transactions for demos.",
    )
    parser.add_argument(
        "--base-url", default="http://localhost:8000",
        help="Base URL of the running API (default: http://localhost:8000)",
    )
    parser.add_argument(
        "--count", type=int, default=50,
        help="Number of transactions to create (default: 50)",
    )
    parser.add_argument(
        "--passkey", default="1234",
        help="Ledger passkey (default: 1234)",
    )
    parser.add_argument(
        "--reset", action="store_true",
        help="Delete the database file and exit (restart server to recreate)",
    )
    args = parser.parse_args()

    if args.reset:
        reset_database()
        return

    await seed(args.base_url, args.count, args.passkey)


if __name__ == "__main__":
    asyncio.run(main())

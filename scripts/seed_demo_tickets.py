#!/usr/bin/env python3
"""Seed the database with a handful of demo tickets for gate testing.

Usage:
    python scripts/seed_demo_tickets.py
"""

import asyncio
import sys
from datetime import date, timedelta
from pathlib import Path

# Ensure project root is on path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from ticket_engine.deps import get_coordinator, get_db

DEMO_TICKETS = [
    {"user_id": "demo-user-1", "tier_name": "General", "quantity": 1, "total_price_cents": 4500},
    {"user_id": "demo-user-1", "tier_name": "VIP", "quantity": 2, "total_price_cents": 25000},
    {"user_id": "demo-user-2", "tier_name": "Group", "quantity": 6, "total_price_cents": 18000},
    {"user_id": "demo-user-3", "tier_name": "Community", "quantity": 1, "total_price_cents": 0},
]


async def seed_demo_tickets(event_id: str = "demo-event") -> None:
    db = get_db()
    await db.init()
    await db.create_all()

    coordinator = get_coordinator()
    event_date = date.today() + timedelta(days=7)

    for seed in DEMO_TICKETS:
        ticket = await coordinator.issue(
            event_id=event_id,
            event_date=event_date,
            payment_intent_id=f"pi_demo_{seed['user_id']}_{seed['tier_name'].lower()}",
            **seed,
        )
        print(f"  [created] {ticket.ticket_code} {seed['tier_name']} ({ticket.priority})")

    await db.close()
    print(f"\nDone. {len(DEMO_TICKETS)} tickets seeded for {event_id}.")


if __name__ == "__main__":
    asyncio.run(seed_demo_tickets())

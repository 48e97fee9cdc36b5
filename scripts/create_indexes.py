# scripts/create_indexes.py
"""
Create/ensure MongoDB indexes for Guroosh.

Run from project root:
  - python scripts/create_indexes.py
  - OR: python -m scripts.create_indexes
"""

import asyncio
import os
import sys

# --- Make sure 'guroosh' is importable when running this file directly ---
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from motor.motor_asyncio import AsyncIOMotorClient  # type: ignore

from guroosh.settings import settings
from guroosh.mongo_collections import (
    USERS,
    ADVISOR_REQUESTS,
    REQUESTS,
    MESSAGES,
    NOTES,
    MEETINGS,
    NOTIFICATIONS,
    SETTINGS,
    CATEGORIES,
    EXPENSES,
    INCOMES,
    BUDGETS,
    GOALS,
    INVESTMENTS,
)


async def ensure_indexes() -> None:
    client = AsyncIOMotorClient(settings.mongodb_uri)
    db = client[settings.mongodb_db]

    # USERS (email is the login key)
    await db[USERS].create_index("email", unique=True)
    await db[USERS].create_index([("isAdvisor", 1), ("advisorProfile.availability", 1)])
    await db[USERS].create_index([("connectedAdvisor", 1)])

    # ADVISOR_REQUESTS (one connection request per user + advisor)
    await db[ADVISOR_REQUESTS].create_index([("user", 1), ("advisor", 1)], unique=True)
    await db[ADVISOR_REQUESTS].create_index([("advisor", 1), ("createdAt", -1)])

    # REQUESTS (advice requests; advisor queue and client list)
    await db[REQUESTS].create_index([("client", 1), ("createdAt", -1)])
    await db[REQUESTS].create_index([("advisor", 1), ("status", 1)])

    # MESSAGES (thread per request, oldest first)
    await db[MESSAGES].create_index([("request", 1), ("createdAt", 1)])

    # NOTES (advisor-private)
    await db[NOTES].create_index([("advisor", 1), ("createdAt", -1)])
    await db[NOTES].create_index([("request", 1)])

    # MEETINGS
    await db[MEETINGS].create_index([("client", 1), ("dateTime", 1)])
    await db[MEETINGS].create_index([("advisor", 1), ("dateTime", 1)])

    # NOTIFICATIONS (inbox, newest first)
    await db[NOTIFICATIONS].create_index([("user", 1), ("createdAt", -1)])
    await db[NOTIFICATIONS].create_index([("user", 1), ("read", 1)])

    # SETTINGS (one per user)
    await db[SETTINGS].create_index("userId", unique=True)

    # CATEGORIES (unique name per user + type)
    await db[CATEGORIES].create_index([("userId", 1), ("name", 1), ("type", 1)], unique=True)

    # EXPENSES / INCOMES (date-range sums)
    await db[EXPENSES].create_index([("userId", 1), ("date", -1)])
    await db[EXPENSES].create_index([("userId", 1), ("categoryId", 1), ("date", -1)])
    await db[INCOMES].create_index([("userId", 1), ("date", -1)])

    # BUDGETS (scheduler walks active budgets)
    await db[BUDGETS].create_index([("userId", 1), ("categoryId", 1), ("period", 1)])
    await db[BUDGETS].create_index([("isActive", 1)])

    # GOALS
    await db[GOALS].create_index([("userId", 1), ("deadline", 1)])

    # INVESTMENTS
    await db[INVESTMENTS].create_index([("userId", 1), ("purchaseDate", -1)])

    client.close()


def main() -> None:
    try:
        asyncio.run(ensure_indexes())
        print("✅ Indexes ensured.")
    except Exception as e:
        print(f"❌ Failed to create indexes: {e}")
        raise


if __name__ == "__main__":
    main()

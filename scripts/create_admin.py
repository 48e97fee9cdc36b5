# scripts/create_admin.py
"""
Create an admin account, or promote an existing one.

Run from project root:
  - python scripts/create_admin.py admin@example.com 'S3cretPass' "Site Admin"
  - OR set ADMIN_EMAIL / ADMIN_PASSWORD / ADMIN_NAME in .env and run without args
"""

import asyncio
import os
import sys

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from dotenv import load_dotenv
from motor.motor_asyncio import AsyncIOMotorClient  # type: ignore

from guroosh.settings import settings
from guroosh.mongo_collections import USERS
from guroosh.security import hash_password
from guroosh.services.mappers import utcnow

load_dotenv()  # reads .env in project root


async def ensure_admin(email: str, password: str, full_name: str) -> str:
    client = AsyncIOMotorClient(settings.mongodb_uri)
    db = client[settings.mongodb_db]
    email = email.strip().lower()
    now = utcnow()
    try:
        existing = await db[USERS].find_one({"email": email})
        if existing:
            await db[USERS].update_one(
                {"_id": existing["_id"]},
                {"$set": {"role": "admin", "status": "active", "isEmailVerified": True, "updatedAt": now}},
            )
            return "promoted"

        await db[USERS].insert_one({
            "fullName": full_name,
            "email": email,
            "password": hash_password(password),
            "phoneNumber": "",
            "address": "",
            "employmentStatus": "Employed",
            "profileImage": None,
            "role": "admin",
            "isAdvisor": False,
            "advisorProfile": None,
            "connectedAdvisor": None,
            "status": "active",
            "deactivatedAt": None,
            "isEmailVerified": True,
            "emailVerificationCode": None,
            "emailVerificationExpires": None,
            "passwordResetCode": None,
            "passwordResetExpires": None,
            "createdAt": now,
            "updatedAt": now,
        })
        return "created"
    finally:
        client.close()


def main() -> None:
    args = sys.argv[1:]
    email = args[0] if len(args) > 0 else os.getenv("ADMIN_EMAIL")
    password = args[1] if len(args) > 1 else os.getenv("ADMIN_PASSWORD")
    full_name = args[2] if len(args) > 2 else os.getenv("ADMIN_NAME", "Administrator")
    if not email or not password:
        print("❌ Usage: create_admin.py EMAIL PASSWORD [FULL_NAME] (or ADMIN_EMAIL / ADMIN_PASSWORD)")
        sys.exit(1)

    try:
        outcome = asyncio.run(ensure_admin(email, password, full_name))
        print(f"✅ Admin {email} {outcome}.")
    except Exception as e:
        print(f"❌ Failed to create admin: {e}")
        raise


if __name__ == "__main__":
    main()

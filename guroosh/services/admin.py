# guroosh/services/admin.py
import re
from typing import Any, Dict, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from guroosh.errors import ApiError
from guroosh.mongo_collections import ADVISOR_REQUESTS, MEETINGS, NOTIFICATIONS, REQUESTS, USERS
from guroosh.services.mappers import utcnow
from guroosh.services.users import issue_reset_code


async def overview(db: AsyncIOMotorDatabase) -> Dict[str, Any]:
    """Counts for the admin console landing page."""
    users = db[USERS]
    return {
        "users": {
            "total": await users.count_documents({}),
            "active": await users.count_documents({"status": {"$ne": "inactive"}}),
            "inactive": await users.count_documents({"status": "inactive"}),
            "verified": await users.count_documents({"isEmailVerified": True}),
            "admins": await users.count_documents({"role": "admin"}),
        },
        "advisors": {
            "total": await users.count_documents({"isAdvisor": True}),
            "available": await users.count_documents(
                {"isAdvisor": True, "advisorProfile.availability": "available"}
            ),
        },
        "requests": {
            "total": await db[REQUESTS].count_documents({}),
            "pending": await db[REQUESTS].count_documents({"status": "Pending"}),
            "active": await db[REQUESTS].count_documents({"status": {"$in": ["Accepted", "In Progress"]}}),
            "completed": await db[REQUESTS].count_documents({"status": "Completed"}),
        },
        "connections": {
            "pending": await db[ADVISOR_REQUESTS].count_documents({"status": "pending"}),
            "accepted": await db[ADVISOR_REQUESTS].count_documents({"status": "accepted"}),
        },
        "meetings": {
            "scheduled": await db[MEETINGS].count_documents({"status": "Scheduled"}),
        },
        "notifications": {
            "total": await db[NOTIFICATIONS].count_documents({}),
            "unread": await db[NOTIFICATIONS].count_documents({"read": False}),
        },
    }


async def list_users(
    db: AsyncIOMotorDatabase,
    q: Optional[str] = None,
    status: Optional[str] = None,
    role: Optional[str] = None,
) -> List[Dict[str, Any]]:
    query: Dict[str, Any] = {}
    if q and q.strip():
        pattern = re.escape(q.strip())
        query["$or"] = [
            {"fullName": {"$regex": pattern, "$options": "i"}},
            {"email": {"$regex": pattern, "$options": "i"}},
        ]
    if status == "inactive":
        query["status"] = "inactive"
    elif status == "active":
        query["status"] = {"$ne": "inactive"}
    if role == "advisor":
        query["isAdvisor"] = True
    elif role:
        query["role"] = role
    return [u async for u in db[USERS].find(query).sort("createdAt", -1)]


async def get_user(db: AsyncIOMotorDatabase, user_id: ObjectId) -> Dict[str, Any]:
    user = await db[USERS].find_one({"_id": user_id})
    if not user:
        raise ApiError(404, "User not found")
    return user


async def set_user_status(
    db: AsyncIOMotorDatabase, admin: Dict[str, Any], user_id: ObjectId, action: str
) -> Dict[str, Any]:
    if user_id == admin["_id"]:
        raise ApiError(400, "You cannot change your own account status")
    await get_user(db, user_id)

    now = utcnow()
    if action == "deactivate":
        fields = {"status": "inactive", "deactivatedAt": now, "updatedAt": now}
    else:
        fields = {"status": "active", "deactivatedAt": None, "updatedAt": now}
    updated = await db[USERS].find_one_and_update({"_id": user_id}, {"$set": fields}, return_document=True)
    print(f"[Admin] {admin['email']} set {updated['email']} to {fields['status']}")
    return updated


async def reset_user_password(db: AsyncIOMotorDatabase, user_id: ObjectId) -> Dict[str, Any]:
    user = await get_user(db, user_id)
    await issue_reset_code(db, user)
    return user

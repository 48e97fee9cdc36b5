"""
In-app notifications.

Every notification is its own document addressed to one user. A broadcast
is a batch insert of one document per recipient, so per-user read state
and deletion need no extra bookkeeping.
"""

from typing import Any, Dict, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from guroosh.errors import ApiError
from guroosh.mongo_collections import NOTIFICATIONS, USERS
from guroosh.services.mappers import utcnow
from guroosh.services.user_settings import is_category_enabled

AUDIENCE_FILTERS: Dict[str, Dict[str, Any]] = {
    "all": {},
    "advisors": {"$or": [{"role": "advisor"}, {"isAdvisor": True}]},
    "clients": {"role": {"$in": ["user", "client"]}, "isAdvisor": {"$ne": True}},
}


def _doc(user_id: ObjectId, type: str, title: str, message: str,
         category: Optional[str], metadata: Optional[Dict[str, Any]], read: bool) -> Dict[str, Any]:
    now = utcnow()
    return {
        "user": user_id,
        "type": type,
        "category": category,
        "title": title,
        "message": message,
        "read": read,
        "metadata": metadata or {},
        "createdAt": now,
        "updatedAt": now,
    }


async def create_notification(
    db: AsyncIOMotorDatabase,
    user_id: ObjectId,
    type: str,
    title: str,
    message: str,
    category: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Insert a notification. If the user muted `category` it is still stored
    (it shows in the history) but already marked read.
    """
    enabled = await is_category_enabled(db, user_id, category)
    doc = _doc(user_id, type, title, message, category, metadata, read=not enabled)
    result = await db[NOTIFICATIONS].insert_one(doc)
    doc["_id"] = result.inserted_id
    return doc


async def create_budget_notification(
    db: AsyncIOMotorDatabase,
    user_id: ObjectId,
    budget_id: ObjectId,
    budget_name: str,
    percent_used: float,
) -> Dict[str, Any]:
    if percent_used >= 100:
        type, title = "error", "Budget Exceeded"
        message = f"You've exceeded your {budget_name} budget by {round(percent_used - 100, 1)}%"
    elif percent_used >= 90:
        type, title = "warning", "Budget Alert"
        message = f"Warning: You've used {percent_used}% of your {budget_name} budget"
    else:
        type, title = "info", "Budget Update"
        message = f"You've used {percent_used}% of your {budget_name} budget"

    return await create_notification(
        db, user_id, type, title, message,
        category="budgetReminders",
        metadata={"budgetId": budget_id, "percentUsed": percent_used},
    )


async def create_investment_notification(
    db: AsyncIOMotorDatabase, user_id: ObjectId, investment: Dict[str, Any], amount: float
) -> Dict[str, Any]:
    return await create_notification(
        db, user_id, "investment",
        f"{investment['category']} Investment",
        f"Purchased {investment['name']} - SR {amount:.2f}",
        category="investmentUpdates",
        metadata={"investmentId": investment["_id"], "amount": amount},
    )


async def list_notifications(
    db: AsyncIOMotorDatabase, user_id: ObjectId, limit: int = 50, skip: int = 0, unread_only: bool = False
) -> Dict[str, Any]:
    query: Dict[str, Any] = {"user": user_id}
    if unread_only:
        query["read"] = False
    cursor = db[NOTIFICATIONS].find(query).sort("createdAt", -1).skip(skip).limit(limit)
    return {
        "notifications": [n async for n in cursor],
        "unreadCount": await unread_count(db, user_id),
        "totalCount": await db[NOTIFICATIONS].count_documents({"user": user_id}),
    }


async def unread_count(db: AsyncIOMotorDatabase, user_id: ObjectId) -> int:
    return await db[NOTIFICATIONS].count_documents({"user": user_id, "read": False})


async def latest_updates(db: AsyncIOMotorDatabase, user_id: ObjectId, limit: int = 10) -> List[Dict[str, Any]]:
    cursor = db[NOTIFICATIONS].find({"user": user_id}).sort("createdAt", -1).limit(limit)
    return [n async for n in cursor]


async def mark_read(db: AsyncIOMotorDatabase, user_id: ObjectId, notification_id: ObjectId) -> Dict[str, Any]:
    doc = await db[NOTIFICATIONS].find_one_and_update(
        {"_id": notification_id, "user": user_id},
        {"$set": {"read": True, "updatedAt": utcnow()}},
        return_document=True,
    )
    if not doc:
        raise ApiError(404, "Notification not found")
    return doc


async def mark_all_read(db: AsyncIOMotorDatabase, user_id: ObjectId) -> int:
    result = await db[NOTIFICATIONS].update_many(
        {"user": user_id, "read": False},
        {"$set": {"read": True, "updatedAt": utcnow()}},
    )
    return result.modified_count


async def delete_notification(db: AsyncIOMotorDatabase, user_id: ObjectId, notification_id: ObjectId) -> None:
    result = await db[NOTIFICATIONS].delete_one({"_id": notification_id, "user": user_id})
    if result.deleted_count == 0:
        raise ApiError(404, "Notification not found")


async def clear_notifications(db: AsyncIOMotorDatabase, user_id: ObjectId) -> int:
    result = await db[NOTIFICATIONS].delete_many({"user": user_id})
    return result.deleted_count


async def broadcast(
    db: AsyncIOMotorDatabase,
    sender: Dict[str, Any],
    title: Optional[str],
    message: Optional[str],
    type: str = "info",
    audience: str = "all",
) -> Dict[str, int]:
    """
    Admin fan-out: one notification per user matching `audience`.

    Returns {"successful": n, "failed": m}. Recipients who muted
    marketing still get it; broadcasts carry no category.
    """
    title = (title or "").strip()
    message = (message or "").strip()
    if not title or not message:
        raise ApiError(400, "Title and message are required")
    if audience not in AUDIENCE_FILTERS:
        raise ApiError(400, "Invalid audience")

    recipients = [u["_id"] async for u in db[USERS].find(AUDIENCE_FILTERS[audience], {"_id": 1})]
    if not recipients:
        raise ApiError(404, "No recipients found for the selected audience")

    metadata = {"audience": audience, "sentBy": sender["_id"], "broadcast": True}
    docs = [_doc(uid, type, title, message, None, metadata, read=False) for uid in recipients]
    result = await db[NOTIFICATIONS].insert_many(docs, ordered=False)
    successful = len(result.inserted_ids)
    failed = len(recipients) - successful
    print(f"[Notifications] Broadcast '{title}' to {audience}: {successful} sent, {failed} failed")
    return {"successful": successful, "failed": failed}

# guroosh/services/messages.py
from typing import Any, Dict, List

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from guroosh.errors import ApiError
from guroosh.mongo_collections import MESSAGES, REQUESTS
from guroosh.services import advice_requests as workflow
from guroosh.services.mappers import populate, utcnow


async def send_message(
    db: AsyncIOMotorDatabase, sender: Dict[str, Any], request_id: ObjectId, content: str | None
) -> Dict[str, Any]:
    """
    Post a message on a request. The first message on an Accepted request
    moves it to In Progress; closed requests take no more messages.
    """
    content = (content or "").strip()
    if not content:
        raise ApiError(400, "Message content is required")

    request = await workflow.get_request_for_participant(db, request_id, sender["_id"])
    if request["status"] in workflow.TERMINAL:
        raise ApiError(400, "Request is closed")

    role = workflow.participant_role(request, sender["_id"])
    now = utcnow()
    doc = {
        "request": request_id,
        "sender": sender["_id"],
        "senderRole": "Advisor" if role == "advisor" else "Client",
        "content": content,
        "isRead": False,
        "readAt": None,
        "createdAt": now,
        "updatedAt": now,
    }
    result = await db[MESSAGES].insert_one(doc)
    doc["_id"] = result.inserted_id

    if request["status"] == workflow.ACCEPTED:
        # a concurrent status change wins; the message is stored either way
        await db[REQUESTS].update_one(
            {"_id": request_id, "status": workflow.ACCEPTED},
            {"$set": {"status": workflow.IN_PROGRESS, "updatedAt": now}},
        )

    await populate(db, [doc], "sender")
    return doc


async def list_messages(db: AsyncIOMotorDatabase, user_id: ObjectId, request_id: ObjectId) -> List[Dict[str, Any]]:
    await workflow.get_request_for_participant(db, request_id, user_id)
    docs = [m async for m in db[MESSAGES].find({"request": request_id}).sort("createdAt", 1)]
    return await populate(db, docs, "sender")


async def mark_read(db: AsyncIOMotorDatabase, user_id: ObjectId, request_id: ObjectId) -> int:
    """Mark the other party's messages on a request as read. Returns how many changed."""
    await workflow.get_request_for_participant(db, request_id, user_id)
    result = await db[MESSAGES].update_many(
        {"request": request_id, "sender": {"$ne": user_id}, "isRead": False},
        {"$set": {"isRead": True, "readAt": utcnow()}},
    )
    return result.modified_count


async def unread_count(db: AsyncIOMotorDatabase, user_id: ObjectId) -> int:
    request_ids = [
        r["_id"]
        async for r in db[REQUESTS].find({"$or": [{"client": user_id}, {"advisor": user_id}]}, {"_id": 1})
    ]
    if not request_ids:
        return 0
    return await db[MESSAGES].count_documents({
        "request": {"$in": request_ids},
        "sender": {"$ne": user_id},
        "isRead": False,
    })


async def delete_message(db: AsyncIOMotorDatabase, user_id: ObjectId, message_id: ObjectId) -> None:
    message = await db[MESSAGES].find_one({"_id": message_id})
    if not message:
        raise ApiError(404, "Message not found")
    if message["sender"] != user_id:
        raise ApiError(403, "You can only delete your own messages")
    await db[MESSAGES].delete_one({"_id": message_id})

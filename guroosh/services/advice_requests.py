"""
Advice requests and their status workflow.

    Pending --accept--> Accepted --first message--> In Progress
       |                   |                           |
       +--decline (targeted)--> Declined               |
       +--------------- Cancelled / Closed / Completed +

Declined, Completed, Closed and Cancelled are terminal. An open request
(no preferred advisor) is visible to every advisor until one accepts it;
declining an open request only hides it from the advisor who declined.
"""

from typing import Any, Dict, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from guroosh.errors import ApiError
from guroosh.mongo_collections import REQUESTS, USERS
from guroosh.schemas import TOPICS, URGENCIES, AdviceRequestIn
from guroosh.services.mappers import populate, to_oid, utcnow

PENDING = "Pending"
ACCEPTED = "Accepted"
DECLINED = "Declined"
IN_PROGRESS = "In Progress"
COMPLETED = "Completed"
CLOSED = "Closed"
CANCELLED = "Cancelled"

TRANSITIONS: Dict[str, tuple] = {
    PENDING: (ACCEPTED, DECLINED, CANCELLED),
    ACCEPTED: (IN_PROGRESS, COMPLETED, CLOSED, CANCELLED),
    IN_PROGRESS: (COMPLETED, CLOSED, CANCELLED),
    DECLINED: (),
    COMPLETED: (),
    CLOSED: (),
    CANCELLED: (),
}
TERMINAL = tuple(s for s, nxt in TRANSITIONS.items() if not nxt)

# what participants may request through the status endpoint
USER_SETTABLE = (IN_PROGRESS, COMPLETED, CANCELLED, CLOSED)


def can_transition(current: str, new: str) -> bool:
    return new in TRANSITIONS.get(current, ())


def normalize_status(raw: str) -> Optional[str]:
    """Case-insensitive match against the statuses a participant may set."""
    raw = (raw or "").strip().lower()
    for option in USER_SETTABLE:
        if option.lower() == raw:
            return option
    return None


def participant_role(request: Dict[str, Any], user_id: ObjectId) -> Optional[str]:
    """'client', 'advisor' or None."""
    if request.get("client") == user_id:
        return "client"
    if request.get("advisor") is not None and request.get("advisor") == user_id:
        return "advisor"
    return None


async def get_request_or_404(db: AsyncIOMotorDatabase, request_id: ObjectId) -> Dict[str, Any]:
    request = await db[REQUESTS].find_one({"_id": request_id})
    if not request:
        raise ApiError(404, "Request not found")
    return request


async def get_request_for_participant(
    db: AsyncIOMotorDatabase, request_id: ObjectId, user_id: ObjectId
) -> Dict[str, Any]:
    request = await get_request_or_404(db, request_id)
    if participant_role(request, user_id) is None:
        raise ApiError(403, "Access denied")
    return request


async def _populate_parties(db: AsyncIOMotorDatabase, docs: List[Dict[str, Any]], detailed: bool = False):
    client_fields = ("fullName", "email", "phoneNumber", "address") if detailed else ("fullName", "email", "phoneNumber")
    await populate(db, docs, "client", client_fields)
    await populate(db, docs, "advisor", ("fullName", "email"))
    return docs


async def create_request(
    db: AsyncIOMotorDatabase, client: Dict[str, Any], body: AdviceRequestIn
) -> Dict[str, Any]:
    title = (body.title or "").strip()
    description = (body.description or "").strip()
    if not title or not body.topic or not description:
        raise ApiError(400, "Title, topic, and description are required")
    if body.topic not in TOPICS:
        raise ApiError(400, "Invalid topic")
    urgency = body.urgency or "Normal"
    if urgency not in URGENCIES:
        raise ApiError(400, "Invalid urgency")

    preferred = None
    if body.preferredAdvisor:
        preferred = to_oid(body.preferredAdvisor)
        advisor = await db[USERS].find_one({"_id": preferred})
        if not advisor or not advisor.get("isAdvisor"):
            raise ApiError(404, "Advisor not found")

    now = utcnow()
    doc = {
        "client": client["_id"],
        # a preferred advisor gets the request in their queue straight away
        "advisor": preferred,
        "preferredAdvisor": preferred,
        "title": title,
        "topic": body.topic,
        "urgency": urgency,
        "description": description,
        "budget": body.budget,
        "attachments": body.attachments or [],
        "status": PENDING,
        "draft": None,
        "declinedBy": [],
        "deletedByClient": False,
        "deletedByAdvisor": False,
        "createdAt": now,
        "updatedAt": now,
    }
    result = await db[REQUESTS].insert_one(doc)
    doc["_id"] = result.inserted_id
    return (await _populate_parties(db, [doc]))[0]


async def list_requests(
    db: AsyncIOMotorDatabase, user: Dict[str, Any], status: Optional[str] = None
) -> List[Dict[str, Any]]:
    uid = user["_id"]
    if user.get("isAdvisor"):
        query: Dict[str, Any] = {
            "deletedByAdvisor": {"$ne": True},
            "$or": [
                {"advisor": uid},
                {"advisor": None, "status": PENDING, "declinedBy": {"$ne": uid}},
            ],
        }
    else:
        query = {"client": uid, "deletedByClient": {"$ne": True}}
    if status:
        query["status"] = status

    docs = [d async for d in db[REQUESTS].find(query).sort("createdAt", -1)]
    return await _populate_parties(db, docs)


async def get_request(db: AsyncIOMotorDatabase, request_id: ObjectId, user_id: ObjectId) -> Dict[str, Any]:
    request = await get_request_or_404(db, request_id)
    # an open request is readable by any advisor who might pick it up
    if participant_role(request, user_id) is None:
        user = await db[USERS].find_one({"_id": user_id})
        open_for_me = (
            request.get("advisor") is None
            and request["status"] == PENDING
            and bool(user and user.get("isAdvisor"))
            and user_id not in (request.get("declinedBy") or [])
        )
        if not open_for_me:
            raise ApiError(403, "Access denied")
    return (await _populate_parties(db, [request], detailed=True))[0]


async def accept_request(db: AsyncIOMotorDatabase, advisor: Dict[str, Any], request_id: ObjectId) -> Dict[str, Any]:
    if not advisor.get("isAdvisor"):
        raise ApiError(403, "Only advisors can accept requests")
    request = await get_request_or_404(db, request_id)
    if request["status"] != PENDING:
        raise ApiError(400, "Request has already been processed")
    assigned = request.get("advisor")
    if assigned is not None and assigned != advisor["_id"]:
        raise ApiError(403, "Access denied")
    if advisor["_id"] in (request.get("declinedBy") or []):
        raise ApiError(403, "Access denied")

    # guard on status so two advisors can't both take an open request
    updated = await db[REQUESTS].find_one_and_update(
        {"_id": request_id, "status": PENDING, "advisor": assigned},
        {"$set": {"status": ACCEPTED, "advisor": advisor["_id"], "updatedAt": utcnow()}},
        return_document=True,
    )
    if updated is None:
        raise ApiError(400, "Request has already been processed")
    return (await _populate_parties(db, [updated]))[0]


async def decline_request(db: AsyncIOMotorDatabase, advisor: Dict[str, Any], request_id: ObjectId) -> Dict[str, Any]:
    if not advisor.get("isAdvisor"):
        raise ApiError(403, "Only advisors can decline requests")
    request = await get_request_or_404(db, request_id)
    if request["status"] != PENDING:
        raise ApiError(400, "Request has already been processed")

    assigned = request.get("advisor")
    if assigned == advisor["_id"]:
        update = {"$set": {"status": DECLINED, "advisor": None, "updatedAt": utcnow()}}
    elif assigned is None:
        update = {
            "$addToSet": {"declinedBy": advisor["_id"]},
            "$set": {"updatedAt": utcnow()},
        }
    else:
        raise ApiError(403, "Access denied")

    return await db[REQUESTS].find_one_and_update({"_id": request_id}, update, return_document=True)


async def update_status(
    db: AsyncIOMotorDatabase, user_id: ObjectId, request_id: ObjectId, raw_status: str
) -> Dict[str, Any]:
    new_status = normalize_status(raw_status)
    if not new_status:
        raise ApiError(400, "Invalid status")

    request = await get_request_for_participant(db, request_id, user_id)
    current = request["status"]
    if current == new_status:
        return request
    if not can_transition(current, new_status):
        raise ApiError(400, f"Cannot change status from {current} to {new_status}")

    return await set_status(db, request_id, current, new_status)


async def set_status(db: AsyncIOMotorDatabase, request_id: ObjectId, current: str, new_status: str):
    updated = await db[REQUESTS].find_one_and_update(
        {"_id": request_id, "status": current},
        {"$set": {"status": new_status, "updatedAt": utcnow()}},
        return_document=True,
    )
    if updated is None:
        raise ApiError(409, "Request status changed, please reload")
    return updated


async def delete_request(db: AsyncIOMotorDatabase, user_id: ObjectId, request_id: ObjectId) -> Dict[str, Any]:
    """
    Archive a request for the caller. A client deleting a live request also
    cancels it.
    """
    request = await get_request_for_participant(db, request_id, user_id)
    role = participant_role(request, user_id)

    fields: Dict[str, Any] = {"updatedAt": utcnow()}
    if role == "client":
        fields["deletedByClient"] = True
        if request["status"] in (PENDING, ACCEPTED, IN_PROGRESS):
            fields["status"] = CANCELLED
    else:
        fields["deletedByAdvisor"] = True

    return await db[REQUESTS].find_one_and_update(
        {"_id": request_id}, {"$set": fields}, return_document=True
    )


async def save_draft(db: AsyncIOMotorDatabase, advisor_id: ObjectId, request_id: ObjectId, content: str) -> None:
    request = await get_request_or_404(db, request_id)
    if request.get("advisor") != advisor_id:
        raise ApiError(403, "Access denied")
    await db[REQUESTS].update_one(
        {"_id": request_id},
        {"$set": {"draft": content, "updatedAt": utcnow()}},
    )


async def client_history(
    db: AsyncIOMotorDatabase, advisor: Dict[str, Any], client_id: ObjectId
) -> Dict[str, Any]:
    if not advisor.get("isAdvisor"):
        raise ApiError(403, "Only advisors can view client history")
    client = await db[USERS].find_one({"_id": client_id}, {"fullName": 1, "email": 1, "createdAt": 1})
    if not client:
        raise ApiError(404, "Client not found")

    requests = [
        r async for r in db[REQUESTS].find({"client": client_id, "advisor": advisor["_id"]}).sort("createdAt", -1)
    ]
    client["memberSince"] = client.get("createdAt")
    client["totalRequests"] = len(requests)
    return {"client": client, "requests": requests}

# guroosh/services/advisors.py
from typing import Any, Dict, List

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from guroosh.errors import ApiError
from guroosh.mongo_collections import ADVISOR_REQUESTS, MEETINGS, REQUESTS, USERS
from guroosh.schemas import AVAILABILITY, AdvisorProfileIn
from guroosh.services.mappers import populate, utcnow
from guroosh.services.users import default_advisor_profile


def _is_advisor(user: Dict[str, Any] | None) -> bool:
    return bool(user) and bool(user.get("isAdvisor"))


async def list_available_advisors(db: AsyncIOMotorDatabase) -> List[Dict[str, Any]]:
    cursor = db[USERS].find({
        "isAdvisor": True,
        "advisorProfile.availability": "available",
        "status": {"$ne": "inactive"},
    }).sort("fullName", 1)
    return [u async for u in cursor]


async def get_advisor(db: AsyncIOMotorDatabase, advisor_id: ObjectId) -> Dict[str, Any]:
    advisor = await db[USERS].find_one({"_id": advisor_id})
    if not _is_advisor(advisor):
        raise ApiError(404, "Advisor not found")
    return advisor


async def become_advisor(
    db: AsyncIOMotorDatabase, user: Dict[str, Any], body: AdvisorProfileIn
) -> Dict[str, Any]:
    """
    Upgrade a regular user to advisor. Omitted profile fields get defaults
    (no credentials or specializations, zero experience and rate, available).
    """
    if user.get("isAdvisor"):
        raise ApiError(400, "User is already an advisor")

    profile = default_advisor_profile(
        bio=body.bio,
        credentials=body.credentials,
        specializations=body.specializations,
        yearsOfExperience=body.yearsOfExperience,
        hourlyRate=body.hourlyRate,
    )
    return await db[USERS].find_one_and_update(
        {"_id": user["_id"]},
        {"$set": {
            "isAdvisor": True,
            "role": "advisor" if user.get("role") != "admin" else "admin",
            "advisorProfile": profile,
            "updatedAt": utcnow(),
        }},
        return_document=True,
    )


async def update_advisor_profile(
    db: AsyncIOMotorDatabase, user: Dict[str, Any], body: AdvisorProfileIn
) -> Dict[str, Any]:
    if not _is_advisor(user):
        raise ApiError(404, "Advisor not found")

    fields = {f"advisorProfile.{k}": v for k, v in body.model_dump(exclude_unset=True).items() if v is not None}
    fields["updatedAt"] = utcnow()
    return await db[USERS].find_one_and_update(
        {"_id": user["_id"]}, {"$set": fields}, return_document=True
    )


# ---------------- connection requests ----------------

async def send_connection_request(
    db: AsyncIOMotorDatabase, user: Dict[str, Any], advisor_id: ObjectId, message: str = ""
) -> Dict[str, Any]:
    """
    One request per (user, advisor) pair, whatever its status.

    Raises:
        ApiError(404) if the target is not an advisor
        ApiError(400, status=...) if a request already exists
    """
    if advisor_id == user["_id"]:
        raise ApiError(400, "You cannot send a connection request to yourself")
    await get_advisor(db, advisor_id)

    existing = await db[ADVISOR_REQUESTS].find_one({"user": user["_id"], "advisor": advisor_id})
    if existing:
        raise ApiError(400, "Connection request already sent", status=existing["status"])

    now = utcnow()
    doc = {
        "user": user["_id"],
        "advisor": advisor_id,
        "message": message or "",
        "status": "pending",
        "responseMessage": "",
        "createdAt": now,
        "updatedAt": now,
    }
    try:
        result = await db[ADVISOR_REQUESTS].insert_one(doc)
    except DuplicateKeyError:
        # lost a race against a concurrent request for the same pair
        existing = await db[ADVISOR_REQUESTS].find_one({"user": user["_id"], "advisor": advisor_id})
        raise ApiError(400, "Connection request already sent", status=(existing or {}).get("status", "pending"))
    doc["_id"] = result.inserted_id

    await populate(db, [doc], "user")
    await populate(db, [doc], "advisor")
    return doc


async def list_my_connection_requests(db: AsyncIOMotorDatabase, user_id: ObjectId) -> List[Dict[str, Any]]:
    docs = [d async for d in db[ADVISOR_REQUESTS].find({"user": user_id}).sort("createdAt", -1)]
    return await populate(db, docs, "advisor", ("fullName", "email", "advisorProfile"))


async def list_received_connection_requests(
    db: AsyncIOMotorDatabase, advisor: Dict[str, Any]
) -> List[Dict[str, Any]]:
    if not _is_advisor(advisor):
        raise ApiError(403, "Access denied. Advisor only.")
    docs = [d async for d in db[ADVISOR_REQUESTS].find({"advisor": advisor["_id"]}).sort("createdAt", -1)]
    return await populate(db, docs, "user", ("fullName", "email", "phoneNumber"))


async def respond_to_connection_request(
    db: AsyncIOMotorDatabase,
    advisor_id: ObjectId,
    request_id: ObjectId,
    status: str,
    response_message: str = "",
) -> Dict[str, Any]:
    """
    Accept or reject a pending connection request. Accepting links the
    requesting user to this advisor (user.connectedAdvisor).
    """
    if status not in ("accepted", "rejected"):
        raise ApiError(400, "Invalid status")

    request = await db[ADVISOR_REQUESTS].find_one({"_id": request_id})
    if not request:
        raise ApiError(404, "Request not found")
    if request["advisor"] != advisor_id:
        raise ApiError(403, "Access denied")
    if request["status"] != "pending":
        raise ApiError(400, "Request already processed")

    updated = await db[ADVISOR_REQUESTS].find_one_and_update(
        {"_id": request_id, "status": "pending"},
        {"$set": {
            "status": status,
            "responseMessage": response_message or "",
            "updatedAt": utcnow(),
        }},
        return_document=True,
    )
    if updated is None:
        raise ApiError(400, "Request already processed")

    if status == "accepted":
        await db[USERS].update_one(
            {"_id": request["user"]},
            {"$set": {"connectedAdvisor": advisor_id, "updatedAt": utcnow()}},
        )

    await populate(db, [updated], "user")
    return updated


async def get_connected_advisor(db: AsyncIOMotorDatabase, user: Dict[str, Any]) -> Dict[str, Any]:
    advisor_id = user.get("connectedAdvisor")
    advisor = await db[USERS].find_one({"_id": advisor_id}) if advisor_id else None
    if not advisor:
        raise ApiError(404, "No advisor connected")
    return advisor


async def disconnect_advisor(db: AsyncIOMotorDatabase, user_id: ObjectId) -> None:
    await db[USERS].update_one(
        {"_id": user_id},
        {"$set": {"connectedAdvisor": None, "updatedAt": utcnow()}},
    )


# ---------------- availability & stats ----------------

async def set_availability(db: AsyncIOMotorDatabase, user: Dict[str, Any], availability: str | None) -> str:
    if availability not in AVAILABILITY:
        raise ApiError(400, "Invalid availability status. Must be: available, busy, or unavailable")
    if not _is_advisor(user):
        raise ApiError(403, "Only advisors can update availability")
    await db[USERS].update_one(
        {"_id": user["_id"]},
        {"$set": {"advisorProfile.availability": availability, "updatedAt": utcnow()}},
    )
    return availability


async def advisor_stats(db: AsyncIOMotorDatabase, advisor: Dict[str, Any]) -> Dict[str, Any]:
    if not _is_advisor(advisor):
        raise ApiError(403, "Only advisors can view statistics")
    aid = advisor["_id"]
    profile = advisor.get("advisorProfile") or {}

    return {
        "requests": {
            "total": await db[REQUESTS].count_documents({"advisor": aid}),
            "pending": await db[REQUESTS].count_documents({"advisor": aid, "status": "Pending"}),
            "active": await db[REQUESTS].count_documents(
                {"advisor": aid, "status": {"$in": ["Accepted", "In Progress"]}}
            ),
            "completed": await db[REQUESTS].count_documents({"advisor": aid, "status": "Completed"}),
        },
        "meetings": {
            "total": await db[MEETINGS].count_documents({"advisor": aid}),
            "upcoming": await db[MEETINGS].count_documents(
                {"advisor": aid, "status": "Scheduled", "dateTime": {"$gte": utcnow()}}
            ),
        },
        "clients": {
            "connected": await db[USERS].count_documents({"connectedAdvisor": aid}),
        },
        "profile": {
            "rating": profile.get("rating", 0),
            "totalReviews": profile.get("totalReviews", 0),
            "availability": profile.get("availability", "available"),
        },
    }

# guroosh/services/meetings.py
import datetime as dt
from typing import Any, Dict, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from guroosh.errors import ApiError
from guroosh.mongo_collections import MEETINGS, REQUESTS
from guroosh.schemas import MeetingIn, MeetingUpdate
from guroosh.services import advice_requests as workflow
from guroosh.services.mappers import patch_fields, populate, to_mongo_safe, utcnow

SCHEDULED = "Scheduled"
COMPLETED = "Completed"
CANCELLED = "Cancelled"


def _mine(user_id: ObjectId) -> Dict[str, Any]:
    return {"$or": [{"client": user_id}, {"advisor": user_id}]}


async def _populate(db: AsyncIOMotorDatabase, docs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    await populate(db, docs, "client")
    await populate(db, docs, "advisor")
    return docs


async def _participant_meeting(db: AsyncIOMotorDatabase, user_id: ObjectId, meeting_id: ObjectId):
    meeting = await db[MEETINGS].find_one({"_id": meeting_id})
    if not meeting:
        raise ApiError(404, "Meeting not found")
    if user_id not in (meeting.get("client"), meeting.get("advisor")):
        raise ApiError(403, "Access denied")
    return meeting


def _future(value: dt.datetime) -> dt.datetime:
    value = to_mongo_safe(value)
    if value <= utcnow():
        raise ApiError(400, "Meeting date must be in the future")
    return value


async def schedule_meeting(
    db: AsyncIOMotorDatabase, user_id: ObjectId, request_id: ObjectId, body: MeetingIn
) -> Dict[str, Any]:
    if body.dateTime is None:
        raise ApiError(400, "Meeting date and time are required")
    request = await workflow.get_request_for_participant(db, request_id, user_id)
    if request.get("advisor") is None:
        raise ApiError(400, "Cannot schedule meeting - no advisor assigned to this request")
    when = _future(body.dateTime)

    now = utcnow()
    doc = {
        "request": request_id,
        "client": request["client"],
        "advisor": request["advisor"],
        "title": body.title or f"Meeting: {request.get('title', '')}".strip(),
        "description": body.description,
        "dateTime": when,
        "duration": body.duration,
        "meetingType": body.meetingType,
        "meetingLink": body.meetingLink,
        "location": body.location,
        "status": SCHEDULED,
        "scheduledBy": user_id,
        "cancellationReason": None,
        "cancelledBy": None,
        "completedAt": None,
        "notes": None,
        "createdAt": now,
        "updatedAt": now,
    }
    result = await db[MEETINGS].insert_one(doc)
    doc["_id"] = result.inserted_id
    return (await _populate(db, [doc]))[0]


async def list_meetings(db: AsyncIOMotorDatabase, user_id: ObjectId, status: Optional[str] = None):
    query = _mine(user_id)
    if status:
        query["status"] = status
    docs = [m async for m in db[MEETINGS].find(query).sort("dateTime", 1)]
    return await _populate(db, docs)


async def upcoming_meetings(db: AsyncIOMotorDatabase, user_id: ObjectId, days: int = 7):
    now = utcnow()
    query = _mine(user_id)
    query.update({
        "status": SCHEDULED,
        "dateTime": {"$gte": now, "$lte": now + dt.timedelta(days=days)},
    })
    docs = [m async for m in db[MEETINGS].find(query).sort("dateTime", 1)]
    await _populate(db, docs)
    return await populate(db, docs, "request", ("title", "topic"), collection=REQUESTS)


async def request_meetings(db: AsyncIOMotorDatabase, user_id: ObjectId, request_id: ObjectId):
    await workflow.get_request_for_participant(db, request_id, user_id)
    docs = [m async for m in db[MEETINGS].find({"request": request_id}).sort("dateTime", 1)]
    return await _populate(db, docs)


async def get_meeting(db: AsyncIOMotorDatabase, user_id: ObjectId, meeting_id: ObjectId):
    meeting = await _participant_meeting(db, user_id, meeting_id)
    return (await _populate(db, [meeting]))[0]


async def update_meeting(db: AsyncIOMotorDatabase, user_id: ObjectId, meeting_id: ObjectId, body: MeetingUpdate):
    meeting = await _participant_meeting(db, user_id, meeting_id)
    if meeting["status"] != SCHEDULED:
        raise ApiError(400, "Cannot update meetings that are completed or cancelled")

    fields = patch_fields(body, clearable=("description", "meetingLink", "location"))
    if fields.get("dateTime") is not None:
        fields["dateTime"] = _future(fields["dateTime"])
    else:
        fields.pop("dateTime", None)
    fields["updatedAt"] = utcnow()
    return await db[MEETINGS].find_one_and_update(
        {"_id": meeting_id}, {"$set": fields}, return_document=True
    )


async def cancel_meeting(db: AsyncIOMotorDatabase, user_id: ObjectId, meeting_id: ObjectId, reason: Optional[str]):
    meeting = await _participant_meeting(db, user_id, meeting_id)
    if meeting["status"] == COMPLETED:
        raise ApiError(400, "Cannot cancel completed meetings")
    if meeting["status"] == CANCELLED:
        raise ApiError(400, "Meeting is already cancelled")
    return await db[MEETINGS].find_one_and_update(
        {"_id": meeting_id},
        {"$set": {
            "status": CANCELLED,
            "cancellationReason": reason,
            "cancelledBy": user_id,
            "updatedAt": utcnow(),
        }},
        return_document=True,
    )


async def complete_meeting(db: AsyncIOMotorDatabase, user_id: ObjectId, meeting_id: ObjectId, notes: Optional[str]):
    meeting = await db[MEETINGS].find_one({"_id": meeting_id})
    if not meeting:
        raise ApiError(404, "Meeting not found")
    if meeting.get("advisor") != user_id:
        raise ApiError(403, "Only the advisor can mark meetings as completed")
    if meeting["status"] == COMPLETED:
        raise ApiError(400, "Meeting is already completed")
    if meeting["status"] == CANCELLED:
        raise ApiError(400, "Cannot complete a cancelled meeting")
    now = utcnow()
    fields: Dict[str, Any] = {"status": COMPLETED, "completedAt": now, "updatedAt": now}
    if notes is not None:
        fields["notes"] = notes
    return await db[MEETINGS].find_one_and_update(
        {"_id": meeting_id}, {"$set": fields}, return_document=True
    )

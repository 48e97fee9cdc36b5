# guroosh/services/notes.py
import re
from typing import Any, Dict, List

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from guroosh.errors import ApiError
from guroosh.mongo_collections import NOTES
from guroosh.schemas import NoteIn, NoteUpdate
from guroosh.services import advice_requests as workflow
from guroosh.services.mappers import patch_fields, populate, utcnow


async def _own_request(db: AsyncIOMotorDatabase, advisor_id: ObjectId, request_id: ObjectId, verb: str):
    request = await workflow.get_request_or_404(db, request_id)
    if request.get("advisor") != advisor_id:
        raise ApiError(403, f"You can only {verb} notes for your own requests")
    return request


async def _own_note(db: AsyncIOMotorDatabase, advisor_id: ObjectId, note_id: ObjectId, verb: str):
    note = await db[NOTES].find_one({"_id": note_id})
    if not note:
        raise ApiError(404, "Note not found")
    if note["advisor"] != advisor_id:
        raise ApiError(403, f"You can only {verb} your own notes" if verb else "Access denied")
    return note


async def create_note(
    db: AsyncIOMotorDatabase, advisor_id: ObjectId, request_id: ObjectId, body: NoteIn
) -> Dict[str, Any]:
    content = (body.content or "").strip()
    if not content:
        raise ApiError(400, "Note content is required")
    request = await _own_request(db, advisor_id, request_id, "create")

    now = utcnow()
    doc = {
        "request": request_id,
        "advisor": advisor_id,
        "client": request["client"],
        "title": (body.title or "").strip() or None,
        "content": content,
        "tags": body.tags,
        "createdAt": now,
        "updatedAt": now,
    }
    result = await db[NOTES].insert_one(doc)
    doc["_id"] = result.inserted_id
    return doc


async def list_request_notes(db: AsyncIOMotorDatabase, advisor_id: ObjectId, request_id: ObjectId) -> List[Dict[str, Any]]:
    await _own_request(db, advisor_id, request_id, "view")
    return [n async for n in db[NOTES].find({"request": request_id, "advisor": advisor_id}).sort("createdAt", -1)]


async def list_notes(db: AsyncIOMotorDatabase, advisor_id: ObjectId) -> List[Dict[str, Any]]:
    docs = [n async for n in db[NOTES].find({"advisor": advisor_id}).sort("createdAt", -1)]
    return await populate(db, docs, "client")


async def search_notes(db: AsyncIOMotorDatabase, advisor_id: ObjectId, q: str | None) -> List[Dict[str, Any]]:
    q = (q or "").strip()
    if not q:
        raise ApiError(400, "Search query is required")
    pattern = re.escape(q)
    docs = [
        n async for n in db[NOTES].find({
            "advisor": advisor_id,
            "$or": [
                {"content": {"$regex": pattern, "$options": "i"}},
                {"title": {"$regex": pattern, "$options": "i"}},
            ],
        }).sort("createdAt", -1)
    ]
    return await populate(db, docs, "client")


async def get_note(db: AsyncIOMotorDatabase, advisor_id: ObjectId, note_id: ObjectId) -> Dict[str, Any]:
    return await _own_note(db, advisor_id, note_id, "")


async def update_note(
    db: AsyncIOMotorDatabase, advisor_id: ObjectId, note_id: ObjectId, body: NoteUpdate
) -> Dict[str, Any]:
    await _own_note(db, advisor_id, note_id, "update")
    fields = patch_fields(body)
    if "content" in fields and not (fields["content"] or "").strip():
        raise ApiError(400, "Note content is required")
    fields["updatedAt"] = utcnow()
    return await db[NOTES].find_one_and_update({"_id": note_id}, {"$set": fields}, return_document=True)


async def delete_note(db: AsyncIOMotorDatabase, advisor_id: ObjectId, note_id: ObjectId) -> None:
    await _own_note(db, advisor_id, note_id, "delete")
    await db[NOTES].delete_one({"_id": note_id})

# guroosh/services/categories.py
import re
from typing import Any, Dict, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from guroosh.errors import ApiError
from guroosh.mongo_collections import CATEGORIES
from guroosh.schemas import CategoryIn, CategoryUpdate
from guroosh.services.mappers import utcnow


def _same_name(name: str) -> Dict[str, Any]:
    return {"$regex": f"^{re.escape(name)}$", "$options": "i"}


async def list_categories(db: AsyncIOMotorDatabase, user_id: ObjectId, type: Optional[str] = None) -> List[Dict[str, Any]]:
    query: Dict[str, Any] = {"userId": user_id}
    if type:
        query["type"] = type
    return [c async for c in db[CATEGORIES].find(query).sort("name", 1)]


async def get_category(db: AsyncIOMotorDatabase, user_id: ObjectId, category_id: ObjectId) -> Dict[str, Any]:
    category = await db[CATEGORIES].find_one({"_id": category_id, "userId": user_id})
    if not category:
        raise ApiError(404, "Category not found")
    return category


async def create_category(db: AsyncIOMotorDatabase, user_id: ObjectId, body: CategoryIn) -> Dict[str, Any]:
    """Names are unique per user and type, ignoring case."""
    if await db[CATEGORIES].find_one({"userId": user_id, "type": body.type, "name": _same_name(body.name)}):
        raise ApiError(400, "Category already exists")

    now = utcnow()
    doc = {
        "userId": user_id,
        "name": body.name,
        "type": body.type,
        "color": body.color,
        "icon": body.icon,
        "isActive": True,
        "createdAt": now,
        "updatedAt": now,
    }
    try:
        result = await db[CATEGORIES].insert_one(doc)
    except DuplicateKeyError:
        raise ApiError(400, "Category already exists")
    doc["_id"] = result.inserted_id
    return doc


async def update_category(
    db: AsyncIOMotorDatabase, user_id: ObjectId, category_id: ObjectId, body: CategoryUpdate
) -> Dict[str, Any]:
    category = await get_category(db, user_id, category_id)
    fields = body.model_dump(exclude_unset=True, exclude_none=True)
    if "name" in fields:
        fields["name"] = fields["name"].strip()
        clash = await db[CATEGORIES].find_one({
            "userId": user_id,
            "type": category["type"],
            "name": _same_name(fields["name"]),
            "_id": {"$ne": category_id},
        })
        if clash:
            raise ApiError(400, "Category already exists")
    fields["updatedAt"] = utcnow()
    return await db[CATEGORIES].find_one_and_update(
        {"_id": category_id}, {"$set": fields}, return_document=True
    )


async def delete_category(db: AsyncIOMotorDatabase, user_id: ObjectId, category_id: ObjectId) -> None:
    result = await db[CATEGORIES].delete_one({"_id": category_id, "userId": user_id})
    if result.deleted_count == 0:
        raise ApiError(404, "Category not found")

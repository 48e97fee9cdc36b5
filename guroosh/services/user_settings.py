# guroosh/services/user_settings.py
import copy
from typing import Any, Dict

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from guroosh.mongo_collections import SETTINGS
from guroosh.schemas import SettingsUpdate
from guroosh.services.mappers import utcnow

DEFAULT_SETTINGS: Dict[str, Any] = {
    "preferences": {
        "currency": "SAR",
        "language": "en",
        "dateFormat": "DD/MM/YYYY",
    },
    "notifications": {
        "email": True,
        "push": True,
        "budgetAlerts": True,
        "goalReminders": True,
    },
    "alertSettings": {
        "transactionAlerts": True,
        "budgetReminders": True,
        "investmentUpdates": True,
        "marketingEmails": False,
    },
    "privacy": {
        "profileVisibility": "private",
        "showEmail": False,
    },
}

SECTIONS = tuple(DEFAULT_SETTINGS)


def _defaults() -> Dict[str, Any]:
    return copy.deepcopy(DEFAULT_SETTINGS)


async def get_settings(db: AsyncIOMotorDatabase, user_id: ObjectId) -> Dict[str, Any]:
    """Settings for a user, created with defaults on first read."""
    doc = await db[SETTINGS].find_one({"userId": user_id})
    if doc:
        # sections added after the doc was created
        for section, values in DEFAULT_SETTINGS.items():
            merged = dict(values)
            merged.update(doc.get(section) or {})
            doc[section] = merged
        return doc

    now = utcnow()
    doc = {"userId": user_id, **_defaults(), "createdAt": now, "updatedAt": now}
    await db[SETTINGS].update_one(
        {"userId": user_id},
        {"$setOnInsert": doc},
        upsert=True,
    )
    return await db[SETTINGS].find_one({"userId": user_id})


async def update_settings(db: AsyncIOMotorDatabase, user_id: ObjectId, body: SettingsUpdate) -> Dict[str, Any]:
    """Merge the sent keys into each section; untouched keys keep their value."""
    await get_settings(db, user_id)
    fields: Dict[str, Any] = {}
    for section, values in body.model_dump(exclude_unset=True, exclude_none=True).items():
        for key, value in values.items():
            fields[f"{section}.{key}"] = value
    fields["updatedAt"] = utcnow()
    await db[SETTINGS].update_one({"userId": user_id}, {"$set": fields})
    return await get_settings(db, user_id)


async def reset_settings(db: AsyncIOMotorDatabase, user_id: ObjectId) -> Dict[str, Any]:
    await db[SETTINGS].update_one(
        {"userId": user_id},
        {"$set": {**_defaults(), "updatedAt": utcnow()}, "$setOnInsert": {"createdAt": utcnow()}},
        upsert=True,
    )
    return await get_settings(db, user_id)


async def is_category_enabled(db: AsyncIOMotorDatabase, user_id: ObjectId, category: str | None) -> bool:
    """Users who never saved settings get everything."""
    if not category:
        return True
    doc = await db[SETTINGS].find_one({"userId": user_id}, {"alertSettings": 1})
    if not doc or not doc.get("alertSettings"):
        return True
    return doc["alertSettings"].get(category, True) is not False

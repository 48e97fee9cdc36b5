# guroosh/services/goals.py
from typing import Any, Dict, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from guroosh.errors import ApiError
from guroosh.mongo_collections import GOALS
from guroosh.schemas import GoalIn, GoalUpdate
from guroosh.services.mappers import patch_fields, to_mongo_safe, utcnow


def _status_for(saved: float, target: float) -> str:
    return "completed" if saved >= target else "in-progress"


def with_progress(goal: Dict[str, Any]) -> Dict[str, Any]:
    target = goal.get("targetAmount") or 0
    goal["progress"] = round(min(goal.get("savedAmount", 0) / target * 100, 100), 1) if target else 0
    return goal


async def list_goals(db: AsyncIOMotorDatabase, user_id: ObjectId) -> List[Dict[str, Any]]:
    goals = [g async for g in db[GOALS].find({"userId": user_id})]
    # no deadline sorts last
    goals.sort(key=lambda g: (g.get("deadline") is None, g.get("deadline") or 0))
    return [with_progress(g) for g in goals]


async def get_goal(db: AsyncIOMotorDatabase, user_id: ObjectId, goal_id: ObjectId) -> Dict[str, Any]:
    goal = await db[GOALS].find_one({"_id": goal_id, "userId": user_id})
    if not goal:
        raise ApiError(404, "Goal not found")
    return goal


async def create_goal(db: AsyncIOMotorDatabase, user_id: ObjectId, body: GoalIn) -> Dict[str, Any]:
    now = utcnow()
    doc = {
        "userId": user_id,
        "name": body.name.strip(),
        "targetAmount": body.targetAmount,
        "savedAmount": body.savedAmount,
        "deadline": to_mongo_safe(body.deadline),
        "status": _status_for(body.savedAmount, body.targetAmount),
        "createdAt": now,
        "updatedAt": now,
    }
    result = await db[GOALS].insert_one(doc)
    doc["_id"] = result.inserted_id
    return with_progress(doc)


async def update_goal(
    db: AsyncIOMotorDatabase, user_id: ObjectId, goal_id: ObjectId, body: GoalUpdate
) -> Dict[str, Any]:
    goal = await get_goal(db, user_id, goal_id)
    fields = patch_fields(body, clearable=("deadline",))
    if "status" not in fields and ("savedAmount" in fields or "targetAmount" in fields):
        fields["status"] = _status_for(
            fields.get("savedAmount", goal.get("savedAmount", 0)),
            fields.get("targetAmount", goal["targetAmount"]),
        )
    fields["updatedAt"] = utcnow()
    updated = await db[GOALS].find_one_and_update(
        {"_id": goal_id}, {"$set": fields}, return_document=True
    )
    return with_progress(updated)


async def add_progress(
    db: AsyncIOMotorDatabase, user_id: ObjectId, goal_id: ObjectId, amount: Optional[float]
) -> Dict[str, Any]:
    """Add to savedAmount; the goal completes once the target is reached."""
    if amount is None:
        raise ApiError(400, "Please provide an amount")
    if amount < 0:
        raise ApiError(400, "Amount must be positive")
    await get_goal(db, user_id, goal_id)
    updated = await db[GOALS].find_one_and_update(
        {"_id": goal_id, "userId": user_id},
        {"$inc": {"savedAmount": amount}, "$set": {"updatedAt": utcnow()}},
        return_document=True,
    )
    if updated["savedAmount"] >= updated["targetAmount"] and updated.get("status") != "completed":
        updated = await db[GOALS].find_one_and_update(
            {"_id": goal_id},
            {"$set": {"status": "completed", "completedAt": utcnow()}},
            return_document=True,
        )
    return with_progress(updated)


async def delete_goal(db: AsyncIOMotorDatabase, user_id: ObjectId, goal_id: ObjectId) -> None:
    result = await db[GOALS].delete_one({"_id": goal_id, "userId": user_id})
    if result.deleted_count == 0:
        raise ApiError(404, "Goal not found")

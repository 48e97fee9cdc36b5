"""
Budgets and their spending status.

A budget repeats every 7/30/365 days from its start date (custom budgets
run once, start to end). Status is recomputed from the expenses inside
the current window on every read; nothing about spending is stored on the
budget itself except when the last alert fired.
"""

import datetime as dt
from typing import Any, Dict, List, Optional, Tuple

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from guroosh.errors import ApiError
from guroosh.mongo_collections import BUDGETS, CATEGORIES, EXPENSES
from guroosh.schemas import BudgetIn, BudgetUpdate
from guroosh.services.mappers import patch_fields, to_mongo_safe, to_oid, utcnow
from guroosh.services.notifications import create_budget_notification

PERIOD_IN_DAYS = {"weekly": 7, "monthly": 30, "yearly": 365}
MAX_PERCENTAGE = 999
STATE_RANK = {"ok": 0, "warning": 1, "exceeded": 2}


def cycle_window(budget: Dict[str, Any], now: Optional[dt.datetime] = None) -> Tuple[dt.datetime, dt.datetime]:
    """
    [start, end) of the cycle that contains `now`. A custom budget has one
    window, start to its end date, and the end date itself counts.
    """
    now = now or utcnow()
    start = budget.get("startDate") or budget.get("createdAt") or now
    if budget.get("period") == "custom" and budget.get("endDate"):
        return start, budget["endDate"]

    step = dt.timedelta(days=PERIOD_IN_DAYS.get(budget.get("period"), 30))
    if now >= start:
        cycles = (now - start) // step
        start = start + cycles * step
    return start, start + step


def budget_state(percentage: float, alert_threshold: float) -> str:
    if percentage >= 100:
        return "exceeded"
    if percentage >= alert_threshold:
        return "warning"
    return "ok"


async def spent_in_window(
    db: AsyncIOMotorDatabase,
    user_id: ObjectId,
    category_id: ObjectId,
    start: dt.datetime,
    end: dt.datetime,
    include_end: bool = False,
) -> float:
    upper = "$lte" if include_end else "$lt"
    pipeline = [
        {"$match": {
            "userId": user_id,
            "categoryId": category_id,
            "date": {"$gte": start, upper: end},
        }},
        {"$group": {"_id": None, "total": {"$sum": "$amount"}}},
    ]
    async for row in db[EXPENSES].aggregate(pipeline):
        return float(row.get("total") or 0)
    return 0.0


async def budget_status(db: AsyncIOMotorDatabase, budget: Dict[str, Any], now: Optional[dt.datetime] = None) -> Dict[str, Any]:
    start, end = cycle_window(budget, now)
    spent = await spent_in_window(
        db, budget["userId"], budget["categoryId"], start, end,
        include_end=budget.get("period") == "custom",
    )
    limit = float(budget.get("limit") or 0)
    percentage = min(spent / limit * 100, MAX_PERCENTAGE) if limit else 0
    percentage = round(percentage, 1)
    return {
        "budgetId": budget["_id"],
        "spent": spent,
        "remaining": max(limit - spent, 0),
        "percentage": percentage,
        "state": budget_state(percentage, budget.get("alertThreshold", 80)),
        "window": {"start": start, "end": end},
    }


async def with_status(db: AsyncIOMotorDatabase, budget: Dict[str, Any]) -> Dict[str, Any]:
    budget["status"] = await budget_status(db, budget)
    return budget


async def _category_names(db: AsyncIOMotorDatabase, ids: List[ObjectId]) -> Dict[ObjectId, str]:
    return {c["_id"]: c["name"] async for c in db[CATEGORIES].find({"_id": {"$in": ids}}, {"name": 1})}


async def list_budgets(db: AsyncIOMotorDatabase, user_id: ObjectId) -> List[Dict[str, Any]]:
    budgets = [b async for b in db[BUDGETS].find({"userId": user_id}).sort("createdAt", -1)]
    names = await _category_names(db, [b["categoryId"] for b in budgets])
    for b in budgets:
        b["categoryName"] = names.get(b["categoryId"])
        await with_status(db, b)
    return budgets


async def get_budget(db: AsyncIOMotorDatabase, user_id: ObjectId, budget_id: ObjectId) -> Dict[str, Any]:
    budget = await db[BUDGETS].find_one({"_id": budget_id, "userId": user_id})
    if not budget:
        raise ApiError(404, "Budget not found")
    return budget


async def _active_clash(db, user_id, category_id, period, exclude: Optional[ObjectId] = None) -> bool:
    query: Dict[str, Any] = {"userId": user_id, "categoryId": category_id, "period": period, "isActive": True}
    if exclude is not None:
        query["_id"] = {"$ne": exclude}
    return await db[BUDGETS].find_one(query) is not None


async def create_budget(db: AsyncIOMotorDatabase, user_id: ObjectId, body: BudgetIn) -> Dict[str, Any]:
    category_id = to_oid(body.categoryId)
    category = await db[CATEGORIES].find_one({"_id": category_id, "userId": user_id})
    if not category:
        raise ApiError(404, "Category not found")
    if not category.get("isActive", True):
        raise ApiError(400, "Cannot assign a budget to a disabled category")
    if body.isActive and await _active_clash(db, user_id, category_id, body.period):
        raise ApiError(400, "A budget already exists for this category and period")
    if body.period == "custom" and not body.endDate:
        raise ApiError(400, "Custom budgets require an end date")

    now = utcnow()
    doc = {
        "userId": user_id,
        "categoryId": category_id,
        "limit": body.limit,
        "period": body.period,
        "startDate": to_mongo_safe(body.startDate) if body.startDate else now,
        "endDate": to_mongo_safe(body.endDate) if body.endDate else None,
        "alertThreshold": body.alertThreshold,
        "isActive": body.isActive,
        "notes": body.notes,
        "lastTriggeredAt": None,
        "lastAlertState": None,
        "createdAt": now,
        "updatedAt": now,
    }
    if doc["endDate"] is not None and doc["endDate"] <= doc["startDate"]:
        raise ApiError(400, "End date must be after start date")
    result = await db[BUDGETS].insert_one(doc)
    doc["_id"] = result.inserted_id
    return await with_status(db, doc)


async def update_budget(
    db: AsyncIOMotorDatabase, user_id: ObjectId, budget_id: ObjectId, body: BudgetUpdate
) -> Dict[str, Any]:
    budget = await get_budget(db, user_id, budget_id)
    fields = patch_fields(body, clearable=("endDate", "notes"))

    period = fields.get("period", budget["period"])
    active = fields.get("isActive", budget.get("isActive", True))
    if active and await _active_clash(db, user_id, budget["categoryId"], period, exclude=budget_id):
        raise ApiError(400, "Another active budget exists for this category and period")
    if period == "custom" and not fields.get("endDate", budget.get("endDate")):
        raise ApiError(400, "Custom budgets require an end date")

    fields["updatedAt"] = utcnow()
    updated = await db[BUDGETS].find_one_and_update(
        {"_id": budget_id}, {"$set": fields}, return_document=True
    )
    return await with_status(db, updated)


async def delete_budget(db: AsyncIOMotorDatabase, user_id: ObjectId, budget_id: ObjectId) -> None:
    result = await db[BUDGETS].delete_one({"_id": budget_id, "userId": user_id})
    if result.deleted_count == 0:
        raise ApiError(404, "Budget not found")


async def budget_alerts(db: AsyncIOMotorDatabase, user_id: ObjectId) -> List[Dict[str, Any]]:
    """Active budgets that are over their alert threshold."""
    alerts = []
    async for budget in db[BUDGETS].find({"userId": user_id, "isActive": True}):
        status = await budget_status(db, budget)
        if status["state"] != "ok":
            alerts.append({
                "budgetId": budget["_id"],
                "categoryId": budget["categoryId"],
                "state": status["state"],
                "percentage": status["percentage"],
                "spent": status["spent"],
            })
    return alerts


async def check_budget_alert(db: AsyncIOMotorDatabase, budget: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Notify once per state escalation per cycle: ok -> warning -> exceeded.
    Returns the notification when one was created.
    """
    if not budget.get("isActive", True):
        return None
    status = await budget_status(db, budget)
    state = status["state"]

    window_start = status["window"]["start"]
    last_at = budget.get("lastTriggeredAt")
    last_state = budget.get("lastAlertState") if last_at and last_at >= window_start else None
    seen = {"_id": budget["_id"], "lastTriggeredAt": last_at, "lastAlertState": budget.get("lastAlertState")}

    rank, last_rank = STATE_RANK[state], STATE_RANK.get(last_state or "ok", 0)
    if rank < last_rank:
        # spending went down (expense moved or deleted): re-arm the higher alerts
        await db[BUDGETS].update_one(seen, {"$set": {"lastAlertState": state}})
        return None
    if rank == last_rank:
        return None

    # claim the alert first so a concurrent sweep doesn't send it twice
    claimed = await db[BUDGETS].update_one(
        seen,
        {"$set": {"lastTriggeredAt": utcnow(), "lastAlertState": state}},
    )
    if claimed.modified_count == 0:
        return None

    category = await db[CATEGORIES].find_one({"_id": budget["categoryId"]}, {"name": 1})
    name = category["name"] if category else "category"
    return await create_budget_notification(db, budget["userId"], budget["_id"], name, status["percentage"])


async def check_category_budgets(db: AsyncIOMotorDatabase, user_id: ObjectId, category_id: ObjectId) -> None:
    async for budget in db[BUDGETS].find({"userId": user_id, "categoryId": category_id, "isActive": True}):
        await check_budget_alert(db, budget)


async def sweep_budget_alerts(db: AsyncIOMotorDatabase) -> int:
    """Scheduler entry point. Returns how many notifications were sent."""
    sent = 0
    async for budget in db[BUDGETS].find({"isActive": True}):
        if await check_budget_alert(db, budget):
            sent += 1
    return sent

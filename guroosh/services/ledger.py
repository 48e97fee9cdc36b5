# guroosh/services/ledger.py
"""Expenses and incomes: the money-in / money-out records of a user."""
import datetime as dt
from typing import Any, Dict, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from guroosh.errors import ApiError
from guroosh.mongo_collections import CATEGORIES, EXPENSES, INCOMES
from guroosh.schemas import ExpenseIn, ExpenseUpdate, IncomeIn, IncomeUpdate
from guroosh.services.budgets import check_category_budgets
from guroosh.services.mappers import to_mongo_safe, to_oid, utcnow


def _date_range(start: Optional[dt.datetime], end: Optional[dt.datetime]) -> Dict[str, Any]:
    rng: Dict[str, Any] = {}
    if start:
        rng["$gte"] = to_mongo_safe(start)
    if end:
        rng["$lte"] = to_mongo_safe(end)
    return rng


async def _expense_category(db: AsyncIOMotorDatabase, user_id: ObjectId, category_id: str) -> Dict[str, Any]:
    category = await db[CATEGORIES].find_one({"_id": to_oid(category_id), "userId": user_id})
    if not category:
        raise ApiError(404, "Category not found")
    if category.get("type") != "expense":
        raise ApiError(400, "Category must be an expense category")
    return category


async def _get_owned(db: AsyncIOMotorDatabase, collection: str, user_id: ObjectId, doc_id: ObjectId, label: str):
    doc = await db[collection].find_one({"_id": doc_id, "userId": user_id})
    if not doc:
        raise ApiError(404, f"{label} not found")
    return doc


# ---------------- expenses ----------------

async def list_expenses(
    db: AsyncIOMotorDatabase,
    user_id: ObjectId,
    category_id: Optional[str] = None,
    start: Optional[dt.datetime] = None,
    end: Optional[dt.datetime] = None,
) -> List[Dict[str, Any]]:
    query: Dict[str, Any] = {"userId": user_id}
    if category_id:
        query["categoryId"] = to_oid(category_id)
    rng = _date_range(start, end)
    if rng:
        query["date"] = rng

    expenses = [e async for e in db[EXPENSES].find(query).sort("date", -1)]
    names = {
        c["_id"]: c
        async for c in db[CATEGORIES].find({"userId": user_id}, {"name": 1, "color": 1, "icon": 1})
    }
    for e in expenses:
        cat = names.get(e.get("categoryId"))
        e["category"] = {"name": cat["name"], "color": cat.get("color"), "icon": cat.get("icon")} if cat else None
    return expenses


async def get_expense(db: AsyncIOMotorDatabase, user_id: ObjectId, expense_id: ObjectId) -> Dict[str, Any]:
    return await _get_owned(db, EXPENSES, user_id, expense_id, "Expense")


async def create_expense(db: AsyncIOMotorDatabase, user_id: ObjectId, body: ExpenseIn) -> Dict[str, Any]:
    category = await _expense_category(db, user_id, body.categoryId)
    now = utcnow()
    doc = {
        "userId": user_id,
        "categoryId": category["_id"],
        "title": body.title.strip(),
        "amount": body.amount,
        "date": to_mongo_safe(body.date) if body.date else now,
        "description": body.description,
        "merchant": body.merchant,
        "createdAt": now,
        "updatedAt": now,
    }
    result = await db[EXPENSES].insert_one(doc)
    doc["_id"] = result.inserted_id

    await check_category_budgets(db, user_id, category["_id"])
    return doc


async def update_expense(
    db: AsyncIOMotorDatabase, user_id: ObjectId, expense_id: ObjectId, body: ExpenseUpdate
) -> Dict[str, Any]:
    expense = await get_expense(db, user_id, expense_id)
    fields = to_mongo_safe(body.model_dump(exclude_unset=True, exclude_none=True))
    if "categoryId" in fields:
        fields["categoryId"] = (await _expense_category(db, user_id, fields["categoryId"]))["_id"]
    fields["updatedAt"] = utcnow()
    updated = await db[EXPENSES].find_one_and_update(
        {"_id": expense_id}, {"$set": fields}, return_document=True
    )
    await check_category_budgets(db, user_id, updated["categoryId"])
    if updated["categoryId"] != expense["categoryId"]:
        await check_category_budgets(db, user_id, expense["categoryId"])
    return updated


async def delete_expense(db: AsyncIOMotorDatabase, user_id: ObjectId, expense_id: ObjectId) -> None:
    deleted = await db[EXPENSES].find_one_and_delete({"_id": expense_id, "userId": user_id})
    if deleted is None:
        raise ApiError(404, "Expense not found")
    await check_category_budgets(db, user_id, deleted["categoryId"])


# ---------------- incomes ----------------

async def list_incomes(
    db: AsyncIOMotorDatabase,
    user_id: ObjectId,
    start: Optional[dt.datetime] = None,
    end: Optional[dt.datetime] = None,
) -> List[Dict[str, Any]]:
    query: Dict[str, Any] = {"userId": user_id}
    rng = _date_range(start, end)
    if rng:
        query["date"] = rng
    return [i async for i in db[INCOMES].find(query).sort("date", -1)]


async def get_income(db: AsyncIOMotorDatabase, user_id: ObjectId, income_id: ObjectId) -> Dict[str, Any]:
    return await _get_owned(db, INCOMES, user_id, income_id, "Income")


async def create_income(db: AsyncIOMotorDatabase, user_id: ObjectId, body: IncomeIn) -> Dict[str, Any]:
    now = utcnow()
    doc = {
        "userId": user_id,
        "source": body.source.strip(),
        "amount": body.amount,
        "date": to_mongo_safe(body.date) if body.date else now,
        "category": body.category,
        "description": body.description,
        "createdAt": now,
        "updatedAt": now,
    }
    result = await db[INCOMES].insert_one(doc)
    doc["_id"] = result.inserted_id
    return doc


async def update_income(
    db: AsyncIOMotorDatabase, user_id: ObjectId, income_id: ObjectId, body: IncomeUpdate
) -> Dict[str, Any]:
    await get_income(db, user_id, income_id)
    fields = to_mongo_safe(body.model_dump(exclude_unset=True, exclude_none=True))
    fields["updatedAt"] = utcnow()
    return await db[INCOMES].find_one_and_update(
        {"_id": income_id}, {"$set": fields}, return_document=True
    )


async def delete_income(db: AsyncIOMotorDatabase, user_id: ObjectId, income_id: ObjectId) -> None:
    result = await db[INCOMES].delete_one({"_id": income_id, "userId": user_id})
    if result.deleted_count == 0:
        raise ApiError(404, "Income not found")


async def sum_between(
    db: AsyncIOMotorDatabase, collection: str, user_id: ObjectId, start: dt.datetime, end: dt.datetime
) -> float:
    pipeline = [
        {"$match": {"userId": user_id, "date": {"$gte": start, "$lt": end}}},
        {"$group": {"_id": None, "total": {"$sum": "$amount"}}},
    ]
    async for row in db[collection].aggregate(pipeline):
        return float(row.get("total") or 0)
    return 0.0


async def recent_transactions(db: AsyncIOMotorDatabase, user_id: ObjectId, limit: int = 10) -> List[Dict[str, Any]]:
    """Expenses and incomes merged, newest first."""
    expenses = [e async for e in db[EXPENSES].find({"userId": user_id}).sort("date", -1).limit(limit)]
    incomes = [i async for i in db[INCOMES].find({"userId": user_id}).sort("date", -1).limit(limit)]
    rows = [
        {"_id": e["_id"], "type": "expense", "title": e.get("title"), "amount": e["amount"],
         "date": e["date"], "categoryId": e.get("categoryId")}
        for e in expenses
    ] + [
        {"_id": i["_id"], "type": "income", "title": i.get("source"), "amount": i["amount"],
         "date": i["date"], "category": i.get("category")}
        for i in incomes
    ]
    rows.sort(key=lambda r: r["date"], reverse=True)
    return rows[:limit]

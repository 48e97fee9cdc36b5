# guroosh/services/investments.py
from __future__ import annotations

import datetime as dt
import math
from typing import Any, Dict, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from guroosh.errors import ApiError
from guroosh.mongo_collections import INVESTMENTS
from guroosh.schemas import INVESTMENT_CATEGORIES, InvestmentIn, InvestmentUpdate
from guroosh.services.mappers import to_mongo_safe, utcnow
from guroosh.services.notifications import create_investment_notification

# 0.02% a day, about 7.5% a year
DAILY_APPRECIATION_RATE = 0.0002

REAL_ESTATE_FIELDS = ("propertyType", "city", "areaSqm")


def appreciated_price(base_price: float, since: Optional[dt.datetime], now: Optional[dt.datetime] = None) -> float:
    """base * (1 + rate) ^ whole days held, to 2 decimals."""
    if not since:
        return round(base_price, 2)
    now = now or utcnow()
    days = max((now - since).days, 0)
    return round(base_price * (1 + DAILY_APPRECIATION_RATE) ** days, 2)


def current_price(inv: Dict[str, Any], now: Optional[dt.datetime] = None) -> float:
    """Stored price, except real estate which appreciates from its buy price."""
    if inv.get("category") == "Real Estate":
        base = inv.get("buyPrice") or inv.get("currentPrice") or 0
        if base:
            return appreciated_price(base, inv.get("purchaseDate") or inv.get("createdAt"), now)
    return float(inv.get("currentPrice") or 0)


def current_value(inv: Dict[str, Any], now: Optional[dt.datetime] = None) -> float:
    return current_price(inv, now) * float(inv.get("amountOwned") or 0)


def invested_value(inv: Dict[str, Any]) -> float:
    return float(inv.get("buyPrice") or 0) * float(inv.get("amountOwned") or 0)


def with_valuation(inv: Dict[str, Any]) -> Dict[str, Any]:
    inv["currentPrice"] = current_price(inv)
    inv["currentValue"] = round(current_value(inv), 2)
    inv["gainLoss"] = round(inv["currentValue"] - invested_value(inv), 2)
    return inv


async def list_investments(db: AsyncIOMotorDatabase, user_id: ObjectId) -> List[Dict[str, Any]]:
    cursor = db[INVESTMENTS].find({"userId": user_id}).sort("purchaseDate", -1)
    return [with_valuation(i) async for i in cursor]


async def get_investment(db: AsyncIOMotorDatabase, user_id: ObjectId, investment_id: ObjectId) -> Dict[str, Any]:
    inv = await db[INVESTMENTS].find_one({"_id": investment_id, "userId": user_id})
    if not inv:
        raise ApiError(404, "Investment not found")
    return inv


def _validate_new(body: InvestmentIn) -> None:
    if body.category not in INVESTMENT_CATEGORIES:
        raise ApiError(400, "Invalid investment category")
    if body.category == "Real Estate":
        required = (body.name, body.currentPrice)
    else:
        required = (body.name, body.amountOwned, body.buyPrice, body.currentPrice)
    if not all(required):
        raise ApiError(400, "Please provide all required fields")
    for value in (body.amountOwned, body.buyPrice, body.currentPrice):
        if value is not None and value < 0:
            raise ApiError(400, "Amount and prices must be positive numbers")


async def create_investment(db: AsyncIOMotorDatabase, user_id: ObjectId, body: InvestmentIn) -> Dict[str, Any]:
    _validate_new(body)
    real_estate = body.category == "Real Estate"

    now = utcnow()
    doc: Dict[str, Any] = {
        "userId": user_id,
        "name": body.name.strip(),
        "category": body.category,
        "amountOwned": 1 if real_estate else body.amountOwned,
        "buyPrice": body.buyPrice if body.buyPrice else body.currentPrice,
        "currentPrice": body.currentPrice,
        "purchaseDate": to_mongo_safe(body.purchaseDate) if body.purchaseDate else now,
        "notes": body.notes,
        "createdAt": now,
        "updatedAt": now,
    }
    if real_estate:
        for field in REAL_ESTATE_FIELDS:
            value = getattr(body, field)
            if value is not None:
                doc[field] = value

    result = await db[INVESTMENTS].insert_one(doc)
    doc["_id"] = result.inserted_id

    amount = doc["currentPrice"] * doc["amountOwned"]
    await create_investment_notification(db, user_id, doc, amount)
    return with_valuation(dict(doc))


async def update_investment(
    db: AsyncIOMotorDatabase, user_id: ObjectId, investment_id: ObjectId, body: InvestmentUpdate
) -> Dict[str, Any]:
    inv = await get_investment(db, user_id, investment_id)
    fields = to_mongo_safe(body.model_dump(exclude_unset=True, exclude_none=True))
    if inv["category"] == "Real Estate":
        fields.pop("amountOwned", None)
    else:
        for field in REAL_ESTATE_FIELDS:
            fields.pop(field, None)
    fields["updatedAt"] = utcnow()
    updated = await db[INVESTMENTS].find_one_and_update(
        {"_id": investment_id}, {"$set": fields}, return_document=True
    )
    return with_valuation(updated)


async def delete_investment(db: AsyncIOMotorDatabase, user_id: ObjectId, investment_id: ObjectId) -> None:
    result = await db[INVESTMENTS].delete_one({"_id": investment_id, "userId": user_id})
    if result.deleted_count == 0:
        raise ApiError(404, "Investment not found")


# ---------------- portfolio ----------------

def summarize(investments: List[Dict[str, Any]], now: Optional[dt.datetime] = None) -> Dict[str, Any]:
    """Totals and per-category distribution for a list of holdings."""
    total_value = 0.0
    total_invested = 0.0
    by_category: Dict[str, Dict[str, Any]] = {}

    for inv in investments:
        value = current_value(inv, now)
        invested = invested_value(inv)
        total_value += value
        total_invested += invested

        bucket = by_category.setdefault(inv.get("category", "Other"), {"value": 0.0, "invested": 0.0, "count": 0})
        bucket["value"] += value
        bucket["invested"] += invested
        bucket["count"] += 1

    for bucket in by_category.values():
        bucket["percentage"] = round(bucket["value"] / total_value * 100) if total_value else 0
        bucket["value"] = round(bucket["value"], 2)
        bucket["invested"] = round(bucket["invested"], 2)

    gain = total_value - total_invested
    return {
        "totalValue": round(total_value, 2),
        "totalInvested": round(total_invested, 2),
        "totalGainLoss": round(gain, 2),
        "gainLossPercentage": round(gain / total_invested * 100, 2) if total_invested else 0,
        "investmentCount": len(investments),
        "byCategory": by_category,
    }


async def portfolio_summary(db: AsyncIOMotorDatabase, user_id: ObjectId) -> Dict[str, Any]:
    investments = [i async for i in db[INVESTMENTS].find({"userId": user_id})]
    return summarize(investments)


# range -> (points after the first, step, volatility)
TREND_RANGES = {
    "day": (24, dt.timedelta(hours=1), 0.015),
    "threeDays": (18, dt.timedelta(hours=4), 0.018),
    "week": (7, dt.timedelta(days=1), 0.020),
    "month": (30, dt.timedelta(days=1), 0.025),
    "year": (52, dt.timedelta(weeks=1), 0.030),
    "fiveYears": (60, dt.timedelta(days=30), 0.035),
}
ALL_TIME_VOLATILITY = 0.040


def smooth_value(progress: float, start: float, end: float, volatility: float) -> float:
    """
    Placeholder price path between two totals: a sigmoid ease from start to
    end with two market-like cycles on top. Deterministic, never negative.
    """
    eased = 1 / (1 + math.exp(-10 * (progress - 0.5)))
    base = start + (end - start) * eased
    cycle1 = math.sin(progress * math.pi * 4) * volatility * base
    cycle2 = math.sin(progress * math.pi * 8) * volatility * 0.5 * base
    return max(0.0, base + cycle1 + cycle2)


def trend_series(
    range_key: str,
    current_total: float,
    purchase_total: float,
    first_purchase: Optional[dt.datetime] = None,
    now: Optional[dt.datetime] = None,
) -> List[Dict[str, float]]:
    if range_key != "allTime" and range_key not in TREND_RANGES:
        raise ApiError(400, "Invalid range")
    now = now or utcnow()
    start_value = purchase_total if purchase_total > 0 else current_total * 0.85

    points = []
    if range_key == "allTime":
        since = first_purchase or (now - dt.timedelta(days=365))
        days = max(1, (now - since).days)
        total = min(100, max(20, days))
        for i in range(total + 1):
            progress = i / total
            ts = since + (now - since) * progress
            points.append((ts, smooth_value(progress, start_value, current_total, ALL_TIME_VOLATILITY)))
    else:
        count, step, volatility = TREND_RANGES[range_key]
        for i in range(count, -1, -1):
            progress = (count - i) / count
            points.append((now - step * i, smooth_value(progress, start_value, current_total, volatility)))

    epoch = dt.datetime(1970, 1, 1)
    return [{"x": int((ts - epoch).total_seconds() * 1000), "y": round(value, 2)} for ts, value in points]


async def portfolio_trend(db: AsyncIOMotorDatabase, user_id: ObjectId, range_key: str) -> List[Dict[str, float]]:
    investments = [i async for i in db[INVESTMENTS].find({"userId": user_id})]
    summary = summarize(investments)
    dates = [i["purchaseDate"] for i in investments if i.get("purchaseDate")]
    return trend_series(range_key, summary["totalValue"], summary["totalInvested"], min(dates) if dates else None)

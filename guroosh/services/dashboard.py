# guroosh/services/dashboard.py
import datetime as dt
from typing import Any, Dict, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from guroosh.mongo_collections import EXPENSES, GOALS, INCOMES
from guroosh.services.budgets import budget_alerts
from guroosh.services.goals import with_progress
from guroosh.services.investments import portfolio_summary
from guroosh.services.ledger import sum_between
from guroosh.services.mappers import utcnow


def month_bounds(now: Optional[dt.datetime] = None):
    """[first of this month, first of next month)"""
    now = now or utcnow()
    start = dt.datetime(now.year, now.month, 1)
    if now.month == 12:
        end = dt.datetime(now.year + 1, 1, 1)
    else:
        end = dt.datetime(now.year, now.month + 1, 1)
    return start, end


async def overview(db: AsyncIOMotorDatabase, user_id: ObjectId) -> Dict[str, Any]:
    start, end = month_bounds()
    income = await sum_between(db, INCOMES, user_id, start, end)
    expenses = await sum_between(db, EXPENSES, user_id, start, end)
    net = income - expenses

    goals = [
        with_progress(g)
        async for g in db[GOALS].find({"userId": user_id, "status": {"$ne": "completed"}}).sort("deadline", 1)
    ]
    return {
        "month": {"start": start, "end": end},
        "monthIncome": round(income, 2),
        "monthExpenses": round(expenses, 2),
        "net": round(net, 2),
        "savingsRate": round(net / income * 100, 1) if income > 0 else 0,
        "portfolio": await portfolio_summary(db, user_id),
        "activeGoals": goals,
        "budgetAlerts": await budget_alerts(db, user_id),
    }

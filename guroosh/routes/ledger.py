# guroosh/routes/ledger.py
"""/api/expenses and /api/incomes"""
import datetime as dt
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from guroosh.db import get_db
from guroosh.schemas import ExpenseIn, ExpenseUpdate, IncomeIn, IncomeUpdate
from guroosh.security import get_current_user
from guroosh.services import ledger as svc
from guroosh.services.mappers import serialize, serialize_many, to_oid

expenses = APIRouter(prefix="/api/expenses", tags=["expenses"])
incomes = APIRouter(prefix="/api/incomes", tags=["incomes"])


# ---------------- expenses ----------------

@expenses.get("")
async def list_expenses(
    categoryId: Optional[str] = Query(None),
    startDate: Optional[dt.datetime] = Query(None),
    endDate: Optional[dt.datetime] = Query(None),
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    rows = await svc.list_expenses(db, user["_id"], categoryId, startDate, endDate)
    return {
        "success": True,
        "count": len(rows),
        "total": round(sum(r["amount"] for r in rows), 2),
        "expenses": serialize_many(rows),
    }


@expenses.post("", status_code=201)
async def create_expense(
    body: ExpenseIn,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    return {"success": True, "expense": serialize(await svc.create_expense(db, user["_id"], body))}


@expenses.get("/{expense_id}")
async def get_expense(
    expense_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    return {"success": True, "expense": serialize(await svc.get_expense(db, user["_id"], to_oid(expense_id)))}


@expenses.put("/{expense_id}")
async def update_expense(
    expense_id: str,
    body: ExpenseUpdate,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    expense = await svc.update_expense(db, user["_id"], to_oid(expense_id), body)
    return {"success": True, "expense": serialize(expense)}


@expenses.delete("/{expense_id}")
async def delete_expense(
    expense_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    await svc.delete_expense(db, user["_id"], to_oid(expense_id))
    return {"success": True, "message": "Expense deleted"}


# ---------------- incomes ----------------

@incomes.get("")
async def list_incomes(
    startDate: Optional[dt.datetime] = Query(None),
    endDate: Optional[dt.datetime] = Query(None),
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    rows = await svc.list_incomes(db, user["_id"], startDate, endDate)
    return {
        "success": True,
        "count": len(rows),
        "total": round(sum(r["amount"] for r in rows), 2),
        "incomes": serialize_many(rows),
    }


@incomes.post("", status_code=201)
async def create_income(
    body: IncomeIn,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    return {"success": True, "income": serialize(await svc.create_income(db, user["_id"], body))}


@incomes.get("/{income_id}")
async def get_income(
    income_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    return {"success": True, "income": serialize(await svc.get_income(db, user["_id"], to_oid(income_id)))}


@incomes.put("/{income_id}")
async def update_income(
    income_id: str,
    body: IncomeUpdate,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    income = await svc.update_income(db, user["_id"], to_oid(income_id), body)
    return {"success": True, "income": serialize(income)}


@incomes.delete("/{income_id}")
async def delete_income(
    income_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    await svc.delete_income(db, user["_id"], to_oid(income_id))
    return {"success": True, "message": "Income deleted"}

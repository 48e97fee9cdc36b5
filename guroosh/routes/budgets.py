# guroosh/routes/budgets.py
from typing import Any, Dict

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from guroosh.db import get_db
from guroosh.schemas import BudgetIn, BudgetUpdate
from guroosh.security import get_current_user
from guroosh.services import budgets as svc
from guroosh.services.mappers import serialize, serialize_many, to_oid

router = APIRouter(prefix="/api/budgets", tags=["budgets"])


@router.get("")
async def list_budgets(
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    return {"success": True, "budgets": serialize_many(await svc.list_budgets(db, user["_id"]))}


@router.get("/alerts")
async def budget_alerts(
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    alerts = await svc.budget_alerts(db, user["_id"])
    return {"success": True, "count": len(alerts), "alerts": serialize_many(alerts)}


@router.post("", status_code=201)
async def create_budget(
    body: BudgetIn,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    return {"success": True, "budget": serialize(await svc.create_budget(db, user["_id"], body))}


@router.get("/{budget_id}")
async def get_budget(
    budget_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    budget = await svc.get_budget(db, user["_id"], to_oid(budget_id))
    return {"success": True, "budget": serialize(await svc.with_status(db, budget))}


@router.put("/{budget_id}")
async def update_budget(
    budget_id: str,
    body: BudgetUpdate,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    budget = await svc.update_budget(db, user["_id"], to_oid(budget_id), body)
    return {"success": True, "budget": serialize(budget)}


@router.delete("/{budget_id}")
async def delete_budget(
    budget_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    await svc.delete_budget(db, user["_id"], to_oid(budget_id))
    return {"success": True, "message": "Budget deleted"}

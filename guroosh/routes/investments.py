# guroosh/routes/investments.py
from typing import Any, Dict, Literal

from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from guroosh.db import get_db
from guroosh.schemas import InvestmentIn, InvestmentUpdate
from guroosh.security import get_current_user
from guroosh.services import investments as svc
from guroosh.services.mappers import serialize, serialize_many, to_oid

router = APIRouter(prefix="/api/investments", tags=["investments"])

TrendRange = Literal["day", "threeDays", "week", "month", "year", "fiveYears", "allTime"]


@router.get("")
async def list_investments(
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    rows = await svc.list_investments(db, user["_id"])
    return {"success": True, "count": len(rows), "investments": serialize_many(rows)}


@router.post("", status_code=201)
async def create_investment(
    body: InvestmentIn,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    investment = await svc.create_investment(db, user["_id"], body)
    return {"success": True, "investment": serialize(investment)}


@router.get("/portfolio")
async def portfolio(
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    return {"success": True, "portfolio": await svc.portfolio_summary(db, user["_id"])}


@router.get("/portfolio/trend")
async def portfolio_trend(
    range: TrendRange = Query("month"),
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    points = await svc.portfolio_trend(db, user["_id"], range)
    return {"success": True, "range": range, "data": points}


@router.get("/{investment_id}")
async def get_investment(
    investment_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    investment = await svc.get_investment(db, user["_id"], to_oid(investment_id))
    return {"success": True, "investment": serialize(svc.with_valuation(investment))}


@router.put("/{investment_id}")
async def update_investment(
    investment_id: str,
    body: InvestmentUpdate,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    investment = await svc.update_investment(db, user["_id"], to_oid(investment_id), body)
    return {"success": True, "investment": serialize(investment)}


@router.delete("/{investment_id}")
async def delete_investment(
    investment_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    await svc.delete_investment(db, user["_id"], to_oid(investment_id))
    return {"success": True, "message": "Investment deleted"}

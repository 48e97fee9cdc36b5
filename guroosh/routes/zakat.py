# guroosh/routes/zakat.py
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from guroosh.db import get_db
from guroosh.errors import ApiError
from guroosh.mongo_collections import INVESTMENTS
from guroosh.schemas import ZakatCalculateIn, ZakatEstimateIn
from guroosh.security import get_current_user
from guroosh.services import zakat as svc
from guroosh.services.mappers import serialize, to_mongo_safe

router = APIRouter(prefix="/api/zakat", tags=["zakat"])


async def _user_investments(db: AsyncIOMotorDatabase, user_id):
    return [i async for i in db[INVESTMENTS].find({"userId": user_id})]


@router.post("/calculate")
async def calculate(
    body: Optional[ZakatCalculateIn] = None,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    investments = await _user_investments(db, user["_id"])
    if not investments:
        raise ApiError(400, "No investments found. Please add investments first.")
    price = body.goldPricePerGram if body else None
    return {"success": True, "data": serialize(svc.calculate_zakat(investments, price))}


@router.post("/estimate")
async def estimate(
    body: ZakatEstimateIn,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    if body.investments is not None:
        investments = [to_mongo_safe(h.model_dump()) for h in body.investments]
    else:
        investments = await _user_investments(db, user["_id"])
    return {"success": True, "data": svc.estimate_zakat(investments, body.categories)}


@router.get("/gold-price")
async def gold_price(user: Dict[str, Any] = Depends(get_current_user)):
    return {"success": True, "data": svc.gold_price_info()}

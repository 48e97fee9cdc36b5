# guroosh/routes/dashboard.py
from typing import Any, Dict

from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from guroosh.db import get_db
from guroosh.security import get_current_user
from guroosh.services import dashboard as svc
from guroosh.services.ledger import recent_transactions
from guroosh.services.mappers import serialize, serialize_many

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("/overview")
async def overview(
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    return {"success": True, "overview": serialize(await svc.overview(db, user["_id"]))}


@router.get("/recent-transactions")
async def recent(
    limit: int = Query(10, ge=1, le=100),
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    rows = await recent_transactions(db, user["_id"], limit)
    return {"success": True, "transactions": serialize_many(rows)}

# guroosh/routes/settings.py
from typing import Any, Dict

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from guroosh.db import get_db
from guroosh.schemas import SettingsUpdate
from guroosh.security import get_current_user
from guroosh.services import user_settings as svc
from guroosh.services.mappers import serialize

router = APIRouter(prefix="/api/settings", tags=["settings"])


@router.get("")
async def get_settings(
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    return {"success": True, "settings": serialize(await svc.get_settings(db, user["_id"]))}


@router.put("")
async def update_settings(
    body: SettingsUpdate,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    doc = await svc.update_settings(db, user["_id"], body)
    return {"success": True, "message": "Settings updated", "settings": serialize(doc)}


@router.post("/reset")
async def reset_settings(
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    doc = await svc.reset_settings(db, user["_id"])
    return {"success": True, "message": "Settings reset to defaults", "settings": serialize(doc)}

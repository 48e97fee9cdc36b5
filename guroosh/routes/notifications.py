# guroosh/routes/notifications.py
from typing import Any, Dict

from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from guroosh.db import get_db
from guroosh.schemas import AlertSettingsPatch, SettingsUpdate
from guroosh.security import get_current_user
from guroosh.services import notifications as svc
from guroosh.services import user_settings
from guroosh.services.mappers import serialize, serialize_many, to_oid

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("")
async def list_notifications(
    limit: int = Query(50, ge=1, le=200),
    skip: int = Query(0, ge=0),
    unreadOnly: bool = Query(False),
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    result = await svc.list_notifications(db, user["_id"], limit=limit, skip=skip, unread_only=unreadOnly)
    result["notifications"] = serialize_many(result["notifications"])
    return {"success": True, **result}


@router.get("/unread-count")
async def unread_count(
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    return {"success": True, "unreadCount": await svc.unread_count(db, user["_id"])}


@router.get("/latest-updates")
async def latest_updates(
    limit: int = Query(10, ge=1, le=50),
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    updates = await svc.latest_updates(db, user["_id"], limit)
    return {"success": True, "updates": serialize_many(updates)}


@router.get("/alert-settings")
async def get_alert_settings(
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    settings_doc = await user_settings.get_settings(db, user["_id"])
    return {"success": True, "alertSettings": settings_doc["alertSettings"]}


@router.patch("/alert-settings")
async def update_alert_settings(
    body: AlertSettingsPatch,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    settings_doc = await user_settings.update_settings(db, user["_id"], SettingsUpdate(alertSettings=body))
    return {"success": True, "alertSettings": settings_doc["alertSettings"]}


@router.put("/mark-all-read")
async def mark_all_read(
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    updated = await svc.mark_all_read(db, user["_id"])
    return {"success": True, "message": "All notifications marked as read", "updated": updated}


@router.put("/{notification_id}/mark-read")
async def mark_read(
    notification_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    notification = await svc.mark_read(db, user["_id"], to_oid(notification_id))
    return {"success": True, "notification": serialize(notification)}


@router.delete("")
async def clear_all(
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    deleted = await svc.clear_notifications(db, user["_id"])
    return {"success": True, "message": "All notifications cleared", "deleted": deleted}


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    await svc.delete_notification(db, user["_id"], to_oid(notification_id))
    return {"success": True, "message": "Notification deleted"}

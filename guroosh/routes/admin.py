# guroosh/routes/admin.py
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from guroosh.db import get_db
from guroosh.schemas import BroadcastIn, UserStatusIn
from guroosh.security import require_admin
from guroosh.services import admin as svc
from guroosh.services.mappers import map_user, to_oid
from guroosh.services.notifications import broadcast

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/overview")
async def overview(
    admin: Dict[str, Any] = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    return {"success": True, "overview": await svc.overview(db)}


@router.get("/users")
async def list_users(
    q: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    role: Optional[str] = Query(None),
    admin: Dict[str, Any] = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    users = await svc.list_users(db, q=q, status=status, role=role)
    return {"success": True, "count": len(users), "users": [map_user(u) for u in users]}


@router.get("/users/{user_id}")
async def get_user(
    user_id: str,
    admin: Dict[str, Any] = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    return {"success": True, "user": map_user(await svc.get_user(db, to_oid(user_id)))}


@router.patch("/users/{user_id}/status")
async def set_status(
    user_id: str,
    body: UserStatusIn,
    admin: Dict[str, Any] = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    user = await svc.set_user_status(db, admin, to_oid(user_id), body.action)
    verb = "deactivated" if body.action == "deactivate" else "activated"
    return {"success": True, "message": f"User {verb}", "user": map_user(user)}


@router.post("/users/{user_id}/reset-password")
async def reset_password(
    user_id: str,
    admin: Dict[str, Any] = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    user = await svc.reset_user_password(db, to_oid(user_id))
    return {"success": True, "message": f"Password reset code sent to {user['email']}"}


@router.post("/notifications", status_code=201)
async def send_broadcast(
    body: BroadcastIn,
    admin: Dict[str, Any] = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    result = await broadcast(db, admin, body.title, body.message, body.type, body.audience)
    return {
        "success": True,
        "message": f"Notification sent to {result['successful']} recipient(s)",
        "data": result,
    }

# guroosh/routes/messages.py
from typing import Any, Dict

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from guroosh.db import get_db
from guroosh.schemas import MessageIn
from guroosh.security import get_current_user
from guroosh.services import messages as svc
from guroosh.services.mappers import serialize, serialize_many, to_oid

router = APIRouter(prefix="/api/messages", tags=["messages"])


@router.get("/unread-count")
async def unread_count(
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    return {"success": True, "unreadCount": await svc.unread_count(db, user["_id"])}


@router.post("/request/{request_id}", status_code=201)
async def send_message(
    request_id: str,
    body: MessageIn,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    message = await svc.send_message(db, user, to_oid(request_id), body.content)
    return {"success": True, "message": serialize(message)}


@router.get("/request/{request_id}")
async def list_messages(
    request_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    messages = await svc.list_messages(db, user["_id"], to_oid(request_id))
    return {"success": True, "count": len(messages), "messages": serialize_many(messages)}


@router.put("/request/{request_id}/read")
async def mark_read(
    request_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    updated = await svc.mark_read(db, user["_id"], to_oid(request_id))
    return {"success": True, "updated": updated}


@router.delete("/{message_id}")
async def delete_message(
    message_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    await svc.delete_message(db, user["_id"], to_oid(message_id))
    return {"success": True, "message": "Message deleted"}

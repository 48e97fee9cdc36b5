# guroosh/routes/requests.py
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from guroosh.db import get_db
from guroosh.schemas import AdviceRequestIn, DraftIn, StatusUpdateIn
from guroosh.security import get_current_user
from guroosh.services import advice_requests as svc
from guroosh.services.mappers import serialize, serialize_many, to_oid

router = APIRouter(prefix="/api/requests", tags=["requests"])


@router.post("", status_code=201)
async def create_request(
    body: AdviceRequestIn,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    request = await svc.create_request(db, user, body)
    return {"success": True, "message": "Request created", "request": serialize(request)}


@router.get("")
async def list_requests(
    status: Optional[str] = Query(None),
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    requests = await svc.list_requests(db, user, status)
    return {"success": True, "count": len(requests), "requests": serialize_many(requests)}


@router.get("/client/{client_id}/history")
async def client_history(
    client_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    history = await svc.client_history(db, user, to_oid(client_id))
    return {
        "success": True,
        "client": serialize(history["client"]),
        "requests": serialize_many(history["requests"]),
    }


@router.get("/{request_id}")
async def get_request(
    request_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    request = await svc.get_request(db, to_oid(request_id), user["_id"])
    return {"success": True, "request": serialize(request)}


@router.put("/{request_id}/accept")
async def accept_request(
    request_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    request = await svc.accept_request(db, user, to_oid(request_id))
    return {"success": True, "message": "Request accepted", "request": serialize(request)}


@router.put("/{request_id}/decline")
async def decline_request(
    request_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    request = await svc.decline_request(db, user, to_oid(request_id))
    return {"success": True, "message": "Request declined", "request": serialize(request)}


@router.put("/{request_id}/status")
async def update_status(
    request_id: str,
    body: StatusUpdateIn,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    request = await svc.update_status(db, user["_id"], to_oid(request_id), body.requested())
    return {"success": True, "message": f"Status updated to {request['status']}", "request": serialize(request)}


@router.put("/{request_id}/draft")
async def save_draft(
    request_id: str,
    body: DraftIn,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    await svc.save_draft(db, user["_id"], to_oid(request_id), body.content)
    return {"success": True, "message": "Draft saved"}


@router.delete("/{request_id}")
async def delete_request(
    request_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    request = await svc.delete_request(db, user["_id"], to_oid(request_id))
    return {"success": True, "message": "Request deleted", "request": serialize(request)}

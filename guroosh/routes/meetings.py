# guroosh/routes/meetings.py
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from guroosh.db import get_db
from guroosh.schemas import CancelMeetingIn, CompleteMeetingIn, MeetingIn, MeetingUpdate
from guroosh.security import get_current_user
from guroosh.services import meetings as svc
from guroosh.services.mappers import serialize, serialize_many, to_oid

router = APIRouter(prefix="/api/meetings", tags=["meetings"])


@router.post("/request/{request_id}", status_code=201)
async def schedule_meeting(
    request_id: str,
    body: MeetingIn,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    meeting = await svc.schedule_meeting(db, user["_id"], to_oid(request_id), body)
    return {"success": True, "message": "Meeting scheduled", "meeting": serialize(meeting)}


@router.get("")
async def list_meetings(
    status: Optional[str] = Query(None),
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    meetings = await svc.list_meetings(db, user["_id"], status)
    return {"success": True, "count": len(meetings), "meetings": serialize_many(meetings)}


@router.get("/upcoming")
async def upcoming(
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    meetings = await svc.upcoming_meetings(db, user["_id"])
    return {"success": True, "count": len(meetings), "meetings": serialize_many(meetings)}


@router.get("/request/{request_id}")
async def request_meetings(
    request_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    meetings = await svc.request_meetings(db, user["_id"], to_oid(request_id))
    return {"success": True, "count": len(meetings), "meetings": serialize_many(meetings)}


@router.get("/{meeting_id}")
async def get_meeting(
    meeting_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    return {"success": True, "meeting": serialize(await svc.get_meeting(db, user["_id"], to_oid(meeting_id)))}


@router.put("/{meeting_id}/cancel")
async def cancel_meeting(
    meeting_id: str,
    body: Optional[CancelMeetingIn] = None,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    meeting = await svc.cancel_meeting(db, user["_id"], to_oid(meeting_id), body.reason if body else None)
    return {"success": True, "message": "Meeting cancelled", "meeting": serialize(meeting)}


@router.put("/{meeting_id}/complete")
async def complete_meeting(
    meeting_id: str,
    body: Optional[CompleteMeetingIn] = None,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    meeting = await svc.complete_meeting(db, user["_id"], to_oid(meeting_id), body.notes if body else None)
    return {"success": True, "message": "Meeting completed", "meeting": serialize(meeting)}


@router.put("/{meeting_id}")
async def update_meeting(
    meeting_id: str,
    body: MeetingUpdate,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    meeting = await svc.update_meeting(db, user["_id"], to_oid(meeting_id), body)
    return {"success": True, "message": "Meeting updated", "meeting": serialize(meeting)}

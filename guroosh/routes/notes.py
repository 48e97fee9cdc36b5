# guroosh/routes/notes.py
"""Advisor-private notes. Every route is advisor only."""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from guroosh.db import get_db
from guroosh.schemas import NoteIn, NoteUpdate
from guroosh.security import require_advisor
from guroosh.services import notes as svc
from guroosh.services.mappers import serialize, serialize_many, to_oid

router = APIRouter(prefix="/api/notes", tags=["notes"])


@router.post("/request/{request_id}", status_code=201)
async def create_note(
    request_id: str,
    body: NoteIn,
    user: Dict[str, Any] = Depends(require_advisor),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    note = await svc.create_note(db, user["_id"], to_oid(request_id), body)
    return {"success": True, "note": serialize(note)}


@router.get("/request/{request_id}")
async def request_notes(
    request_id: str,
    user: Dict[str, Any] = Depends(require_advisor),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    notes = await svc.list_request_notes(db, user["_id"], to_oid(request_id))
    return {"success": True, "count": len(notes), "notes": serialize_many(notes)}


@router.get("/search")
async def search_notes(
    q: Optional[str] = Query(None),
    user: Dict[str, Any] = Depends(require_advisor),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    notes = await svc.search_notes(db, user["_id"], q)
    return {"success": True, "count": len(notes), "notes": serialize_many(notes)}


@router.get("")
async def list_notes(
    user: Dict[str, Any] = Depends(require_advisor),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    notes = await svc.list_notes(db, user["_id"])
    return {"success": True, "count": len(notes), "notes": serialize_many(notes)}


@router.get("/{note_id}")
async def get_note(
    note_id: str,
    user: Dict[str, Any] = Depends(require_advisor),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    return {"success": True, "note": serialize(await svc.get_note(db, user["_id"], to_oid(note_id)))}


@router.put("/{note_id}")
async def update_note(
    note_id: str,
    body: NoteUpdate,
    user: Dict[str, Any] = Depends(require_advisor),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    note = await svc.update_note(db, user["_id"], to_oid(note_id), body)
    return {"success": True, "note": serialize(note)}


@router.delete("/{note_id}")
async def delete_note(
    note_id: str,
    user: Dict[str, Any] = Depends(require_advisor),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    await svc.delete_note(db, user["_id"], to_oid(note_id))
    return {"success": True, "message": "Note deleted"}

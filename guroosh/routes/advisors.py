# guroosh/routes/advisors.py
from typing import Any, Dict

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from guroosh.db import get_db
from guroosh.schemas import AdvisorProfileIn, AvailabilityIn, ConnectIn, RespondIn
from guroosh.security import get_current_user, require_advisor
from guroosh.services import advisors as svc
from guroosh.services.mappers import map_user, serialize, serialize_many, to_oid

router = APIRouter(prefix="/api/advisors", tags=["advisors"])

# static paths first; "/{advisor_id}" would swallow them otherwise


@router.get("")
async def list_advisors(
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    advisors = await svc.list_available_advisors(db)
    return {"success": True, "advisors": [map_user(a) for a in advisors]}


@router.post("/become-advisor")
async def become_advisor(
    body: AdvisorProfileIn,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    updated = await svc.become_advisor(db, user, body)
    return {"success": True, "message": "You are now registered as an advisor", "user": map_user(updated)}


@router.put("/profile")
async def update_profile(
    body: AdvisorProfileIn,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    updated = await svc.update_advisor_profile(db, user, body)
    return {"success": True, "user": map_user(updated)}


@router.post("/connect", status_code=201)
async def connect(
    body: ConnectIn,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    request = await svc.send_connection_request(db, user, to_oid(body.advisorId), body.message or "")
    return {"success": True, "message": "Connection request sent", "request": serialize(request)}


@router.get("/my/requests")
async def my_requests(
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    requests = await svc.list_my_connection_requests(db, user["_id"])
    return {"success": True, "requests": serialize_many(requests)}


@router.get("/my/advisor")
async def my_advisor(
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    advisor = await svc.get_connected_advisor(db, user)
    return {"success": True, "advisor": map_user(advisor)}


@router.delete("/disconnect")
async def disconnect(
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    await svc.disconnect_advisor(db, user["_id"])
    return {"success": True, "message": "Disconnected from advisor"}


@router.get("/requests/received")
async def received_requests(
    user: Dict[str, Any] = Depends(require_advisor),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    requests = await svc.list_received_connection_requests(db, user)
    return {"success": True, "requests": serialize_many(requests)}


@router.put("/requests/{request_id}/respond")
async def respond(
    request_id: str,
    body: RespondIn,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    updated = await svc.respond_to_connection_request(
        db, user["_id"], to_oid(request_id), body.status or "", body.responseMessage or ""
    )
    return {"success": True, "message": f"Request {updated['status']}", "request": serialize(updated)}


@router.put("/availability")
async def set_availability(
    body: AvailabilityIn,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    availability = await svc.set_availability(db, user, body.availability)
    return {"success": True, "availability": availability}


@router.get("/stats/me")
async def my_stats(
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    return {"success": True, "stats": await svc.advisor_stats(db, user)}


@router.get("/{advisor_id}/availability")
async def get_availability(
    advisor_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    advisor = await svc.get_advisor(db, to_oid(advisor_id))
    profile = advisor.get("advisorProfile") or {}
    return {
        "success": True,
        "advisorId": str(advisor["_id"]),
        "availability": profile.get("availability", "available"),
    }


@router.get("/{advisor_id}")
async def get_advisor(
    advisor_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    advisor = await svc.get_advisor(db, to_oid(advisor_id))
    return {"success": True, "advisor": map_user(advisor)}

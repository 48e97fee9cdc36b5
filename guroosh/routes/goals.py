# guroosh/routes/goals.py
from typing import Any, Dict

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from guroosh.db import get_db
from guroosh.schemas import GoalIn, GoalProgressIn, GoalUpdate
from guroosh.security import get_current_user
from guroosh.services import goals as svc
from guroosh.services.mappers import serialize, serialize_many, to_oid

router = APIRouter(prefix="/api/goals", tags=["goals"])


@router.get("")
async def list_goals(
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    return {"success": True, "goals": serialize_many(await svc.list_goals(db, user["_id"]))}


@router.post("", status_code=201)
async def create_goal(
    body: GoalIn,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    return {"success": True, "goal": serialize(await svc.create_goal(db, user["_id"], body))}


@router.get("/{goal_id}")
async def get_goal(
    goal_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    goal = await svc.get_goal(db, user["_id"], to_oid(goal_id))
    return {"success": True, "goal": serialize(svc.with_progress(goal))}


@router.put("/{goal_id}")
async def update_goal(
    goal_id: str,
    body: GoalUpdate,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    return {"success": True, "goal": serialize(await svc.update_goal(db, user["_id"], to_oid(goal_id), body))}


@router.patch("/{goal_id}/progress")
async def add_progress(
    goal_id: str,
    body: GoalProgressIn,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    goal = await svc.add_progress(db, user["_id"], to_oid(goal_id), body.amount)
    return {"success": True, "goal": serialize(goal)}


@router.delete("/{goal_id}")
async def delete_goal(
    goal_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    await svc.delete_goal(db, user["_id"], to_oid(goal_id))
    return {"success": True, "message": "Goal deleted"}

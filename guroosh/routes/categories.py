# guroosh/routes/categories.py
from typing import Any, Dict, Literal, Optional

from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from guroosh.db import get_db
from guroosh.schemas import CategoryIn, CategoryUpdate
from guroosh.security import get_current_user
from guroosh.services import categories as svc
from guroosh.services.mappers import serialize, serialize_many, to_oid

router = APIRouter(prefix="/api/categories", tags=["categories"])


@router.get("")
async def list_categories(
    type: Optional[Literal["expense", "income"]] = Query(None),
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    categories = await svc.list_categories(db, user["_id"], type)
    return {"success": True, "categories": serialize_many(categories)}


@router.post("", status_code=201)
async def create_category(
    body: CategoryIn,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    category = await svc.create_category(db, user["_id"], body)
    return {"success": True, "category": serialize(category)}


@router.get("/{category_id}")
async def get_category(
    category_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    return {"success": True, "category": serialize(await svc.get_category(db, user["_id"], to_oid(category_id)))}


@router.put("/{category_id}")
async def update_category(
    category_id: str,
    body: CategoryUpdate,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    category = await svc.update_category(db, user["_id"], to_oid(category_id), body)
    return {"success": True, "category": serialize(category)}


@router.delete("/{category_id}")
async def delete_category(
    category_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    await svc.delete_category(db, user["_id"], to_oid(category_id))
    return {"success": True, "message": "Category deleted"}

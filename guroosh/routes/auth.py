# guroosh/routes/auth.py
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from motor.motor_asyncio import AsyncIOMotorDatabase

from guroosh.db import get_db
from guroosh.ratelimit import auth_limit, password_reset_limit
from guroosh.schemas import (
    ChangePasswordIn,
    EmailIn,
    LoginIn,
    ProfileUpdate,
    RegisterIn,
    ResetPasswordIn,
    VerifyEmailIn,
)
from guroosh.security import create_access_token, get_current_user
from guroosh.services import users as svc
from guroosh.services.mappers import map_user, map_user_summary

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", status_code=201)
@auth_limit
async def register(request: Request, body: RegisterIn, db: AsyncIOMotorDatabase = Depends(get_db)):
    user = await svc.create_user(db, body)
    return {
        "success": True,
        "message": "Registration successful. Please check your email for the verification code.",
        "token": create_access_token(user["_id"]),
        "user": map_user_summary(user),
    }


@router.post("/verify-email")
@auth_limit
async def verify_email(request: Request, body: VerifyEmailIn, db: AsyncIOMotorDatabase = Depends(get_db)):
    await svc.verify_email(db, body.email, body.code)
    return {"success": True, "message": "Email verified successfully. You can now log in."}


@router.post("/resend-code")
@auth_limit
async def resend_code(request: Request, body: EmailIn, db: AsyncIOMotorDatabase = Depends(get_db)):
    await svc.resend_verification_code(db, body.email)
    return {"success": True, "message": "Verification code sent"}


@router.post("/login")
@auth_limit
async def login(request: Request, body: LoginIn, db: AsyncIOMotorDatabase = Depends(get_db)):
    user = await svc.authenticate(db, body.email, body.password, body.accountHolder)
    return {
        "success": True,
        "token": create_access_token(user["_id"]),
        "user": map_user_summary(user),
    }


@router.post("/forgot-password")
@password_reset_limit
async def forgot_password(request: Request, body: EmailIn, db: AsyncIOMotorDatabase = Depends(get_db)):
    await svc.forgot_password(db, body.email)
    # same answer whether or not the account exists
    return {"success": True, "message": "If that email is registered, a reset code has been sent"}


@router.post("/resend-reset-code")
@password_reset_limit
async def resend_reset_code(request: Request, body: EmailIn, db: AsyncIOMotorDatabase = Depends(get_db)):
    await svc.resend_reset_code(db, body.email)
    return {"success": True, "message": "Reset code sent"}


@router.post("/reset-password")
@password_reset_limit
async def reset_password(request: Request, body: ResetPasswordIn, db: AsyncIOMotorDatabase = Depends(get_db)):
    await svc.reset_password(db, body.email, body.code, body.newPassword)
    return {"success": True, "message": "Password reset successfully"}


@router.get("/me")
async def me(user: Dict[str, Any] = Depends(get_current_user)):
    return {"success": True, "user": map_user(user)}


@router.put("/profile")
async def update_profile(
    body: ProfileUpdate,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    updated = await svc.update_profile(db, user["_id"], body.model_dump(exclude_unset=True, exclude_none=True))
    return {"success": True, "message": "Profile updated", "user": map_user(updated)}


@router.put("/change-password")
async def change_password(
    body: ChangePasswordIn,
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    await svc.change_password(db, user, body.currentPassword, body.newPassword)
    return {"success": True, "message": "Password changed successfully"}

# guroosh/security.py
import datetime as dt
import secrets
from typing import Any, Dict, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from motor.motor_asyncio import AsyncIOMotorDatabase
from passlib.context import CryptContext

from guroosh.db import get_db
from guroosh.errors import ApiError
from guroosh.mongo_collections import USERS
from guroosh.services.mappers import to_oid
from guroosh.settings import settings

pwd_ctx = CryptContext(schemes=["bcrypt"], deprecated="auto")
bearer = HTTPBearer(auto_error=False)


def hash_password(plain: str) -> str:
    """Bcrypt-hash a password. Never store plain text."""
    return pwd_ctx.hash(plain)


def verify_password(plain: str, hashed: Optional[str]) -> bool:
    if not hashed:
        return False
    return pwd_ctx.verify(plain, hashed)


def create_access_token(user_id) -> str:
    """
    Signed JWT for a user.
    Payload: { userId: str, exp: now + jwt_expires_days }
    """
    expire = dt.datetime.now(dt.timezone.utc) + dt.timedelta(days=settings.jwt_expires_days)
    payload = {"userId": str(user_id), "exp": expire}
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Dict[str, Any]:
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError:
        raise ApiError(401, "Token expired")
    except JWTError:
        raise ApiError(401, "Invalid token")


def generate_code() -> str:
    """6-digit verification / reset code."""
    return str(secrets.randbelow(900000) + 100000)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    db: AsyncIOMotorDatabase = Depends(get_db),
) -> Dict[str, Any]:
    """
    Resolve the caller from `Authorization: Bearer <token>`.
    Usage: add `Depends(get_current_user)` to any protected endpoint.
    """
    if credentials is None or not credentials.credentials:
        raise ApiError(401, "No token provided")

    payload = decode_access_token(credentials.credentials)
    user_id = payload.get("userId")
    if not user_id:
        raise ApiError(401, "Invalid token")
    try:
        oid = to_oid(user_id)
    except ApiError:
        raise ApiError(401, "Invalid token")

    user = await db[USERS].find_one({"_id": oid})
    if not user:
        raise ApiError(401, "User not found")
    if user.get("status", "active") == "inactive":
        raise ApiError(403, "Account is deactivated. Please contact support.")
    return user


async def require_admin(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if user.get("role") != "admin":
        raise ApiError(403, "Access denied. Admin only.")
    return user


async def require_advisor(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if not is_advisor(user):
        raise ApiError(403, "Access denied. Advisor only.")
    return user


def is_advisor(user: Dict[str, Any]) -> bool:
    return bool(user.get("isAdvisor")) or user.get("role") in ("advisor", "admin")

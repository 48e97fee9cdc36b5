"""
User accounts: registration, email verification, password reset.

Email is the natural key (unique, lower-cased). Verification and reset
codes are 6 digits, valid for 15 minutes, and are printed to the console
since no mail transport is configured.
"""

import datetime as dt
from typing import Any, Dict, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from guroosh.errors import ApiError
from guroosh.mongo_collections import USERS
from guroosh.schemas import RegisterIn
from guroosh.security import generate_code, hash_password, verify_password
from guroosh.services.mappers import utcnow

CODE_TTL = dt.timedelta(minutes=15)

PROFILE_FIELDS = ("fullName", "phoneNumber", "address", "employmentStatus", "profileImage")


async def get_user_by_id(db: AsyncIOMotorDatabase, user_id: ObjectId) -> Optional[Dict[str, Any]]:
    """Get user by ObjectId."""
    return await db[USERS].find_one({"_id": user_id})


async def get_user_by_email(db: AsyncIOMotorDatabase, email: str) -> Optional[Dict[str, Any]]:
    """Get user by (normalized) email."""
    return await db[USERS].find_one({"email": email.strip().lower()})


async def create_user(db: AsyncIOMotorDatabase, body: RegisterIn) -> Dict[str, Any]:
    """
    Create an unverified user and issue an email verification code.

    userType "Financial Advisor" registers the account as an advisor
    straight away.

    Raises:
        ApiError(400) if the email is taken
    """
    if await get_user_by_email(db, body.email):
        raise ApiError(400, "Email already exists")

    now = utcnow()
    advisor = body.userType == "Financial Advisor"
    code = generate_code()

    new_user = {
        "fullName": body.fullName,
        "email": body.email,
        "password": hash_password(body.password),
        "phoneNumber": body.phoneNumber,
        "address": body.address,
        "employmentStatus": body.employmentStatus,
        "profileImage": None,
        "role": "advisor" if advisor else "user",
        "isAdvisor": advisor,
        "advisorProfile": default_advisor_profile() if advisor else None,
        "connectedAdvisor": None,
        "status": "active",
        "deactivatedAt": None,
        "isEmailVerified": False,
        "emailVerificationCode": code,
        "emailVerificationExpires": now + CODE_TTL,
        "passwordResetCode": None,
        "passwordResetExpires": None,
        "createdAt": now,
        "updatedAt": now,
    }
    result = await db[USERS].insert_one(new_user)
    new_user["_id"] = result.inserted_id

    print(f"[Auth] Verification code for {body.email}: {code}")
    return new_user


def default_advisor_profile(**overrides: Any) -> Dict[str, Any]:
    profile = {
        "bio": None,
        "credentials": [],
        "specializations": [],
        "yearsOfExperience": 0,
        "hourlyRate": 0,
        "rating": 0,
        "totalReviews": 0,
        "availability": "available",
    }
    for key, value in overrides.items():
        if value is not None:
            profile[key] = value
    return profile


async def verify_email(db: AsyncIOMotorDatabase, email: str, code: str) -> None:
    user = await get_user_by_email(db, email)
    if not user:
        raise ApiError(404, "User not found")
    if user.get("isEmailVerified"):
        raise ApiError(400, "Email already verified")
    if str(user.get("emailVerificationCode")) != code:
        raise ApiError(400, "Invalid verification code")
    expires = user.get("emailVerificationExpires")
    if expires is None or utcnow() > expires:
        raise ApiError(400, "Verification code expired. Please request a new one.")

    await db[USERS].update_one(
        {"_id": user["_id"]},
        {"$set": {
            "isEmailVerified": True,
            "emailVerificationCode": None,
            "emailVerificationExpires": None,
            "updatedAt": utcnow(),
        }},
    )


async def resend_verification_code(db: AsyncIOMotorDatabase, email: str) -> None:
    user = await get_user_by_email(db, email)
    if not user:
        raise ApiError(404, "User not found")
    if user.get("isEmailVerified"):
        raise ApiError(400, "Email already verified")

    code = generate_code()
    await db[USERS].update_one(
        {"_id": user["_id"]},
        {"$set": {
            "emailVerificationCode": code,
            "emailVerificationExpires": utcnow() + CODE_TTL,
            "updatedAt": utcnow(),
        }},
    )
    print(f"[Auth] Verification code for {user['email']}: {code}")


async def authenticate(
    db: AsyncIOMotorDatabase,
    email: str,
    password: str,
    account_holder: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Check credentials and account state for login.

    account_holder is the login tab the client picked; advisors and admins
    must pick theirs.
    """
    user = await get_user_by_email(db, email)
    if not user or not verify_password(password, user.get("password")):
        raise ApiError(401, "Invalid credentials")

    if not user.get("isEmailVerified"):
        raise ApiError(403, "Please verify your email before logging in", requiresVerification=True)

    if user.get("status", "active") == "inactive":
        raise ApiError(403, "Account is deactivated. Please contact support.")

    if account_holder == "Financial Advisor" and not user.get("isAdvisor"):
        raise ApiError(403, "This account is not registered as a Financial Advisor")
    if account_holder == "Administrator" and user.get("role") != "admin":
        raise ApiError(403, "This account does not have administrator access")

    return user


async def issue_reset_code(db: AsyncIOMotorDatabase, user: Dict[str, Any]) -> str:
    code = generate_code()
    await db[USERS].update_one(
        {"_id": user["_id"]},
        {"$set": {
            "passwordResetCode": code,
            "passwordResetExpires": utcnow() + CODE_TTL,
            "updatedAt": utcnow(),
        }},
    )
    print(f"[Auth] Password reset code for {user['email']}: {code}")
    return code


async def forgot_password(db: AsyncIOMotorDatabase, email: str) -> None:
    """Issue a reset code if the account exists. Callers answer the same either way."""
    user = await get_user_by_email(db, email)
    if user:
        await issue_reset_code(db, user)


async def resend_reset_code(db: AsyncIOMotorDatabase, email: str) -> None:
    user = await get_user_by_email(db, email)
    if not user:
        raise ApiError(404, "User not found")
    await issue_reset_code(db, user)


async def reset_password(db: AsyncIOMotorDatabase, email: str, code: str, new_password: str) -> None:
    user = await get_user_by_email(db, email)
    if not user:
        raise ApiError(404, "User not found")
    if not user.get("passwordResetCode") or str(user["passwordResetCode"]) != code:
        raise ApiError(400, "Invalid reset code")
    expires = user.get("passwordResetExpires")
    if expires is None or utcnow() > expires:
        raise ApiError(400, "Reset code expired. Please request a new one.")

    await db[USERS].update_one(
        {"_id": user["_id"]},
        {"$set": {
            "password": hash_password(new_password),
            "passwordResetCode": None,
            "passwordResetExpires": None,
            "updatedAt": utcnow(),
        }},
    )


async def change_password(
    db: AsyncIOMotorDatabase, user: Dict[str, Any], current: str, new_password: str
) -> None:
    if not verify_password(current, user.get("password")):
        raise ApiError(400, "Current password is incorrect")
    await db[USERS].update_one(
        {"_id": user["_id"]},
        {"$set": {"password": hash_password(new_password), "updatedAt": utcnow()}},
    )


async def update_profile(
    db: AsyncIOMotorDatabase, user_id: ObjectId, updates: Dict[str, Any]
) -> Dict[str, Any]:
    """Apply whitelisted profile fields and return the updated user."""
    fields = {k: v for k, v in updates.items() if k in PROFILE_FIELDS}
    fields["updatedAt"] = utcnow()
    return await db[USERS].find_one_and_update(
        {"_id": user_id},
        {"$set": fields},
        return_document=True,
    )

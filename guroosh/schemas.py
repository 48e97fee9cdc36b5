"""
Request bodies for the Guroosh API.

Create models validate what a handler needs before anything touches Mongo.
Update models have every field optional. Services apply them with
`model_dump(exclude_unset=True)` (or `mappers.patch_fields`), so only the
keys a client sent are $set and a null never overwrites a required field.
Field names are camelCase because that is what the web client sends and
what is stored.
"""

import datetime as dt
import re
from typing import Any, Dict, List, Literal, Optional

from email_validator import EmailNotValidError, validate_email
from pydantic import AliasChoices, BaseModel, Field, field_validator

EMPLOYMENT_STATUSES = ("Employed", "Self-Employed", "Student", "Unemployed", "Retired")
TOPICS = ("Portfolio", "Planning", "Tax", "Retirement", "Investment", "Budgeting", "Other")
URGENCIES = ("Low", "Normal", "High", "Urgent")
AVAILABILITY = ("available", "busy", "unavailable")
INVESTMENT_CATEGORIES = ("Stock", "Crypto", "Real Estate", "Gold", "Other")
MEETING_TYPES = ("Video Call", "Phone Call", "In Person")
NOTIFICATION_CATEGORIES = (
    "transactionAlerts",
    "budgetReminders",
    "investmentUpdates",
    "marketingEmails",
)

_PASSWORD_RE = re.compile(r"^(?=.*[A-Za-z])(?=.*\d)")


def _normalize_email(value: Any) -> str:
    try:
        return validate_email(str(value).strip(), check_deliverability=False).normalized.lower()
    except EmailNotValidError:
        raise ValueError("Please provide a valid email address")


def _check_password(value: str) -> str:
    if len(value) < 8:
        raise ValueError("Password must be at least 8 characters")
    if not _PASSWORD_RE.match(value):
        raise ValueError("Password must contain at least one letter and one number")
    return value


# ---------------- auth ----------------

class RegisterIn(BaseModel):
    fullName: str
    email: str
    password: str
    phoneNumber: str
    address: str
    employmentStatus: str
    userType: Optional[str] = None  # "Regular User" | "Financial Advisor"

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return _normalize_email(v)

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        return _check_password(v)

    @field_validator("fullName")
    @classmethod
    def _full_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Full name is required")
        if not 2 <= len(v) <= 100:
            raise ValueError("Full name must be between 2 and 100 characters")
        return v

    @field_validator("phoneNumber", "address")
    @classmethod
    def _not_blank(cls, v: str, info) -> str:
        v = v.strip()
        if not v:
            label = "Phone number" if info.field_name == "phoneNumber" else "Address"
            raise ValueError(f"{label} is required")
        return v

    @field_validator("employmentStatus")
    @classmethod
    def _employment(cls, v: str) -> str:
        v = v.strip()
        if v not in EMPLOYMENT_STATUSES:
            raise ValueError("Invalid employment status")
        return v


class LoginIn(BaseModel):
    email: str
    password: str = Field(min_length=1)
    accountHolder: Optional[str] = None  # "Regular User" | "Financial Advisor" | "Administrator"

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return _normalize_email(v)


class VerifyEmailIn(BaseModel):
    email: str
    code: str

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return _normalize_email(v)

    @field_validator("code", mode="before")
    @classmethod
    def _code(cls, v: Any) -> str:
        return str(v).strip()


class EmailIn(BaseModel):
    email: str

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return _normalize_email(v)


class ResetPasswordIn(BaseModel):
    email: str
    code: str = Field(validation_alias=AliasChoices("code", "verificationCode"))
    newPassword: str

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return _normalize_email(v)

    @field_validator("newPassword")
    @classmethod
    def _password(cls, v: str) -> str:
        return _check_password(v)

    @field_validator("code", mode="before")
    @classmethod
    def _code(cls, v: Any) -> str:
        return str(v).strip()


class ChangePasswordIn(BaseModel):
    currentPassword: str
    newPassword: str

    @field_validator("newPassword")
    @classmethod
    def _password(cls, v: str) -> str:
        return _check_password(v)


class ProfileUpdate(BaseModel):
    fullName: Optional[str] = Field(None, min_length=2, max_length=100)
    phoneNumber: Optional[str] = None
    address: Optional[str] = None
    employmentStatus: Optional[Literal["Employed", "Self-Employed", "Student", "Unemployed", "Retired"]] = None
    profileImage: Optional[str] = None


# ---------------- advisors ----------------

class AdvisorProfileIn(BaseModel):
    bio: Optional[str] = None
    credentials: Optional[List[str]] = None
    specializations: Optional[List[str]] = None
    yearsOfExperience: Optional[int] = Field(None, ge=0)
    hourlyRate: Optional[float] = Field(None, ge=0)
    availability: Optional[Literal["available", "busy", "unavailable"]] = None


class ConnectIn(BaseModel):
    advisorId: str
    message: Optional[str] = ""


class RespondIn(BaseModel):
    # checked by the handler so the client gets "Invalid status"
    status: Optional[str] = None
    responseMessage: Optional[str] = ""


class AvailabilityIn(BaseModel):
    availability: Optional[str] = None


# ---------------- advice requests ----------------

class AdviceRequestIn(BaseModel):
    title: Optional[str] = None
    topic: Optional[str] = None
    urgency: Optional[str] = None
    description: Optional[str] = None
    budget: Optional[str] = None
    preferredAdvisor: Optional[str] = None
    attachments: List[Dict[str, Any]] = []

    @field_validator("budget", mode="before")
    @classmethod
    def _budget(cls, v: Any) -> Optional[str]:
        return None if v is None else str(v)


class StatusUpdateIn(BaseModel):
    status: Optional[str] = None
    newStatus: Optional[str] = None

    def requested(self) -> str:
        return (self.status or self.newStatus or "").strip()


class DraftIn(BaseModel):
    content: str = ""


# ---------------- messages / notes / meetings ----------------

class MessageIn(BaseModel):
    content: Optional[str] = None


class NoteIn(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    tags: List[str] = []


class NoteUpdate(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    tags: Optional[List[str]] = None


class MeetingIn(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    dateTime: Optional[dt.datetime] = None
    duration: int = Field(60, gt=0, le=24 * 60)
    meetingType: Literal["Video Call", "Phone Call", "In Person"] = "Video Call"
    meetingLink: Optional[str] = None
    location: Optional[str] = None


class MeetingUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    dateTime: Optional[dt.datetime] = None
    duration: Optional[int] = Field(None, gt=0, le=24 * 60)
    meetingType: Optional[Literal["Video Call", "Phone Call", "In Person"]] = None
    meetingLink: Optional[str] = None
    location: Optional[str] = None


class CancelMeetingIn(BaseModel):
    reason: Optional[str] = None


class CompleteMeetingIn(BaseModel):
    notes: Optional[str] = None


# ---------------- notifications / settings / admin ----------------

class AlertSettingsPatch(BaseModel):
    transactionAlerts: Optional[bool] = None
    budgetReminders: Optional[bool] = None
    investmentUpdates: Optional[bool] = None
    marketingEmails: Optional[bool] = None


class PreferencesPatch(BaseModel):
    currency: Optional[Literal["SAR", "USD", "EUR", "GBP"]] = None
    language: Optional[Literal["en", "ar"]] = None
    dateFormat: Optional[str] = None


class NotificationPrefsPatch(BaseModel):
    email: Optional[bool] = None
    push: Optional[bool] = None
    budgetAlerts: Optional[bool] = None
    goalReminders: Optional[bool] = None


class PrivacyPatch(BaseModel):
    profileVisibility: Optional[Literal["public", "private", "advisors"]] = None
    showEmail: Optional[bool] = None


class SettingsUpdate(BaseModel):
    preferences: Optional[PreferencesPatch] = None
    notifications: Optional[NotificationPrefsPatch] = None
    alertSettings: Optional[AlertSettingsPatch] = None
    privacy: Optional[PrivacyPatch] = None


class BroadcastIn(BaseModel):
    title: Optional[str] = None
    message: Optional[str] = None
    type: Literal["info", "warning", "success", "error"] = "info"
    audience: Literal["all", "advisors", "clients"] = "all"


class UserStatusIn(BaseModel):
    action: Literal["activate", "deactivate"]


# ---------------- personal finance ----------------

class CategoryIn(BaseModel):
    name: str = Field(min_length=1, max_length=50)
    type: Literal["expense", "income"] = "expense"
    color: str = "#22d3ee"
    icon: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _strip(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Category name is required")
        return v


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    color: Optional[str] = None
    icon: Optional[str] = None
    isActive: Optional[bool] = None


class ExpenseIn(BaseModel):
    categoryId: str
    amount: float = Field(gt=0)
    title: str = Field(min_length=1)
    date: Optional[dt.datetime] = None
    description: Optional[str] = None
    merchant: Optional[str] = None


class ExpenseUpdate(BaseModel):
    categoryId: Optional[str] = None
    amount: Optional[float] = Field(None, gt=0)
    title: Optional[str] = Field(None, min_length=1)
    date: Optional[dt.datetime] = None
    description: Optional[str] = None
    merchant: Optional[str] = None


class IncomeIn(BaseModel):
    source: str = Field(min_length=1)
    amount: float = Field(gt=0)
    date: Optional[dt.datetime] = None
    category: Optional[str] = None
    description: Optional[str] = None


class IncomeUpdate(BaseModel):
    source: Optional[str] = Field(None, min_length=1)
    amount: Optional[float] = Field(None, gt=0)
    date: Optional[dt.datetime] = None
    category: Optional[str] = None
    description: Optional[str] = None


class BudgetIn(BaseModel):
    categoryId: str
    limit: float = Field(gt=0)
    period: Literal["weekly", "monthly", "yearly", "custom"] = "monthly"
    startDate: Optional[dt.datetime] = None
    endDate: Optional[dt.datetime] = None
    alertThreshold: int = Field(80, ge=1, le=100)
    isActive: bool = True
    notes: Optional[str] = None


class BudgetUpdate(BaseModel):
    limit: Optional[float] = Field(None, gt=0)
    period: Optional[Literal["weekly", "monthly", "yearly", "custom"]] = None
    startDate: Optional[dt.datetime] = None
    endDate: Optional[dt.datetime] = None
    alertThreshold: Optional[int] = Field(None, ge=1, le=100)
    isActive: Optional[bool] = None
    notes: Optional[str] = None


class GoalIn(BaseModel):
    name: str = Field(min_length=1)
    targetAmount: float = Field(gt=0)
    savedAmount: float = Field(0, ge=0)
    deadline: Optional[dt.datetime] = None


class GoalUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    targetAmount: Optional[float] = Field(None, gt=0)
    savedAmount: Optional[float] = Field(None, ge=0)
    deadline: Optional[dt.datetime] = None
    status: Optional[Literal["in-progress", "completed"]] = None


class GoalProgressIn(BaseModel):
    amount: Optional[float] = None


class InvestmentIn(BaseModel):
    name: Optional[str] = None
    category: Optional[str] = None
    amountOwned: Optional[float] = None
    buyPrice: Optional[float] = None
    currentPrice: Optional[float] = None
    purchaseDate: Optional[dt.datetime] = None
    propertyType: Optional[str] = None
    city: Optional[str] = None
    areaSqm: Optional[float] = None
    notes: Optional[str] = None


class InvestmentUpdate(BaseModel):
    name: Optional[str] = None
    amountOwned: Optional[float] = Field(None, gt=0)
    buyPrice: Optional[float] = Field(None, gt=0)
    currentPrice: Optional[float] = Field(None, ge=0)
    purchaseDate: Optional[dt.datetime] = None
    propertyType: Optional[str] = None
    city: Optional[str] = None
    areaSqm: Optional[float] = None
    notes: Optional[str] = None


class ZakatHolding(BaseModel):
    name: str = ""
    category: str
    amountOwned: float = 1
    currentPrice: float = 0
    purchaseDate: Optional[dt.datetime] = None


class ZakatEstimateIn(BaseModel):
    categories: List[str] = []
    investments: Optional[List[ZakatHolding]] = None


class ZakatCalculateIn(BaseModel):
    goldPricePerGram: Optional[float] = Field(None, gt=0)

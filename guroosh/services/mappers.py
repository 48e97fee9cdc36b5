# guroosh/services/mappers.py
from __future__ import annotations
from typing import Any, Dict, Iterable, List, Optional
import datetime as dt
from decimal import Decimal

from bson import ObjectId
from bson.errors import InvalidId

from guroosh.errors import ApiError

# never leave the server
PRIVATE_USER_FIELDS = (
    "password",
    "emailVerificationCode",
    "emailVerificationExpires",
    "passwordResetCode",
    "passwordResetExpires",
)


def utcnow() -> dt.datetime:
    """Naive UTC, which is what Mongo hands back."""
    return dt.datetime.now(dt.timezone.utc).replace(tzinfo=None)


def to_oid(value: Any) -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        raise ApiError(400, "Invalid id")


def to_mongo_safe(value: Any) -> Any:
    """
    Recursively convert values so MongoDB can encode them.
    - date -> datetime (UTC midnight)
    - tz-aware datetime -> naive UTC datetime
    - Decimal -> float
    - dict/list -> recurse
    """
    if isinstance(value, dt.datetime):
        if value.tzinfo is not None:
            value = value.astimezone(dt.timezone.utc).replace(tzinfo=None)
        return value

    if isinstance(value, dt.date):
        return dt.datetime.combine(value, dt.time.min)

    if isinstance(value, Decimal):
        return float(value)

    if isinstance(value, dict):
        return {k: to_mongo_safe(v) for k, v in value.items()}

    if isinstance(value, (list, tuple)):
        return [to_mongo_safe(v) for v in value]

    return value


def patch_fields(body: Any, clearable: Iterable[str] = ()) -> Dict[str, Any]:
    """
    The keys a client sent in a partial update, Mongo-safe. An explicit null
    clears the field only when it is in `clearable`; otherwise it is dropped.
    """
    sent = body.model_dump(exclude_unset=True)
    return to_mongo_safe({k: v for k, v in sent.items() if v is not None or k in clearable})


def _to_json(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dt.datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=dt.timezone.utc)
        return value.isoformat().replace("+00:00", "Z")
    if isinstance(value, dict):
        return {k: _to_json(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_to_json(v) for v in value]
    return value


def serialize(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Mongo document -> JSON-ready dict (ObjectIds and datetimes as strings)."""
    if doc is None:
        return None
    return _to_json(dict(doc))


def serialize_many(docs: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [serialize(d) for d in docs]


def map_user(user: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Public view of a user document."""
    if user is None:
        return None
    out = {k: v for k, v in user.items() if k not in PRIVATE_USER_FIELDS}
    return serialize(out)


def map_user_summary(user: Dict[str, Any]) -> Dict[str, Any]:
    """The subset returned by register/login."""
    return serialize({
        "id": user["_id"],
        "fullName": user.get("fullName"),
        "email": user.get("email"),
        "phoneNumber": user.get("phoneNumber"),
        "address": user.get("address"),
        "employmentStatus": user.get("employmentStatus"),
        "role": user.get("role"),
        "isEmailVerified": user.get("isEmailVerified", False),
        "isAdvisor": user.get("isAdvisor", False),
        "status": user.get("status", "active"),
        "createdAt": user.get("createdAt"),
    })


async def populate(
    db,
    docs: List[Dict[str, Any]],
    field: str,
    fields: Iterable[str] = ("fullName", "email"),
    collection: str = "users",
) -> List[Dict[str, Any]]:
    """
    Replace the ObjectId in `field` with a small sub-document (a user unless
    `collection` says otherwise). Unknown ids are left as they are.
    """
    ids = {d[field] for d in docs if isinstance(d.get(field), ObjectId)}
    if not ids:
        return docs
    projection = {f: 1 for f in fields}
    found = {}
    async for ref in db[collection].find({"_id": {"$in": list(ids)}}, projection):
        found[ref["_id"]] = ref
    for d in docs:
        ref = d.get(field)
        if isinstance(ref, ObjectId) and ref in found:
            d[field] = found[ref]
    return docs


def ref_id(value: Any) -> Optional[ObjectId]:
    """ObjectId of a reference whether or not it has been populated."""
    if isinstance(value, dict):
        return value.get("_id")
    return value

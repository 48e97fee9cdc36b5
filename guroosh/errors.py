# guroosh/errors.py
import traceback
from typing import Any, Dict

from fastapi import FastAPI, Request
from starlette.exceptions import HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded


class ApiError(HTTPException):
    """
    HTTPException that renders as {"error": detail, **extra}.

    `extra` carries additional keys the client reads, e.g. the status of an
    already existing connection request.
    """

    def __init__(self, status_code: int, detail: str, **extra: Any):
        super().__init__(status_code=status_code, detail=detail)
        self.extra: Dict[str, Any] = extra


def _first_validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    err = errors[0]
    msg = str(err.get("msg", "Invalid request"))
    # pydantic prefixes messages raised from validators
    if msg.startswith("Value error, "):
        return msg[len("Value error, "):]
    loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
    if err.get("type") == "missing" and loc:
        return f"{loc[-1]} is required"
    if loc:
        return f"{loc[-1]}: {msg}"
    return msg


async def http_exception_handler(request: Request, exc: HTTPException):
    body: Dict[str, Any] = {"error": exc.detail}
    body.update(getattr(exc, "extra", {}) or {})
    return JSONResponse(body, status_code=exc.status_code, headers=getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        {"success": False, "error": _first_validation_message(exc)},
        status_code=400,
    )


async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse({"success": False, "error": exc.detail}, status_code=429)


async def unhandled_exception_handler(request: Request, exc: Exception):
    print(f"[API] Unhandled error on {request.method} {request.url.path}: {exc!r}")
    traceback.print_exc()
    return JSONResponse({"error": "Something went wrong!"}, status_code=500)


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

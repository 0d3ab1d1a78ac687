"""
API error types and the handlers that turn them into the response envelope.

Failure bodies always look like
    {"success": false, "error": {"code": ..., "message": ..., "details": ...}}
"""
from typing import Any, Dict, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException


logger = structlog.get_logger(__name__)


class ApiError(Exception):
    status_code = 500
    code = "INTERNAL_ERROR"
    message = "Server error"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message or self.message
        self.details = details
        super().__init__(self.message)


class ValidationFailed(ApiError):
    status_code = 400
    code = "VALIDATION_ERROR"
    message = "Validation failed"

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationFailed":
        return cls(details={"fields": {field: message}})


class DuplicateEmail(ApiError):
    status_code = 400
    code = "DUPLICATE_EMAIL"
    message = "Email already registered"


class Conflict(ApiError):
    status_code = 409
    code = "CONFLICT"
    message = "Resource already exists"


class InvalidCredentials(ApiError):
    status_code = 401
    code = "INVALID_CREDENTIALS"
    message = "Invalid email or password"


class NoToken(ApiError):
    status_code = 401
    code = "NO_TOKEN"
    message = "Not authorized, token missing"


class InvalidToken(ApiError):
    status_code = 401
    code = "INVALID_TOKEN"
    message = "Token is not valid or expired"


class NotFound(ApiError):
    status_code = 404
    code = "NOT_FOUND"
    message = "Resource not found"


_STATUS_CODES = {
    400: "BAD_REQUEST",
    401: "INVALID_TOKEN",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    429: "TOO_MANY_REQUESTS",
}


def error_body(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> dict:
    error: Dict[str, Any] = {"code": code, "message": message}
    if details:
        error["details"] = details
    return {"success": False, "error": error}


def _field_name(loc) -> str:
    # loc looks like ("body", "items", 0, "amount"); keep the path below the source
    parts = [str(p) for p in loc[1:]] if len(loc) > 1 else [str(p) for p in loc]
    return ".".join(parts) or "body"


async def api_error_handler(request: Request, exc: ApiError):
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.code, exc.message, exc.details))


async def request_validation_handler(request: Request, exc: RequestValidationError):
    fields: Dict[str, str] = {}
    for err in exc.errors():
        fields.setdefault(_field_name(err.get("loc", ())), err.get("msg", "Invalid value"))
    return JSONResponse(
        status_code=400,
        content=error_body("VALIDATION_ERROR", "Validation failed", {"fields": fields}),
    )


async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning("integrity_error", path=request.url.path, error=str(exc.orig))
    return JSONResponse(status_code=409, content=error_body("CONFLICT", "Resource already exists"))


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    code = _STATUS_CODES.get(exc.status_code, "INTERNAL_ERROR" if exc.status_code >= 500 else "BAD_REQUEST")
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    if exc.status_code == 404 and message == "Not Found":
        message = "Route not found"
    return JSONResponse(status_code=exc.status_code, content=error_body(code, message), headers=getattr(exc, "headers", None))


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("unhandled_error", path=request.url.path, method=request.method, exc_info=exc)
    return JSONResponse(status_code=500, content=error_body("INTERNAL_ERROR", "Server error"))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

"""
Error taxonomy and the response envelope shared by every route.
"""

from datetime import datetime, timezone
from typing import Any, List, Optional

from bson import ObjectId
from bson.errors import InvalidId

from database import to_iso


class AppError(Exception):
    status_code = 500
    message = "Server error"

    def __init__(self, message: Optional[str] = None, errors: Optional[List[dict]] = None):
        super().__init__(message or self.message)
        self.message = message or self.message
        self.errors = errors


class ValidationError(AppError):
    status_code = 400
    message = "Validation failed"


class Unauthenticated(AppError):
    status_code = 401
    message = "Access denied. No token provided."


class InvalidCredential(AppError):
    status_code = 401
    message = "Invalid token."


class NotFound(AppError):
    status_code = 404
    message = "Not found"


class Conflict(AppError):
    status_code = 409
    message = "Already exists"


class InvalidTransition(AppError):
    status_code = 400
    message = "Invalid status transition"


class NoStore(AppError):
    status_code = 400
    message = "Vendor must have a store"


class InternalError(AppError):
    status_code = 500
    message = "Server error"


def timestamp() -> str:
    return to_iso(datetime.now(timezone.utc))


def success(data: Any = None, message: str = "Success") -> dict:
    return {"success": True, "message": message, "data": data, "timestamp": timestamp()}


def failure(message: str, errors: Optional[List[dict]] = None) -> dict:
    return {"success": False, "message": message, "errors": errors, "timestamp": timestamp()}


def parse_id(value: str, entity: str = "Resource") -> ObjectId:
    """Malformed ids are reported like absent ones."""
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise NotFound(f"{entity} not found")

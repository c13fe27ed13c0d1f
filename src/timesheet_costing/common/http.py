"""JSON helpers shared by the Flask controllers."""

from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Optional

from flask import jsonify, request, session

from ..core.enums import Role
from ..core.exceptions import (
    AuthorizationError,
    ConflictError,
    DomainError,
    NotFoundError,
    StateError,
    ValidationError,
)

logger = logging.getLogger(__name__)

STATUS_CODES: dict[type, int] = {
    ValidationError: 400,
    StateError: 400,
    AuthorizationError: 403,
    NotFoundError: 404,
    ConflictError: 409,
}


def status_for(error: DomainError) -> int:
    for kind, code in STATUS_CODES.items():
        if isinstance(error, kind):
            return code
    return 400


def error_response(message: str, status: int):
    return jsonify({"success": False, "message": message}), status


def json_errors(view):
    """Map domain errors to 4xx; anything else is an infrastructure failure (500)."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        try:
            return view(*args, **kwargs)
        except DomainError as e:
            return error_response(str(e), status_for(e))
        except Exception:
            logger.exception("Unexpected error in %s", request.path)
            return error_response("Service temporarily unavailable", 500)

    return wrapper


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return error_response("Authentication required", 401)
        return view(*args, **kwargs)

    return wrapper


def manager_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return error_response("Authentication required", 401)
        if not current_role().can_review:
            return error_response("Manager or admin role required", 403)
        return view(*args, **kwargs)

    return wrapper


def current_user_id() -> int:
    return int(session["user_id"])


def current_role() -> Role:
    try:
        return Role(session.get("role", Role.EMPLOYEE.value))
    except ValueError:
        raise AuthorizationError("Unknown role")


def body() -> dict:
    return request.get_json(silent=True) or {}


def query_int(name: str) -> Optional[int]:
    value = request.args.get(name)
    if value is None or value == "":
        return None
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f"Invalid {name} format")


def query_str(name: str) -> Optional[Any]:
    value = request.args.get(name)
    return value if value not in (None, "") else None

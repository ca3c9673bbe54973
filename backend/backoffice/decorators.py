# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, g

from .errors import UnauthorizedError
from .permissions import Roles
from .services.tenant_service import Actor


def _header_int(name: str):
    value = (request.headers.get(name) or "").strip()
    if not value:
        return None
    if not value.isdigit():
        raise UnauthorizedError(f"Invalid identity header: {name}")
    return int(value)


def require_actor(f):
    """
    Establish the acting user from the trusted identity headers.

    The gateway in front of this service authenticates the caller and sets:
    - X-User-Id: the user id (required)
    - X-Company-Id: the tenant (absent for platform roles)
    - X-User-Role: one of Roles.ALL (required)

    Sets g.actor. Raises UnauthorizedError (401 via the app error handler)
    when the headers are missing or malformed.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user_id = _header_int("X-User-Id")
        company_id = _header_int("X-Company-Id")
        role = (request.headers.get("X-User-Role") or "").strip().upper()

        if user_id is None or not role:
            raise UnauthorizedError("Authentication required")
        if role not in Roles.ALL:
            raise UnauthorizedError("Unknown role", details={"role": role})

        g.actor = Actor(user_id=user_id, company_id=company_id, role=role)
        return f(*args, **kwargs)

    return decorated_function

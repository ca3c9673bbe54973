"""
Role to permission mapping.

Roles come from the trusted identity layer. The mapping is static and is
checked once at the top of every core operation.
"""
from __future__ import annotations

from .errors import ForbiddenError


class Roles:
    SUPER_ADMIN = "SUPER_ADMIN"
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    BRANCH_MANAGER = "BRANCH_MANAGER"
    SALESMAN = "SALESMAN"

    ALL = frozenset({SUPER_ADMIN, OWNER, ADMIN, BRANCH_MANAGER, SALESMAN})


_MANAGERS = frozenset({Roles.OWNER, Roles.ADMIN, Roles.BRANCH_MANAGER})
_OWNERS = frozenset({Roles.OWNER, Roles.ADMIN})
_SELLERS = _MANAGERS | {Roles.SALESMAN}


ROLE_PERMISSIONS: dict[str, frozenset[str]] = {
    # Purchases
    "CREATE_PURCHASE": _MANAGERS,
    "VIEW_PURCHASES": _MANAGERS,
    "UPDATE_PURCHASE": _MANAGERS,
    "DELETE_PURCHASE": _OWNERS,
    # Sales
    "CREATE_SALE": _SELLERS,
    "VIEW_SALES": _SELLERS,
    "UPDATE_SALE": _MANAGERS,
    "DELETE_SALE": _OWNERS,
    # Transfers
    "CREATE_TRANSFER": _MANAGERS,
    "VIEW_TRANSFERS": _MANAGERS,
    "UPDATE_TRANSFER": _MANAGERS,
    "DELETE_TRANSFER": _OWNERS,
    # Returns
    "CREATE_PURCHASE_RETURN": _MANAGERS,
    "VIEW_PURCHASE_RETURNS": _MANAGERS,
    "UPDATE_PURCHASE_RETURN": _MANAGERS,
    "DELETE_PURCHASE_RETURN": _OWNERS,
    "CREATE_SALE_RETURN": _MANAGERS,
    "VIEW_SALE_RETURNS": _MANAGERS,
    "UPDATE_SALE_RETURN": _MANAGERS,
    "DELETE_SALE_RETURN": _OWNERS,
    # Inventory
    "VIEW_INVENTORY": _SELLERS,
    "ADJUST_INVENTORY": _MANAGERS,
}


def has_permission(role: str | None, permission_code: str) -> bool:
    return role in ROLE_PERMISSIONS.get(permission_code, frozenset())


def require_permission(actor, permission_code: str) -> None:
    """Raise ForbiddenError unless actor's role grants permission_code."""
    role = getattr(actor, "role", None)
    if not has_permission(role, permission_code):
        raise ForbiddenError(
            "Permission denied",
            details={"required_permission": permission_code, "role": role},
        )

"""
Typed error taxonomy for the back-office core.

Services raise these synchronously; routes translate them into JSON bodies
with the matching HTTP status. No partial-success responses exist: a failed
document operation is rolled back and surfaces as exactly one error.
"""
from __future__ import annotations


class BackofficeError(Exception):
    """Base class for every error the core raises on purpose."""

    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class NotFoundError(BackofficeError):
    """Referenced entity is missing or belongs to another tenant."""
    status_code = 404


class ConflictError(BackofficeError):
    """Duplicate value on a unique field."""
    status_code = 409


class InvalidInputError(BackofficeError):
    """Quantity or amount constraint violated."""
    status_code = 400


class InsufficientStockError(InvalidInputError):
    """Decrement would drive an inventory row below zero."""

    def __init__(self, product_id: int, store_id: int, available: int, requested: int, label: str | None = None):
        name = label or f"product {product_id}"
        super().__init__(
            f"Insufficient inventory for {name}. Available: {available}, Required: {requested}",
            details={
                "product_id": product_id,
                "store_id": store_id,
                "available": available,
                "requested": requested,
            },
        )
        self.product_id = product_id
        self.store_id = store_id
        self.available = available
        self.requested = requested


class UnauthorizedError(BackofficeError):
    """Identity headers missing, malformed or naming an unknown role."""
    status_code = 401


class ForbiddenError(BackofficeError):
    """Actor's role is not permitted to perform the operation."""
    status_code = 403


class InternalError(BackofficeError):
    """Unexpected persistence failure."""
    status_code = 500

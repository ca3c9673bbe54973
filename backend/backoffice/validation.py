from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from backoffice.time_utils import parse_iso_datetime
from .errors import InvalidInputError
from .services.document_service import DocumentFilter
from .services.inventory_service import InventoryFilter, MovementFilter


# Maximum money value: 9,999,999,999.99 fits Numeric(12, 2)
MAX_AMOUNT = Decimal("9999999999.99")


class ValidationError(InvalidInputError):
    """400-level structural problem with a request payload or query string."""


# =============================================================================
# Scalar coercion
# =============================================================================

def coerce_int(value: Any, field: str) -> int | None:
    """Strict integers: no bools, floats, decimals or scientific notation."""
    if value is None:
        return None
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        # Reject "1e3" and "12.5"
        if "e" in stripped.lower() or "." in stripped:
            raise ValidationError(f"{field} must be a plain integer")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


def coerce_decimal(value: Any, field: str) -> Decimal | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, (int, float, str, Decimal)):
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValidationError(f"{field} must be a number")
        if not amount.is_finite():
            raise ValidationError(f"{field} must be a finite number")
        if abs(amount) > MAX_AMOUNT:
            raise ValidationError(f"{field} exceeds maximum allowed value")
        return amount
    raise ValidationError(f"{field} must be a number")


def coerce_datetime(value: Any, field: str) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            dt = parse_iso_datetime(value)
        except ValueError:
            raise ValidationError(f"{field} must be an ISO-8601 datetime")
        if dt is None:
            raise ValidationError(f"{field} must be an ISO-8601 datetime")
        return dt
    raise ValidationError(f"{field} must be a datetime")


def coerce_str(value: Any, field: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    return value.strip()


_COERCERS = {
    "int": coerce_int,
    "decimal": coerce_decimal,
    "datetime": coerce_datetime,
    "str": coerce_str,
}


# =============================================================================
# Document payloads
# =============================================================================

@dataclass(frozen=True)
class DocumentSchema:
    """
    Structural rules for one document kind:
    - fields: writable header fields and their scalar type
    - required_on_create: fields that must be present on POST
    - item_price: "required", "optional" or None (lines carry no price)
    """
    fields: dict[str, str]
    required_on_create: frozenset[str]
    item_price: str | None


_COMMON = {"status": "str", "notes": "str"}

SCHEMAS: dict[str, DocumentSchema] = {
    "purchase": DocumentSchema(
        fields={**_COMMON, "store_id": "int", "vendor_id": "int", "purchase_date": "datetime", "paid_amount": "decimal"},
        required_on_create=frozenset({"store_id", "vendor_id", "items"}),
        item_price="required",
    ),
    "sale": DocumentSchema(
        fields={
            **_COMMON,
            "store_id": "int",
            "customer_id": "int",
            "sale_date": "datetime",
            "discount": "decimal",
            "tax": "decimal",
            "paid_amount": "decimal",
        },
        required_on_create=frozenset({"store_id", "items"}),
        item_price="required",
    ),
    "transfer": DocumentSchema(
        fields={**_COMMON, "from_store_id": "int", "to_store_id": "int", "transfer_date": "datetime"},
        required_on_create=frozenset({"from_store_id", "to_store_id", "items"}),
        item_price=None,
    ),
    "purchase_return": DocumentSchema(
        fields={**_COMMON, "purchase_id": "int", "reason": "str", "return_date": "datetime"},
        required_on_create=frozenset({"purchase_id", "reason", "items"}),
        item_price="optional",
    ),
    "sale_return": DocumentSchema(
        fields={**_COMMON, "sale_id": "int", "reason": "str", "return_date": "datetime"},
        required_on_create=frozenset({"sale_id", "reason", "items"}),
        item_price="optional",
    ),
}


def _validate_items(items: Any, item_price: str | None) -> list[dict]:
    if not isinstance(items, list) or not items:
        raise ValidationError("items must be a non-empty list")

    cleaned = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{index}] must be an object")

        allowed = {"product_id", "quantity"} | ({"unit_price"} if item_price else set())
        unknown = set(item) - allowed
        if unknown:
            raise ValidationError(f"Field not allowed in items[{index}]: {', '.join(sorted(unknown))}")

        product_id = coerce_int(item.get("product_id"), f"items[{index}].product_id")
        quantity = coerce_int(item.get("quantity"), f"items[{index}].quantity")
        if product_id is None:
            raise ValidationError(f"items[{index}].product_id is required")
        if quantity is None:
            raise ValidationError(f"items[{index}].quantity is required")

        line = {"product_id": product_id, "quantity": quantity}
        if item_price:
            unit_price = coerce_decimal(item.get("unit_price"), f"items[{index}].unit_price")
            if unit_price is None and item_price == "required":
                raise ValidationError(f"items[{index}].unit_price is required")
            line["unit_price"] = unit_price
        cleaned.append(line)
    return cleaned


def validate_document_payload(kind: str, payload: Any, *, partial: bool) -> dict:
    """
    Validate and normalize an incoming document body.

    partial=False: create semantics (required fields enforced)
    partial=True: patch semantics (only provided keys are validated)

    Semantic checks (positive quantities, tenant ownership, stock) are the
    services' job; this only guarantees well-typed input.
    """
    schema = SCHEMAS[kind]
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(f for f in schema.required_on_create if payload.get(f) is None)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cleaned: dict[str, Any] = {}
    for key, value in payload.items():
        if key == "items":
            cleaned["items"] = _validate_items(value, schema.item_price)
            continue
        if key not in schema.fields:
            raise ValidationError(f"Field not allowed: {key}")
        cleaned[key] = _COERCERS[schema.fields[key]](value, key)
    return cleaned


def validate_adjustment_payload(payload: Any) -> dict:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    missing = sorted(f for f in ("store_id", "product_id", "quantity_change") if payload.get(f) is None)
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    return {
        "store_id": coerce_int(payload["store_id"], "store_id"),
        "product_id": coerce_int(payload["product_id"], "product_id"),
        "quantity_change": coerce_int(payload["quantity_change"], "quantity_change"),
        "reason": coerce_str(payload.get("reason"), "reason"),
    }


# =============================================================================
# Query strings
# =============================================================================

def _arg_int(args, name: str) -> int | None:
    value = args.get(name)
    if value in (None, ""):
        return None
    return coerce_int(value, name)


def _arg_datetime(args, name: str) -> datetime | None:
    value = args.get(name)
    if value in (None, ""):
        return None
    return coerce_datetime(value, name)


def _arg_bool(args, name: str) -> bool:
    return str(args.get(name, "")).strip().lower() in ("1", "true", "yes")


def parse_document_filter(args, counterparty_param: str) -> DocumentFilter:
    """Build a DocumentFilter from request.args; counterparty_param names the per-kind id param."""
    return DocumentFilter(
        search_term=args.get("search") or None,
        store_id=_arg_int(args, "store_id"),
        status=args.get("status") or None,
        counterparty_id=_arg_int(args, counterparty_param),
        from_date=_arg_datetime(args, "from_date"),
        to_date=_arg_datetime(args, "to_date"),
        page=_arg_int(args, "page") or 1,
        limit=_arg_int(args, "limit"),
        sort_by=args.get("sort_by") or "created_at",
        sort_order=(args.get("sort_order") or "desc").lower(),
    )


def parse_inventory_filter(args) -> InventoryFilter:
    return InventoryFilter(
        store_id=_arg_int(args, "store_id"),
        product_id=_arg_int(args, "product_id"),
        search_term=args.get("search") or None,
        low_stock_only=_arg_bool(args, "low_stock"),
        page=_arg_int(args, "page") or 1,
        limit=_arg_int(args, "limit"),
    )


def parse_movement_filter(args) -> MovementFilter:
    return MovementFilter(
        store_id=_arg_int(args, "store_id"),
        product_id=_arg_int(args, "product_id"),
        document_type=args.get("document_type") or None,
        page=_arg_int(args, "page") or 1,
        limit=_arg_int(args, "limit"),
    )

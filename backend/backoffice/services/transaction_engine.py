"""
Transaction Engine: the shared shape of every stock-moving document.

Each document kind (purchase, sale, transfer, purchase return, sale return)
is created by the same sequence, run as ONE atomic unit:

    1. validate references and quantities (stock_validator)
    2. price every line: total_price = quantity * unit_price
    3. compute header aggregates
    4. allocate the document number (document_service)
    5. insert header + items
    6. apply inventory deltas (inventory_service)
    7. commit, then re-read with joined relations for the response

Any failure in 1-6 rolls the whole unit back: no header, no items, no
inventory change, and the sequence value is released with the rollback.

Update replaces items wholesale and recomputes totals. Neither update nor
delete reverses inventory deltas applied at creation; corrections are made
with return documents or manual adjustments.
"""
from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import db
from ..errors import BackofficeError, ConflictError, InternalError, InvalidInputError
from ..money import to_money


@contextmanager
def atomic_unit(label: str):
    """
    Single commit boundary for a document command.

    Typed business errors roll back and propagate unchanged; constraint
    violations surface as ConflictError, other persistence failures as
    InternalError.
    """
    try:
        yield
        db.session.commit()
    except BackofficeError as exc:
        db.session.rollback()
        current_app.logger.warning("%s rolled back: %s", label, exc.message)
        raise
    except IntegrityError as exc:
        db.session.rollback()
        current_app.logger.warning("%s rolled back on constraint violation: %s", label, exc.orig)
        raise ConflictError("Duplicate value exists", details={"operation": label}) from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("%s failed in persistence layer", label)
        raise InternalError("Unexpected persistence failure") from exc
    except Exception:
        db.session.rollback()
        raise


# =============================================================================
# LINES
# =============================================================================

@dataclass
class LineInput:
    product_id: int
    quantity: int
    unit_price: Optional[Decimal] = None

    @property
    def total_price(self) -> Decimal:
        return to_money(Decimal(self.quantity) * (self.unit_price or Decimal("0")))


def normalize_lines(items: Iterable[dict] | None, *, priced: bool = True, price_required: bool = True) -> list[LineInput]:
    """
    Turn payload items into LineInput rows.

    Structural validation happens upstream; this only enforces the quantity
    and price constraints the ledger depends on.
    """
    items = list(items or [])
    if not items:
        raise InvalidInputError("At least one item is required")

    lines = []
    for index, item in enumerate(items):
        quantity = item.get("quantity")
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
            raise InvalidInputError(
                "Quantity must be a positive integer",
                details={"item": index, "quantity": quantity},
            )

        unit_price = None
        if priced:
            raw_price = item.get("unit_price")
            if raw_price is None:
                if price_required:
                    raise InvalidInputError("Unit price is required", details={"item": index})
            else:
                unit_price = to_money(raw_price)
                if unit_price < 0:
                    raise InvalidInputError(
                        "Unit price must be non-negative",
                        details={"item": index, "unit_price": str(unit_price)},
                    )

        lines.append(LineInput(product_id=item.get("product_id"), quantity=quantity, unit_price=unit_price))
    return lines


def quantities_by_product(lines: Iterable) -> dict[int, int]:
    totals: dict[int, int] = {}
    for line in lines:
        totals[line.product_id] = totals.get(line.product_id, 0) + line.quantity
    return totals


def lines_total(lines: Iterable[LineInput]) -> Decimal:
    return to_money(sum((line.total_price for line in lines), Decimal("0")))


def build_items(item_model, parent_key: str, parent_id: int, lines: Iterable[LineInput], *, priced: bool = True) -> list:
    """Insert one item row per line under the given document header."""
    rows = []
    for line in lines:
        values = {parent_key: parent_id, "product_id": line.product_id, "quantity": line.quantity}
        if priced:
            values["unit_price"] = line.unit_price
            values["total_price"] = line.total_price
        row = item_model(**values)
        db.session.add(row)
        rows.append(row)
    db.session.flush()
    return rows


def replace_items(document, item_model, parent_key: str, lines: Iterable[LineInput], *, priced: bool = True) -> list:
    """Delete every existing item of document and insert the new lines."""
    for item in list(document.items):
        db.session.delete(item)
    db.session.flush()
    db.session.expire(document, ["items"])
    return build_items(item_model, parent_key, document.id, lines, priced=priced)


# =============================================================================
# AMOUNTS
# =============================================================================

def amount_or_default(value, default) -> Decimal:
    amount = to_money(default if value is None else value)
    if amount < 0:
        raise InvalidInputError("Amounts must be non-negative", details={"amount": str(amount)})
    return amount


def settle(total_amount: Decimal, paid_amount: Decimal) -> Decimal:
    """due_amount for a document; paying more than the total is refused."""
    if total_amount < 0:
        raise InvalidInputError(
            "Total amount cannot be negative",
            details={"total_amount": str(total_amount)},
        )
    if paid_amount > total_amount:
        raise InvalidInputError(
            "Paid amount exceeds total amount",
            details={"total_amount": str(total_amount), "paid_amount": str(paid_amount)},
        )
    return to_money(total_amount - paid_amount)


# =============================================================================
# STATUS
# =============================================================================

def resolve_status(label: str, requested: str | None, allowed: tuple[str, ...], default: str) -> str:
    status = requested or default
    if status not in allowed:
        raise InvalidInputError(
            f"Invalid {label} status '{status}'",
            details={"allowed": list(allowed)},
        )
    return status


def check_status_change(label: str, current: str, requested: str | None, allowed: tuple[str, ...], terminal: frozenset[str]) -> str:
    """Validate an update's status; documents in a terminal status stay there."""
    if requested is None or requested == current:
        return current
    resolve_status(label, requested, allowed, current)
    if current in terminal:
        raise InvalidInputError(
            f"Cannot change status of {label} in {current} status",
            details={"current": current, "requested": requested},
        )
    return requested


def ensure_no_dependents(dependents: list, message: str) -> None:
    if dependents:
        raise InvalidInputError(message, details={"dependent_count": len(dependents)})


def log_committed(label: str, document) -> None:
    current_app.logger.info(
        "%s committed id=%s document_number=%s",
        label,
        document.id,
        getattr(document, "document_number", None),
    )

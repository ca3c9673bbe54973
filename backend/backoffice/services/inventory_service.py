# Overview: Inventory Store; per-(product, store) on-hand quantity and its movement journal.

"""
Inventory invariants (authoritative)

- Inventory.quantity >= 0 for every (product, store), always.
- increase() creates the row lazily (quantity = delta) or adds to it.
- decrease() is a single conditional UPDATE ... WHERE quantity >= delta.
  The row lock taken by the UPDATE serializes concurrent decrements of
  the same row; a zero rowcount means the floor check failed and nothing
  changed.
- Every change appends one StockMovement in the same transaction.
- These functions never commit. They run inside the caller's atomic unit.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from flask import current_app
from sqlalchemy import func, or_, update
from sqlalchemy.orm import joinedload

from ..extensions import db
from ..errors import InsufficientStockError, InvalidInputError, NotFoundError
from ..models import Inventory, Product, Store, StockMovement
from ..permissions import require_permission
from .concurrency import insert_if_absent, lock_for_update
from .document_service import paginate
from .transaction_engine import atomic_unit
from .tenant_service import (
    Actor,
    require_company,
    require_products_in_company,
    require_store_in_company,
)


ADJUSTMENT = "ADJUSTMENT"


@dataclass(frozen=True)
class MovementSource:
    """What caused an inventory change; copied onto the StockMovement row."""
    document_type: str
    document_id: Optional[int] = None
    document_number: Optional[str] = None
    actor_user_id: Optional[int] = None
    note: Optional[str] = None


def _row_filter(product_id: int, store_id: int):
    return (Inventory.product_id == product_id, Inventory.store_id == store_id)


def get_quantity(product_id: int, store_id: int) -> int:
    """On-hand quantity, 0 when no row exists yet."""
    quantity = (
        db.session.query(Inventory.quantity)
        .filter(*_row_filter(product_id, store_id))
        .scalar()
    )
    return int(quantity or 0)


def locked_quantities(pairs: Iterable[tuple[int, int]]) -> dict[tuple[int, int], int]:
    """
    Read and row-lock the given (product_id, store_id) rows.

    Locks are taken in (store, product) order so two writers touching the
    same rows cannot deadlock each other.
    """
    quantities = {}
    for product_id, store_id in sorted(set(pairs), key=lambda p: (p[1], p[0])):
        query = db.session.query(Inventory.quantity).filter(*_row_filter(product_id, store_id))
        quantity = lock_for_update(query).scalar()
        quantities[(product_id, store_id)] = int(quantity or 0)
    return quantities


def _record_movement(product_id: int, store_id: int, delta: int, source: MovementSource) -> int:
    quantity_after = get_quantity(product_id, store_id)
    db.session.add(
        StockMovement(
            store_id=store_id,
            product_id=product_id,
            quantity_delta=delta,
            quantity_after=quantity_after,
            document_type=source.document_type,
            document_id=source.document_id,
            document_number=source.document_number,
            actor_user_id=source.actor_user_id,
            note=source.note,
        )
    )
    return quantity_after


def _positive_delta(delta: int) -> int:
    if not isinstance(delta, int) or isinstance(delta, bool) or delta <= 0:
        raise InvalidInputError("Quantity must be a positive integer", details={"quantity": delta})
    return delta


def increase(product_id: int, store_id: int, delta: int, source: MovementSource) -> int:
    """Add delta to the row, creating it on first use. Returns quantity after."""
    delta = _positive_delta(delta)

    stmt = (
        update(Inventory)
        .where(*_row_filter(product_id, store_id))
        .values(quantity=Inventory.quantity + delta, last_updated=func.now())
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    if not result.rowcount:
        created = insert_if_absent(Inventory(product_id=product_id, store_id=store_id, quantity=delta))
        if not created:
            # Lost the insert race; the row exists now
            db.session.execute(stmt)

    return _record_movement(product_id, store_id, delta, source)


def decrease(product_id: int, store_id: int, delta: int, source: MovementSource, label: str | None = None) -> int:
    """
    Subtract delta, refusing to cross zero.

    Raises InsufficientStockError with the available quantity when the
    row is missing or holds less than delta.
    """
    delta = _positive_delta(delta)

    stmt = (
        update(Inventory)
        .where(*_row_filter(product_id, store_id), Inventory.quantity >= delta)
        .values(quantity=Inventory.quantity - delta, last_updated=func.now())
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    if not result.rowcount:
        raise InsufficientStockError(
            product_id=product_id,
            store_id=store_id,
            available=get_quantity(product_id, store_id),
            requested=delta,
            label=label,
        )

    return _record_movement(product_id, store_id, -delta, source)


def load_inventory(product_id: int, store_id: int) -> Inventory | None:
    return db.session.get(
        Inventory,
        (product_id, store_id),
        options=[joinedload(Inventory.product), joinedload(Inventory.store)],
        populate_existing=True,
    )


# =============================================================================
# Reads
# =============================================================================

@dataclass
class InventoryFilter:
    store_id: Optional[int] = None
    product_id: Optional[int] = None
    search_term: Optional[str] = None
    low_stock_only: bool = False
    page: int = 1
    limit: Optional[int] = None


@dataclass
class MovementFilter:
    store_id: Optional[int] = None
    product_id: Optional[int] = None
    document_type: Optional[str] = None
    page: int = 1
    limit: Optional[int] = None


def _company_inventory(company_id: int):
    return (
        db.session.query(Inventory)
        .join(Store, Store.id == Inventory.store_id)
        .join(Product, Product.id == Inventory.product_id)
        .filter(Store.company_id == company_id)
        .options(joinedload(Inventory.product), joinedload(Inventory.store))
    )


def list_inventory(actor: Actor, inv_filter: InventoryFilter | None = None) -> tuple[list, dict]:
    require_permission(actor, "VIEW_INVENTORY")
    company_id = require_company(actor)
    f = inv_filter or InventoryFilter()

    query = _company_inventory(company_id)
    if f.store_id:
        query = query.filter(Inventory.store_id == f.store_id)
    if f.product_id:
        query = query.filter(Inventory.product_id == f.product_id)
    if f.search_term:
        term = f"%{f.search_term.strip()}%"
        query = query.filter(or_(Product.name.ilike(term), Product.sku.ilike(term)))
    if f.low_stock_only:
        query = query.filter(Inventory.quantity <= Product.reorder_level)

    query = query.order_by(Inventory.store_id.asc(), Product.name.asc(), Inventory.product_id.asc())
    return paginate(query, f.page, f.limit)


def get_store_inventory(actor: Actor, store_id: int, page: int = 1, limit: int | None = None) -> tuple[list, dict]:
    require_permission(actor, "VIEW_INVENTORY")
    company_id = require_company(actor)
    require_store_in_company(store_id, company_id)
    return list_inventory(actor, InventoryFilter(store_id=store_id, page=page, limit=limit))


def get_product_inventory(actor: Actor, product_id: int) -> dict:
    """Per-store quantities of one product plus the company-wide total."""
    require_permission(actor, "VIEW_INVENTORY")
    company_id = require_company(actor)
    product = require_products_in_company([product_id], company_id)[product_id]

    rows = (
        _company_inventory(company_id)
        .filter(Inventory.product_id == product.id)
        .order_by(Inventory.store_id.asc())
        .all()
    )
    return {
        "product": product.to_dict(),
        "stores": [row.to_dict() for row in rows],
        "total_quantity": sum(row.quantity for row in rows),
    }


def list_low_stock(actor: Actor, store_id: int | None = None, page: int = 1, limit: int | None = None) -> tuple[list, dict]:
    """Rows whose quantity has fallen to or below the product's reorder level."""
    require_permission(actor, "VIEW_INVENTORY")
    company_id = require_company(actor)
    if store_id is not None:
        require_store_in_company(store_id, company_id)
    return list_inventory(
        actor,
        InventoryFilter(store_id=store_id, low_stock_only=True, page=page, limit=limit),
    )


def list_movements(actor: Actor, mv_filter: MovementFilter | None = None) -> tuple[list, dict]:
    require_permission(actor, "VIEW_INVENTORY")
    company_id = require_company(actor)
    f = mv_filter or MovementFilter()

    query = (
        db.session.query(StockMovement)
        .join(Store, Store.id == StockMovement.store_id)
        .filter(Store.company_id == company_id)
    )
    if f.store_id:
        query = query.filter(StockMovement.store_id == f.store_id)
    if f.product_id:
        query = query.filter(StockMovement.product_id == f.product_id)
    if f.document_type:
        query = query.filter(StockMovement.document_type == f.document_type)

    query = query.order_by(StockMovement.id.desc())
    return paginate(query, f.page, f.limit)


# =============================================================================
# Manual adjustment
# =============================================================================

def adjust_inventory(actor: Actor, store_id: int, product_id: int, delta: int, reason: str | None) -> Inventory:
    """
    Manual stock correction (count discrepancies, damage, opening balances).

    A positive delta creates the row if needed; a negative delta may not
    take the quantity below zero.
    """
    require_permission(actor, "ADJUST_INVENTORY")
    company_id = require_company(actor)

    if not isinstance(delta, int) or isinstance(delta, bool) or delta == 0:
        raise InvalidInputError("Quantity change must be a non-zero integer", details={"quantity_change": delta})
    if not reason or not reason.strip():
        raise InvalidInputError("Reason is required for inventory adjustments")

    with atomic_unit("inventory adjustment"):
        require_store_in_company(store_id, company_id)
        product = require_products_in_company([product_id], company_id)[product_id]

        source = MovementSource(
            document_type=ADJUSTMENT,
            actor_user_id=actor.user_id,
            note=reason.strip(),
        )
        if delta > 0:
            increase(product.id, store_id, delta, source)
        else:
            decrease(product.id, store_id, -delta, source, label=product.name)

    inventory = load_inventory(product_id, store_id)
    if inventory is None:
        raise NotFoundError("Inventory not found")
    current_app.logger.info(
        "inventory adjusted store_id=%s product_id=%s delta=%s quantity=%s",
        store_id, product_id, delta, inventory.quantity,
    )
    return inventory

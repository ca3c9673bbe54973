# Overview: Stock Movement Validator; referential and quantity checks run before any ledger write.

"""
Every check here runs at the top of a document's atomic unit, before the
number is allocated or any row is written. A failure raises a typed error
and the unit rolls back with nothing to undo.

Stock checks read the touched Inventory rows with FOR UPDATE so the
numbers a writer validated against cannot move before its decrements run.
The decrements themselves re-check the floor atomically.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from sqlalchemy import func

from ..extensions import db
from ..errors import InsufficientStockError, InvalidInputError, NotFoundError
from ..models import (
    Customer,
    Product,
    Purchase,
    PurchaseReturn,
    PurchaseReturnItem,
    Sale,
    SaleReturn,
    SaleReturnItem,
    Store,
    Vendor,
)
from .inventory_service import locked_quantities
from .tenant_service import (
    require_customer_in_company,
    require_products_in_company,
    require_store_in_company,
    require_vendor_in_company,
)
from .transaction_engine import quantities_by_product


@dataclass
class PurchaseContext:
    store: Store
    vendor: Vendor
    products: dict[int, Product]


@dataclass
class SaleContext:
    store: Store
    customer: Optional[Customer]
    products: dict[int, Product]


@dataclass
class TransferContext:
    from_store: Store
    to_store: Store
    products: dict[int, Product]


@dataclass
class ReturnContext:
    original: object
    store: Store
    products: dict[int, Product]
    # Unit price of each product on the original document
    original_prices: dict[int, Decimal] = field(default_factory=dict)


def ensure_stock(store_id: int, lines, products: dict[int, Product]) -> None:
    """Fail on the first product whose on-hand quantity cannot cover the lines."""
    wanted = quantities_by_product(lines)
    on_hand = locked_quantities((product_id, store_id) for product_id in wanted)
    for product_id, requested in wanted.items():
        available = on_hand[(product_id, store_id)]
        if available < requested:
            product = products.get(product_id)
            raise InsufficientStockError(
                product_id=product_id,
                store_id=store_id,
                available=available,
                requested=requested,
                label=product.name if product else None,
            )


def validate_purchase(company_id: int, store_id: int, vendor_id: int, lines) -> PurchaseContext:
    store = require_store_in_company(store_id, company_id)
    vendor = require_vendor_in_company(vendor_id, company_id)
    products = require_products_in_company((line.product_id for line in lines), company_id)
    return PurchaseContext(store=store, vendor=vendor, products=products)


def validate_sale(company_id: int, store_id: int, customer_id: int | None, lines, *, check_stock: bool = True) -> SaleContext:
    store = require_store_in_company(store_id, company_id)
    customer = require_customer_in_company(customer_id, company_id) if customer_id is not None else None
    products = require_products_in_company((line.product_id for line in lines), company_id)
    if check_stock:
        ensure_stock(store.id, lines, products)
    return SaleContext(store=store, customer=customer, products=products)


def validate_transfer(company_id: int, from_store_id: int, to_store_id: int, lines, *, check_stock: bool = True) -> TransferContext:
    if from_store_id is not None and from_store_id == to_store_id:
        raise InvalidInputError(
            "Source and destination stores must be different",
            details={"from_store_id": from_store_id, "to_store_id": to_store_id},
        )
    from_store = require_store_in_company(from_store_id, company_id, label="Source store")
    to_store = require_store_in_company(to_store_id, company_id, label="Destination store")
    products = require_products_in_company((line.product_id for line in lines), company_id)
    if check_stock:
        ensure_stock(from_store.id, lines, products)
    return TransferContext(from_store=from_store, to_store=to_store, products=products)


# =============================================================================
# Returns
# =============================================================================

def _load_original(model, label: str, doc_id: int, company_id: int):
    original = (
        db.session.query(model)
        .join(Store, Store.id == model.store_id)
        .filter(model.id == doc_id, Store.company_id == company_id)
        .first()
    ) if doc_id is not None else None
    if original is None:
        raise NotFoundError(f"{label} not found")
    return original


def _already_returned(return_model, item_model, parent_fk, item_fk, original_id: int, exclude_id: int | None) -> dict[int, int]:
    """
    Quantity per product already taken back by returns of one original.

    Every return counts whatever its status: stock moves when a return is
    created and a later status change does not move it back.
    """
    query = (
        db.session.query(item_model.product_id, func.sum(item_model.quantity))
        .join(return_model, return_model.id == item_fk)
        .filter(parent_fk == original_id)
    )
    if exclude_id is not None:
        query = query.filter(return_model.id != exclude_id)
    return {product_id: int(total or 0) for product_id, total in query.group_by(item_model.product_id).all()}


def _check_return_lines(original, label: str, lines, returned: dict[int, int]) -> dict[int, Decimal]:
    original_qty: dict[int, int] = {}
    original_prices: dict[int, Decimal] = {}
    for item in original.items:
        original_qty[item.product_id] = original_qty.get(item.product_id, 0) + item.quantity
        original_prices.setdefault(item.product_id, item.unit_price)

    for product_id, requested in quantities_by_product(lines).items():
        if product_id not in original_qty:
            raise InvalidInputError(
                f"Product with ID {product_id} was not part of the original {label.lower()}",
                details={"product_id": product_id},
            )
        already = returned.get(product_id, 0)
        if already + requested > original_qty[product_id]:
            raise InvalidInputError(
                f"Return quantity exceeds original {label.lower()} quantity for product {product_id}",
                details={
                    "product_id": product_id,
                    "original_quantity": original_qty[product_id],
                    "already_returned": already,
                    "requested": requested,
                },
            )
    return original_prices


def validate_purchase_return(
    company_id: int,
    purchase_id: int,
    lines,
    *,
    exclude_return_id: int | None = None,
    check_stock: bool = True,
) -> ReturnContext:
    """Goods go back to the vendor, so the store must still hold them."""
    purchase = _load_original(Purchase, "Purchase", purchase_id, company_id)
    products = require_products_in_company((line.product_id for line in lines), company_id)
    returned = _already_returned(
        PurchaseReturn,
        PurchaseReturnItem,
        PurchaseReturn.purchase_id,
        PurchaseReturnItem.purchase_return_id,
        purchase.id,
        exclude_return_id,
    )
    prices = _check_return_lines(purchase, "Purchase", lines, returned)
    if check_stock:
        ensure_stock(purchase.store_id, lines, products)
    return ReturnContext(original=purchase, store=purchase.store, products=products, original_prices=prices)


def validate_sale_return(
    company_id: int,
    sale_id: int,
    lines,
    *,
    exclude_return_id: int | None = None,
) -> ReturnContext:
    sale = _load_original(Sale, "Sale", sale_id, company_id)
    products = require_products_in_company((line.product_id for line in lines), company_id)
    returned = _already_returned(
        SaleReturn,
        SaleReturnItem,
        SaleReturn.sale_id,
        SaleReturnItem.sale_return_id,
        sale.id,
        exclude_return_id,
    )
    prices = _check_return_lines(sale, "Sale", lines, returned)
    return ReturnContext(original=sale, store=sale.store, products=products, original_prices=prices)


# =============================================================================
# Item replacement on originals
# =============================================================================

def _ensure_lines_cover_returns(label: str, lines, returned: dict[int, int]) -> None:
    kept = quantities_by_product(lines)
    for product_id, already in sorted(returned.items()):
        if kept.get(product_id, 0) < already:
            raise InvalidInputError(
                f"{label} quantity for product {product_id} is below the quantity already returned",
                details={
                    "product_id": product_id,
                    "quantity": kept.get(product_id, 0),
                    "already_returned": already,
                },
            )


def validate_purchase_items_update(purchase: Purchase, lines) -> None:
    """New lines of a purchase must still cover what was shipped back to the vendor."""
    returned = _already_returned(
        PurchaseReturn,
        PurchaseReturnItem,
        PurchaseReturn.purchase_id,
        PurchaseReturnItem.purchase_return_id,
        purchase.id,
        None,
    )
    _ensure_lines_cover_returns("Purchase", lines, returned)


def validate_sale_items_update(sale: Sale, lines) -> None:
    returned = _already_returned(
        SaleReturn,
        SaleReturnItem,
        SaleReturn.sale_id,
        SaleReturnItem.sale_return_id,
        sale.id,
        None,
    )
    _ensure_lines_cover_returns("Sale", lines, returned)

"""
Tenant scoping helpers.

Every core call receives an Actor resolved upstream (identity is external
and trusted). Any entity id coming from a payload is checked against
actor.company_id before it is used; an entity in another company is
reported exactly like a missing one.

USAGE:
    company_id = require_company(actor)
    store = require_store_in_company(payload["store_id"], company_id)
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from ..extensions import db
from ..errors import NotFoundError
from ..models import Store, Vendor, Customer, Product


@dataclass(frozen=True)
class Actor:
    """
    Authenticated caller.

    company_id is None for platform roles (SUPER_ADMIN) that are not bound
    to a tenant; such actors cannot touch tenant documents.
    """
    user_id: int
    company_id: int | None
    role: str


def require_company(actor: Actor) -> int:
    if actor is None or not actor.company_id:
        raise NotFoundError("Your company not found")
    return actor.company_id


def require_store_in_company(store_id: int, company_id: int, label: str = "Store") -> Store:
    store = db.session.get(Store, store_id) if store_id is not None else None
    if store is None or store.company_id != company_id:
        # Same message either way; never reveal another tenant's rows
        raise NotFoundError(f"{label} not found")
    return store


def require_vendor_in_company(vendor_id: int, company_id: int) -> Vendor:
    vendor = db.session.get(Vendor, vendor_id) if vendor_id is not None else None
    if vendor is None or vendor.company_id != company_id:
        raise NotFoundError("Vendor not found")
    return vendor


def require_customer_in_company(customer_id: int, company_id: int) -> Customer:
    customer = db.session.get(Customer, customer_id) if customer_id is not None else None
    if customer is None or customer.company_id != company_id:
        raise NotFoundError("Customer not found")
    return customer


def require_products_in_company(product_ids: Iterable[int], company_id: int) -> dict[int, Product]:
    """Load every referenced product, failing on the first unknown id."""
    wanted = list(dict.fromkeys(product_ids))
    if not wanted:
        return {}

    found = {
        p.id: p
        for p in db.session.query(Product).filter(
            Product.id.in_(wanted),
            Product.company_id == company_id,
        ).all()
    }
    for product_id in wanted:
        if product_id not in found:
            raise NotFoundError(
                f"Product with ID {product_id} not found",
                details={"product_id": product_id},
            )
    return found

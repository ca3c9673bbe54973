# Overview: Purchase documents; stock bought from a vendor increases a store's inventory.

from __future__ import annotations

from sqlalchemy.orm import joinedload, selectinload

from ..extensions import db
from ..models import Purchase, PurchaseItem
from ..permissions import require_permission
from backoffice.time_utils import utcnow
from . import document_service
from .document_service import DocumentFilter, DocumentListing, get_document, list_documents, next_document_number
from .inventory_service import MovementSource, increase
from .stock_validator import validate_purchase, validate_purchase_items_update
from .tenant_service import (
    Actor,
    require_company,
    require_products_in_company,
    require_store_in_company,
    require_vendor_in_company,
)
from .transaction_engine import (
    amount_or_default,
    atomic_unit,
    build_items,
    check_status_change,
    ensure_no_dependents,
    lines_total,
    log_committed,
    normalize_lines,
    replace_items,
    resolve_status,
    settle,
)


PURCHASE_STATUSES = ("PENDING", "COMPLETED", "CANCELLED")
TERMINAL_STATUSES = frozenset({"CANCELLED"})

PURCHASE_LISTING = DocumentListing(
    model=Purchase,
    label="Purchase",
    store_column=Purchase.store_id,
    date_column=Purchase.purchase_date,
    counterparty_column=Purchase.vendor_id,
    statuses=PURCHASE_STATUSES,
    sortable=("created_at", "purchase_date", "document_number", "total_amount", "status"),
    search_columns=(Purchase.document_number, Purchase.notes),
)


def _detail_options() -> tuple:
    return (
        selectinload(Purchase.items).joinedload(PurchaseItem.product),
        joinedload(Purchase.vendor),
        joinedload(Purchase.store),
    )


def create_purchase(payload: dict, actor: Actor) -> Purchase:
    """
    Record a purchase and receive its lines into the store.

    total_amount is the sum of line totals; due_amount = total - paid.
    """
    require_permission(actor, "CREATE_PURCHASE")
    company_id = require_company(actor)
    lines = normalize_lines(payload.get("items"))

    with atomic_unit("purchase create"):
        ctx = validate_purchase(company_id, payload.get("store_id"), payload.get("vendor_id"), lines)

        total_amount = lines_total(lines)
        paid_amount = amount_or_default(payload.get("paid_amount"), 0)
        due_amount = settle(total_amount, paid_amount)
        status = resolve_status("purchase", payload.get("status"), PURCHASE_STATUSES, "PENDING")

        purchase = Purchase(
            document_number=next_document_number(document_service.PURCHASE, ctx.store),
            vendor_id=ctx.vendor.id,
            store_id=ctx.store.id,
            purchase_date=payload.get("purchase_date") or utcnow(),
            total_amount=total_amount,
            paid_amount=paid_amount,
            due_amount=due_amount,
            status=status,
            notes=payload.get("notes"),
            created_by_user_id=actor.user_id,
        )
        db.session.add(purchase)
        db.session.flush()

        build_items(PurchaseItem, "purchase_id", purchase.id, lines)

        source = MovementSource(
            document_type="PURCHASE",
            document_id=purchase.id,
            document_number=purchase.document_number,
            actor_user_id=actor.user_id,
        )
        for line in lines:
            increase(line.product_id, ctx.store.id, line.quantity, source)

    purchase = get_document(PURCHASE_LISTING, purchase.id, company_id, _detail_options())
    log_committed("purchase", purchase)
    return purchase


def list_purchases(actor: Actor, doc_filter: DocumentFilter | None = None) -> tuple[list, dict]:
    require_permission(actor, "VIEW_PURCHASES")
    company_id = require_company(actor)
    return list_documents(PURCHASE_LISTING, company_id, doc_filter, _detail_options())


def get_purchase(purchase_id: int, actor: Actor) -> Purchase:
    require_permission(actor, "VIEW_PURCHASES")
    company_id = require_company(actor)
    return get_document(PURCHASE_LISTING, purchase_id, company_id, _detail_options())


def update_purchase(purchase_id: int, actor: Actor, payload: dict) -> Purchase:
    """
    Apply header changes and, when items are given, replace them wholesale.

    Inventory already received by this purchase is left as it is. New lines
    may not fall below what purchase returns already shipped back.
    """
    require_permission(actor, "UPDATE_PURCHASE")
    company_id = require_company(actor)

    with atomic_unit("purchase update"):
        purchase = get_document(PURCHASE_LISTING, purchase_id, company_id)

        if payload.get("vendor_id") is not None:
            purchase.vendor_id = require_vendor_in_company(payload["vendor_id"], company_id).id
        if payload.get("store_id") is not None:
            purchase.store_id = require_store_in_company(payload["store_id"], company_id).id

        purchase.status = check_status_change(
            "purchase", purchase.status, payload.get("status"), PURCHASE_STATUSES, TERMINAL_STATUSES
        )

        total_amount = purchase.total_amount
        if "items" in payload:
            lines = normalize_lines(payload.get("items"))
            require_products_in_company((line.product_id for line in lines), company_id)
            validate_purchase_items_update(purchase, lines)
            replace_items(purchase, PurchaseItem, "purchase_id", lines)
            total_amount = lines_total(lines)

        paid_amount = purchase.paid_amount
        if "paid_amount" in payload:
            paid_amount = amount_or_default(payload.get("paid_amount"), 0)

        purchase.total_amount = total_amount
        purchase.paid_amount = paid_amount
        purchase.due_amount = settle(total_amount, paid_amount)

        if payload.get("purchase_date") is not None:
            purchase.purchase_date = payload["purchase_date"]
        if "notes" in payload:
            purchase.notes = payload.get("notes")

    purchase = get_document(PURCHASE_LISTING, purchase_id, company_id, _detail_options())
    log_committed("purchase update", purchase)
    return purchase


def delete_purchase(purchase_id: int, actor: Actor) -> dict:
    """Delete header and items. Refused while purchase returns reference it."""
    require_permission(actor, "DELETE_PURCHASE")
    company_id = require_company(actor)

    with atomic_unit("purchase delete"):
        purchase = get_document(PURCHASE_LISTING, purchase_id, company_id)
        ensure_no_dependents(purchase.purchase_returns, "Cannot delete purchase with existing returns")
        summary = purchase.to_summary()
        db.session.delete(purchase)

    return summary

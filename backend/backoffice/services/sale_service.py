# Overview: Sale documents; goods sold from a store decrease its inventory.

from __future__ import annotations

from decimal import Decimal

from sqlalchemy.orm import joinedload, selectinload

from ..extensions import db
from ..models import Sale, SaleItem
from ..money import to_money
from ..permissions import require_permission
from backoffice.time_utils import utcnow
from . import document_service
from .document_service import DocumentFilter, DocumentListing, get_document, list_documents, next_document_number
from .inventory_service import MovementSource, decrease
from .stock_validator import validate_sale, validate_sale_items_update
from .tenant_service import (
    Actor,
    require_company,
    require_customer_in_company,
    require_products_in_company,
    require_store_in_company,
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


SALE_STATUSES = ("COMPLETED", "CANCELLED", "RETURNED")
TERMINAL_STATUSES = frozenset({"CANCELLED"})

SALE_LISTING = DocumentListing(
    model=Sale,
    label="Sale",
    store_column=Sale.store_id,
    date_column=Sale.sale_date,
    counterparty_column=Sale.customer_id,
    statuses=SALE_STATUSES,
    sortable=("created_at", "sale_date", "document_number", "total_amount", "status"),
    search_columns=(Sale.document_number, Sale.notes),
)


def _detail_options() -> tuple:
    return (
        selectinload(Sale.items).joinedload(SaleItem.product),
        joinedload(Sale.customer),
        joinedload(Sale.store),
    )


def sale_total(subtotal: Decimal, discount: Decimal, tax: Decimal) -> Decimal:
    """total_amount = subtotal - discount + tax"""
    return to_money(subtotal - discount + tax)


def create_sale(payload: dict, actor: Actor) -> Sale:
    require_permission(actor, "CREATE_SALE")
    company_id = require_company(actor)
    lines = normalize_lines(payload.get("items"))

    with atomic_unit("sale create"):
        ctx = validate_sale(company_id, payload.get("store_id"), payload.get("customer_id"), lines)

        subtotal = lines_total(lines)
        discount = amount_or_default(payload.get("discount"), 0)
        tax = amount_or_default(payload.get("tax"), 0)
        total_amount = sale_total(subtotal, discount, tax)
        paid_amount = amount_or_default(payload.get("paid_amount"), 0)
        due_amount = settle(total_amount, paid_amount)
        status = resolve_status("sale", payload.get("status"), SALE_STATUSES, "COMPLETED")

        sale = Sale(
            document_number=next_document_number(document_service.SALE, ctx.store),
            customer_id=ctx.customer.id if ctx.customer else None,
            store_id=ctx.store.id,
            sale_date=payload.get("sale_date") or utcnow(),
            subtotal=subtotal,
            discount=discount,
            tax=tax,
            total_amount=total_amount,
            paid_amount=paid_amount,
            due_amount=due_amount,
            status=status,
            notes=payload.get("notes"),
            created_by_user_id=actor.user_id,
        )
        db.session.add(sale)
        db.session.flush()

        build_items(SaleItem, "sale_id", sale.id, lines)

        source = MovementSource(
            document_type="SALE",
            document_id=sale.id,
            document_number=sale.document_number,
            actor_user_id=actor.user_id,
        )
        for line in lines:
            decrease(line.product_id, ctx.store.id, line.quantity, source, label=ctx.products[line.product_id].name)

    sale = get_document(SALE_LISTING, sale.id, company_id, _detail_options())
    log_committed("sale", sale)
    return sale


def list_sales(actor: Actor, doc_filter: DocumentFilter | None = None) -> tuple[list, dict]:
    require_permission(actor, "VIEW_SALES")
    company_id = require_company(actor)
    return list_documents(SALE_LISTING, company_id, doc_filter, _detail_options())


def get_sale(sale_id: int, actor: Actor) -> Sale:
    require_permission(actor, "VIEW_SALES")
    company_id = require_company(actor)
    return get_document(SALE_LISTING, sale_id, company_id, _detail_options())


def update_sale(sale_id: int, actor: Actor, payload: dict) -> Sale:
    """
    Header changes recompute subtotal/total/due; items are replaced wholesale.

    Stock already issued by this sale is not reconciled against new lines,
    but the new lines must still cover every quantity already returned.
    """
    require_permission(actor, "UPDATE_SALE")
    company_id = require_company(actor)

    with atomic_unit("sale update"):
        sale = get_document(SALE_LISTING, sale_id, company_id)

        if "customer_id" in payload:
            customer_id = payload.get("customer_id")
            sale.customer_id = require_customer_in_company(customer_id, company_id).id if customer_id is not None else None
        if payload.get("store_id") is not None:
            sale.store_id = require_store_in_company(payload["store_id"], company_id).id

        sale.status = check_status_change("sale", sale.status, payload.get("status"), SALE_STATUSES, TERMINAL_STATUSES)

        subtotal = sale.subtotal
        if "items" in payload:
            lines = normalize_lines(payload.get("items"))
            require_products_in_company((line.product_id for line in lines), company_id)
            validate_sale_items_update(sale, lines)
            replace_items(sale, SaleItem, "sale_id", lines)
            subtotal = lines_total(lines)

        discount = amount_or_default(payload["discount"], 0) if "discount" in payload else sale.discount
        tax = amount_or_default(payload["tax"], 0) if "tax" in payload else sale.tax
        paid_amount = amount_or_default(payload["paid_amount"], 0) if "paid_amount" in payload else sale.paid_amount

        total_amount = sale_total(subtotal, discount, tax)
        sale.subtotal = subtotal
        sale.discount = discount
        sale.tax = tax
        sale.total_amount = total_amount
        sale.paid_amount = paid_amount
        sale.due_amount = settle(total_amount, paid_amount)

        if payload.get("sale_date") is not None:
            sale.sale_date = payload["sale_date"]
        if "notes" in payload:
            sale.notes = payload.get("notes")

    sale = get_document(SALE_LISTING, sale_id, company_id, _detail_options())
    log_committed("sale update", sale)
    return sale


def delete_sale(sale_id: int, actor: Actor) -> dict:
    require_permission(actor, "DELETE_SALE")
    company_id = require_company(actor)

    with atomic_unit("sale delete"):
        sale = get_document(SALE_LISTING, sale_id, company_id)
        ensure_no_dependents(sale.sale_returns, "Cannot delete sale with existing returns")
        summary = sale.to_summary()
        db.session.delete(sale)

    return summary

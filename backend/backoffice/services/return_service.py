# Overview: Purchase returns (stock back to the vendor) and sale returns (stock back from the customer).

"""
Return rules

- A return references exactly one original document of the same company and
  inherits its store.
- Each returned product must appear on the original. Quantities are checked
  cumulatively: what earlier returns already took back counts against the
  original line quantity, whatever their status. Rejecting a return does
  not move its stock back, so its quantity stays taken.
- A line without unit_price is priced at the original line's unit price.
- refund_amount = sum of line totals.
- Sale return: stock comes back in (increase at the store).
  Purchase return: stock goes out (decrease at the store, floor-checked).
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from sqlalchemy.orm import joinedload, selectinload

from ..errors import InvalidInputError
from ..extensions import db
from ..models import PurchaseReturn, PurchaseReturnItem, SaleReturn, SaleReturnItem
from ..permissions import require_permission
from backoffice.time_utils import utcnow
from . import document_service
from .document_service import (
    DocumentFilter,
    DocumentKind,
    DocumentListing,
    get_document,
    list_documents,
    next_document_number,
)
from .inventory_service import MovementSource, decrease, increase
from .stock_validator import validate_purchase_return, validate_sale_return
from .tenant_service import Actor, require_company
from .transaction_engine import (
    atomic_unit,
    build_items,
    check_status_change,
    lines_total,
    log_committed,
    normalize_lines,
    replace_items,
    resolve_status,
)


RETURN_STATUSES = ("PENDING", "APPROVED", "REJECTED", "COMPLETED")
TERMINAL_STATUSES = frozenset({"REJECTED", "COMPLETED"})
SORTABLE = ("created_at", "return_date", "document_number", "refund_amount", "status")

PURCHASE_RETURN_LISTING = DocumentListing(
    model=PurchaseReturn,
    label="Purchase return",
    store_column=PurchaseReturn.store_id,
    date_column=PurchaseReturn.return_date,
    counterparty_column=PurchaseReturn.purchase_id,
    statuses=RETURN_STATUSES,
    sortable=SORTABLE,
    search_columns=(PurchaseReturn.document_number, PurchaseReturn.reason, PurchaseReturn.notes),
)

SALE_RETURN_LISTING = DocumentListing(
    model=SaleReturn,
    label="Sale return",
    store_column=SaleReturn.store_id,
    date_column=SaleReturn.return_date,
    counterparty_column=SaleReturn.sale_id,
    statuses=RETURN_STATUSES,
    sortable=SORTABLE,
    search_columns=(SaleReturn.document_number, SaleReturn.reason, SaleReturn.notes),
)


@dataclass(frozen=True)
class ReturnKind:
    """Everything that differs between the two return flavours."""
    name: str
    kind: DocumentKind
    listing: DocumentListing
    model: type
    item_model: type
    item_key: str
    original_key: str
    permission_suffix: str
    # Validate lines against the original; returns a ReturnContext
    validate: Callable
    # Inventory direction: True adds stock back to the store
    restocks: bool


PURCHASE_RETURN = ReturnKind(
    name="purchase return",
    kind=document_service.PURCHASE_RETURN,
    listing=PURCHASE_RETURN_LISTING,
    model=PurchaseReturn,
    item_model=PurchaseReturnItem,
    item_key="purchase_return_id",
    original_key="purchase_id",
    permission_suffix="PURCHASE_RETURN",
    validate=validate_purchase_return,
    restocks=False,
)

SALE_RETURN = ReturnKind(
    name="sale return",
    kind=document_service.SALE_RETURN,
    listing=SALE_RETURN_LISTING,
    model=SaleReturn,
    item_model=SaleReturnItem,
    item_key="sale_return_id",
    original_key="sale_id",
    permission_suffix="SALE_RETURN",
    validate=validate_sale_return,
    restocks=True,
)


def _detail_options(rk: ReturnKind) -> tuple:
    original_rel = getattr(rk.model, rk.original_key[: -len("_id")])
    return (
        selectinload(rk.model.items).joinedload(rk.item_model.product),
        joinedload(original_rel),
        joinedload(rk.model.store),
    )


def _require_reason(reason) -> str:
    if reason is None or not str(reason).strip():
        raise InvalidInputError("Reason is required")
    return str(reason).strip()


def _price_lines(lines, ctx) -> None:
    for line in lines:
        if line.unit_price is None:
            line.unit_price = ctx.original_prices[line.product_id]


def _validate(rk: ReturnKind, company_id: int, original_id: int, lines, *, exclude_return_id=None, for_create=True):
    kwargs = {"exclude_return_id": exclude_return_id}
    if not rk.restocks:
        # Purchase returns ship stock out; only creation moves inventory
        kwargs["check_stock"] = for_create
    return rk.validate(company_id, original_id, lines, **kwargs)


def _create(rk: ReturnKind, payload: dict, actor: Actor):
    require_permission(actor, f"CREATE_{rk.permission_suffix}")
    company_id = require_company(actor)
    reason = _require_reason(payload.get("reason"))
    lines = normalize_lines(payload.get("items"), price_required=False)

    with atomic_unit(f"{rk.name} create"):
        ctx = _validate(rk, company_id, payload.get(rk.original_key), lines)
        _price_lines(lines, ctx)
        status = resolve_status(rk.name, payload.get("status"), RETURN_STATUSES, "PENDING")

        doc = rk.model(
            document_number=next_document_number(rk.kind, ctx.store),
            store_id=ctx.store.id,
            return_date=payload.get("return_date") or utcnow(),
            reason=reason,
            refund_amount=lines_total(lines),
            status=status,
            notes=payload.get("notes"),
            created_by_user_id=actor.user_id,
            **{rk.original_key: ctx.original.id},
        )
        db.session.add(doc)
        db.session.flush()

        build_items(rk.item_model, rk.item_key, doc.id, lines)

        source = MovementSource(
            document_type=rk.kind.code,
            document_id=doc.id,
            document_number=doc.document_number,
            actor_user_id=actor.user_id,
        )
        for line in lines:
            if rk.restocks:
                increase(line.product_id, ctx.store.id, line.quantity, source)
            else:
                decrease(line.product_id, ctx.store.id, line.quantity, source, label=ctx.products[line.product_id].name)

    doc = get_document(rk.listing, doc.id, company_id, _detail_options(rk))
    log_committed(rk.name, doc)
    return doc


def _list(rk: ReturnKind, actor: Actor, doc_filter: DocumentFilter | None):
    require_permission(actor, f"VIEW_{rk.permission_suffix}S")
    company_id = require_company(actor)
    return list_documents(rk.listing, company_id, doc_filter, _detail_options(rk))


def _get(rk: ReturnKind, doc_id: int, actor: Actor):
    require_permission(actor, f"VIEW_{rk.permission_suffix}S")
    company_id = require_company(actor)
    return get_document(rk.listing, doc_id, company_id, _detail_options(rk))


def _update(rk: ReturnKind, doc_id: int, actor: Actor, payload: dict):
    """
    Header fields and items may change; the original document may not.

    Replaced items are re-checked against the original, not counting this
    return's own previous lines. Inventory is not re-applied.
    """
    require_permission(actor, f"UPDATE_{rk.permission_suffix}")
    company_id = require_company(actor)

    with atomic_unit(f"{rk.name} update"):
        doc = get_document(rk.listing, doc_id, company_id)
        original_id = getattr(doc, rk.original_key)

        requested_original = payload.get(rk.original_key)
        if requested_original is not None and requested_original != original_id:
            raise InvalidInputError(
                f"Original document of a {rk.name} cannot be changed",
                details={rk.original_key: original_id},
            )

        doc.status = check_status_change(rk.name, doc.status, payload.get("status"), RETURN_STATUSES, TERMINAL_STATUSES)

        if "reason" in payload:
            doc.reason = _require_reason(payload.get("reason"))

        if "items" in payload:
            lines = normalize_lines(payload.get("items"), price_required=False)
            ctx = _validate(rk, company_id, original_id, lines, exclude_return_id=doc.id, for_create=False)
            _price_lines(lines, ctx)
            replace_items(doc, rk.item_model, rk.item_key, lines)
            doc.refund_amount = lines_total(lines)

        if payload.get("return_date") is not None:
            doc.return_date = payload["return_date"]
        if "notes" in payload:
            doc.notes = payload.get("notes")

    doc = get_document(rk.listing, doc_id, company_id, _detail_options(rk))
    log_committed(f"{rk.name} update", doc)
    return doc


def _delete(rk: ReturnKind, doc_id: int, actor: Actor) -> dict:
    require_permission(actor, f"DELETE_{rk.permission_suffix}")
    company_id = require_company(actor)

    with atomic_unit(f"{rk.name} delete"):
        doc = get_document(rk.listing, doc_id, company_id)
        summary = doc.to_summary()
        db.session.delete(doc)

    return summary


# =============================================================================
# Purchase returns
# =============================================================================

def create_purchase_return(payload: dict, actor: Actor) -> PurchaseReturn:
    return _create(PURCHASE_RETURN, payload, actor)


def list_purchase_returns(actor: Actor, doc_filter: DocumentFilter | None = None) -> tuple[list, dict]:
    return _list(PURCHASE_RETURN, actor, doc_filter)


def get_purchase_return(return_id: int, actor: Actor) -> PurchaseReturn:
    return _get(PURCHASE_RETURN, return_id, actor)


def update_purchase_return(return_id: int, actor: Actor, payload: dict) -> PurchaseReturn:
    return _update(PURCHASE_RETURN, return_id, actor, payload)


def delete_purchase_return(return_id: int, actor: Actor) -> dict:
    return _delete(PURCHASE_RETURN, return_id, actor)


# =============================================================================
# Sale returns
# =============================================================================

def create_sale_return(payload: dict, actor: Actor) -> SaleReturn:
    return _create(SALE_RETURN, payload, actor)


def list_sale_returns(actor: Actor, doc_filter: DocumentFilter | None = None) -> tuple[list, dict]:
    return _list(SALE_RETURN, actor, doc_filter)


def get_sale_return(return_id: int, actor: Actor) -> SaleReturn:
    return _get(SALE_RETURN, return_id, actor)


def update_sale_return(return_id: int, actor: Actor, payload: dict) -> SaleReturn:
    return _update(SALE_RETURN, return_id, actor, payload)


def delete_sale_return(return_id: int, actor: Actor) -> dict:
    return _delete(SALE_RETURN, return_id, actor)

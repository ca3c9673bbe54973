# Overview: Inter-store transfers; stock leaves the source store and arrives at the destination.

from __future__ import annotations

from sqlalchemy.orm import joinedload, selectinload

from ..errors import InvalidInputError
from ..extensions import db
from ..models import Transfer, TransferItem
from ..permissions import require_permission
from backoffice.time_utils import utcnow
from . import document_service
from .document_service import DocumentFilter, DocumentListing, get_document, list_documents, next_document_number
from .inventory_service import MovementSource, decrease, increase
from .stock_validator import validate_transfer
from .tenant_service import Actor, require_company, require_products_in_company
from .transaction_engine import (
    atomic_unit,
    build_items,
    check_status_change,
    log_committed,
    normalize_lines,
    replace_items,
    resolve_status,
)


TRANSFER_STATUSES = ("PENDING", "IN_TRANSIT", "COMPLETED", "CANCELLED")
TERMINAL_STATUSES = frozenset({"COMPLETED", "CANCELLED"})

TRANSFER_LISTING = DocumentListing(
    model=Transfer,
    label="Transfer",
    store_column=Transfer.from_store_id,
    date_column=Transfer.transfer_date,
    counterparty_column=Transfer.to_store_id,
    statuses=TRANSFER_STATUSES,
    sortable=("created_at", "transfer_date", "document_number", "status"),
    search_columns=(Transfer.document_number, Transfer.notes),
)


def _detail_options() -> tuple:
    return (
        selectinload(Transfer.items).joinedload(TransferItem.product),
        joinedload(Transfer.from_store),
        joinedload(Transfer.to_store),
    )


def create_transfer(payload: dict, actor: Actor) -> Transfer:
    """
    Move stock between two stores of the same company.

    Both inventory deltas are applied at creation, whatever the initial
    status; the destination row is created if it does not exist yet.
    """
    require_permission(actor, "CREATE_TRANSFER")
    company_id = require_company(actor)
    lines = normalize_lines(payload.get("items"), priced=False)

    with atomic_unit("transfer create"):
        ctx = validate_transfer(company_id, payload.get("from_store_id"), payload.get("to_store_id"), lines)
        status = resolve_status("transfer", payload.get("status"), TRANSFER_STATUSES, "PENDING")

        transfer = Transfer(
            document_number=next_document_number(document_service.TRANSFER, ctx.from_store),
            from_store_id=ctx.from_store.id,
            to_store_id=ctx.to_store.id,
            transfer_date=payload.get("transfer_date") or utcnow(),
            status=status,
            notes=payload.get("notes"),
            created_by_user_id=actor.user_id,
        )
        db.session.add(transfer)
        db.session.flush()

        build_items(TransferItem, "transfer_id", transfer.id, lines, priced=False)

        source = MovementSource(
            document_type="TRANSFER",
            document_id=transfer.id,
            document_number=transfer.document_number,
            actor_user_id=actor.user_id,
        )
        for line in lines:
            decrease(
                line.product_id,
                ctx.from_store.id,
                line.quantity,
                source,
                label=ctx.products[line.product_id].name,
            )
            increase(line.product_id, ctx.to_store.id, line.quantity, source)

    transfer = get_document(TRANSFER_LISTING, transfer.id, company_id, _detail_options())
    log_committed("transfer", transfer)
    return transfer


def list_transfers(actor: Actor, doc_filter: DocumentFilter | None = None) -> tuple[list, dict]:
    require_permission(actor, "VIEW_TRANSFERS")
    company_id = require_company(actor)
    return list_documents(TRANSFER_LISTING, company_id, doc_filter, _detail_options())


def get_transfer(transfer_id: int, actor: Actor) -> Transfer:
    require_permission(actor, "VIEW_TRANSFERS")
    company_id = require_company(actor)
    return get_document(TRANSFER_LISTING, transfer_id, company_id, _detail_options())


def update_transfer(transfer_id: int, actor: Actor, payload: dict) -> Transfer:
    require_permission(actor, "UPDATE_TRANSFER")
    company_id = require_company(actor)

    with atomic_unit("transfer update"):
        transfer = get_document(TRANSFER_LISTING, transfer_id, company_id)

        from_store_id = payload.get("from_store_id") or transfer.from_store_id
        to_store_id = payload.get("to_store_id") or transfer.to_store_id
        if from_store_id != transfer.from_store_id or to_store_id != transfer.to_store_id:
            if from_store_id == to_store_id:
                raise InvalidInputError(
                    "Source and destination stores must be different",
                    details={"from_store_id": from_store_id, "to_store_id": to_store_id},
                )
            # Reference checks only; stock already moved at creation
            ctx = validate_transfer(company_id, from_store_id, to_store_id, [], check_stock=False)
            transfer.from_store_id = ctx.from_store.id
            transfer.to_store_id = ctx.to_store.id

        transfer.status = check_status_change(
            "transfer", transfer.status, payload.get("status"), TRANSFER_STATUSES, TERMINAL_STATUSES
        )

        if "items" in payload:
            lines = normalize_lines(payload.get("items"), priced=False)
            require_products_in_company((line.product_id for line in lines), company_id)
            replace_items(transfer, TransferItem, "transfer_id", lines, priced=False)

        if payload.get("transfer_date") is not None:
            transfer.transfer_date = payload["transfer_date"]
        if "notes" in payload:
            transfer.notes = payload.get("notes")

    transfer = get_document(TRANSFER_LISTING, transfer_id, company_id, _detail_options())
    log_committed("transfer update", transfer)
    return transfer


def delete_transfer(transfer_id: int, actor: Actor) -> dict:
    require_permission(actor, "DELETE_TRANSFER")
    company_id = require_company(actor)

    with atomic_unit("transfer delete"):
        transfer = get_document(TRANSFER_LISTING, transfer_id, company_id)
        summary = transfer.to_summary()
        db.session.delete(transfer)

    return summary

# Overview: Document numbering and the shared tenant-scoped document reads.

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional

from flask import current_app
from sqlalchemy import or_, update

from ..extensions import db
from ..errors import InternalError, InvalidInputError, NotFoundError
from ..models import DocumentSequence, Store
from backoffice.time_utils import business_date
from .concurrency import insert_if_absent


# =============================================================================
# Document Numbering
# =============================================================================

@dataclass(frozen=True)
class DocumentKind:
    code: str
    prefix: str
    # Store-scoped kinds number per store and embed the store tag;
    # the rest share one counter per day.
    store_scoped: bool = False


PURCHASE = DocumentKind("PURCHASE", "PUR", store_scoped=True)
SALE = DocumentKind("SALE", "SAL")
TRANSFER = DocumentKind("TRANSFER", "TRF")
SALE_RETURN = DocumentKind("SALE_RETURN", "RET")
PURCHASE_RETURN = DocumentKind("PURCHASE_RETURN", "PRET")

GLOBAL_SCOPE = "*"
# Full day, not month: counters reset daily, so a month segment would repeat numbers
DATE_SEGMENT_FORMAT = "%Y%m%d"
SEQUENCE_PAD = 4


def _allocate_sequence(document_type: str, scope_key: str, day: date) -> int:
    """
    Atomically take the next sequence value for (type, scope, day).

    The UPDATE holds the counter row lock until the caller's transaction
    ends, so a rolled-back document gives its number back.
    """
    stmt = (
        update(DocumentSequence)
        .where(
            DocumentSequence.document_type == document_type,
            DocumentSequence.scope_key == scope_key,
            DocumentSequence.business_date == day,
        )
        .values(next_number=DocumentSequence.next_number + 1)
        .execution_options(synchronize_session=False)
    )

    result = db.session.execute(stmt)
    if not result.rowcount:
        seq = DocumentSequence(
            document_type=document_type,
            scope_key=scope_key,
            business_date=day,
            next_number=2,
        )
        if insert_if_absent(seq):
            return 1
        # Another writer created today's row first
        result = db.session.execute(stmt)
        if not result.rowcount:
            raise InternalError("Document sequence unavailable")

    current = (
        db.session.query(DocumentSequence.next_number)
        .filter_by(document_type=document_type, scope_key=scope_key, business_date=day)
        .scalar()
    )
    return current - 1


def next_document_number(kind: DocumentKind, store: Store, day: date | None = None) -> str:
    """
    Allocate "<PREFIX>-<STORE?>-<DATE>-<SEQ>" for a new document.

    Must be called inside the atomic unit that inserts the document.
    """
    day = day or business_date()
    scope_key = str(store.id) if kind.store_scoped else GLOBAL_SCOPE
    sequence = _allocate_sequence(kind.code, scope_key, day)

    parts = [kind.prefix]
    if kind.store_scoped:
        parts.append(store.number_prefix)
    parts.append(day.strftime(DATE_SEGMENT_FORMAT))
    parts.append(f"{sequence:0{SEQUENCE_PAD}d}")
    return "-".join(parts)


# =============================================================================
# Tenant-scoped Reads
# =============================================================================

SORT_ORDERS = ("asc", "desc")


@dataclass
class DocumentFilter:
    """Typed listing filter shared by every document kind."""
    search_term: Optional[str] = None
    store_id: Optional[int] = None
    status: Optional[str] = None
    counterparty_id: Optional[int] = None
    from_date: Optional[datetime] = None
    to_date: Optional[datetime] = None
    page: int = 1
    limit: Optional[int] = None
    sort_by: str = "created_at"
    sort_order: str = "desc"


@dataclass(frozen=True)
class DocumentListing:
    """
    How one document kind is listed: which columns anchor tenant scoping,
    date range, counterparty filter and free-text search.
    """
    model: Any
    label: str
    store_column: Any
    date_column: Any
    counterparty_column: Any
    statuses: tuple[str, ...]
    sortable: tuple[str, ...]
    search_columns: tuple = field(default_factory=tuple)


def clamp_page(page: int | None, limit: int | None) -> tuple[int, int]:
    default_limit = current_app.config.get("DEFAULT_PAGE_LIMIT", 10)
    max_limit = current_app.config.get("MAX_PAGE_LIMIT", 100)

    page = page if page and page > 0 else 1
    limit = limit if limit and limit > 0 else default_limit
    if limit > max_limit:
        limit = max_limit
    return page, limit


def paginate(query, page: int | None, limit: int | None) -> tuple[list, dict]:
    page, limit = clamp_page(page, limit)
    total = query.order_by(None).count()
    rows = query.offset((page - 1) * limit).limit(limit).all()
    return rows, {"page": page, "limit": limit, "total": total}


def scoped_query(listing: DocumentListing, company_id: int):
    """Documents whose anchoring store belongs to company_id."""
    return (
        db.session.query(listing.model)
        .join(Store, Store.id == listing.store_column)
        .filter(Store.company_id == company_id)
    )


def list_documents(
    listing: DocumentListing,
    company_id: int,
    doc_filter: DocumentFilter | None = None,
    options: tuple = (),
) -> tuple[list, dict]:
    f = doc_filter or DocumentFilter()

    if f.sort_by not in listing.sortable:
        raise InvalidInputError(
            f"Invalid sort_by '{f.sort_by}'",
            details={"allowed": list(listing.sortable)},
        )
    if f.sort_order not in SORT_ORDERS:
        raise InvalidInputError(
            f"Invalid sort_order '{f.sort_order}'",
            details={"allowed": list(SORT_ORDERS)},
        )
    if f.status and f.status not in listing.statuses:
        raise InvalidInputError(
            f"Invalid status '{f.status}'",
            details={"allowed": list(listing.statuses)},
        )

    query = scoped_query(listing, company_id)

    if f.search_term and listing.search_columns:
        term = f"%{f.search_term.strip()}%"
        query = query.filter(or_(*[col.ilike(term) for col in listing.search_columns]))
    if f.store_id:
        query = query.filter(listing.store_column == f.store_id)
    if f.status:
        query = query.filter(listing.model.status == f.status)
    if f.counterparty_id and listing.counterparty_column is not None:
        query = query.filter(listing.counterparty_column == f.counterparty_id)
    if f.from_date:
        query = query.filter(listing.date_column >= f.from_date)
    if f.to_date:
        query = query.filter(listing.date_column <= f.to_date)

    sort_column = getattr(listing.model, f.sort_by)
    sort_column = sort_column.asc() if f.sort_order == "asc" else sort_column.desc()
    query = query.order_by(sort_column, listing.model.id.desc())

    if options:
        query = query.options(*options)

    return paginate(query, f.page, f.limit)


def get_document(listing: DocumentListing, doc_id: int, company_id: int, options: tuple = ()):
    query = scoped_query(listing, company_id).filter(listing.model.id == doc_id)
    if options:
        query = query.options(*options)
    doc = query.first()
    if doc is None:
        raise NotFoundError(f"{listing.label} not found")
    return doc

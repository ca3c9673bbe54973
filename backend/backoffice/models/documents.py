from __future__ import annotations

from ..extensions import db
from backoffice.money import money_json
from backoffice.time_utils import to_utc_z


class Transfer(db.Model):
    """
    Inter-store inventory transfer document.

    Creating a transfer moves stock immediately: Inventory at from_store_id
    decreases and Inventory at to_store_id increases (row created if
    absent) by every line's quantity. from_store_id != to_store_id.

    status: PENDING, IN_TRANSIT, COMPLETED, CANCELLED
    """
    __tablename__ = "transfers"
    __table_args__ = (
        db.UniqueConstraint("from_store_id", "document_number", name="uq_transfers_store_docnum"),
        db.CheckConstraint("from_store_id <> to_store_id", name="ck_transfers_distinct_stores"),
        db.Index("ix_transfers_document_number", "document_number"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    document_number = db.Column(db.String(64), nullable=False)

    from_store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    to_store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    transfer_date = db.Column(db.DateTime(timezone=True), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="PENDING", index=True)
    notes = db.Column(db.Text, nullable=True)

    created_by_user_id = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    from_store = db.relationship("Store", foreign_keys=[from_store_id])
    to_store = db.relationship("Store", foreign_keys=[to_store_id])

    def __repr__(self) -> str:
        return f"<Transfer id={self.id} doc_num={self.document_number!r} status={self.status}>"

    def to_summary(self) -> dict:
        return {"id": self.id, "document_number": self.document_number, "status": self.status}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_number": self.document_number,
            "from_store_id": self.from_store_id,
            "to_store_id": self.to_store_id,
            "transfer_date": to_utc_z(self.transfer_date),
            "status": self.status,
            "notes": self.notes,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "from_store": self.from_store.to_summary() if self.from_store else None,
            "to_store": self.to_store.to_summary() if self.to_store else None,
            "items": [item.to_dict() for item in self.items],
        }


class TransferItem(db.Model):
    """Product and quantity moved by a transfer. No pricing."""
    __tablename__ = "transfer_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    transfer_id = db.Column(db.Integer, db.ForeignKey("transfers.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    transfer = db.relationship(
        "Transfer",
        backref=db.backref("items", lazy=True, cascade="all, delete-orphan", order_by="TransferItem.id"),
    )
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transfer_id": self.transfer_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "product": self.product.to_summary() if self.product else None,
        }


class PurchaseReturn(db.Model):
    """
    Goods sent back to the vendor of an earlier Purchase.

    refund_amount = sum of line totals. Creation decreases Inventory at
    store_id; each line's quantity is bounded by what the original
    purchase line bought (minus what earlier returns already sent back).

    status: PENDING, APPROVED, REJECTED, COMPLETED
    """
    __tablename__ = "purchase_returns"
    __table_args__ = (
        db.UniqueConstraint("store_id", "document_number", name="uq_purchase_returns_store_docnum"),
        db.Index("ix_purchase_returns_document_number", "document_number"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    document_number = db.Column(db.String(64), nullable=False)

    purchase_id = db.Column(db.Integer, db.ForeignKey("purchases.id"), nullable=False, index=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    return_date = db.Column(db.DateTime(timezone=True), nullable=False)
    reason = db.Column(db.Text, nullable=False)
    refund_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default="PENDING", index=True)
    notes = db.Column(db.Text, nullable=True)

    created_by_user_id = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    purchase = db.relationship("Purchase", backref=db.backref("purchase_returns", lazy=True))
    store = db.relationship("Store")

    def to_summary(self) -> dict:
        return {"id": self.id, "document_number": self.document_number, "status": self.status}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_number": self.document_number,
            "purchase_id": self.purchase_id,
            "store_id": self.store_id,
            "return_date": to_utc_z(self.return_date),
            "reason": self.reason,
            "refund_amount": money_json(self.refund_amount),
            "status": self.status,
            "notes": self.notes,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "purchase": self.purchase.to_summary() if self.purchase else None,
            "store": self.store.to_summary() if self.store else None,
            "items": [item.to_dict() for item in self.items],
        }


class PurchaseReturnItem(db.Model):
    __tablename__ = "purchase_return_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    purchase_return_id = db.Column(
        db.Integer, db.ForeignKey("purchase_returns.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    total_price = db.Column(db.Numeric(12, 2), nullable=False)

    purchase_return = db.relationship(
        "PurchaseReturn",
        backref=db.backref("items", lazy=True, cascade="all, delete-orphan", order_by="PurchaseReturnItem.id"),
    )
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_return_id": self.purchase_return_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price": money_json(self.unit_price),
            "total_price": money_json(self.total_price),
            "product": self.product.to_summary() if self.product else None,
        }


class SaleReturn(db.Model):
    """
    Goods a customer brought back from an earlier Sale.

    Creation increases Inventory at store_id. Line quantities are bounded
    by the original sale lines the same way as PurchaseReturn.
    """
    __tablename__ = "sale_returns"
    __table_args__ = (
        db.UniqueConstraint("store_id", "document_number", name="uq_sale_returns_store_docnum"),
        db.Index("ix_sale_returns_document_number", "document_number"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    document_number = db.Column(db.String(64), nullable=False)

    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    return_date = db.Column(db.DateTime(timezone=True), nullable=False)
    reason = db.Column(db.Text, nullable=False)
    refund_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default="PENDING", index=True)
    notes = db.Column(db.Text, nullable=True)

    created_by_user_id = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    sale = db.relationship("Sale", backref=db.backref("sale_returns", lazy=True))
    store = db.relationship("Store")

    def to_summary(self) -> dict:
        return {"id": self.id, "document_number": self.document_number, "status": self.status}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_number": self.document_number,
            "sale_id": self.sale_id,
            "store_id": self.store_id,
            "return_date": to_utc_z(self.return_date),
            "reason": self.reason,
            "refund_amount": money_json(self.refund_amount),
            "status": self.status,
            "notes": self.notes,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "sale": self.sale.to_summary() if self.sale else None,
            "store": self.store.to_summary() if self.store else None,
            "items": [item.to_dict() for item in self.items],
        }


class SaleReturnItem(db.Model):
    __tablename__ = "sale_return_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_return_id = db.Column(
        db.Integer, db.ForeignKey("sale_returns.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    total_price = db.Column(db.Numeric(12, 2), nullable=False)

    sale_return = db.relationship(
        "SaleReturn",
        backref=db.backref("items", lazy=True, cascade="all, delete-orphan", order_by="SaleReturnItem.id"),
    )
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_return_id": self.sale_return_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price": money_json(self.unit_price),
            "total_price": money_json(self.total_price),
            "product": self.product.to_summary() if self.product else None,
        }


class DocumentSequence(db.Model):
    """
    Atomic per-(kind, scope, day) document counters.

    scope_key is the store id for store-scoped kinds (Purchase) and "*"
    for the other kinds, which share one counter per day across all
    companies. Allocation increments next_number with a single UPDATE
    inside the caller's transaction, so two writers never read the same
    value.
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint("document_type", "scope_key", "business_date", name="uq_doc_sequences_type_scope_day"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    document_type = db.Column(db.String(32), nullable=False, index=True)
    scope_key = db.Column(db.String(32), nullable=False)
    business_date = db.Column(db.Date, nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_type": self.document_type,
            "scope_key": self.scope_key,
            "business_date": self.business_date.isoformat() if self.business_date else None,
            "next_number": self.next_number,
            "updated_at": to_utc_z(self.updated_at),
        }

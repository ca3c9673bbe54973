from __future__ import annotations

from ..extensions import db
from backoffice.money import money_json
from backoffice.time_utils import to_utc_z


class Purchase(db.Model):
    """
    Purchase document: stock bought from a vendor into one store.

    Creating a purchase increases Inventory at store_id by every line's
    quantity, in the same transaction as the header and items insert.

    document_number is allocated from the store-scoped PUR sequence, e.g.
    "PUR-MAI-20261019-0001".
    """
    __tablename__ = "purchases"
    __table_args__ = (
        db.UniqueConstraint("store_id", "document_number", name="uq_purchases_store_docnum"),
        db.Index("ix_purchases_document_number", "document_number"),
        db.Index("ix_purchases_store_status_created", "store_id", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    document_number = db.Column(db.String(64), nullable=False)

    vendor_id = db.Column(db.Integer, db.ForeignKey("vendors.id"), nullable=False, index=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    purchase_date = db.Column(db.DateTime(timezone=True), nullable=False)

    total_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    paid_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    due_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    # PENDING, COMPLETED, CANCELLED
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

    vendor = db.relationship("Vendor", backref=db.backref("purchases", lazy=True))
    store = db.relationship("Store", backref=db.backref("purchases", lazy=True))

    def __repr__(self) -> str:
        return f"<Purchase id={self.id} doc_num={self.document_number!r} status={self.status}>"

    def to_summary(self) -> dict:
        return {"id": self.id, "document_number": self.document_number, "status": self.status}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_number": self.document_number,
            "vendor_id": self.vendor_id,
            "store_id": self.store_id,
            "purchase_date": to_utc_z(self.purchase_date),
            "total_amount": money_json(self.total_amount),
            "paid_amount": money_json(self.paid_amount),
            "due_amount": money_json(self.due_amount),
            "status": self.status,
            "notes": self.notes,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "vendor": self.vendor.to_summary() if self.vendor else None,
            "store": self.store.to_summary() if self.store else None,
            "items": [item.to_dict() for item in self.items],
        }


class PurchaseItem(db.Model):
    """One product line on a purchase. total_price = quantity * unit_price."""
    __tablename__ = "purchase_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    purchase_id = db.Column(db.Integer, db.ForeignKey("purchases.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    total_price = db.Column(db.Numeric(12, 2), nullable=False)

    purchase = db.relationship(
        "Purchase",
        backref=db.backref("items", lazy=True, cascade="all, delete-orphan", order_by="PurchaseItem.id"),
    )
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_id": self.purchase_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price": money_json(self.unit_price),
            "total_price": money_json(self.total_price),
            "product": self.product.to_summary() if self.product else None,
        }

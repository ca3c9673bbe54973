from __future__ import annotations

from ..extensions import db
from backoffice.money import money_json
from backoffice.time_utils import to_utc_z


class Sale(db.Model):
    """
    Sale document: stock sold out of one store, optionally to a customer.

    total_amount = subtotal - discount + tax, with subtotal the sum of line
    totals. Creating a sale decreases Inventory at store_id; creation is
    refused if any line would drive on-hand below zero.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("store_id", "document_number", name="uq_sales_store_docnum"),
        db.Index("ix_sales_document_number", "document_number"),
        db.Index("ix_sales_store_status_created", "store_id", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    document_number = db.Column(db.String(64), nullable=False)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    sale_date = db.Column(db.DateTime(timezone=True), nullable=False)

    subtotal = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    discount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    tax = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    paid_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    due_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    # COMPLETED, CANCELLED, RETURNED
    status = db.Column(db.String(16), nullable=False, default="COMPLETED", index=True)
    notes = db.Column(db.Text, nullable=True)

    created_by_user_id = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    customer = db.relationship("Customer", backref=db.backref("sales", lazy=True))
    store = db.relationship("Store", backref=db.backref("sales", lazy=True))

    def __repr__(self) -> str:
        return f"<Sale id={self.id} doc_num={self.document_number!r} status={self.status}>"

    def to_summary(self) -> dict:
        return {"id": self.id, "document_number": self.document_number, "status": self.status}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_number": self.document_number,
            "customer_id": self.customer_id,
            "store_id": self.store_id,
            "sale_date": to_utc_z(self.sale_date),
            "subtotal": money_json(self.subtotal),
            "discount": money_json(self.discount),
            "tax": money_json(self.tax),
            "total_amount": money_json(self.total_amount),
            "paid_amount": money_json(self.paid_amount),
            "due_amount": money_json(self.due_amount),
            "status": self.status,
            "notes": self.notes,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "customer": self.customer.to_summary() if self.customer else None,
            "store": self.store.to_summary() if self.store else None,
            "items": [item.to_dict() for item in self.items],
        }


class SaleItem(db.Model):
    """Individual line items on a sale document."""
    __tablename__ = "sale_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    total_price = db.Column(db.Numeric(12, 2), nullable=False)

    sale = db.relationship(
        "Sale",
        backref=db.backref("items", lazy=True, cascade="all, delete-orphan", order_by="SaleItem.id"),
    )
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price": money_json(self.unit_price),
            "total_price": money_json(self.total_price),
            "product": self.product.to_summary() if self.product else None,
        }

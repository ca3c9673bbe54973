"""
Inventory ledger invariants (authoritative)

- One Inventory row per (product, store); created lazily by the first
  stock-affecting event and never deleted while documents reference it.
- quantity >= 0 at all times. Services refuse a decrement that would
  cross zero; the CHECK constraint backs that up in the database.
- Every change to quantity appends one StockMovement row in the same
  transaction. StockMovement is append-only.
"""
from __future__ import annotations

from ..extensions import db
from backoffice.time_utils import to_utc_z


class Inventory(db.Model):
    """Quantity on hand of one product at one store."""
    __tablename__ = "inventories"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_inventories_quantity_non_negative"),
        db.Index("ix_inventories_store_id", "store_id"),
    )

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), primary_key=True)

    quantity = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_updated = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    product = db.relationship("Product", backref=db.backref("inventories", lazy=True))
    store = db.relationship("Store", backref=db.backref("inventories", lazy=True))

    def __repr__(self) -> str:
        return f"<Inventory product_id={self.product_id} store_id={self.store_id} quantity={self.quantity}>"

    @property
    def is_low_stock(self) -> bool:
        return self.product is not None and self.quantity <= (self.product.reorder_level or 0)

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "store_id": self.store_id,
            "quantity": self.quantity,
            "is_low_stock": self.is_low_stock,
            "product": self.product.to_dict() if self.product else None,
            "store": self.store.to_summary() if self.store else None,
            "created_at": to_utc_z(self.created_at),
            "last_updated": to_utc_z(self.last_updated),
        }


class StockMovement(db.Model):
    """
    Append-only journal of inventory deltas.

    Records which document moved how much stock, and the on-hand quantity
    right after the move. Manual adjustments carry document_type=ADJUSTMENT
    and no document_id.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_store_product", "store_id", "product_id", "occurred_at"),
        db.Index("ix_stock_movements_document", "document_type", "document_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    quantity_delta = db.Column(db.Integer, nullable=False)
    quantity_after = db.Column(db.Integer, nullable=False)

    # PURCHASE, SALE, TRANSFER, PURCHASE_RETURN, SALE_RETURN, ADJUSTMENT
    document_type = db.Column(db.String(32), nullable=False, index=True)
    document_id = db.Column(db.Integer, nullable=True)
    document_number = db.Column(db.String(64), nullable=True)

    note = db.Column(db.String(255), nullable=True)
    actor_user_id = db.Column(db.Integer, nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    product = db.relationship("Product")
    store = db.relationship("Store")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "product_id": self.product_id,
            "quantity_delta": self.quantity_delta,
            "quantity_after": self.quantity_after,
            "document_type": self.document_type,
            "document_id": self.document_id,
            "document_number": self.document_number,
            "note": self.note,
            "actor_user_id": self.actor_user_id,
            "occurred_at": to_utc_z(self.occurred_at),
        }

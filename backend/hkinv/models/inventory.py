from __future__ import annotations

from ..extensions import db
from hkinv.time_utils import to_utc_z, to_iso_date


TRANSACTION_TYPES = ("in", "out", "borrow", "return")
TRANSACTION_STATUSES = ("pending", "approved", "completed", "cancelled")
DEPRECIATION_STATUSES = ("completed", "pending")


class Item(db.Model):
    """
    Stocked housekeeping item (linen, amenities, chemicals, equipment).

    STOCK INVARIANT:
    current_stock == opening_stock
                     + SUM(sign(type) * quantity) over transactions
                     - SUM(quantity) over completed depreciations

    current_stock is written by the ledger service only. An administrative
    edit of current_stock re-derives opening_stock so the invariant holds.
    """
    __tablename__ = "items"
    __table_args__ = (
        db.UniqueConstraint("code", name="uq_items_code"),
        db.Index("ix_items_status", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    code = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(128), nullable=True)
    description = db.Column(db.Text, nullable=True)
    unit = db.Column(db.String(32), nullable=False)

    min_stock = db.Column(db.Integer, nullable=False, default=0)
    current_stock = db.Column(db.Integer, nullable=False, default=0)
    opening_stock = db.Column(db.Integer, nullable=False, default=0)

    location = db.Column(db.String(128), nullable=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True, index=True)

    # Whole Rupiah
    price = db.Column(db.Integer, nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default="active")
    image_url = db.Column(db.String(512), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    supplier = db.relationship("Supplier", backref=db.backref("items", lazy=True))

    def __repr__(self) -> str:
        return f"<Item id={self.id} code={self.code!r} stock={self.current_stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "category": self.category,
            "description": self.description or "",
            "unit": self.unit,
            "min_stock": self.min_stock,
            "current_stock": self.current_stock,
            "opening_stock": self.opening_stock,
            "location": self.location,
            "supplier_id": self.supplier_id,
            "price": self.price,
            "status": self.status,
            "image_url": self.image_url,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Transaction(db.Model):
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_item_date", "item_id", "date"),
        db.Index("ix_transactions_type_status", "type", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    type = db.Column(db.String(16), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True)
    # Free text: guests, rooms or outlets borrow linen, not only registered users
    borrower_id = db.Column(db.String(64), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    status = db.Column(db.String(16), nullable=False, default="completed", index=True)

    date = db.Column(db.Date, nullable=False)
    due_date = db.Column(db.Date, nullable=True)
    return_date = db.Column(db.Date, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "item_id": self.item_id,
            "quantity": self.quantity,
            "user_id": self.user_id,
            "supplier_id": self.supplier_id,
            "borrower_id": self.borrower_id,
            "notes": self.notes or "",
            "status": self.status,
            "date": to_iso_date(self.date),
            "due_date": to_iso_date(self.due_date),
            "return_date": to_iso_date(self.return_date),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Depreciation(db.Model):
    """Write-off of damaged, stained or lost stock."""
    __tablename__ = "depreciations"
    __table_args__ = (
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    date = db.Column(db.Date, nullable=False)
    reason = db.Column(db.Text, nullable=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="completed")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_id": self.item_id,
            "quantity": self.quantity,
            "date": to_iso_date(self.date),
            "reason": self.reason or "",
            "user_id": self.user_id,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }

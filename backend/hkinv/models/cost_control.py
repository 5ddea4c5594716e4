from __future__ import annotations

from ..extensions import db
from hkinv.time_utils import to_utc_z, to_iso_date


# Laundry cost items with their default unit price (Rupiah per piece)
DEFAULT_COST_ITEMS = (
    (1, "Bath Towel Baru", 2600),
    (2, "Bath Towel Lama", 2600),
    (3, "Bath Mat", 2400),
    (4, "Bed Sheet Single", 3300),
    (5, "Bed Sheet Double", 3600),
    (6, "Duvet Cover Single", 4600),
    (7, "Duvet Cover Double", 5600),
    (8, "Pillow Case Baru", 1400),
    (9, "Pillow Case Lama", 1400),
    (10, "Pillow Case (MIX)", 1400),
    (11, "Inner Duvet Single", 15000),
    (12, "Inner Duvet Double", 25000),
    (13, "Skarting Duvet Single", 0),
    (14, "Skarting Duvet Double", 0),
    (15, "Napkin", 1200),
    (16, "Cover Chair", 2500),
    (17, "Table Cloth", 6000),
    (18, "Bath Robe", 0),
)


class CostItemDefinition(db.Model):
    """A laundry cost line. price is what the laundry vendor charges per piece."""
    __tablename__ = "cost_items"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_cost_items_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    price = db.Column(db.Integer, nullable=False, default=0)

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
            "name": self.name,
            "price": self.price,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class LaundryLogEntry(db.Model):
    """
    One line of the laundry log book.

    out_quantity: pieces sent to the laundry (picked up)
    in_quantity: pieces delivered back
    pending_quantity / returned_quantity: pieces held back by the laundry
    (rewash, stains) and how many of those came back later.
    """
    __tablename__ = "laundry_logs"
    __table_args__ = (
        db.Index("ix_laundry_logs_item_date", "item_id", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    date = db.Column(db.Date, nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("cost_items.id"), nullable=False)

    out_quantity = db.Column(db.Integer, nullable=False, default=0)
    in_quantity = db.Column(db.Integer, nullable=False, default=0)
    pending_quantity = db.Column(db.Integer, nullable=False, default=0)
    returned_quantity = db.Column(db.Integer, nullable=False, default=0)

    returned_date = db.Column(db.Date, nullable=True)
    returned_image_url = db.Column(db.String(512), nullable=True)

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
            "date": to_iso_date(self.date),
            "item_id": self.item_id,
            "out_quantity": self.out_quantity,
            "in_quantity": self.in_quantity,
            "pending_quantity": self.pending_quantity,
            "returned_quantity": self.returned_quantity,
            "returned_date": to_iso_date(self.returned_date),
            "returned_image_url": self.returned_image_url,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }

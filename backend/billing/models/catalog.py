from __future__ import annotations

from ..extensions import db
from billing.money import format_amount
from billing.time_utils import to_utc_z

class Product(db.Model):
    """
    Catalog entry of a shop.

    Invoice items are free-form snapshots, not product references: editing
    or deleting a product never touches issued invoices.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_shop_name", "shop_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id", ondelete="CASCADE"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    price = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    hsn = db.Column(db.String(32), nullable=False, default="")
    category = db.Column(db.String(120), nullable=False, default="General")

    # Percent rates, 2 decimals
    cgst = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    sgst = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    igst = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    discount_percent = db.Column(db.Numeric(5, 2), nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    shop = db.relationship("Shop", back_populates="products")

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} shop_id={self.shop_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "name": self.name,
            "price": format_amount(self.price),
            "hsn": self.hsn,
            "category": self.category,
            "cgst": format_amount(self.cgst),
            "sgst": format_amount(self.sgst),
            "igst": format_amount(self.igst),
            "discount_percent": format_amount(self.discount_percent),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }

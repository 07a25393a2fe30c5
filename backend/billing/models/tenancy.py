from __future__ import annotations

from ..extensions import db
from ..permissions import ShopRole
from billing.time_utils import to_utc_z

class Shop(db.Model):
    """
    A billing tenant: holds products and issues tax invoices.

    OWNERSHIP: There is no owner column. Every user/shop pairing, including
    the creator's OWNER pairing, is a UserShop row. A shop is created together
    with its first OWNER edge in one Unit-of-Work.
    """
    __tablename__ = "shops"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)

    # Legal identity (tax id, registration numbers, jurisdiction)
    legal_name = db.Column(db.String(255), nullable=True)
    gstin = db.Column(db.String(32), nullable=True)
    pan = db.Column(db.String(16), nullable=True)
    cin = db.Column(db.String(32), nullable=True)
    address = db.Column(db.Text, nullable=True)
    state = db.Column(db.String(64), nullable=True)
    state_code = db.Column(db.String(8), nullable=True)
    pin = db.Column(db.String(16), nullable=True)

    # {"bank_name", "account_number", "IFSC_code", "account_holder_name"}
    bank_detail = db.Column(db.JSON, nullable=True)
    signature_url = db.Column(db.String(512), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    user_shops = db.relationship("UserShop", back_populates="shop", lazy=True, cascade="all, delete")
    invoices = db.relationship("Invoice", back_populates="shop", lazy=True, cascade="all, delete")
    products = db.relationship("Product", back_populates="shop", lazy=True, cascade="all, delete")

    def __repr__(self) -> str:
        return f"<Shop id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "legal_name": self.legal_name,
            "gstin": self.gstin,
            "pan": self.pan,
            "cin": self.cin,
            "address": self.address,
            "state": self.state,
            "state_code": self.state_code,
            "pin": self.pin,
            "bank_detail": self.bank_detail,
            "signature_url": self.signature_url,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class UserShop(db.Model):
    """
    Tenancy edge: one user's role on one shop.

    Composite primary key (user_id, shop_id) makes duplicate association
    impossible at the storage level; the service layer reports it as
    USER_SHOP_EXISTS before the insert is attempted.
    """
    __tablename__ = "user_shops"
    __table_args__ = (
        db.Index("ix_user_shops_shop", "shop_id"),
    )

    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id", ondelete="CASCADE"), primary_key=True)
    role = db.Column(db.String(16), nullable=False, default=ShopRole.VIEWER)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    user = db.relationship("User", backref=db.backref("user_shops", lazy=True, cascade="all, delete"))
    shop = db.relationship("Shop", back_populates="user_shops")

    def __repr__(self) -> str:
        return f"<UserShop user_id={self.user_id} shop_id={self.shop_id} role={self.role}>"

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "shop_id": self.shop_id,
            "role": self.role,
            "created_at": to_utc_z(self.created_at),
        }

from __future__ import annotations

from ..extensions import db
from billing.money import format_amount
from billing.time_utils import to_utc_z

PARTY_FIELDS = ("name", "address", "state", "state_code", "gstin")


class Invoice(db.Model):
    """
    Tax invoice issued by a shop.

    SNAPSHOT FIELDS: gstin, address, pan_no, cin_no, state, state_code,
    shop_legal_name and bank_detail are copied from the shop when the invoice
    is created. They are never live-joined, so an invoice keeps rendering
    the registration details that were valid on its issue date.

    LEDGER, NOT CALCULATOR: total and every item amount are stored exactly as
    submitted.
    """
    __tablename__ = "invoices"
    __table_args__ = (
        db.Index("ix_invoices_shop_created", "shop_id", "created_at"),
        db.Index("ix_invoices_shop_type", "shop_id", "invoice_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id", ondelete="CASCADE"), nullable=False, index=True)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    serial_no = db.Column(db.String(64), nullable=False)
    invoice_date = db.Column(db.Date, nullable=True)
    invoice_type = db.Column(db.String(32), nullable=False, default="TAX_INVOICE")

    # Issuer snapshot
    shop_legal_name = db.Column(db.String(255), nullable=True)
    gstin = db.Column(db.String(32), nullable=True)
    pan_no = db.Column(db.String(16), nullable=True)
    cin_no = db.Column(db.String(32), nullable=True)
    address = db.Column(db.Text, nullable=True)
    state = db.Column(db.String(64), nullable=True)
    state_code = db.Column(db.String(8), nullable=True)
    bank_detail = db.Column(db.JSON, nullable=True)

    # Counterparties: {"name", "address", "state", "state_code", "gstin"}
    bill_to = db.Column(db.JSON, nullable=False)
    ship_to = db.Column(db.JSON, nullable=False)

    total = db.Column(db.Numeric(10, 2), nullable=False)
    additional_data = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    shop = db.relationship("Shop", back_populates="invoices")
    created_by = db.relationship("User", foreign_keys=[created_by_user_id])
    items = db.relationship(
        "InvoiceItem",
        back_populates="invoice",
        lazy=True,
        cascade="all, delete-orphan",
        order_by=lambda: [InvoiceItem.position, InvoiceItem.id],
    )

    def __repr__(self) -> str:
        return f"<Invoice id={self.id} serial_no={self.serial_no!r} shop_id={self.shop_id}>"

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "shop_id": self.shop_id,
            "created_by_user_id": self.created_by_user_id,
            "serial_no": self.serial_no,
            "invoice_date": self.invoice_date.isoformat() if self.invoice_date else None,
            "invoice_type": self.invoice_type,
            "shop_legal_name": self.shop_legal_name,
            "gstin": self.gstin,
            "pan_no": self.pan_no,
            "cin_no": self.cin_no,
            "address": self.address,
            "state": self.state,
            "state_code": self.state_code,
            "bank_detail": self.bank_detail,
            "bill_to": self.bill_to,
            "ship_to": self.ship_to,
            "total": format_amount(self.total),
            "additional_data": self.additional_data,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class InvoiceItem(db.Model):
    """
    One line of an invoice.

    Three parallel tax regimes: CGST+SGST (intra-state) or IGST (inter-state).
    They are mutually exclusive in practice but not enforced here.
    """
    __tablename__ = "invoice_items"
    __table_args__ = (
        db.Index("ix_invoice_items_invoice_position", "invoice_id", "position"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    description = db.Column(db.String(512), nullable=False)
    hsn_sac_code = db.Column(db.String(32), nullable=False, default="")

    quantity = db.Column(db.Numeric(10, 2), nullable=False)
    unit_value = db.Column(db.Numeric(10, 2), nullable=False)
    discount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    taxable_value = db.Column(db.Numeric(10, 2), nullable=False)

    cgst_rate = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    cgst_amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    sgst_rate = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    sgst_amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    igst_rate = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    igst_amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    invoice = db.relationship("Invoice", back_populates="items")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_id": self.invoice_id,
            "position": self.position,
            "description": self.description,
            "hsn_sac_code": self.hsn_sac_code,
            "quantity": format_amount(self.quantity),
            "unit_value": format_amount(self.unit_value),
            "discount": format_amount(self.discount),
            "taxable_value": format_amount(self.taxable_value),
            "cgst_rate": format_amount(self.cgst_rate),
            "cgst_amount": format_amount(self.cgst_amount),
            "sgst_rate": format_amount(self.sgst_rate),
            "sgst_amount": format_amount(self.sgst_amount),
            "igst_rate": format_amount(self.igst_rate),
            "igst_amount": format_amount(self.igst_amount),
        }

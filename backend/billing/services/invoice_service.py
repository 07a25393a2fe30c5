# Overview: Service-layer operations for invoices and their items; ledger writes, listing and counterparty search.

"""
Invoice Service

WHY: An invoice and its items form one aggregate. Every write to it runs in
one Unit-of-Work and is gated by the caller's edge to the owning shop.

AUTHORIZATION:
- create / update / item add, edit, remove: WRITE on the shop
- delete: DELETE on the shop
- get / list / search / document / arithmetic audit: READ on the shop
- Invoices and items are reached by their own id, so a caller without an
  edge to the owning shop gets INVOICE_NOT_FOUND / INVOICE_ITEM_NOT_FOUND,
  exactly as if the row did not exist

LEDGER, NOT CALCULATOR: taxable_value and every tax amount are stored as
submitted. audit_arithmetic() reports disagreements; only when
STRICT_INVOICE_ARITHMETIC is enabled do create/update reject them.

UPDATE IS A MERGE: items listed with an id are patched in place, items
without an id are appended, items not listed are kept.
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..errors import NotFoundError, StorageError, ValidationError
from ..extensions import db
from ..models import Invoice, InvoiceItem, Shop
from ..models.invoices import PARTY_FIELDS
from ..money import CENT, ZERO, format_amount, sum_amounts
from ..number_words import amount_to_words
from ..permissions import Capability
from ..validation import (
    parse_positive_int,
    require_search_fragment,
    validate_invoice_payload,
    validate_item_payload,
)
from .tenant_service import authorize, authorize_resource
from .unit_of_work import run_atomic

ARITHMETIC_TOLERANCE = Decimal("0.01")
TAX_REGIMES = ("cgst", "sgst", "igst")


# ---------------------------------------------------------------------------
# Lookup + authorization
# ---------------------------------------------------------------------------

def _invoice_not_found() -> NotFoundError:
    return NotFoundError("Invoice not found", code="INVOICE_NOT_FOUND")


def _item_not_found() -> NotFoundError:
    return NotFoundError("Invoice item not found", code="INVOICE_ITEM_NOT_FOUND")


def _load_invoice(user_id: int, invoice_id: int, capability: str) -> Invoice:
    invoice = db.session.query(Invoice).filter_by(id=invoice_id).first()
    if not invoice:
        raise _invoice_not_found()
    authorize_resource(user_id, invoice.shop_id, capability, _invoice_not_found())
    return invoice


def _load_item(user_id: int, item_id: int, capability: str) -> InvoiceItem:
    # item -> invoice -> shop -> edge
    item = db.session.query(InvoiceItem).filter_by(id=item_id).first()
    if not item:
        raise _item_not_found()
    authorize_resource(user_id, item.invoice.shop_id, capability, _item_not_found())
    return item


# ---------------------------------------------------------------------------
# Payload handling
# ---------------------------------------------------------------------------

def _split_payload(payload) -> tuple[dict, list | None]:
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    data = dict(payload)
    data.pop("id", None)
    items = data.pop("items", None)
    if items is not None and not isinstance(items, list):
        raise ValidationError("items must be an array")
    return data, items


def _item_fields(raw, *, partial: bool) -> dict:
    if not isinstance(raw, dict):
        raise ValidationError("Each item must be an object")
    data = dict(raw)
    data.pop("id", None)
    data.pop("invoice_id", None)
    data.pop("position", None)
    return validate_item_payload(data, partial=partial)


def _item_id(raw: dict) -> int | None:
    value = raw.get("id")
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError("item id must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError("item id must be an integer")


def _snapshot_defaults(shop: Shop) -> dict:
    """Issuer fields copied from the shop as it is right now."""
    return {
        "shop_legal_name": shop.legal_name or shop.name,
        "gstin": shop.gstin,
        "pan_no": shop.pan,
        "cin_no": shop.cin,
        "address": shop.address,
        "state": shop.state,
        "state_code": shop.state_code,
        "bank_detail": shop.bank_detail,
    }


def _next_position(invoice: Invoice) -> int:
    positions = [item.position for item in invoice.items if item.position is not None]
    return max(positions) + 1 if positions else 0


# ---------------------------------------------------------------------------
# Arithmetic audit
# ---------------------------------------------------------------------------

def _dec(value) -> Decimal:
    return ZERO if value is None else Decimal(value)


def _q(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def audit_arithmetic(invoice: Invoice) -> list[dict]:
    """
    Report items whose stored amounts disagree with their own inputs.

    Checks, per item, with a tolerance of 0.01:
    - taxable_value == quantity * unit_value - discount
    - <regime>_amount == <regime>_rate * taxable_value / 100

    Never modifies the invoice.
    """
    discrepancies = []
    for item in invoice.items:
        taxable = _dec(item.taxable_value)
        expected_taxable = _q(_dec(item.quantity) * _dec(item.unit_value) - _dec(item.discount))
        if abs(expected_taxable - taxable) > ARITHMETIC_TOLERANCE:
            discrepancies.append({
                "item_id": item.id,
                "position": item.position,
                "field": "taxable_value",
                "expected": format_amount(expected_taxable),
                "actual": format_amount(taxable),
            })

        for regime in TAX_REGIMES:
            rate = _dec(getattr(item, f"{regime}_rate"))
            amount = _dec(getattr(item, f"{regime}_amount"))
            expected_amount = _q(rate * taxable / Decimal(100))
            if abs(expected_amount - amount) > ARITHMETIC_TOLERANCE:
                discrepancies.append({
                    "item_id": item.id,
                    "position": item.position,
                    "field": f"{regime}_amount",
                    "expected": format_amount(expected_amount),
                    "actual": format_amount(amount),
                })
    return discrepancies


def _enforce_strict_arithmetic(invoice: Invoice) -> None:
    if not current_app.config.get("STRICT_INVOICE_ARITHMETIC", False):
        return
    discrepancies = audit_arithmetic(invoice)
    if discrepancies:
        raise ValidationError(
            "Invoice item amounts do not match their rates and quantities",
            details={"discrepancies": discrepancies},
        )


def get_invoice_arithmetic(invoice_id: int, user_id: int) -> dict:
    invoice = _load_invoice(user_id, invoice_id, Capability.READ)
    discrepancies = audit_arithmetic(invoice)
    return {
        "invoice_id": invoice.id,
        "balanced": not discrepancies,
        "discrepancies": discrepancies,
    }


# ---------------------------------------------------------------------------
# Aggregate writes
# ---------------------------------------------------------------------------

def create_invoice(shop_id: int, user_id: int, payload: dict) -> Invoice:
    """
    Create an invoice with its items in one unit.

    Args:
        shop_id: Issuing shop
        user_id: Creator (needs WRITE on the shop)
        payload: Invoice fields plus optional "items" list (may be empty)

    Returns:
        The persisted Invoice, items ordered by position

    Raises:
        SHOP_NOT_FOUND / SHOP_ACCESS_DENIED, VALIDATION_ERROR
    """
    data, raw_items = _split_payload(payload)
    fields = validate_invoice_payload(data, partial=False)
    item_fields = [_item_fields(raw, partial=False) for raw in raw_items or []]

    def _op(session):
        shop = authorize(user_id, shop_id, Capability.WRITE).shop

        values = _snapshot_defaults(shop)
        values.update(fields)
        invoice = Invoice(shop_id=shop.id, created_by_user_id=user_id, **values)
        for position, item_values in enumerate(item_fields):
            invoice.items.append(InvoiceItem(position=position, **item_values))

        session.add(invoice)
        session.flush()
        _enforce_strict_arithmetic(invoice)
        return invoice

    invoice = run_atomic(_op, "Error creating invoice")
    current_app.logger.info(
        "Invoice %s (%s) created in shop %s by user %s with %d items",
        invoice.id, invoice.serial_no, shop_id, user_id, len(item_fields),
    )
    return invoice


def get_invoice(invoice_id: int, user_id: int) -> Invoice:
    return _load_invoice(user_id, invoice_id, Capability.READ)


def update_invoice(invoice_id: int, user_id: int, payload: dict) -> Invoice:
    """
    Merge `payload` onto the invoice.

    Items: entries with an id must belong to this invoice and are patched
    in place; entries without an id are appended; existing items that are
    not mentioned stay untouched.
    """
    data, raw_items = _split_payload(payload)
    patch = validate_invoice_payload(data, partial=True)

    item_patches: list[tuple[int | None, dict]] = []
    for raw in raw_items or []:
        if not isinstance(raw, dict):
            raise ValidationError("Each item must be an object")
        item_id = _item_id(raw)
        item_patches.append((item_id, _item_fields(raw, partial=item_id is not None)))

    def _op(session):
        invoice = _load_invoice(user_id, invoice_id, Capability.WRITE)

        for key, value in patch.items():
            setattr(invoice, key, value)

        existing = {item.id: item for item in invoice.items}
        for item_id, values in item_patches:
            if item_id is None:
                invoice.items.append(InvoiceItem(position=_next_position(invoice), **values))
                continue
            item = existing.get(item_id)
            if item is None:
                raise _item_not_found()
            for key, value in values.items():
                setattr(item, key, value)

        session.flush()
        _enforce_strict_arithmetic(invoice)
        return invoice

    invoice = run_atomic(_op, "Error updating invoice")
    current_app.logger.info(
        "Invoice %s updated by user %s (%d fields, %d items)",
        invoice_id, user_id, len(patch), len(item_patches),
    )
    return invoice


def delete_invoice(invoice_id: int, user_id: int) -> None:
    def _op(session):
        invoice = _load_invoice(user_id, invoice_id, Capability.DELETE)
        session.delete(invoice)
        session.flush()

    run_atomic(_op, "Error deleting invoice")
    current_app.logger.info("Invoice %s deleted by user %s", invoice_id, user_id)


def add_item(invoice_id: int, user_id: int, payload: dict) -> InvoiceItem:
    values = _item_fields(payload, partial=False)

    def _op(session):
        invoice = _load_invoice(user_id, invoice_id, Capability.WRITE)
        item = InvoiceItem(position=_next_position(invoice), **values)
        invoice.items.append(item)
        session.flush()
        _enforce_strict_arithmetic(invoice)
        return item

    item = run_atomic(_op, "Error adding invoice item")
    current_app.logger.info("Item %s added to invoice %s by user %s", item.id, invoice_id, user_id)
    return item


def update_item(item_id: int, user_id: int, payload: dict) -> InvoiceItem:
    values = _item_fields(payload, partial=True)

    def _op(session):
        item = _load_item(user_id, item_id, Capability.WRITE)
        for key, value in values.items():
            setattr(item, key, value)
        session.flush()
        _enforce_strict_arithmetic(item.invoice)
        return item

    item = run_atomic(_op, "Error updating invoice item")
    current_app.logger.info("Invoice item %s updated by user %s", item_id, user_id)
    return item


def delete_item(item_id: int, user_id: int) -> None:
    def _op(session):
        item = _load_item(user_id, item_id, Capability.WRITE)
        item.invoice.items.remove(item)
        session.flush()

    run_atomic(_op, "Error deleting invoice item")
    current_app.logger.info("Invoice item %s deleted by user %s", item_id, user_id)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

def list_invoices(
    shop_id: int,
    user_id: int,
    page=None,
    page_size=None,
    invoice_type: str | None = None,
) -> dict:
    """
    Newest-first page of a shop's invoices.

    page / page_size are 1-indexed; missing, non-numeric or < 1 values fall
    back to 1 / DEFAULT_PAGE_SIZE. page_size is capped at MAX_PAGE_SIZE.

    Returns:
        {"items": [...], "count": n, "total": N, "pagination": {...}}
    """
    authorize(user_id, shop_id, Capability.READ)

    page = parse_positive_int(page, 1)
    page_size = parse_positive_int(page_size, current_app.config.get("DEFAULT_PAGE_SIZE", 10))
    page_size = min(page_size, current_app.config.get("MAX_PAGE_SIZE", 100))

    try:
        query = db.session.query(Invoice).filter(Invoice.shop_id == shop_id)
        if invoice_type:
            query = query.filter(Invoice.invoice_type == invoice_type)

        total = query.count()
        invoices = (
            query.order_by(Invoice.created_at.desc(), Invoice.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
    except SQLAlchemyError as exc:
        current_app.logger.exception("Error fetching invoices for shop %s", shop_id)
        raise StorageError("Failed to fetch invoices", code="INVOICE_FETCH_ERROR") from exc

    total_pages = (total + page_size - 1) // page_size if total > 0 else 1
    return {
        "items": [invoice.to_dict() for invoice in invoices],
        "count": len(invoices),
        "total": total,
        "pagination": {
            "page": page,
            "page_size": page_size,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def _escape_like(fragment: str) -> str:
    return fragment.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _search_parties(shop_id: int, user_id: int, field: str, fragment) -> list[dict]:
    fragment = require_search_fragment(fragment, "name")
    authorize(user_id, shop_id, Capability.READ)

    column = getattr(Invoice, field)
    pattern = f"%{_escape_like(fragment)}%"

    try:
        rows = (
            db.session.query(column)
            .filter(Invoice.shop_id == shop_id)
            .filter(column["name"].as_string().ilike(pattern, escape="\\"))
            .order_by(Invoice.created_at.desc(), Invoice.id.desc())
            .all()
        )
    except SQLAlchemyError as exc:
        current_app.logger.exception("Error searching %s in shop %s", field, shop_id)
        raise StorageError(f"Failed to search {field}", code="SEARCH_ERROR") from exc

    seen = set()
    parties = []
    for (party,) in rows:
        if not isinstance(party, dict):
            continue
        record = {key: party.get(key) for key in PARTY_FIELDS}
        key = tuple(record[k] for k in PARTY_FIELDS)
        if key in seen:
            continue
        seen.add(key)
        parties.append(record)
    return parties


def search_bill_to(shop_id: int, user_id: int, fragment) -> list[dict]:
    """Distinct prior bill-to records whose name contains `fragment` (case-insensitive)."""
    return _search_parties(shop_id, user_id, "bill_to", fragment)


def search_ship_to(shop_id: int, user_id: int, fragment) -> list[dict]:
    """Distinct prior ship-to records whose name contains `fragment` (case-insensitive)."""
    return _search_parties(shop_id, user_id, "ship_to", fragment)


# ---------------------------------------------------------------------------
# Rendering payload
# ---------------------------------------------------------------------------

def compute_totals(invoice: Invoice) -> dict:
    items = list(invoice.items)
    return {
        "total_taxable_value": sum_amounts(item.taxable_value for item in items),
        "total_cgst": sum_amounts(item.cgst_amount for item in items),
        "total_sgst": sum_amounts(item.sgst_amount for item in items),
        "total_igst": sum_amounts(item.igst_amount for item in items),
    }


def build_document(invoice: Invoice) -> dict:
    """
    Data handed to the document renderer: the invoice with ordered items,
    per-regime tax totals summed over items, and the grand total in words.
    """
    document = invoice.to_dict(include_items=True)
    for key, value in compute_totals(invoice).items():
        document[key] = format_amount(value)
    document["total_in_words"] = amount_to_words(_dec(invoice.total))
    return document


def get_invoice_document(invoice_id: int, user_id: int) -> dict:
    return build_document(_load_invoice(user_id, invoice_id, Capability.READ))

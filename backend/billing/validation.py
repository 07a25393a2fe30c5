from __future__ import annotations
from datetime import date
from decimal import Decimal

from dataclasses import dataclass
from typing import Any

from sqlalchemy import JSON, Boolean, Date, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeMeta

from billing.errors import ValidationError
from billing.money import to_decimal
from billing.models import Invoice, InvoiceItem, Product, Shop
from billing.models.invoices import PARTY_FIELDS
from billing.time_utils import parse_iso_date


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - min_lengths: minimum length for string fields when present and non-null
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore
    min_lengths: dict[str, int] | None = None


SHOP_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "legal_name", "gstin", "pan", "cin", "address",
        "state", "state_code", "pin", "bank_detail", "signature_url",
    },
    required_on_create={"name"},
    min_lengths={"name": 2, "address": 5, "state": 2, "pin": 6},
)

INVOICE_POLICY = ModelValidationPolicy(
    writable_fields={
        "serial_no", "invoice_date", "invoice_type",
        "shop_legal_name", "gstin", "pan_no", "cin_no", "address", "state", "state_code",
        "bank_detail", "bill_to", "ship_to", "total", "additional_data",
    },
    required_on_create={"serial_no", "bill_to", "ship_to", "total"},
)

INVOICE_ITEM_POLICY = ModelValidationPolicy(
    writable_fields={
        "description", "hsn_sac_code", "quantity", "unit_value", "discount", "taxable_value",
        "cgst_rate", "cgst_amount", "sgst_rate", "sgst_amount", "igst_rate", "igst_amount",
    },
    required_on_create={"description", "quantity", "unit_value", "taxable_value"},
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "price", "hsn", "category", "cgst", "sgst", "igst", "discount_percent"},
    required_on_create={"name"},
    min_lengths={"name": 2},
)

RATE_FIELDS = {"cgst_rate", "sgst_rate", "igst_rate", "cgst", "sgst", "igst"}
NON_NEGATIVE_FIELDS = {
    "total", "price", "quantity", "unit_value", "discount", "taxable_value",
    "cgst_amount", "sgst_amount", "igst_amount", "discount_percent",
}


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Fixed-point amounts and rates
    if isinstance(coltype, Numeric):
        try:
            d = to_decimal(value, exact=True)
        except ValueError:
            raise ValidationError(f"{col.key} must be a number with at most 2 decimals")
        if coltype.precision and coltype.scale is not None:
            limit = Decimal(10) ** (coltype.precision - coltype.scale)
            if abs(d) >= limit:
                raise ValidationError(f"{col.key} must be less than {limit}")
        return d

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped or not stripped.lstrip("-").isdigit():
                raise ValidationError(f"{col.key} must be an integer")
            return int(stripped)
        raise ValidationError(f"{col.key} must be an integer")

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        return bool(value)

    # Calendar dates (accept ISO-8601 strings)
    if isinstance(coltype, Date):
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            try:
                parsed = parse_iso_date(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 date")
            return parsed
        raise ValidationError(f"{col.key} must be a date")

    if isinstance(coltype, JSON):
        if not isinstance(value, (dict, list)):
            raise ValidationError(f"{col.key} must be an object")
        return value

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        if isinstance(value, (dict, list)):
            raise ValidationError(f"{col.key} must be a string")
        return str(value).strip()

    # Default: leave as-is
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length, Numeric precision)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)
    min_lengths = policy.min_lengths or {}

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "" and k in required:
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        if k in min_lengths and isinstance(val, str) and len(val) < min_lengths[k]:
            raise ValidationError(f"{k} must be at least {min_lengths[k]} characters long")

        patch[k] = val

    _enforce_numeric_ranges(patch)
    return patch


def _enforce_numeric_ranges(patch: dict) -> None:
    for k, v in patch.items():
        if v is None or not isinstance(v, Decimal):
            continue
        if k in NON_NEGATIVE_FIELDS and v < 0:
            raise ValidationError(f"{k} must be >= 0")
        if k in RATE_FIELDS and not (0 <= v <= 100):
            raise ValidationError(f"{k} must be between 0 and 100")


def validate_party(field: str, value: Any) -> dict:
    """bill_to / ship_to record: name required, other keys optional strings."""
    if not isinstance(value, dict):
        raise ValidationError(f"{field} must be an object")

    unknown = set(value) - set(PARTY_FIELDS)
    if unknown:
        raise ValidationError(f"{field} has unknown keys: {', '.join(sorted(unknown))}")

    name = value.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ValidationError(f"{field}.name is required")

    party = {}
    for key in PARTY_FIELDS:
        raw = value.get(key)
        party[key] = None if raw is None else str(raw).strip()
    return party


def validate_shop_payload(payload: dict, *, partial: bool) -> dict:
    return validate_payload(model=Shop, payload=payload, policy=SHOP_POLICY, partial=partial)


def validate_invoice_payload(payload: dict, *, partial: bool) -> dict:
    patch = validate_payload(model=Invoice, payload=payload, policy=INVOICE_POLICY, partial=partial)
    for field in ("bill_to", "ship_to"):
        if field in patch:
            patch[field] = validate_party(field, patch[field])
    if "invoice_type" in patch and not patch["invoice_type"]:
        raise ValidationError("invoice_type cannot be blank")
    return patch


def validate_item_payload(payload: dict, *, partial: bool) -> dict:
    return validate_payload(model=InvoiceItem, payload=payload, policy=INVOICE_ITEM_POLICY, partial=partial)


def validate_product_payload(payload: dict, *, partial: bool) -> dict:
    return validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=partial)


def parse_positive_int(raw: Any, default: int) -> int:
    """Query-string page numbers: non-numeric or < 1 falls back to default."""
    if raw is None or isinstance(raw, bool):
        return default
    try:
        value = int(str(raw).strip())
    except ValueError:
        return default
    return value if value >= 1 else default


def require_search_fragment(raw: Any, name: str = "name") -> str:
    if not isinstance(raw, str) or not raw.strip():
        raise ValidationError(f"Search parameter '{name}' is required", code="INVALID_PARAMETER")
    return raw.strip()

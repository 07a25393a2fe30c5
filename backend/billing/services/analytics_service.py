# Overview: Service-layer read-only aggregates over a shop's invoices and products.

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from ..errors import StorageError, ValidationError
from ..extensions import db
from ..models import Invoice, Product
from ..money import ZERO, format_amount, to_decimal
from ..permissions import Capability
from ..time_utils import month_bounds, start_of_day, utcnow
from .tenant_service import authorize


def _sum_totals(shop_id: int, start: datetime | None = None, end: datetime | None = None, label: str = "sales"):
    try:
        query = db.session.query(func.sum(Invoice.total)).filter(Invoice.shop_id == shop_id)
        if start is not None:
            query = query.filter(Invoice.created_at >= start)
        if end is not None:
            query = query.filter(Invoice.created_at < end)
        value = query.scalar()
    except SQLAlchemyError as exc:
        current_app.logger.exception("Error calculating %s for shop %s", label, shop_id)
        raise StorageError(f"Failed to calculate {label}", code="ANALYTICS_ERROR") from exc

    return format_amount(ZERO if value is None else to_decimal(value))


def today_sales(shop_id: int, user_id: int) -> str:
    authorize(user_id, shop_id, Capability.READ)
    return _sum_totals(shop_id, start=start_of_day(utcnow()), label="today's sales")


def month_sales(shop_id: int, user_id: int, year=None, month=None) -> str:
    """Sum of invoice totals in one calendar month (defaults to the current one)."""
    authorize(user_id, shop_id, Capability.READ)

    now = utcnow()
    try:
        year = now.year if year in (None, "") else int(year)
        month = now.month if month in (None, "") else int(month)
    except (TypeError, ValueError):
        raise ValidationError("year and month must be integers", code="INVALID_PARAMETER")
    if not 1 <= month <= 12 or not 1 <= year < 9999:
        raise ValidationError("month must be 1-12 and year 1-9998", code="INVALID_PARAMETER")

    start, end = month_bounds(year, month)
    return _sum_totals(shop_id, start=start, end=end, label="monthly sales")


def yearly_sales(shop_id: int, user_id: int) -> str:
    authorize(user_id, shop_id, Capability.READ)
    start = datetime(utcnow().year, 1, 1)
    return _sum_totals(shop_id, start=start, label="yearly sales")


def net_income(shop_id: int, user_id: int) -> str:
    authorize(user_id, shop_id, Capability.READ)
    return _sum_totals(shop_id, label="net income")


def product_count(shop_id: int, user_id: int) -> int:
    authorize(user_id, shop_id, Capability.READ)
    try:
        return db.session.query(func.count(Product.id)).filter(Product.shop_id == shop_id).scalar() or 0
    except SQLAlchemyError as exc:
        current_app.logger.exception("Error counting products for shop %s", shop_id)
        raise StorageError("Failed to count products", code="ANALYTICS_ERROR") from exc

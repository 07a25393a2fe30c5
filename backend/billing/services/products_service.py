# backend/billing/services/products_service.py
"""
Products Service

MULTI-TENANT: All product operations are shop-scoped.
- queries (list, get, search) need READ on the shop
- create, bulk create, update, delete need WRITE on the shop
- products addressed by id report a missing edge as PRODUCT_NOT_FOUND
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..errors import NotFoundError, StorageError, ValidationError
from ..extensions import db
from ..models import Product
from ..permissions import Capability
from ..validation import parse_positive_int, require_search_fragment, validate_product_payload
from .tenant_service import authorize, authorize_resource
from .unit_of_work import run_atomic


def _product_not_found() -> NotFoundError:
    return NotFoundError("Product not found", code="PRODUCT_NOT_FOUND")


def _product_fields(payload, *, partial: bool) -> dict:
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    data = dict(payload)
    data.pop("id", None)
    data.pop("shop_id", None)
    return validate_product_payload(data, partial=partial)


def _load_product(user_id: int, product_id: int, capability: str) -> Product:
    product = db.session.query(Product).filter_by(id=product_id).first()
    if not product:
        raise _product_not_found()
    authorize_resource(user_id, product.shop_id, capability, _product_not_found())
    return product


def create_product(shop_id: int, user_id: int, payload: dict) -> Product:
    fields = _product_fields(payload, partial=False)

    def _op(session):
        authorize(user_id, shop_id, Capability.WRITE)
        product = Product(shop_id=shop_id, **fields)
        session.add(product)
        session.flush()
        return product

    product = run_atomic(_op, "Error creating product")
    current_app.logger.info("Product %s created in shop %s by user %s", product.id, shop_id, user_id)
    return product


def bulk_create_products(shop_id: int, user_id: int, payload) -> list[Product]:
    """
    Create many products at once. All-or-nothing: one invalid entry rejects
    the whole batch.

    Raises:
        ValidationError: payload is not a list, or an entry is invalid (the
        error details carry the offending index)
    """
    if not isinstance(payload, list):
        raise ValidationError("Request body must be an array of products")

    rows = []
    for index, raw in enumerate(payload):
        try:
            rows.append(_product_fields(raw, partial=False))
        except ValidationError as exc:
            raise ValidationError(f"Product {index}: {exc.message}", details={"index": index}) from exc

    def _op(session):
        authorize(user_id, shop_id, Capability.WRITE)
        products = [Product(shop_id=shop_id, **fields) for fields in rows]
        session.add_all(products)
        session.flush()
        return products

    products = run_atomic(_op, "Error creating products in bulk")
    current_app.logger.info("%d products created in shop %s by user %s", len(products), shop_id, user_id)
    return products


def list_products(shop_id: int, user_id: int, page=None, limit=None) -> dict:
    """
    Paginated product listing, ordered by name.

    Returns:
        {"items": [...], "count": n, "pagination": {...}}
    """
    authorize(user_id, shop_id, Capability.READ)

    page = parse_positive_int(page, 1)
    per_page = parse_positive_int(limit, current_app.config.get("DEFAULT_PAGE_SIZE", 10))
    per_page = min(per_page, current_app.config.get("MAX_PAGE_SIZE", 100))

    try:
        base_query = (
            db.session.query(Product)
            .filter(Product.shop_id == shop_id)
            .order_by(Product.name.asc(), Product.id.asc())
        )
        total = base_query.count()
        products = base_query.offset((page - 1) * per_page).limit(per_page).all()
    except SQLAlchemyError as exc:
        current_app.logger.exception("Error fetching products for shop %s", shop_id)
        raise StorageError("Failed to fetch products", code="PRODUCT_FETCH_ERROR") from exc

    total_pages = (total + per_page - 1) // per_page if total > 0 else 1
    return {
        "items": [p.to_dict() for p in products],
        "count": len(products),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def get_product(product_id: int, user_id: int) -> Product:
    return _load_product(user_id, product_id, Capability.READ)


def update_product(product_id: int, user_id: int, payload: dict) -> Product:
    patch = _product_fields(payload, partial=True)

    def _op(session):
        product = _load_product(user_id, product_id, Capability.WRITE)
        for key, value in patch.items():
            setattr(product, key, value)
        session.flush()
        return product

    product = run_atomic(_op, "Error updating product")
    current_app.logger.info("Product %s updated by user %s", product_id, user_id)
    return product


def delete_product(product_id: int, user_id: int) -> None:
    def _op(session):
        product = _load_product(user_id, product_id, Capability.WRITE)
        session.delete(product)
        session.flush()

    run_atomic(_op, "Error deleting product")
    current_app.logger.info("Product %s deleted by user %s", product_id, user_id)


def search_products(shop_id: int, user_id: int, query) -> list[Product]:
    """Case-insensitive substring match on product name."""
    fragment = require_search_fragment(query, "query")
    authorize(user_id, shop_id, Capability.READ)

    escaped = fragment.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    try:
        return (
            db.session.query(Product)
            .filter(Product.shop_id == shop_id)
            .filter(Product.name.ilike(f"%{escaped}%", escape="\\"))
            .order_by(Product.name.asc(), Product.id.asc())
            .all()
        )
    except SQLAlchemyError as exc:
        current_app.logger.exception("Error searching products in shop %s", shop_id)
        raise StorageError("Failed to search products", code="SEARCH_ERROR") from exc

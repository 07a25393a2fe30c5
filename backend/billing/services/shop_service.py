# Overview: Service-layer operations for shops; creation is paired with the creator's OWNER edge.

"""
Shop Service

WHY: A shop never exists without an OWNER. create_shop() writes the Shop
row and the creator's UserShop(OWNER) edge in one Unit-of-Work: if the edge
insert fails, the shop insert is rolled back with it.

SECURITY: Reads need READ, edits need WRITE, deletion needs DELETE on the
shop (see permissions.py). Deletion cascades to invoices, items, products
and tenancy edges.
"""

from __future__ import annotations

from flask import current_app

from ..models import Shop, User
from ..permissions import Capability, ShopRole
from ..validation import validate_shop_payload
from .tenant_service import authorize
from .unit_of_work import run_atomic
from .user_shop_service import add_edge


def _add_owner_edge(session, shop: Shop, user: User):
    return add_edge(session, user.id, shop.id, ShopRole.OWNER)


def create_shop(payload: dict, creator: User) -> Shop:
    """
    Create a shop and make `creator` its OWNER.

    Args:
        payload: Shop fields (validated against SHOP_POLICY)
        creator: Authenticated user; receives the OWNER edge

    Returns:
        The persisted Shop

    Raises:
        ValidationError: payload fails validation
        ConflictError(USER_SHOP_EXISTS): edge insert collided
    """
    data = dict(payload or {})
    data.pop("id", None)
    fields = validate_shop_payload(data, partial=False)

    def _op(session):
        shop = Shop(**fields)
        session.add(shop)
        session.flush()
        _add_owner_edge(session, shop, creator)
        return shop

    shop = run_atomic(_op, "Error creating shop")
    current_app.logger.info("Shop %s created by user %s", shop.id, creator.id)
    return shop


def get_shop(user_id: int, shop_id: int) -> Shop:
    return authorize(user_id, shop_id, Capability.READ).shop


def update_shop(user_id: int, shop_id: int, payload: dict) -> Shop:
    """
    Patch shop fields. Issued invoices are not touched: their issuer fields
    are snapshots taken at creation.
    """
    data = dict(payload or {})
    data.pop("id", None)
    patch = validate_shop_payload(data, partial=True)

    def _op(session):
        shop = authorize(user_id, shop_id, Capability.WRITE).shop
        for key, value in patch.items():
            setattr(shop, key, value)
        session.flush()
        return shop

    shop = run_atomic(_op, "Error updating shop")
    current_app.logger.info("Shop %s updated by user %s (%s)", shop_id, user_id, ", ".join(sorted(patch)))
    return shop


def delete_shop(user_id: int, shop_id: int) -> None:
    def _op(session):
        shop = authorize(user_id, shop_id, Capability.DELETE).shop
        session.delete(shop)
        session.flush()

    run_atomic(_op, "Error deleting shop")
    current_app.logger.info("Shop %s deleted by user %s", shop_id, user_id)

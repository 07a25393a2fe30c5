"""
Tenant Service: Shop Authorization and Scoping Helpers

WHY: Centralize the "may this user do this to this shop" decision. The
UserShop edge is the only source of truth; nothing else grants access.

SECURITY INVARIANTS:
1. Every shop-scoped operation calls authorize() (or authorize_resource())
   before touching shop data
2. A missing shop is SHOP_NOT_FOUND; an existing shop without a sufficient
   edge is SHOP_ACCESS_DENIED
3. Resources reached by their own id (invoice, item, product) report a
   missing edge exactly like a missing row, so ids outside the caller's
   tenancy are not confirmed to exist
4. Denials are logged at WARNING for monitoring

USAGE:
    from billing.services.tenant_service import authorize
    from billing.permissions import Capability

    edge = authorize(user_id, shop_id, Capability.WRITE)
"""

from __future__ import annotations

from flask import current_app

from ..errors import AccessDeniedError, NotFoundError
from ..extensions import db
from ..models import Shop, UserShop
from ..permissions import role_allows


def get_shop(shop_id: int) -> Shop:
    """
    Load a shop by id.

    Raises NotFoundError(SHOP_NOT_FOUND) when no such shop exists.
    """
    shop = db.session.query(Shop).filter_by(id=shop_id).first()
    if not shop:
        raise NotFoundError("Shop not found", code="SHOP_NOT_FOUND")
    return shop


def get_edge(user_id: int, shop_id: int) -> UserShop | None:
    return db.session.query(UserShop).filter_by(user_id=user_id, shop_id=shop_id).first()


def authorize(user_id: int, shop_id: int, capability: str) -> UserShop:
    """
    Validate that a user holds a capability on a shop.

    Args:
        user_id: Verified caller identity
        shop_id: Target shop (typically from the request path)
        capability: One of permissions.Capability

    Returns:
        The caller's UserShop edge (edge.shop is the Shop)

    Raises:
        NotFoundError(SHOP_NOT_FOUND) if the shop does not exist
        AccessDeniedError(SHOP_ACCESS_DENIED) if there is no edge or the
        edge's role lacks the capability
    """
    get_shop(shop_id)

    edge = get_edge(user_id, shop_id)
    if edge is None:
        _log_denial(user_id, shop_id, capability, "no association")
        raise AccessDeniedError("Unauthorized access to shop", code="SHOP_ACCESS_DENIED")

    if not role_allows(edge.role, capability):
        _log_denial(user_id, shop_id, capability, f"role {edge.role}")
        raise AccessDeniedError(
            f"Role {edge.role} cannot perform this action",
            code="SHOP_ACCESS_DENIED",
            details={"role": edge.role, "required": capability},
        )

    return edge


def authorize_resource(user_id: int, shop_id: int, capability: str, not_found: NotFoundError) -> UserShop:
    """
    authorize() for resources addressed by their own id.

    A missing edge raises `not_found` instead of SHOP_ACCESS_DENIED. An edge
    with an insufficient role still raises SHOP_ACCESS_DENIED: the caller can
    already read the resource, so nothing is leaked.
    """
    edge = get_edge(user_id, shop_id)
    if edge is None:
        _log_denial(user_id, shop_id, capability, "no association")
        raise not_found

    if not role_allows(edge.role, capability):
        _log_denial(user_id, shop_id, capability, f"role {edge.role}")
        raise AccessDeniedError(
            f"Role {edge.role} cannot perform this action",
            code="SHOP_ACCESS_DENIED",
            details={"role": edge.role, "required": capability},
        )

    return edge


def _log_denial(user_id: int, shop_id: int, capability: str, reason: str) -> None:
    current_app.logger.warning(
        "Shop access denied: user=%s shop=%s capability=%s (%s)",
        user_id, shop_id, capability, reason,
    )

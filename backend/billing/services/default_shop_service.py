"""
Default-Shop Selector

WHY: Most requests act on "my shop" without naming one. The implicit target
is User.default_shop_id, a logical pointer (no foreign key) into shops.

INVARIANTS:
- The pointer can reference at most one shop, so "exactly one default" holds
  structurally. Concurrent set_default() calls race last-write-wins.
- The pointer is only written for a shop the user has an edge to.
- A pointer that no longer resolves through an edge means "no default"; it
  is never an error and is never silently repaired on read.

REGISTRATION: the auto-created default shop is best-effort
(create_default_shop is called after the user row is committed). A failure
is logged and left for ensure_default_shop(), which the
`flask users ensure-default-shops` command retries for every user.
"""

from __future__ import annotations

from flask import current_app

from ..errors import BillingError, NotFoundError
from ..extensions import db
from ..models import Shop, User, UserShop
from .shop_service import create_shop
from .unit_of_work import run_atomic

DEFAULT_SHOP_ADDRESS = "Default Address"
DEFAULT_SHOP_STATE = "Default State"
DEFAULT_SHOP_PIN = "000000"


def default_shop_name(username: str) -> str:
    return f"{username}'s Shop"


def set_default(user_id: int, shop_id: int) -> User:
    """
    Point the user's default at `shop_id`.

    Raises BillingError(SHOP_UPDATE_ERROR) when the user has no edge to the
    shop (including when the shop does not exist). The prior pointer is left
    unchanged on failure.
    """
    def _op(session):
        user = session.query(User).filter_by(id=user_id).first()
        if not user:
            raise NotFoundError("User not found", code="USER_NOT_FOUND")

        edge = session.query(UserShop).filter_by(user_id=user_id, shop_id=shop_id).first()
        if not edge:
            raise BillingError(
                "Cannot set default: user is not associated with this shop",
                code="SHOP_UPDATE_ERROR",
            )

        user.default_shop_id = shop_id
        session.flush()
        return user

    user = run_atomic(_op, "Error setting default shop")
    current_app.logger.info("Default shop for user %s set to %s", user_id, shop_id)
    return user


def get_default(user_id: int) -> Shop | None:
    """Resolve the pointer through the user's edge; None when unset or dangling."""
    user = db.session.query(User).filter_by(id=user_id).first()
    if not user or user.default_shop_id is None:
        return None

    return (
        db.session.query(Shop)
        .join(UserShop, UserShop.shop_id == Shop.id)
        .filter(UserShop.user_id == user_id, Shop.id == user.default_shop_id)
        .first()
    )


def create_default_shop(user: User) -> Shop:
    """
    Create "<username>'s Shop", make the user its OWNER and point the
    default at it, all in one unit.
    """
    def _op(session):
        shop = create_shop(
            {
                "name": default_shop_name(user.username),
                "address": DEFAULT_SHOP_ADDRESS,
                "state": DEFAULT_SHOP_STATE,
                "pin": DEFAULT_SHOP_PIN,
            },
            user,
        )
        user.default_shop_id = shop.id
        session.flush()
        return shop

    shop = run_atomic(_op, "Error creating default shop")
    current_app.logger.info("Default shop %s created for user %s", shop.id, user.id)
    return shop


def ensure_default_shop(user_id: int) -> Shop | None:
    """
    Retryable follow-up for the best-effort registration step.

    Creates a default shop only when the user has no shop associations and
    no resolvable default. Returns the new shop, or None when nothing had
    to be done.
    """
    user = db.session.query(User).filter_by(id=user_id).first()
    if not user:
        raise NotFoundError("User not found", code="USER_NOT_FOUND")

    if get_default(user_id) is not None:
        return None
    if db.session.query(UserShop).filter_by(user_id=user_id).first() is not None:
        return None

    return create_default_shop(user)

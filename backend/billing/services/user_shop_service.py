from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Shop, User, UserShop
from ..permissions import Capability, ShopRole, normalize_role
from .tenant_service import authorize, get_shop
from .unit_of_work import run_atomic


def add_edge(session, user_id: int, shop_id: int, role: str) -> UserShop:
    """
    Insert a tenancy edge inside an open unit of work.

    Raises ConflictError(USER_SHOP_EXISTS) if the pair is already associated.
    """
    existing = session.query(UserShop).filter_by(user_id=user_id, shop_id=shop_id).first()
    if existing:
        raise ConflictError("User is already associated with this shop", code="USER_SHOP_EXISTS")

    edge = UserShop(user_id=user_id, shop_id=shop_id, role=role)
    session.add(edge)
    try:
        session.flush()
    except IntegrityError:
        raise ConflictError("User is already associated with this shop", code="USER_SHOP_EXISTS")
    return edge


def associate_user(user_id: int, shop_id: int, role: str) -> UserShop:
    """
    Associate a user with a shop under a role.

    Duplicate association is a caller error, not a no-op.
    """
    normalized = normalize_role(role)
    if normalized is None:
        raise ValidationError(f"Invalid role: {role!r}", details={"allowed": list(ShopRole.ALL)})

    def _op(session):
        user = session.query(User).filter_by(id=user_id).first()
        if not user:
            raise NotFoundError("User not found", code="USER_NOT_FOUND")
        get_shop(shop_id)
        return add_edge(session, user_id, shop_id, normalized)

    edge = run_atomic(_op, "Error in user-shop association creation")
    current_app.logger.info(
        "User-Shop association created for user %s and shop %s as %s", user_id, shop_id, normalized
    )
    return edge


def add_member(actor_user_id: int, shop_id: int, username: str, role: str) -> UserShop:
    """Manage-roles gated association of another user, addressed by username."""
    authorize(actor_user_id, shop_id, Capability.MANAGE_ROLES)

    if not isinstance(username, str) or not username.strip():
        raise ValidationError("username is required")
    user = db.session.query(User).filter_by(username=username.strip()).first()
    if not user:
        raise NotFoundError("User not found", code="USER_NOT_FOUND")

    return associate_user(user.id, shop_id, role)


def list_shops_for_user(user_id: int) -> list[tuple[Shop, str]]:
    """Every shop the user has an edge to, paired with the user's role there."""
    rows = (
        db.session.query(Shop, UserShop.role)
        .join(UserShop, UserShop.shop_id == Shop.id)
        .filter(UserShop.user_id == user_id)
        .order_by(Shop.created_at.asc(), Shop.id.asc())
        .all()
    )
    return [(shop, role) for shop, role in rows]


def list_shop_users(actor_user_id: int, shop_id: int) -> list[tuple[User, str]]:
    authorize(actor_user_id, shop_id, Capability.READ)
    rows = (
        db.session.query(User, UserShop.role)
        .join(UserShop, UserShop.user_id == User.id)
        .filter(UserShop.shop_id == shop_id)
        .order_by(User.username.asc())
        .all()
    )
    return [(user, role) for user, role in rows]


def _count_owners(session, shop_id: int) -> int:
    return session.query(UserShop).filter_by(shop_id=shop_id, role=ShopRole.OWNER).count()


def _get_edge_or_404(session, user_id: int, shop_id: int) -> UserShop:
    edge = session.query(UserShop).filter_by(user_id=user_id, shop_id=shop_id).first()
    if not edge:
        raise NotFoundError("User-Shop association not found", code="USER_SHOP_NOT_FOUND")
    return edge


def update_user_role(actor_user_id: int, shop_id: int, target_user_id: int, role: str) -> UserShop:
    """
    Change another member's role.

    A shop always keeps at least one OWNER: demoting the last one fails
    with LAST_OWNER.
    """
    normalized = normalize_role(role)
    if normalized is None:
        raise ValidationError(f"Invalid role: {role!r}", details={"allowed": list(ShopRole.ALL)})

    def _op(session):
        authorize(actor_user_id, shop_id, Capability.MANAGE_ROLES)
        edge = _get_edge_or_404(session, target_user_id, shop_id)

        if edge.role == ShopRole.OWNER and normalized != ShopRole.OWNER:
            if _count_owners(session, shop_id) <= 1:
                raise ConflictError("Shop must keep at least one owner", code="LAST_OWNER")

        edge.role = normalized
        session.flush()
        return edge

    edge = run_atomic(_op, "Error updating user-shop role")
    current_app.logger.info("User role updated for user %s in shop %s to %s", target_user_id, shop_id, normalized)
    return edge


def remove_user(actor_user_id: int, shop_id: int, target_user_id: int) -> None:
    """
    Remove a member from a shop. Any member may remove themselves unless
    they are the last OWNER; removing others requires manage-roles.
    """
    def _op(session):
        if actor_user_id != target_user_id:
            authorize(actor_user_id, shop_id, Capability.MANAGE_ROLES)
        else:
            get_shop(shop_id)

        edge = _get_edge_or_404(session, target_user_id, shop_id)
        if edge.role == ShopRole.OWNER and _count_owners(session, shop_id) <= 1:
            raise ConflictError("Shop must keep at least one owner", code="LAST_OWNER")

        session.delete(edge)
        session.flush()

    run_atomic(_op, "Error deleting user-shop association")
    current_app.logger.info("User-Shop association removed for user %s and shop %s", target_user_id, shop_id)

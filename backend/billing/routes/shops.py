# Overview: Flask API routes for shops, default-shop selection and shop membership.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth
from ..services import default_shop_service, shop_service, user_shop_service


shops_bp = Blueprint("shops", __name__, url_prefix="/api/shops")


@shops_bp.get("")
@require_auth
def list_shops():
    rows = user_shop_service.list_shops_for_user(g.current_user.id)
    return jsonify([{**shop.to_dict(), "role": role} for shop, role in rows]), 200


@shops_bp.post("")
@require_auth
def create_shop():
    data = request.get_json(silent=True) or {}
    shop = shop_service.create_shop(data, g.current_user)
    return jsonify(shop.to_dict()), 201


# Registered before /<int:shop_id> so "default" is never parsed as an id
@shops_bp.get("/default")
@require_auth
def get_default_shop():
    shop = default_shop_service.get_default(g.current_user.id)
    return jsonify(shop.to_dict() if shop else None), 200


@shops_bp.get("/<int:shop_id>")
@require_auth
def get_shop(shop_id: int):
    shop = shop_service.get_shop(g.current_user.id, shop_id)
    return jsonify(shop.to_dict()), 200


@shops_bp.put("/<int:shop_id>")
@require_auth
def update_shop(shop_id: int):
    data = request.get_json(silent=True) or {}
    shop = shop_service.update_shop(g.current_user.id, shop_id, data)
    return jsonify(shop.to_dict()), 200


@shops_bp.delete("/<int:shop_id>")
@require_auth
def delete_shop(shop_id: int):
    shop_service.delete_shop(g.current_user.id, shop_id)
    return jsonify({"message": "Shop deleted"}), 200


@shops_bp.put("/<int:shop_id>/default")
@require_auth
def set_default_shop(shop_id: int):
    default_shop_service.set_default(g.current_user.id, shop_id)
    shop = default_shop_service.get_default(g.current_user.id)
    return jsonify(shop.to_dict() if shop else None), 200


@shops_bp.get("/<int:shop_id>/users")
@require_auth
def list_shop_users(shop_id: int):
    rows = user_shop_service.list_shop_users(g.current_user.id, shop_id)
    return jsonify([{**user.to_dict(), "role": role} for user, role in rows]), 200


@shops_bp.post("/<int:shop_id>/users")
@require_auth
def add_shop_user(shop_id: int):
    data = request.get_json(silent=True) or {}
    edge = user_shop_service.add_member(
        g.current_user.id,
        shop_id,
        data.get("username"),
        data.get("role"),
    )
    return jsonify(edge.to_dict()), 201


@shops_bp.put("/<int:shop_id>/users/<int:user_id>")
@require_auth
def update_shop_user(shop_id: int, user_id: int):
    data = request.get_json(silent=True) or {}
    edge = user_shop_service.update_user_role(g.current_user.id, shop_id, user_id, data.get("role"))
    return jsonify(edge.to_dict()), 200


@shops_bp.delete("/<int:shop_id>/users/<int:user_id>")
@require_auth
def remove_shop_user(shop_id: int, user_id: int):
    user_shop_service.remove_user(g.current_user.id, shop_id, user_id)
    return jsonify({"message": "User removed from shop"}), 200

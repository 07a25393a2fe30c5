# Overview: Flask API routes for per-shop sales analytics.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth
from ..services import analytics_service


analytics_bp = Blueprint("analytics", __name__, url_prefix="/api/shops/<int:shop_id>/analytics")


@analytics_bp.get("/today")
@require_auth
def today(shop_id: int):
    return jsonify({"total": analytics_service.today_sales(shop_id, g.current_user.id)}), 200


@analytics_bp.get("/month")
@require_auth
def month(shop_id: int):
    total = analytics_service.month_sales(
        shop_id,
        g.current_user.id,
        year=request.args.get("year"),
        month=request.args.get("month"),
    )
    return jsonify({"total": total}), 200


@analytics_bp.get("/year")
@require_auth
def year(shop_id: int):
    return jsonify({"total": analytics_service.yearly_sales(shop_id, g.current_user.id)}), 200


@analytics_bp.get("/net-income")
@require_auth
def net_income(shop_id: int):
    return jsonify({"total": analytics_service.net_income(shop_id, g.current_user.id)}), 200


@analytics_bp.get("/product-count")
@require_auth
def product_count(shop_id: int):
    return jsonify({"count": analytics_service.product_count(shop_id, g.current_user.id)}), 200

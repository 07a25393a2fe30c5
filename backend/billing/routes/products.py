# Overview: Flask API routes for the product catalog; parses input and returns JSON responses.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth
from ..services import products_service


products_bp = Blueprint("products", __name__, url_prefix="/api")


@products_bp.get("/shops/<int:shop_id>/products")
@require_auth
def list_products(shop_id: int):
    result = products_service.list_products(
        shop_id,
        g.current_user.id,
        page=request.args.get("page"),
        limit=request.args.get("limit"),
    )
    return jsonify(result), 200


@products_bp.post("/shops/<int:shop_id>/products")
@require_auth
def create_product(shop_id: int):
    data = request.get_json(silent=True)
    product = products_service.create_product(shop_id, g.current_user.id, data)
    return jsonify(product.to_dict()), 201


@products_bp.post("/shops/<int:shop_id>/products/bulk")
@require_auth
def bulk_create_products(shop_id: int):
    data = request.get_json(silent=True)
    products = products_service.bulk_create_products(shop_id, g.current_user.id, data)
    return jsonify([p.to_dict() for p in products]), 201


@products_bp.get("/shops/<int:shop_id>/products/search")
@require_auth
def search_products(shop_id: int):
    products = products_service.search_products(shop_id, g.current_user.id, request.args.get("query"))
    return jsonify([p.to_dict() for p in products]), 200


@products_bp.get("/products/<int:product_id>")
@require_auth
def get_product(product_id: int):
    product = products_service.get_product(product_id, g.current_user.id)
    return jsonify(product.to_dict()), 200


@products_bp.put("/products/<int:product_id>")
@require_auth
def update_product(product_id: int):
    data = request.get_json(silent=True)
    product = products_service.update_product(product_id, g.current_user.id, data)
    return jsonify(product.to_dict()), 200


@products_bp.delete("/products/<int:product_id>")
@require_auth
def delete_product(product_id: int):
    products_service.delete_product(product_id, g.current_user.id)
    return jsonify({"message": "Product deleted"}), 200

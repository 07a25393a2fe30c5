# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

- POST /register: create an account (plus a best-effort default shop)
- POST /login: exchange credentials for a bearer token
- POST /logout: revoke the presented token
- GET /me: profile with the caller's shops and roles
"""

from flask import Blueprint, g, jsonify, request

from ..decorators import bearer_token, require_auth
from ..services import auth_service, default_shop_service, session_service, user_shop_service


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/register")
def register_route():
    data = request.get_json(silent=True) or {}
    user = auth_service.register_user(
        username=data.get("username"),
        password=data.get("password"),
        email=data.get("email"),
    )
    return jsonify({"user": user.to_dict(), "message": "Registration successful"}), 201


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be included in Authorization header for protected routes.
    """
    data = request.get_json(silent=True) or {}
    identifier = data.get("username") or data.get("email") or data.get("identifier")
    password = data.get("password")

    if not identifier or not password:
        return jsonify({"error": "username/email and password required", "code": "VALIDATION_ERROR"}), 400

    user, token = auth_service.login(
        identifier,
        password,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )
    return jsonify({"user": user.to_dict(), "token": token, "message": "Login successful"}), 200


@auth_bp.post("/logout")
def logout_route():
    """
    Revoke session token (logout).

    WHY: Explicit logout prevents token reuse.
    """
    token = bearer_token()
    if not token:
        return jsonify({"error": "Authorization header required", "code": "AUTHENTICATION_REQUIRED"}), 401

    if not session_service.revoke_session(token, reason="User logout"):
        return jsonify({"error": "Invalid or expired token", "code": "INVALID_TOKEN"}), 401

    return jsonify({"message": "Logout successful"}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    user = g.current_user
    default_shop = default_shop_service.get_default(user.id)
    shops = [
        {**shop.to_dict(), "role": role}
        for shop, role in user_shop_service.list_shops_for_user(user.id)
    ]
    return jsonify({
        "user": user.to_dict(),
        "shops": shops,
        "default_shop": default_shop.to_dict() if default_shop else None,
    }), 200

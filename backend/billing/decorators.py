# Overview: Request decorators for API routes.

from functools import wraps

from flask import current_app, g, jsonify, request

from .services import session_service


def bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return token or None


def require_auth(f):
    """
    Require a valid session token.

    Sets g.current_user to the authenticated User. Services receive
    g.current_user.id and trust it completely.

    SECURITY: Returns 401 if:
    - No Authorization header
    - Invalid, expired, idle or revoked token
    - User account deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        if not token:
            return jsonify({"error": "Authentication required", "code": "AUTHENTICATION_REQUIRED"}), 401

        user = session_service.validate_session(token)
        if not user:
            current_app.logger.warning("Rejected token on %s %s", request.method, request.path)
            return jsonify({"error": "Invalid or expired token", "code": "INVALID_TOKEN"}), 401

        g.current_user = user
        return f(*args, **kwargs)

    return decorated_function

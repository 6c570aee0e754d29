# Overview: Request authentication and role decorators for API routes.

from functools import wraps
from flask import request, jsonify, g, current_app

from .services import session_service


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return token or None


def require_auth(f):
    """
    Require a valid session token.

    Sets g.auth to the caller's AuthContext (user id, email, role). Routes pass
    g.auth on to services explicitly.

    Returns 401 if the Authorization header is missing, or the token is
    invalid, expired, revoked, or belongs to a deactivated user.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if token is None:
            return jsonify({"error": "Authentication required"}), 401

        context = session_service.validate_session(token)
        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.auth = context
        g.auth_token = token
        return f(*args, **kwargs)

    return decorated_function


def require_admin(f):
    """Require the authenticated caller to hold the admin role."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth = getattr(g, "auth", None)
        if auth is None:
            return jsonify({"error": "Authentication required"}), 401

        if not auth.is_admin:
            current_app.logger.warning(
                "Non-admin user %s attempted %s %s", auth.user_id, request.method, request.path
            )
            return jsonify({
                "error": "Permission denied",
                "message": "Admin role required",
            }), 403

        return f(*args, **kwargs)

    return decorated_function

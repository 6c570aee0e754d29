# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/pharmapos/routes/auth.py
"""
Authentication API routes

SECURITY FEATURES:
- Password strength validation on signup
- Self-signup always creates a plain "user" account
- Session management with token-based auth
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth
from ..extensions import db
from ..models import User
from ..models.auth import ROLE_USER
from ..services import auth_service
from ..services import session_service
from ..services.auth_service import PasswordValidationError
from ..time_utils import to_utc_z
from ..validation import ConflictError, ValidationError


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/signup")
def signup_route():
    """
    Register a new account.

    Body: {email, password, name, surname}. The role is always "user";
    admins are promoted through PUT /api/users/<id> or the CLI.
    """
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    password = data.get("password")

    if not all([email, password]):
        return jsonify({"error": "email and password required"}), 400

    try:
        user = auth_service.create_user(
            email,
            password,
            role=ROLE_USER,
            name=data.get("name") or "",
            surname=data.get("surname") or "",
        )
    except (ValidationError, PasswordValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to sign up user")
        return jsonify({"error": "Internal server error"}), 500

    current_app.logger.info("New account %s signed up", user.id)
    return jsonify({"success": True, "user": user.to_dict()}), 201


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be included in Authorization header for protected routes.
    """
    try:
        data = request.get_json(silent=True) or {}
        email = data.get("email")
        password = data.get("password")

        if not all([email, password]):
            return jsonify({"error": "email and password required"}), 400

        user = auth_service.authenticate(email, password)
        if not user:
            current_app.logger.warning("Failed login for %s from %s", email, request.remote_addr)
            return jsonify({"success": False, "error": "Invalid credentials"}), 401

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )

        return jsonify({
            "success": True,
            "token": token,
            "user": user.to_dict(),
            "expiresAt": to_utc_z(session.expires_at),
            "message": "Login successful"
        }), 200

    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    """Revoke the session token the request was made with."""
    session_service.revoke_session(g.auth_token, reason="User logout")
    return jsonify({"message": "Logout successful"}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    user = db.session.get(User, g.auth.user_id)
    if user is None:
        return jsonify({"error": "User not found"}), 404
    return jsonify({"user": user.to_dict()}), 200

# Overview: Flask API routes for user management; parses input and returns JSON responses.

# backend/pharmapos/routes/users.py
"""
User management routes.

- GET    /api/users        admins see every account, others only themselves
- POST   /api/users        admin only
- PUT    /api/users/<id>   admin, or the account owner for profile fields
- DELETE /api/users/<id>   admin only, never your own account
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_admin
from ..extensions import db
from ..models.auth import ROLE_USER
from ..services import auth_service
from ..services.auth_context import AuthorizationError
from ..services.auth_service import PasswordValidationError
from ..validation import ConflictError, ValidationError

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
def list_users_route():
    users = auth_service.list_users(g.auth)
    result = [u.to_dict() for u in users]
    return jsonify({"users": result, "count": len(result)}), 200


@users_bp.post("")
@require_auth
@require_admin
def create_user_route():
    """
    Create a new user.

    Request body:
    - email: str (required)
    - password: str (required)
    - name, surname: str (optional)
    - role: "user" | "admin" (optional, default "user")
    """
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    password = data.get("password")

    if not all([email, password]):
        return jsonify({"error": "email and password required"}), 400

    try:
        user = auth_service.create_user_as(
            g.auth,
            email=email,
            password=password,
            role=data.get("role") or ROLE_USER,
            name=data.get("name") or "",
            surname=data.get("surname") or "",
        )
    except (ValidationError, PasswordValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except AuthorizationError as e:
        return jsonify({"error": "Permission denied", "message": str(e)}), 403

    current_app.logger.info("Admin %s created user %s (%s)", g.auth.user_id, user.id, user.role)
    return jsonify({"user": user.to_dict()}), 201


@users_bp.put("/<user_id>")
@require_auth
def update_user_route(user_id: str):
    """Update profile fields; role and isActive changes need an admin."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data:
        return jsonify({"error": "Request body must be a non-empty JSON object"}), 400

    try:
        user = auth_service.update_user(g.auth, user_id, data)
    except AuthorizationError as e:
        db.session.rollback()
        return jsonify({"error": "Permission denied", "message": str(e)}), 403
    except (ValidationError, PasswordValidationError) as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 409

    if user is None:
        return jsonify({"error": "User not found"}), 404

    current_app.logger.info("User %s updated account %s", g.auth.user_id, user_id)
    return jsonify({"user": user.to_dict()}), 200


@users_bp.delete("/<user_id>")
@require_auth
@require_admin
def delete_user_route(user_id: str):
    try:
        deleted = auth_service.delete_user(g.auth, user_id)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except AuthorizationError as e:
        return jsonify({"error": "Permission denied", "message": str(e)}), 403

    if not deleted:
        return jsonify({"error": "User not found"}), 404

    current_app.logger.info("Admin %s deleted user %s", g.auth.user_id, user_id)
    return jsonify({"message": "User deleted successfully", "userId": user_id}), 200

# Overview: Service-layer operations for user accounts and credentials.

"""
Authentication and user management

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters, with uppercase, lowercase, digit and special char
- Session tokens managed separately (see session_service.py)
- Role changes and account creation/deletion are admin operations; a user may
  edit their own profile fields
"""

import re

import bcrypt

from ..extensions import db
from ..models import User
from ..models.auth import ROLE_USER, ROLES
from ..time_utils import utcnow
from ..validation import ConflictError, ValidationError
from .auth_context import AuthContext, AuthorizationError

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PROFILE_FIELDS = {"name", "surname", "email"}


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Raises PasswordValidationError if requirements not met.
    """
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """Hash password using bcrypt with cost factor 12, after the strength check."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt check. Malformed hashes never verify."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def _normalize_email(email: str | None) -> str:
    email = (email or "").strip().lower()
    if not EMAIL_RE.match(email):
        raise ValidationError("A valid email is required")
    return email


def _check_role(role: str) -> str:
    role = (role or "").strip().lower()
    if role not in ROLES:
        raise ValidationError(f"role must be one of: {', '.join(ROLES)}")
    return role


def create_user(
    email: str,
    password: str,
    *,
    role: str = ROLE_USER,
    name: str = "",
    surname: str = "",
) -> User:
    """
    Create new user with bcrypt password hashing.

    Raises:
        ValidationError: bad email or role
        ConflictError: email already registered
        PasswordValidationError: weak password
    """
    email = _normalize_email(email)
    role = _check_role(role)

    if db.session.query(User).filter_by(email=email).first():
        raise ConflictError("A user with this email already exists")

    user = User(
        email=email,
        role=role,
        name=(name or "").strip(),
        surname=(surname or "").strip(),
        password_hash=hash_password(password),
    )

    db.session.add(user)
    db.session.commit()
    return user


def authenticate(email: str, password: str) -> User | None:
    """
    Authenticate user with email and password.

    Returns User if credentials valid and account active, None otherwise.
    Updates last_login_at on success.
    """
    user = db.session.query(User).filter(
        User.email == (email or "").strip().lower(),
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None


def list_users(auth: AuthContext) -> list[User]:
    """Admins see every account; everyone else sees only their own."""
    if auth.is_admin:
        return db.session.query(User).order_by(User.email.asc()).all()
    user = db.session.get(User, auth.user_id)
    return [user] if user else []


def create_user_as(auth: AuthContext, **kwargs) -> User:
    auth.require_admin("create users")
    return create_user(**kwargs)


def update_user(auth: AuthContext, user_id: str, data: dict) -> User | None:
    """
    Update profile fields, role, password or active flag.

    Self-service covers name, surname, email and password. Role and is_active
    changes need an admin. Returns None if the user does not exist.
    """
    if not auth.can_manage_user(user_id):
        raise AuthorizationError("Cannot modify another user's account")

    user = db.session.get(User, user_id)
    if user is None:
        return None

    unknown = set(data) - PROFILE_FIELDS - {"password", "role", "isActive"}
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(sorted(unknown))}")

    if "role" in data or "isActive" in data:
        auth.require_admin("change roles or account status")

    if "email" in data:
        email = _normalize_email(data["email"])
        clash = db.session.query(User).filter(User.email == email, User.id != user_id).first()
        if clash:
            raise ConflictError("A user with this email already exists")
        user.email = email
    if "name" in data:
        user.name = str(data["name"] or "").strip()
    if "surname" in data:
        user.surname = str(data["surname"] or "").strip()
    if "password" in data:
        user.password_hash = hash_password(str(data["password"] or ""))
    if "role" in data:
        user.role = _check_role(data["role"])
    if "isActive" in data:
        if not isinstance(data["isActive"], bool):
            raise ValidationError("isActive must be a boolean")
        user.is_active = data["isActive"]

    db.session.commit()
    return user


def delete_user(auth: AuthContext, user_id: str) -> bool:
    """Delete an account (admin only, never your own). False if not found."""
    auth.require_admin("delete users")
    if auth.user_id == user_id:
        raise ValidationError("You cannot delete your own account")

    user = db.session.get(User, user_id)
    if user is None:
        return False

    db.session.delete(user)
    db.session.commit()
    return True

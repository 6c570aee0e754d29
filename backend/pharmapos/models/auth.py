from __future__ import annotations

import uuid

from ..extensions import db
from ..time_utils import to_utc_z, utcnow

ROLE_USER = "user"
ROLE_ADMIN = "admin"
ROLES = (ROLE_USER, ROLE_ADMIN)


def _new_user_id() -> str:
    return str(uuid.uuid4())


class User(db.Model):
    """
    User accounts for authentication and attribution.

    role is either "user" or "admin". Admins manage the catalog and other
    accounts and see every sale; plain users sell and read.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.CheckConstraint("role in ('user','admin')", name="ck_users_role"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_new_user_id)

    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    role = db.Column(db.String(16), nullable=False, default=ROLE_USER)

    name = db.Column(db.String(128), nullable=False, default="")
    surname = db.Column(db.String(128), nullable=False, default="")

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    last_login_at = db.Column(db.DateTime, nullable=True)

    @property
    def is_admin(self) -> bool:
        return (self.role or "").lower() == ROLE_ADMIN

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "role": self.role,
            "name": self.name,
            "surname": self.surname,
            "isActive": self.is_active,
            "createdAt": to_utc_z(self.created_at),
            "lastLoginAt": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }


class SessionToken(db.Model):
    """
    Bearer session tokens.

    Only the SHA-256 hash of the token is stored; the plaintext is returned to
    the client once at login.
    """
    __tablename__ = "session_tokens"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(36), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    token_hash = db.Column(db.String(64), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    last_used_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    expires_at = db.Column(db.DateTime, nullable=False)

    user_agent = db.Column(db.String(255), nullable=True)
    ip_address = db.Column(db.String(64), nullable=True)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False)
    revoked_at = db.Column(db.DateTime, nullable=True)
    revoked_reason = db.Column(db.String(255), nullable=True)

    user = db.relationship(
        "User",
        backref=db.backref("sessions", lazy=True, cascade="all, delete-orphan"),
    )

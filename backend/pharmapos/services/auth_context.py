# Overview: The caller's identity and role, resolved once per request.

from __future__ import annotations

from dataclasses import dataclass

from ..models.auth import ROLE_ADMIN


class AuthorizationError(Exception):
    """Raised when the caller lacks the role an operation requires."""
    pass


@dataclass(frozen=True)
class AuthContext:
    """
    Who is calling.

    Built by @require_auth from the session token and the user row it points
    to, then handed explicitly to every service call that needs it. No service
    reads the role from anywhere else.
    """
    user_id: str
    email: str
    role: str
    session_id: int | None = None

    @property
    def is_admin(self) -> bool:
        return (self.role or "").lower() == ROLE_ADMIN

    def can_manage_user(self, user_id: str) -> bool:
        return self.is_admin or self.user_id == user_id

    def require_admin(self, action: str = "perform this action") -> None:
        if not self.is_admin:
            raise AuthorizationError(f"Admin role required to {action}")

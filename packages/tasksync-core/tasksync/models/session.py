"""
Authentication session model for Tasksync.

Holds the bearer token and user record returned by login/register.
Without a token no remote call is attempted.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class AuthSession:
    """
    The signed-in user, if any.

    Attributes:
        token: Bearer token issued by the server
        user: User record as returned by the server (_id, email, username, role, ...)
    """

    token: Optional[str] = None
    user: dict = field(default_factory=dict)

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    @property
    def user_id(self) -> str:
        return self.user.get("_id") or self.user.get("id") or ""

    @property
    def is_admin(self) -> bool:
        return self.user.get("role") == "admin"

    def set(self, token: str, user: Optional[dict]) -> None:
        self.token = token
        self.user = dict(user or {})

    def clear(self) -> None:
        self.token = None
        self.user = {}

    def to_dict(self) -> dict:
        """Convert to dictionary for display (token masked)."""
        return {
            "authenticated": self.is_authenticated,
            "user_id": self.user_id,
            "username": self.user.get("username"),
            "role": self.user.get("role"),
            "token": "***" if self.token else None,
        }

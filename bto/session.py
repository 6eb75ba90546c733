"""
Session - Explicit Acting-User Context

Passed to every operation in place of a global "logged in user". Sessions are
immutable; the role is captured when the session is opened.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from bto.models import Role, User, utcnow
from bto.roles import Capability, can, require


@dataclass(frozen=True)
class Session:
    """Who is acting."""

    user_id: str
    role: Role
    opened_at: datetime = field(default_factory=utcnow, compare=False)

    @classmethod
    def for_user(cls, user: User) -> "Session":
        return cls(user_id=user.user_id, role=user.role)

    def can(self, capability: Capability) -> bool:
        return can(self.role, capability)

    def require(self, capability: Capability) -> None:
        """Raise NotAuthorizedError unless the role has ``capability``."""
        require(self.user_id, self.role, capability)

    @property
    def is_manager(self) -> bool:
        return self.role is Role.MANAGER

    @property
    def is_officer(self) -> bool:
        return self.role is Role.OFFICER

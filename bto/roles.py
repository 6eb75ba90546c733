"""
Role Capabilities

A single User record carries a Role tag. What each role may do is a lookup
in ROLE_CAPABILITIES; services ask ``require`` before doing any work.

Officers are applicants too: they may apply for projects they do not handle.
"""

from __future__ import annotations

from enum import Enum
from typing import Final

from bto.errors import NotAuthorizedError
from bto.models import Role


class Capability(Enum):
    """Operation a role may invoke."""

    APPLY = "apply"
    REQUEST_WITHDRAWAL = "request_withdrawal"
    BOOK = "book"
    REGISTER = "register"
    DECIDE = "decide"
    PROCESS_WITHDRAWAL = "process_withdrawal"
    PROCESS_REGISTRATION = "process_registration"
    MANAGE_PROJECT = "manage_project"


_APPLICANT_CAPABILITIES: Final = frozenset({Capability.APPLY, Capability.REQUEST_WITHDRAWAL})

ROLE_CAPABILITIES: Final[dict[Role, frozenset[Capability]]] = {
    Role.APPLICANT: _APPLICANT_CAPABILITIES,
    Role.OFFICER: _APPLICANT_CAPABILITIES | {Capability.BOOK, Capability.REGISTER},
    Role.MANAGER: frozenset({
        Capability.DECIDE,
        Capability.PROCESS_WITHDRAWAL,
        Capability.PROCESS_REGISTRATION,
        Capability.MANAGE_PROJECT,
    }),
}


def can(role: Role, capability: Capability) -> bool:
    return capability in ROLE_CAPABILITIES.get(role, frozenset())


def require(user_id: str, role: Role, capability: Capability) -> None:
    """
    Raises:
        NotAuthorizedError: If ``role`` lacks ``capability``
    """
    if not can(role, capability):
        raise NotAuthorizedError(user_id, capability.value.replace("_", " "))

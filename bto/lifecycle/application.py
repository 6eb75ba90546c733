"""
Application - State Machine for an Applicant/Project Pairing

Transitions:
    PENDING    -> SUCCESSFUL | UNSUCCESSFUL   (manager decision)
    SUCCESSFUL -> BOOKED                      (officer booking)
    PENDING | SUCCESSFUL | BOOKED -> UNSUCCESSFUL   (approved withdrawal only)

Anything else raises InvalidTransitionError carrying both states. Status
never changes except through transition_to / force_unsuccessful.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Final, Optional

from bto.errors import InvalidTransitionError
from bto.models import (
    ACTIVE_APPLICATION_STATUSES,
    WITHDRAWABLE_STATUSES,
    ApplicationStatus,
    format_datetime,
    generate_id,
    parse_datetime,
    utcnow,
)


ALLOWED_TRANSITIONS: Final[dict[ApplicationStatus, frozenset[ApplicationStatus]]] = {
    ApplicationStatus.PENDING: frozenset({ApplicationStatus.SUCCESSFUL, ApplicationStatus.UNSUCCESSFUL}),
    ApplicationStatus.SUCCESSFUL: frozenset({ApplicationStatus.BOOKED}),
    ApplicationStatus.UNSUCCESSFUL: frozenset(),
    ApplicationStatus.BOOKED: frozenset(),
}


def generate_application_id() -> str:
    """Generate a unique application ID."""
    return generate_id("APP")


@dataclass
class Application:
    """An applicant's request for a flat in one project."""

    application_id: str
    applicant_id: str
    project_id: str
    status: ApplicationStatus = ApplicationStatus.PENDING
    flat_id: Optional[str] = None
    released_flat_id: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    status_changed_at: Optional[datetime] = None
    decided_at: Optional[datetime] = None

    def __post_init__(self):
        if not isinstance(self.status, ApplicationStatus):
            self.status = ApplicationStatus(self.status)
        if self.status_changed_at is None:
            self.status_changed_at = self.created_at

    @classmethod
    def create(cls, applicant_id: str, project_id: str, when: Optional[datetime] = None) -> "Application":
        """Create a new PENDING application."""
        now = when or utcnow()
        return cls(
            application_id=generate_application_id(),
            applicant_id=applicant_id,
            project_id=project_id,
            created_at=now,
            status_changed_at=now,
        )

    @property
    def is_active(self) -> bool:
        """PENDING or SUCCESSFUL; blocks another submission."""
        return self.status in ACTIVE_APPLICATION_STATUSES

    @property
    def is_withdrawable(self) -> bool:
        return self.status in WITHDRAWABLE_STATUSES

    def can_transition_to(self, new_status: ApplicationStatus) -> bool:
        return new_status in ALLOWED_TRANSITIONS[self.status]

    def transition_to(self, new_status: ApplicationStatus, when: Optional[datetime] = None) -> None:
        """
        Move to ``new_status`` through the transition table.

        Raises:
            InvalidTransitionError: If the table does not allow it
        """
        if not self.can_transition_to(new_status):
            raise InvalidTransitionError(self.status, new_status)
        self.status = new_status
        self.status_changed_at = when or utcnow()

    def force_unsuccessful(self, when: Optional[datetime] = None) -> ApplicationStatus:
        """
        Reset to UNSUCCESSFUL after an approved withdrawal.

        Returns:
            The status held before the reset
        """
        if not self.is_withdrawable:
            raise InvalidTransitionError(self.status, ApplicationStatus.UNSUCCESSFUL)
        prior = self.status
        self.status = ApplicationStatus.UNSUCCESSFUL
        self.status_changed_at = when or utcnow()
        return prior

    def attach_flat(self, flat_id: str) -> None:
        if self.flat_id is not None:
            raise InvalidTransitionError(
                self.status,
                ApplicationStatus.BOOKED,
                message=f"Application {self.application_id} already owns flat {self.flat_id}",
            )
        self.flat_id = flat_id

    def detach_flat(self) -> Optional[str]:
        """Unlink the booked flat; its ID stays on record as released_flat_id."""
        flat_id, self.flat_id = self.flat_id, None
        if flat_id is not None:
            self.released_flat_id = flat_id
        return flat_id

    def to_dict(self) -> dict:
        """Convert to dictionary for serialisation."""
        return {
            "application_id": self.application_id,
            "applicant_id": self.applicant_id,
            "project_id": self.project_id,
            "status": self.status.value,
            "flat_id": self.flat_id,
            "released_flat_id": self.released_flat_id,
            "created_at": format_datetime(self.created_at),
            "status_changed_at": format_datetime(self.status_changed_at),
            "decided_at": format_datetime(self.decided_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Application":
        """Create from dictionary."""
        return cls(
            application_id=data["application_id"],
            applicant_id=data["applicant_id"],
            project_id=data["project_id"],
            status=ApplicationStatus(data["status"]),
            flat_id=data.get("flat_id"),
            released_flat_id=data.get("released_flat_id"),
            created_at=parse_datetime(data["created_at"]),
            status_changed_at=parse_datetime(data.get("status_changed_at")),
            decided_at=parse_datetime(data.get("decided_at")),
        )

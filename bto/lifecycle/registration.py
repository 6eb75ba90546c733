"""
Officer Registration - Request to Handle a Project

PENDING -> APPROVED | REJECTED, terminal afterwards. Approval is gated by the
project's officer slot inventory; the slot is taken by the service, not here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Final, Optional

from bto.errors import AlreadyProcessedError
from bto.models import RegistrationStatus, format_datetime, generate_id, parse_datetime, utcnow


# Registrations that still hold the officer to the project
LIVE_REGISTRATION_STATUSES: Final[frozenset[RegistrationStatus]] = frozenset(
    {RegistrationStatus.PENDING, RegistrationStatus.APPROVED}
)


def generate_registration_id() -> str:
    """Generate a unique registration ID."""
    return generate_id("REG")


@dataclass
class OfficerRegistration:
    """Officer's registration for one project."""

    registration_id: str
    officer_id: str
    project_id: str
    status: RegistrationStatus = RegistrationStatus.PENDING
    registered_at: datetime = field(default_factory=utcnow)
    processed_at: Optional[datetime] = None
    processed_by: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.status, RegistrationStatus):
            self.status = RegistrationStatus(self.status)

    @classmethod
    def create(cls, officer_id: str, project_id: str, when: Optional[datetime] = None) -> "OfficerRegistration":
        return cls(
            registration_id=generate_registration_id(),
            officer_id=officer_id,
            project_id=project_id,
            registered_at=when or utcnow(),
        )

    @property
    def is_pending(self) -> bool:
        return self.status is RegistrationStatus.PENDING

    @property
    def is_live(self) -> bool:
        """PENDING or APPROVED."""
        return self.status in LIVE_REGISTRATION_STATUSES

    def mark_processed(self, approve: bool, manager_id: str, when: Optional[datetime] = None) -> None:
        """
        Record the manager's decision.

        Raises:
            AlreadyProcessedError: If the registration is no longer PENDING
        """
        if not self.is_pending:
            raise AlreadyProcessedError(self.registration_id, self.status)
        self.status = RegistrationStatus.APPROVED if approve else RegistrationStatus.REJECTED
        self.processed_at = when or utcnow()
        self.processed_by = manager_id

    def to_dict(self) -> dict:
        return {
            "registration_id": self.registration_id,
            "officer_id": self.officer_id,
            "project_id": self.project_id,
            "status": self.status.value,
            "registered_at": format_datetime(self.registered_at),
            "processed_at": format_datetime(self.processed_at),
            "processed_by": self.processed_by,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "OfficerRegistration":
        return cls(
            registration_id=data["registration_id"],
            officer_id=data["officer_id"],
            project_id=data["project_id"],
            status=RegistrationStatus(data["status"]),
            registered_at=parse_datetime(data["registered_at"]),
            processed_at=parse_datetime(data.get("processed_at")),
            processed_by=data.get("processed_by"),
        )

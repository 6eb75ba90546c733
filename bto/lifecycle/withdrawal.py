"""
Withdrawal Request - Applicant's Request to Abandon an Application

PENDING -> APPROVED | REJECTED, terminal afterwards. Creating a request never
touches the application; only an approved decision resets it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from bto.errors import AlreadyProcessedError
from bto.models import WithdrawalStatus, format_datetime, generate_id, parse_datetime, utcnow


def generate_withdrawal_id() -> str:
    """Generate a unique withdrawal request ID."""
    return generate_id("WDR")


@dataclass
class WithdrawalRequest:
    """Request to withdraw one application."""

    request_id: str
    application_id: str
    reason: str = ""
    status: WithdrawalStatus = WithdrawalStatus.PENDING
    requested_at: datetime = field(default_factory=utcnow)
    processed_at: Optional[datetime] = None
    processed_by: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.status, WithdrawalStatus):
            self.status = WithdrawalStatus(self.status)

    @classmethod
    def create(cls, application_id: str, reason: str = "", when: Optional[datetime] = None) -> "WithdrawalRequest":
        return cls(
            request_id=generate_withdrawal_id(),
            application_id=application_id,
            reason=(reason or "").strip(),
            requested_at=when or utcnow(),
        )

    @property
    def is_pending(self) -> bool:
        return self.status is WithdrawalStatus.PENDING

    def mark_processed(self, approve: bool, manager_id: str, when: Optional[datetime] = None) -> None:
        """
        Record the manager's decision.

        Raises:
            AlreadyProcessedError: If the request is no longer PENDING
        """
        if not self.is_pending:
            raise AlreadyProcessedError(self.request_id, self.status)
        self.status = WithdrawalStatus.APPROVED if approve else WithdrawalStatus.REJECTED
        self.processed_at = when or utcnow()
        self.processed_by = manager_id

    def to_dict(self) -> dict:
        return {
            "request_id": self.request_id,
            "application_id": self.application_id,
            "reason": self.reason,
            "status": self.status.value,
            "requested_at": format_datetime(self.requested_at),
            "processed_at": format_datetime(self.processed_at),
            "processed_by": self.processed_by,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "WithdrawalRequest":
        return cls(
            request_id=data["request_id"],
            application_id=data["application_id"],
            reason=data.get("reason", ""),
            status=WithdrawalStatus(data["status"]),
            requested_at=parse_datetime(data["requested_at"]),
            processed_at=parse_datetime(data.get("processed_at")),
            processed_by=data.get("processed_by"),
        )

"""
Core Models - Enums, Users and Application Windows

Shared vocabulary for the housing core. Every other entity refers to users
and projects by identifier only; nothing here holds a pointer to another
entity.
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Final, Optional, Union

from bto.errors import InvalidMaritalStatusError


# =============================================================================
# Enums
# =============================================================================


class FlatType(Enum):
    """Housing unit category with its own inventory counters."""

    TWO_ROOM = "2-Room"
    THREE_ROOM = "3-Room"

    @classmethod
    def from_string(cls, value: str) -> Optional["FlatType"]:
        """Convert display value or member name to FlatType, case-insensitive."""
        normalised = value.strip().lower()
        for member in cls:
            if member.value.lower() == normalised or member.name.lower() == normalised:
                return member
        return None


class MaritalStatus(Enum):
    """Closed set of marital statuses understood by the eligibility rules."""

    SINGLE = "Single"
    MARRIED = "Married"

    @classmethod
    def from_string(cls, value: str) -> Optional["MaritalStatus"]:
        """Convert string to MaritalStatus, case-insensitive."""
        normalised = value.strip().lower()
        for member in cls:
            if member.value.lower() == normalised:
                return member
        return None


class Role(Enum):
    """Role tag on a user record."""

    APPLICANT = "applicant"
    OFFICER = "officer"
    MANAGER = "manager"


class ApplicationStatus(Enum):
    """Status of an application for a flat."""

    PENDING = "pending"
    SUCCESSFUL = "successful"
    UNSUCCESSFUL = "unsuccessful"
    BOOKED = "booked"


class RegistrationStatus(Enum):
    """Status of an officer's request to handle a project."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class WithdrawalStatus(Enum):
    """Status of an applicant's withdrawal request."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


# =============================================================================
# Constants
# =============================================================================

# Applications that block a new submission
ACTIVE_APPLICATION_STATUSES: Final[frozenset[ApplicationStatus]] = frozenset(
    {ApplicationStatus.PENDING, ApplicationStatus.SUCCESSFUL}
)

# Applications an approved withdrawal may reset
WITHDRAWABLE_STATUSES: Final[frozenset[ApplicationStatus]] = frozenset(
    {ApplicationStatus.PENDING, ApplicationStatus.SUCCESSFUL, ApplicationStatus.BOOKED}
)

# Singapore NRIC/FIN: prefix letter, seven digits, checksum letter
NRIC_REGEX: Final = re.compile(r"^[STFGM]\d{7}[A-Z]$")


# =============================================================================
# Helpers
# =============================================================================


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def generate_id(prefix: str) -> str:
    """Generate a unique identifier such as APP-3F2A9C01B7D4."""
    return f"{prefix}-{uuid.uuid4().hex[:12].upper()}"


def normalise_nric(nric: str) -> str:
    """Normalise NRIC to upper case without surrounding whitespace."""
    return nric.strip().upper() if nric else ""


def validate_nric(nric: str) -> bool:
    """Validate NRIC format."""
    if not nric:
        return False
    return bool(NRIC_REGEX.match(normalise_nric(nric)))


def parse_marital_status(value: Union[MaritalStatus, str, None]) -> MaritalStatus:
    """
    Coerce a marital status value into the closed enum.

    Raises:
        InvalidMaritalStatusError: For any value outside SINGLE/MARRIED
    """
    if isinstance(value, MaritalStatus):
        return value
    if isinstance(value, str):
        parsed = MaritalStatus.from_string(value)
        if parsed is not None:
            return parsed
    raise InvalidMaritalStatusError(value)


def parse_datetime(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def format_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


# =============================================================================
# User
# =============================================================================


@dataclass
class User:
    """
    A person known to the system.

    One record for every role; role-specific behaviour lives in
    bto.roles and the services, keyed on ``role``.
    """

    nric: str
    name: str
    age: int
    marital_status: MaritalStatus
    role: Role = Role.APPLICANT

    def __post_init__(self):
        """Validate and normalise user data."""
        self.nric = normalise_nric(self.nric)
        if not validate_nric(self.nric):
            raise ValueError(f"Invalid NRIC: {self.nric!r}")
        if not self.name or not self.name.strip():
            raise ValueError("name is required")
        if self.age < 0:
            raise ValueError("age must be non-negative")
        self.marital_status = parse_marital_status(self.marital_status)
        if not isinstance(self.role, Role):
            self.role = Role(self.role)

    @property
    def user_id(self) -> str:
        return self.nric

    def to_dict(self) -> dict:
        """Convert to dictionary for serialisation."""
        return {
            "nric": self.nric,
            "name": self.name,
            "age": self.age,
            "marital_status": self.marital_status.value,
            "role": self.role.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "User":
        """Create from dictionary."""
        return cls(
            nric=data["nric"],
            name=data["name"],
            age=int(data["age"]),
            marital_status=data["marital_status"],
            role=Role(data.get("role", Role.APPLICANT.value)),
        )


# =============================================================================
# Application Window
# =============================================================================


@dataclass(frozen=True)
class DateWindow:
    """Inclusive application window of a project."""

    open_date: date
    close_date: date

    def __post_init__(self):
        if self.close_date < self.open_date:
            raise ValueError("close_date must not be before open_date")

    def contains(self, day: date) -> bool:
        """True if ``day`` falls inside the window, both ends included."""
        return self.open_date <= day <= self.close_date

    def overlaps(self, other: "DateWindow") -> bool:
        """Inclusive overlap test."""
        return not (self.close_date < other.open_date or self.open_date > other.close_date)

    def to_dict(self) -> dict:
        return {
            "open_date": self.open_date.isoformat(),
            "close_date": self.close_date.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DateWindow":
        return cls(
            open_date=date.fromisoformat(data["open_date"]),
            close_date=date.fromisoformat(data["close_date"]),
        )

"""
Flat - A Single Bookable Unit

Created lazily when an application books, or seeded by a manager. The
booking flag is derived from ``application_id`` so a flat can never claim to
be booked without naming its application.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from bto.errors import FlatAlreadyBookedError, InvariantViolationError
from bto.models import FlatType, format_datetime, generate_id, parse_datetime, utcnow


def generate_flat_id() -> str:
    """Generate a unique flat ID."""
    return generate_id("FLAT")


@dataclass
class Flat:
    """Unit of a given type within a project."""

    flat_id: str
    project_id: str
    flat_type: FlatType
    application_id: Optional[str] = None
    booked_at: Optional[datetime] = None

    def __post_init__(self):
        if not isinstance(self.flat_type, FlatType):
            self.flat_type = FlatType(self.flat_type)

    @property
    def is_booked(self) -> bool:
        return self.application_id is not None

    def assign(self, application_id: str, when: Optional[datetime] = None) -> None:
        """Link the flat to an application."""
        if self.is_booked:
            raise FlatAlreadyBookedError(self.flat_id, self.application_id)
        self.application_id = application_id
        self.booked_at = when or utcnow()

    def release(self) -> None:
        """Unlink the flat after an approved withdrawal."""
        self.application_id = None
        self.booked_at = None

    def to_dict(self) -> dict:
        """Convert to dictionary for serialisation."""
        return {
            "flat_id": self.flat_id,
            "project_id": self.project_id,
            "flat_type": self.flat_type.value,
            "application_id": self.application_id,
            "is_booked": self.is_booked,
            "booked_at": format_datetime(self.booked_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Flat":
        """
        Create from dictionary.

        Raises:
            InvariantViolationError: If the stored booking flag disagrees with
                the stored application link
        """
        flat = cls(
            flat_id=data["flat_id"],
            project_id=data["project_id"],
            flat_type=FlatType(data["flat_type"]),
            application_id=data.get("application_id"),
            booked_at=parse_datetime(data.get("booked_at")),
        )
        stored = data.get("is_booked")
        if stored is not None and bool(stored) != flat.is_booked:
            raise InvariantViolationError(
                f"Flat {flat.flat_id}: is_booked={stored} but application_id={flat.application_id!r}"
            )
        return flat

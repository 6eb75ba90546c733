"""
Project - Unit Inventory and Officer Slot Inventory

A project owns two kinds of counters:
- per flat type: total units and available units
- officer seats: maximum slots and available slots

Invariants, checked after every mutation:
- 0 <= available_units[type] <= total_units[type] for every flat type
- 0 <= available_officer_slots <= max_officer_slots
- len(officer_ids) <= max_officer_slots

Counters are only changed through the methods below. Callers receive copies
of the internal mappings and officer list.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, Mapping, Optional

from bto.errors import (
    AtCapacityError,
    InvariantViolationError,
    NoSlotsAvailableError,
    NoUnitsAvailableError,
)
from bto.models import DateWindow, FlatType, format_datetime, generate_id, parse_datetime, utcnow


def generate_project_id() -> str:
    """Generate a unique project ID."""
    return generate_id("PRJ")


class Project:
    """Build-To-Order project with its unit and officer inventories."""

    def __init__(
        self,
        project_id: str,
        name: str,
        neighbourhood: str,
        window: DateWindow,
        manager_id: str,
        total_units: Mapping[FlatType, int],
        officer_slots: int,
        visible: bool = True,
        available_units: Optional[Mapping[FlatType, int]] = None,
        available_officer_slots: Optional[int] = None,
        officer_ids: Iterable[str] = (),
        created_at: Optional[datetime] = None,
    ):
        if not project_id:
            raise ValueError("project_id is required")
        if not name or not name.strip():
            raise ValueError("name is required")
        if not manager_id:
            raise ValueError("manager_id is required")
        if officer_slots < 0:
            raise ValueError("officer_slots must be non-negative")
        for flat_type, count in total_units.items():
            if count < 0:
                raise ValueError(f"total units for {flat_type.value} must be non-negative")

        self.project_id = project_id
        self.name = name.strip()
        self.neighbourhood = neighbourhood.strip() if neighbourhood else ""
        self.window = window
        self.visible = visible
        self.created_at = created_at or utcnow()
        self._manager_id = manager_id

        self._total_units: dict[FlatType, int] = {ft: int(n) for ft, n in total_units.items()}
        # New projects start with every unit available
        source = available_units if available_units is not None else total_units
        self._available_units: dict[FlatType, int] = {ft: int(n) for ft, n in source.items()}

        self._officer_ids: list[str] = []
        for officer_id in officer_ids:
            if officer_id not in self._officer_ids:
                self._officer_ids.append(officer_id)

        self._max_officer_slots = officer_slots
        self._available_officer_slots = (
            available_officer_slots
            if available_officer_slots is not None
            else officer_slots - len(self._officer_ids)
        )

        self.check_invariants()

    # =========================================================================
    # Identity
    # =========================================================================

    @property
    def manager_id(self) -> str:
        """Manager in charge; fixed at creation."""
        return self._manager_id

    # =========================================================================
    # Application Window
    # =========================================================================

    def is_open_on(self, day: date) -> bool:
        """True if ``day`` lies inside the application window."""
        return self.window.contains(day)

    def overlaps(self, other: "Project") -> bool:
        """True if the two application windows overlap (inclusive)."""
        return self.window.overlaps(other.window)

    # =========================================================================
    # Unit Inventory
    # =========================================================================

    @property
    def flat_types(self) -> tuple[FlatType, ...]:
        """Flat types with at least one unit in total."""
        return tuple(ft for ft in FlatType if self._total_units.get(ft, 0) > 0)

    def offers(self, flat_type: FlatType) -> bool:
        return self._total_units.get(flat_type, 0) > 0

    def total_units(self, flat_type: FlatType) -> int:
        return self._total_units.get(flat_type, 0)

    def available_units(self, flat_type: FlatType) -> int:
        return self._available_units.get(flat_type, 0)

    def units_by_type(self) -> dict[FlatType, dict[str, int]]:
        """Copy of the unit counters, keyed by flat type."""
        return {
            ft: {"total": self.total_units(ft), "available": self.available_units(ft)}
            for ft in FlatType
            if ft in self._total_units or ft in self._available_units
        }

    def can_increment_units(self, flat_type: FlatType) -> bool:
        return self.available_units(flat_type) < self.total_units(flat_type)

    def decrement_units(self, flat_type: FlatType) -> int:
        """
        Consume one unit of ``flat_type``.

        Returns:
            New available count

        Raises:
            NoUnitsAvailableError: If no unit of that type is available
        """
        available = self.available_units(flat_type)
        if available <= 0:
            raise NoUnitsAvailableError(self.project_id, flat_type)
        self._available_units[flat_type] = available - 1
        self.check_invariants()
        return available - 1

    def increment_units(self, flat_type: FlatType) -> int:
        """
        Release one unit of ``flat_type``.

        Raises:
            AtCapacityError: If available already equals total
        """
        if not self.can_increment_units(flat_type):
            raise AtCapacityError(self.project_id, f"{flat_type.value} units")
        available = self.available_units(flat_type) + 1
        self._available_units[flat_type] = available
        self.check_invariants()
        return available

    def set_total_units(self, flat_type: FlatType, new_total: int, booked: int = 0) -> None:
        """
        Resize the total for a flat type; available is clamped, never raised.

        ``booked`` flats keep their units, so available never exceeds
        ``new_total - booked``.

        Raises:
            ValueError: If new_total is negative or below the booked flats
        """
        if new_total < 0:
            raise ValueError("new_total must be non-negative")
        if new_total < booked:
            raise ValueError(
                f"{flat_type.value} total {new_total} is below the {booked} flat(s) already booked"
            )
        self._total_units[flat_type] = new_total
        self._available_units[flat_type] = min(self.available_units(flat_type), new_total - booked)
        self.check_invariants()

    # =========================================================================
    # Officer Slot Inventory
    # =========================================================================

    @property
    def max_officer_slots(self) -> int:
        return self._max_officer_slots

    @property
    def available_officer_slots(self) -> int:
        return self._available_officer_slots

    @property
    def officer_ids(self) -> tuple[str, ...]:
        """Assigned officers, in assignment order."""
        return tuple(self._officer_ids)

    def has_officer(self, officer_id: str) -> bool:
        return officer_id in self._officer_ids

    def decrement_officer_slots(self) -> int:
        if self._available_officer_slots <= 0:
            raise NoSlotsAvailableError(self.project_id)
        self._available_officer_slots -= 1
        self.check_invariants()
        return self._available_officer_slots

    def increment_officer_slots(self) -> int:
        if self._available_officer_slots >= self._max_officer_slots:
            raise AtCapacityError(self.project_id, "officer slots")
        self._available_officer_slots += 1
        self.check_invariants()
        return self._available_officer_slots

    def set_officer_slots(self, slots: int) -> None:
        """Resize officer seats; never below the number already assigned."""
        if slots < 0:
            raise ValueError("slots must be non-negative")
        self._max_officer_slots = max(slots, len(self._officer_ids))
        self._available_officer_slots = self._max_officer_slots - len(self._officer_ids)
        self.check_invariants()

    def assign_officer(self, officer_id: str) -> bool:
        """
        Take a slot and add the officer.

        Idempotent: an officer already assigned keeps its slot and nothing
        changes.

        Returns:
            True if the officer was newly assigned

        Raises:
            NoSlotsAvailableError: If no slot is free
        """
        if officer_id in self._officer_ids:
            return False
        self.decrement_officer_slots()
        self._officer_ids.append(officer_id)
        self.check_invariants()
        return True

    # =========================================================================
    # Invariants
    # =========================================================================

    def check_invariants(self) -> None:
        """Raise InvariantViolationError if any counter left its bounds."""
        for flat_type in set(self._total_units) | set(self._available_units):
            total = self._total_units.get(flat_type, 0)
            available = self._available_units.get(flat_type, 0)
            if not 0 <= available <= total:
                raise InvariantViolationError(
                    f"Project {self.project_id}: {flat_type.value} available={available} total={total}"
                )
        if not 0 <= self._available_officer_slots <= self._max_officer_slots:
            raise InvariantViolationError(
                f"Project {self.project_id}: officer slots available="
                f"{self._available_officer_slots} max={self._max_officer_slots}"
            )
        if len(self._officer_ids) > self._max_officer_slots:
            raise InvariantViolationError(
                f"Project {self.project_id}: {len(self._officer_ids)} officers exceed "
                f"{self._max_officer_slots} slots"
            )

    # =========================================================================
    # Serialisation
    # =========================================================================

    def to_dict(self) -> dict:
        """Convert to dictionary for serialisation."""
        return {
            "project_id": self.project_id,
            "name": self.name,
            "neighbourhood": self.neighbourhood,
            "window": self.window.to_dict(),
            "manager_id": self._manager_id,
            "visible": self.visible,
            "total_units": {ft.value: n for ft, n in self._total_units.items()},
            "available_units": {ft.value: n for ft, n in self._available_units.items()},
            "max_officer_slots": self._max_officer_slots,
            "available_officer_slots": self._available_officer_slots,
            "officer_ids": list(self._officer_ids),
            "created_at": format_datetime(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Project":
        """Create from dictionary."""
        return cls(
            project_id=data["project_id"],
            name=data["name"],
            neighbourhood=data.get("neighbourhood", ""),
            window=DateWindow.from_dict(data["window"]),
            manager_id=data["manager_id"],
            total_units={FlatType(k): v for k, v in data["total_units"].items()},
            available_units={FlatType(k): v for k, v in data["available_units"].items()},
            officer_slots=data["max_officer_slots"],
            available_officer_slots=data["available_officer_slots"],
            officer_ids=data.get("officer_ids", []),
            visible=data.get("visible", True),
            created_at=parse_datetime(data.get("created_at")),
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Project):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return f"Project(project_id={self.project_id!r}, name={self.name!r})"

"""
Tests for Project Inventories and Flats

Tests covering:
1. Unit counters never leave 0 <= available <= total
2. Officer slot counters and idempotent assignment
3. Resizing totals and slots
4. Flat booking flag derived from its application link
5. Project administration through the service (manager only)
"""

from __future__ import annotations

from datetime import date

import pytest

from bto import (
    AtCapacityError,
    Flat,
    FlatAlreadyBookedError,
    FlatType,
    InvariantViolationError,
    NoSlotsAvailableError,
    NoUnitsAvailableError,
    NotAuthorizedError,
    Project,
    SchedulingConflictError,
)
from bto.models import DateWindow

from tests.conftest import PROJECT_ID


@pytest.fixture
def inventory():
    return Project(
        project_id="PRJ-INV",
        name="Inventory Court",
        neighbourhood="Bedok",
        window=DateWindow(date(2025, 1, 1), date(2025, 1, 31)),
        manager_id="S1000001A",
        total_units={FlatType.TWO_ROOM: 2, FlatType.THREE_ROOM: 1},
        officer_slots=2,
    )


# =============================================================================
# Unit Inventory
# =============================================================================


class TestUnitInventory:
    """Per flat type counters."""

    def test_new_project_has_everything_available(self, inventory):
        assert inventory.available_units(FlatType.TWO_ROOM) == 2
        assert inventory.available_units(FlatType.THREE_ROOM) == 1

    def test_decrement_to_zero_then_refuse(self, inventory):
        assert inventory.decrement_units(FlatType.THREE_ROOM) == 0
        with pytest.raises(NoUnitsAvailableError):
            inventory.decrement_units(FlatType.THREE_ROOM)
        assert inventory.available_units(FlatType.THREE_ROOM) == 0

    def test_increment_at_capacity_refused(self, inventory):
        with pytest.raises(AtCapacityError):
            inventory.increment_units(FlatType.TWO_ROOM)
        assert inventory.available_units(FlatType.TWO_ROOM) == 2

    def test_decrement_then_increment_restores(self, inventory):
        inventory.decrement_units(FlatType.TWO_ROOM)
        inventory.increment_units(FlatType.TWO_ROOM)
        assert inventory.available_units(FlatType.TWO_ROOM) == 2

    def test_unoffered_type_has_no_units(self, inventory):
        inventory.set_total_units(FlatType.THREE_ROOM, 0)
        assert inventory.offers(FlatType.THREE_ROOM) is False
        with pytest.raises(NoUnitsAvailableError):
            inventory.decrement_units(FlatType.THREE_ROOM)

    def test_set_total_clamps_available(self, inventory):
        inventory.set_total_units(FlatType.TWO_ROOM, 1)
        assert inventory.total_units(FlatType.TWO_ROOM) == 1
        assert inventory.available_units(FlatType.TWO_ROOM) == 1

    def test_raising_total_does_not_raise_available(self, inventory):
        inventory.decrement_units(FlatType.TWO_ROOM)
        inventory.set_total_units(FlatType.TWO_ROOM, 5)
        assert inventory.available_units(FlatType.TWO_ROOM) == 1

    def test_negative_total_rejected(self, inventory):
        with pytest.raises(ValueError):
            inventory.set_total_units(FlatType.TWO_ROOM, -1)

    def test_booked_flats_keep_their_units(self, inventory):
        inventory.decrement_units(FlatType.TWO_ROOM)
        inventory.set_total_units(FlatType.TWO_ROOM, 1, booked=1)
        assert inventory.available_units(FlatType.TWO_ROOM) == 0
        assert inventory.increment_units(FlatType.TWO_ROOM) == 1

    def test_total_below_booked_rejected(self, inventory):
        inventory.decrement_units(FlatType.TWO_ROOM)
        with pytest.raises(ValueError):
            inventory.set_total_units(FlatType.TWO_ROOM, 0, booked=1)
        assert inventory.total_units(FlatType.TWO_ROOM) == 2
        assert inventory.available_units(FlatType.TWO_ROOM) == 1

    def test_units_by_type_is_a_copy(self, inventory):
        units = inventory.units_by_type()
        units[FlatType.TWO_ROOM]["available"] = 99
        assert inventory.available_units(FlatType.TWO_ROOM) == 2

    def test_inconsistent_construction_rejected(self):
        with pytest.raises(InvariantViolationError):
            Project(
                project_id="PRJ-BAD",
                name="Bad",
                neighbourhood="",
                window=DateWindow(date(2025, 1, 1), date(2025, 1, 2)),
                manager_id="S1000001A",
                total_units={FlatType.TWO_ROOM: 1},
                available_units={FlatType.TWO_ROOM: 2},
                officer_slots=1,
            )


# =============================================================================
# Officer Slots
# =============================================================================


class TestOfficerSlots:
    """Officer seat counters."""

    def test_assign_takes_a_slot(self, inventory):
        assert inventory.assign_officer("T2000001C") is True
        assert inventory.available_officer_slots == 1
        assert inventory.officer_ids == ("T2000001C",)

    def test_assign_is_idempotent(self, inventory):
        inventory.assign_officer("T2000001C")
        assert inventory.assign_officer("T2000001C") is False
        assert inventory.available_officer_slots == 1

    def test_no_slots_left(self, inventory):
        inventory.assign_officer("T2000001C")
        inventory.assign_officer("T2000002D")
        with pytest.raises(NoSlotsAvailableError) as exc_info:
            inventory.assign_officer("T2000003E")
        assert exc_info.value.retryable is True
        assert len(inventory.officer_ids) == 2

    def test_increment_at_max_refused(self, inventory):
        with pytest.raises(AtCapacityError):
            inventory.increment_officer_slots()

    def test_set_slots_never_below_assigned(self, inventory):
        inventory.assign_officer("T2000001C")
        inventory.assign_officer("T2000002D")
        inventory.set_officer_slots(1)
        assert inventory.max_officer_slots == 2
        assert inventory.available_officer_slots == 0

    def test_set_slots_grows_available(self, inventory):
        inventory.assign_officer("T2000001C")
        inventory.set_officer_slots(5)
        assert inventory.max_officer_slots == 5
        assert inventory.available_officer_slots == 4

    def test_officer_ids_is_immutable_view(self, inventory):
        inventory.assign_officer("T2000001C")
        assert isinstance(inventory.officer_ids, tuple)


# =============================================================================
# Flats
# =============================================================================


class TestFlat:
    """Booking flag is derived."""

    def test_new_flat_unbooked(self):
        flat = Flat(flat_id="FLAT-1", project_id="PRJ-1", flat_type=FlatType.TWO_ROOM)
        assert flat.is_booked is False

    def test_assign_and_release(self):
        flat = Flat(flat_id="FLAT-1", project_id="PRJ-1", flat_type=FlatType.TWO_ROOM)
        flat.assign("APP-1")
        assert flat.is_booked is True
        assert flat.booked_at is not None
        flat.release()
        assert flat.is_booked is False
        assert flat.application_id is None

    def test_double_assign_refused(self):
        flat = Flat(flat_id="FLAT-1", project_id="PRJ-1", flat_type=FlatType.TWO_ROOM)
        flat.assign("APP-1")
        with pytest.raises(FlatAlreadyBookedError):
            flat.assign("APP-2")
        assert flat.application_id == "APP-1"

    def test_inconsistent_stored_flag_rejected(self):
        data = {
            "flat_id": "FLAT-1",
            "project_id": "PRJ-1",
            "flat_type": "2-Room",
            "application_id": None,
            "is_booked": True,
            "booked_at": None,
        }
        with pytest.raises(InvariantViolationError):
            Flat.from_dict(data)


# =============================================================================
# Administration
# =============================================================================


class TestProjectAdministration:
    """Manager operations through the project service."""

    def test_create_project(self, engine, manager, project):
        assert project.manager_id == manager.user_id
        assert project.flat_types == (FlatType.TWO_ROOM, FlatType.THREE_ROOM)
        assert project.available_officer_slots == 2

    def test_applicant_cannot_create(self, engine, single_applicant):
        with pytest.raises(NotAuthorizedError):
            engine.projects.create_project(
                single_applicant,
                name="Nope",
                neighbourhood="",
                open_date=date(2025, 5, 1),
                close_date=date(2025, 5, 31),
                units={"2-Room": 1},
                officer_slots=1,
            )

    def test_manager_cannot_run_overlapping_projects(self, engine, manager, project):
        with pytest.raises(SchedulingConflictError):
            engine.projects.create_project(
                manager,
                name="Second",
                neighbourhood="Woodlands",
                open_date=date(2025, 3, 31),
                close_date=date(2025, 4, 30),
                units={"3-Room": 2},
                officer_slots=1,
            )
        assert len(engine.projects.managed_projects(manager)) == 1

    @pytest.mark.parametrize("slots", [0, 11])
    def test_slot_bounds(self, engine, manager, slots):
        with pytest.raises(ValueError):
            engine.projects.create_project(
                manager,
                name="Bounds",
                neighbourhood="",
                open_date=date(2025, 6, 1),
                close_date=date(2025, 6, 30),
                units={"2-Room": 1},
                officer_slots=slots,
            )

    def test_only_own_manager_edits(self, engine, other_manager, project):
        with pytest.raises(NotAuthorizedError):
            engine.projects.set_visibility(other_manager, PROJECT_ID, False)
        assert engine.projects.get_project(PROJECT_ID).visible is True

    def test_set_unit_total_and_visibility(self, engine, manager, project):
        updated = engine.projects.set_unit_total(manager, PROJECT_ID, "3-Room", 1)
        assert updated.total_units(FlatType.THREE_ROOM) == 1
        assert updated.available_units(FlatType.THREE_ROOM) == 1
        hidden = engine.projects.set_visibility(manager, PROJECT_ID, False)
        assert hidden.visible is False

    def test_returned_project_is_a_copy(self, engine, manager, project):
        project.decrement_units(FlatType.TWO_ROOM)
        assert engine.projects.get_project(PROJECT_ID).available_units(FlatType.TWO_ROOM) == 2

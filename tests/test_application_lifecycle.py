"""
Tests for the Application Lifecycle

Tests covering:
1. Submission checks and their order
2. Manager decisions (auth, already decided, invalid outcome)
3. Booking: inventory decrement, flat link, refusals leave state untouched
4. Reads return copies
5. Reapplying after an unsuccessful outcome
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from bto import (
    AlreadyDecidedError,
    ApplicationStatus,
    DuplicateActiveApplicationError,
    EntityNotFoundError,
    FlatAlreadyBookedError,
    FlatType,
    HousingEngine,
    IneligibleApplicantError,
    InvalidTransitionError,
    MaritalStatus,
    NoUnitsAvailableError,
    NotAuthorizedError,
    ProjectNotOpenError,
    Role,
)
from bto.inventory import Flat

from tests.conftest import PROJECT_ID, add_user, successful_application


# =============================================================================
# Submit
# =============================================================================


class TestSubmit:
    """Creating PENDING applications."""

    def test_submit_creates_pending(self, engine, project, single_applicant):
        application = engine.applications.submit(single_applicant, PROJECT_ID)
        assert application.status is ApplicationStatus.PENDING
        assert application.applicant_id == single_applicant.user_id
        assert application.flat_id is None

    def test_manager_cannot_apply(self, engine, manager, project):
        with pytest.raises(NotAuthorizedError):
            engine.applications.submit(manager, PROJECT_ID)

    def test_second_active_application_refused(self, engine, project, single_applicant):
        first = engine.applications.submit(single_applicant, PROJECT_ID)
        with pytest.raises(DuplicateActiveApplicationError) as exc_info:
            engine.applications.submit(single_applicant, PROJECT_ID)
        assert exc_info.value.context["application_id"] == first.application_id
        assert len(engine.applications.my_applications(single_applicant)) == 1

    def test_duplicate_checked_before_eligibility(self, engine, manager, project, single_applicant):
        engine.applications.submit(single_applicant, PROJECT_ID)
        engine.projects.set_visibility(manager, PROJECT_ID, False)
        with pytest.raises(DuplicateActiveApplicationError):
            engine.applications.submit(single_applicant, PROJECT_ID)

    def test_young_single_ineligible(self, engine, project):
        young = add_user(engine, "S3000009Z", 34, MaritalStatus.SINGLE)
        with pytest.raises(IneligibleApplicantError):
            engine.applications.submit(young, PROJECT_ID)
        assert engine.applications.my_applications(young) == []

    def test_eligibility_checked_before_visibility(self, engine, manager, project):
        young = add_user(engine, "S3000009Z", 20, MaritalStatus.MARRIED)
        engine.projects.set_visibility(manager, PROJECT_ID, False)
        with pytest.raises(IneligibleApplicantError):
            engine.applications.submit(young, PROJECT_ID)

    def test_hidden_project_not_open(self, engine, manager, project, married_applicant):
        engine.projects.set_visibility(manager, PROJECT_ID, False)
        with pytest.raises(ProjectNotOpenError):
            engine.applications.submit(married_applicant, PROJECT_ID)

    def test_outside_window_not_open(self, repository, project, married_applicant):
        april = HousingEngine(repository, clock=lambda: datetime(2025, 4, 1, tzinfo=timezone.utc))
        with pytest.raises(ProjectNotOpenError):
            april.applications.submit(married_applicant, PROJECT_ID)

    def test_window_close_date_inclusive(self, repository, project, married_applicant):
        last_day = HousingEngine(repository, clock=lambda: datetime(2025, 3, 31, 23, 0, tzinfo=timezone.utc))
        application = last_day.applications.submit(married_applicant, PROJECT_ID)
        assert application.status is ApplicationStatus.PENDING

    def test_window_not_enforced_when_disabled(self, repository, project, married_applicant):
        april = HousingEngine(
            repository,
            clock=lambda: datetime(2025, 4, 1, tzinfo=timezone.utc),
            enforce_window=False,
        )
        assert april.applications.submit(married_applicant, PROJECT_ID).status is ApplicationStatus.PENDING

    def test_handling_officer_cannot_apply(self, engine, project, handling_officer):
        with pytest.raises(IneligibleApplicantError):
            engine.applications.submit(handling_officer, PROJECT_ID)

    def test_pending_registration_blocks_application(self, engine, project, officer):
        engine.registrations.register(officer, PROJECT_ID)
        with pytest.raises(IneligibleApplicantError):
            engine.applications.submit(officer, PROJECT_ID)

    def test_unknown_project(self, engine, single_applicant):
        with pytest.raises(EntityNotFoundError):
            engine.applications.submit(single_applicant, "PRJ-MISSING")


# =============================================================================
# Decide
# =============================================================================


class TestDecide:
    """Manager decisions on PENDING applications."""

    def test_approve(self, engine, manager, project, single_applicant):
        application = successful_application(engine, manager, single_applicant)
        assert application.status is ApplicationStatus.SUCCESSFUL
        assert application.decided_at is not None

    def test_decide_leaves_inventory_alone(self, engine, manager, project, single_applicant):
        successful_application(engine, manager, single_applicant)
        assert engine.projects.get_project(PROJECT_ID).available_units(FlatType.TWO_ROOM) == 2

    def test_reject_string_outcome(self, engine, manager, project, single_applicant):
        application = engine.applications.submit(single_applicant, PROJECT_ID)
        decided = engine.applications.decide(manager, application.application_id, "unsuccessful")
        assert decided.status is ApplicationStatus.UNSUCCESSFUL

    def test_other_manager_refused(self, engine, other_manager, project, single_applicant):
        application = engine.applications.submit(single_applicant, PROJECT_ID)
        with pytest.raises(NotAuthorizedError):
            engine.applications.decide(other_manager, application.application_id, ApplicationStatus.SUCCESSFUL)
        assert engine.repository.applications.get(application.application_id).status is ApplicationStatus.PENDING

    def test_officer_cannot_decide(self, engine, handling_officer, single_applicant):
        application = engine.applications.submit(single_applicant, PROJECT_ID)
        with pytest.raises(NotAuthorizedError):
            engine.applications.decide(handling_officer, application.application_id, ApplicationStatus.SUCCESSFUL)

    def test_second_decision_refused(self, engine, manager, project, single_applicant):
        application = successful_application(engine, manager, single_applicant)
        with pytest.raises(AlreadyDecidedError):
            engine.applications.decide(manager, application.application_id, ApplicationStatus.UNSUCCESSFUL)
        assert engine.repository.applications.get(application.application_id).status is ApplicationStatus.SUCCESSFUL

    def test_booked_outcome_is_invalid(self, engine, manager, project, single_applicant):
        application = engine.applications.submit(single_applicant, PROJECT_ID)
        with pytest.raises(InvalidTransitionError):
            engine.applications.decide(manager, application.application_id, ApplicationStatus.BOOKED)
        assert engine.repository.applications.get(application.application_id).status is ApplicationStatus.PENDING

    def test_unknown_outcome_string(self, engine, manager, project, single_applicant):
        application = engine.applications.submit(single_applicant, PROJECT_ID)
        with pytest.raises(ValueError):
            engine.applications.decide(manager, application.application_id, "maybe")


# =============================================================================
# Book
# =============================================================================


class TestBook:
    """Officer bookings for SUCCESSFUL applications."""

    def test_book_consumes_one_unit(self, engine, manager, handling_officer, single_applicant):
        application = successful_application(engine, manager, single_applicant)
        booked = engine.applications.book(handling_officer, application.application_id, FlatType.TWO_ROOM)

        assert booked.status is ApplicationStatus.BOOKED
        assert booked.flat_id is not None
        flat = engine.repository.flats.get(booked.flat_id)
        assert flat.application_id == booked.application_id
        assert flat.is_booked is True
        assert engine.projects.get_project(PROJECT_ID).available_units(FlatType.TWO_ROOM) == 1

    def test_booked_flat_for_applicant(self, engine, manager, handling_officer, married_applicant):
        application = successful_application(engine, manager, married_applicant)
        engine.applications.book(handling_officer, application.application_id, "3-Room")
        flat = engine.applications.booked_flat(married_applicant)
        assert flat is not None
        assert flat.flat_type is FlatType.THREE_ROOM

    def test_three_applicants_two_units(self, engine, manager, handling_officer):
        applicants = [
            add_user(engine, nric, 40, MaritalStatus.SINGLE)
            for nric in ("S3100001A", "S3100002B", "S3100003C")
        ]
        applications = [successful_application(engine, manager, a) for a in applicants]

        engine.applications.book(handling_officer, applications[0].application_id, FlatType.TWO_ROOM)
        engine.applications.book(handling_officer, applications[1].application_id, FlatType.TWO_ROOM)
        with pytest.raises(NoUnitsAvailableError):
            engine.applications.book(handling_officer, applications[2].application_id, FlatType.TWO_ROOM)

        third = engine.repository.applications.get(applications[2].application_id)
        assert third.status is ApplicationStatus.SUCCESSFUL
        assert third.flat_id is None
        assert engine.projects.get_project(PROJECT_ID).available_units(FlatType.TWO_ROOM) == 0
        assert len(engine.repository.flats) == 2

    def test_unhandled_officer_refused(self, engine, manager, project, officer, single_applicant):
        application = successful_application(engine, manager, single_applicant)
        with pytest.raises(NotAuthorizedError):
            engine.applications.book(officer, application.application_id, FlatType.TWO_ROOM)

    def test_applicant_cannot_book(self, engine, manager, project, single_applicant):
        application = successful_application(engine, manager, single_applicant)
        with pytest.raises(NotAuthorizedError):
            engine.applications.book(single_applicant, application.application_id, FlatType.TWO_ROOM)

    def test_pending_cannot_be_booked(self, engine, handling_officer, single_applicant):
        application = engine.applications.submit(single_applicant, PROJECT_ID)
        with pytest.raises(InvalidTransitionError):
            engine.applications.book(handling_officer, application.application_id, FlatType.TWO_ROOM)

    def test_booked_cannot_be_booked_again(self, engine, manager, handling_officer, single_applicant):
        application = successful_application(engine, manager, single_applicant)
        engine.applications.book(handling_officer, application.application_id, FlatType.TWO_ROOM)
        with pytest.raises(InvalidTransitionError):
            engine.applications.book(handling_officer, application.application_id, FlatType.TWO_ROOM)
        assert engine.projects.get_project(PROJECT_ID).available_units(FlatType.TWO_ROOM) == 1

    def test_single_cannot_book_three_room(self, engine, manager, handling_officer, single_applicant):
        application = successful_application(engine, manager, single_applicant)
        with pytest.raises(IneligibleApplicantError):
            engine.applications.book(handling_officer, application.application_id, FlatType.THREE_ROOM)
        assert engine.projects.get_project(PROJECT_ID).available_units(FlatType.THREE_ROOM) == 3
        assert engine.repository.applications.get(application.application_id).status is ApplicationStatus.SUCCESSFUL

    def test_named_flat_already_booked(self, engine, manager, handling_officer, single_applicant, married_applicant):
        first = successful_application(engine, manager, single_applicant)
        booked = engine.applications.book(handling_officer, first.application_id, FlatType.TWO_ROOM)
        second = successful_application(engine, manager, married_applicant)

        with pytest.raises(FlatAlreadyBookedError):
            engine.applications.book(
                handling_officer, second.application_id, FlatType.TWO_ROOM, flat_id=booked.flat_id
            )
        assert engine.projects.get_project(PROJECT_ID).available_units(FlatType.TWO_ROOM) == 1
        assert engine.repository.applications.get(second.application_id).flat_id is None

    def test_named_unbooked_flat_is_used(self, engine, manager, handling_officer, married_applicant):
        engine.repository.flats.add(Flat(flat_id="FLAT-SEED", project_id=PROJECT_ID, flat_type=FlatType.THREE_ROOM))
        application = successful_application(engine, manager, married_applicant)
        booked = engine.applications.book(
            handling_officer, application.application_id, FlatType.THREE_ROOM, flat_id="FLAT-SEED"
        )
        assert booked.flat_id == "FLAT-SEED"
        assert engine.repository.flats.get("FLAT-SEED").application_id == application.application_id

    def test_named_flat_type_mismatch(self, engine, manager, handling_officer, married_applicant):
        engine.repository.flats.add(Flat(flat_id="FLAT-SEED", project_id=PROJECT_ID, flat_type=FlatType.TWO_ROOM))
        application = successful_application(engine, manager, married_applicant)
        with pytest.raises(ValueError):
            engine.applications.book(
                handling_officer, application.application_id, FlatType.THREE_ROOM, flat_id="FLAT-SEED"
            )
        assert engine.projects.get_project(PROJECT_ID).available_units(FlatType.THREE_ROOM) == 3


# =============================================================================
# Reads and Reapplying
# =============================================================================


class TestReads:
    """Callers get copies; history is kept."""

    def test_returned_application_is_a_copy(self, engine, project, single_applicant):
        application = engine.applications.submit(single_applicant, PROJECT_ID)
        application.status = ApplicationStatus.BOOKED
        stored = engine.repository.applications.get(application.application_id)
        assert stored.status is ApplicationStatus.PENDING

    def test_reapply_after_unsuccessful(self, engine, manager, project, single_applicant):
        application = engine.applications.submit(single_applicant, PROJECT_ID)
        engine.applications.decide(manager, application.application_id, ApplicationStatus.UNSUCCESSFUL)
        again = engine.applications.submit(single_applicant, PROJECT_ID)
        assert again.application_id != application.application_id
        history = engine.applications.my_applications(single_applicant)
        assert [a.status for a in history] == [ApplicationStatus.UNSUCCESSFUL, ApplicationStatus.PENDING]

    def test_project_applications_visible_to_manager_only(
        self, engine, manager, other_manager, project, single_applicant
    ):
        engine.applications.submit(single_applicant, PROJECT_ID)
        assert len(engine.applications.applications_for_project(manager, PROJECT_ID)) == 1
        with pytest.raises(NotAuthorizedError):
            engine.applications.applications_for_project(other_manager, PROJECT_ID)

    def test_uninvolved_officer_may_apply(self, engine, manager, officer, project):
        application = engine.applications.submit(officer, PROJECT_ID)
        assert application.applicant_id == officer.user_id
        assert officer.role is Role.OFFICER

"""
Tests for Withdrawal Requests

Tests covering:
1. Requesting: owner only, withdrawable statuses, one pending request
2. Approving a BOOKED application releases the flat and restores the unit
3. Rejection changes only the request
4. PENDING and SUCCESSFUL withdrawals never give back a unit
5. Unit totals cannot shrink below the booked flats
6. Refusals roll back every step of an approval
"""

from __future__ import annotations

import logging

import pytest

from bto import (
    AlreadyProcessedError,
    ApplicationStatus,
    AtCapacityError,
    FlatType,
    InvalidTransitionError,
    NoUnitsAvailableError,
    NotAuthorizedError,
    WithdrawalAlreadyPendingError,
    WithdrawalStatus,
)

from tests.conftest import PROJECT_ID, add_user, successful_application


@pytest.fixture
def booked(engine, manager, handling_officer, single_applicant):
    """Single applicant holding a booked TWO_ROOM flat."""
    application = successful_application(engine, manager, single_applicant)
    return engine.applications.book(handling_officer, application.application_id, FlatType.TWO_ROOM)


def two_room_available(engine) -> int:
    return engine.projects.get_project(PROJECT_ID).available_units(FlatType.TWO_ROOM)


# =============================================================================
# Requesting
# =============================================================================


class TestRequestWithdrawal:
    """Filing withdrawal requests."""

    def test_request_is_pending_and_application_unchanged(self, engine, single_applicant, booked):
        request = engine.withdrawals.request_withdrawal(single_applicant, booked.application_id, "Moving abroad")
        assert request.status is WithdrawalStatus.PENDING
        assert request.reason == "Moving abroad"
        assert engine.repository.applications.get(booked.application_id).status is ApplicationStatus.BOOKED

    def test_only_applicant_may_request(self, engine, married_applicant, booked):
        with pytest.raises(NotAuthorizedError):
            engine.withdrawals.request_withdrawal(married_applicant, booked.application_id)

    def test_second_pending_request_refused(self, engine, single_applicant, booked):
        engine.withdrawals.request_withdrawal(single_applicant, booked.application_id)
        with pytest.raises(WithdrawalAlreadyPendingError):
            engine.withdrawals.request_withdrawal(single_applicant, booked.application_id)
        assert len(engine.withdrawals.my_withdrawals(single_applicant)) == 1

    def test_unsuccessful_application_not_withdrawable(self, engine, manager, project, single_applicant):
        application = engine.applications.submit(single_applicant, PROJECT_ID)
        engine.applications.decide(manager, application.application_id, ApplicationStatus.UNSUCCESSFUL)
        with pytest.raises(InvalidTransitionError):
            engine.withdrawals.request_withdrawal(single_applicant, application.application_id)

    def test_new_request_after_rejection(self, engine, manager, single_applicant, booked):
        first = engine.withdrawals.request_withdrawal(single_applicant, booked.application_id)
        engine.withdrawals.process_withdrawal(manager, first.request_id, approve=False)
        second = engine.withdrawals.request_withdrawal(single_applicant, booked.application_id)
        assert second.request_id != first.request_id


# =============================================================================
# Processing
# =============================================================================


class TestProcessWithdrawal:
    """Manager decisions on withdrawal requests."""

    def test_approve_booked_restores_unit(self, engine, manager, single_applicant, booked):
        assert two_room_available(engine) == 1
        request = engine.withdrawals.request_withdrawal(single_applicant, booked.application_id)
        processed = engine.withdrawals.process_withdrawal(manager, request.request_id, approve=True)

        assert processed.status is WithdrawalStatus.APPROVED
        assert processed.processed_by == manager.user_id
        application = engine.repository.applications.get(booked.application_id)
        assert application.status is ApplicationStatus.UNSUCCESSFUL
        assert application.flat_id is None
        assert application.released_flat_id == booked.flat_id
        flat = engine.repository.flats.get(booked.flat_id)
        assert flat.is_booked is False
        assert two_room_available(engine) == 2
        assert engine.applications.booked_flat(single_applicant) is None

    def test_wrong_manager_changes_nothing(self, engine, other_manager, single_applicant, booked):
        request = engine.withdrawals.request_withdrawal(single_applicant, booked.application_id)
        with pytest.raises(NotAuthorizedError):
            engine.withdrawals.process_withdrawal(other_manager, request.request_id, approve=True)

        assert engine.repository.withdrawals.get(request.request_id).status is WithdrawalStatus.PENDING
        assert engine.repository.applications.get(booked.application_id).status is ApplicationStatus.BOOKED
        assert two_room_available(engine) == 1

    def test_reject_changes_only_request(self, engine, manager, single_applicant, booked):
        request = engine.withdrawals.request_withdrawal(single_applicant, booked.application_id)
        processed = engine.withdrawals.process_withdrawal(manager, request.request_id, approve=False)

        assert processed.status is WithdrawalStatus.REJECTED
        application = engine.repository.applications.get(booked.application_id)
        assert application.status is ApplicationStatus.BOOKED
        assert application.flat_id == booked.flat_id
        assert two_room_available(engine) == 1

    def test_second_processing_refused(self, engine, manager, single_applicant, booked):
        request = engine.withdrawals.request_withdrawal(single_applicant, booked.application_id)
        engine.withdrawals.process_withdrawal(manager, request.request_id, approve=True)
        with pytest.raises(AlreadyProcessedError):
            engine.withdrawals.process_withdrawal(manager, request.request_id, approve=True)
        with pytest.raises(AlreadyProcessedError):
            engine.withdrawals.process_withdrawal(manager, request.request_id, approve=False)
        assert two_room_available(engine) == 2

    def test_pending_application_leaves_inventory(self, engine, manager, project, single_applicant):
        application = engine.applications.submit(single_applicant, PROJECT_ID)
        request = engine.withdrawals.request_withdrawal(single_applicant, application.application_id)
        engine.withdrawals.process_withdrawal(manager, request.request_id, approve=True)

        assert engine.repository.applications.get(application.application_id).status is ApplicationStatus.UNSUCCESSFUL
        assert two_room_available(engine) == 2
        # Withdrawn applicants may apply again
        assert engine.applications.submit(single_applicant, PROJECT_ID).status is ApplicationStatus.PENDING

    def test_successful_withdrawal_never_frees_a_booked_unit(
        self, engine, manager, handling_officer, single_applicant, caplog
    ):
        holder = engine.applications.book(
            handling_officer,
            successful_application(engine, manager, single_applicant).application_id,
            FlatType.TWO_ROOM,
        )
        second = successful_application(engine, manager, add_user(engine, "S3100001A", 40))
        request = engine.withdrawals.request_withdrawal(
            engine.open_session(second.applicant_id), second.application_id
        )
        with caplog.at_level(logging.INFO, logger="bto.services.withdrawals"):
            engine.withdrawals.process_withdrawal(manager, request.request_id, approve=True)
        assert "inventory unchanged" in caplog.text
        assert two_room_available(engine) == 1

        later = [
            successful_application(engine, manager, add_user(engine, f"S310000{i}A", 40)) for i in (2, 3)
        ]
        engine.applications.book(handling_officer, later[0].application_id, FlatType.TWO_ROOM)
        with pytest.raises(NoUnitsAvailableError):
            engine.applications.book(handling_officer, later[1].application_id, FlatType.TWO_ROOM)

        booked_flats = [
            f for f in engine.repository.flats.list() if f.flat_type is FlatType.TWO_ROOM and f.is_booked
        ]
        project = engine.projects.get_project(PROJECT_ID)
        assert len(booked_flats) == project.total_units(FlatType.TWO_ROOM) == 2
        assert holder.flat_id in {f.flat_id for f in booked_flats}

    def test_shrink_to_booked_count_keeps_withdrawal_possible(self, engine, manager, single_applicant, booked):
        engine.projects.set_unit_total(manager, PROJECT_ID, FlatType.TWO_ROOM, 1)
        assert two_room_available(engine) == 0

        request = engine.withdrawals.request_withdrawal(single_applicant, booked.application_id)
        processed = engine.withdrawals.process_withdrawal(manager, request.request_id, approve=True)

        assert processed.status is WithdrawalStatus.APPROVED
        assert engine.repository.applications.get(booked.application_id).status is ApplicationStatus.UNSUCCESSFUL
        assert two_room_available(engine) == 1

    def test_shrink_below_booked_flats_refused(self, engine, manager, booked):
        with pytest.raises(ValueError):
            engine.projects.set_unit_total(manager, PROJECT_ID, FlatType.TWO_ROOM, 0)
        project = engine.projects.get_project(PROJECT_ID)
        assert project.total_units(FlatType.TWO_ROOM) == 2
        assert project.available_units(FlatType.TWO_ROOM) == 1

    def test_capacity_refusal_rolls_back_everything(self, engine, manager, single_applicant, booked):
        # Counters out of step with the booked flat leave no room to give the unit back
        live = engine.repository.projects.checkout(PROJECT_ID)
        live.increment_units(FlatType.TWO_ROOM)
        assert two_room_available(engine) == 2

        request = engine.withdrawals.request_withdrawal(single_applicant, booked.application_id)
        with pytest.raises(AtCapacityError):
            engine.withdrawals.process_withdrawal(manager, request.request_id, approve=True)

        assert engine.repository.withdrawals.get(request.request_id).status is WithdrawalStatus.PENDING
        application = engine.repository.applications.get(booked.application_id)
        assert application.status is ApplicationStatus.BOOKED
        assert application.flat_id == booked.flat_id
        assert application.released_flat_id is None
        assert engine.repository.flats.get(booked.flat_id).application_id == booked.application_id
        assert two_room_available(engine) == 2

    def test_project_withdrawals_for_manager_only(self, engine, manager, other_manager, single_applicant, booked):
        engine.withdrawals.request_withdrawal(single_applicant, booked.application_id)
        assert len(engine.withdrawals.withdrawals_for_project(manager, PROJECT_ID)) == 1
        with pytest.raises(NotAuthorizedError):
            engine.withdrawals.withdrawals_for_project(other_manager, PROJECT_ID)

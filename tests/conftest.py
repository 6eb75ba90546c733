"""
Shared fixtures for the housing core tests.

The engine runs on a fixed clock (10 March 2025) so application windows are
deterministic. Every test gets a fresh in-memory repository.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from bto import (
    ApplicationStatus,
    FlatType,
    HousingEngine,
    HousingRepository,
    MaritalStatus,
    Role,
    Session,
    User,
    reset_engine,
)


FIXED_NOW = datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)

MANAGER_NRIC = "S1000001A"
OTHER_MANAGER_NRIC = "S1000002B"
OFFICER_NRIC = "T2000001C"
PROJECT_ID = "PRJ-ACACIA"


def fixed_clock() -> datetime:
    return FIXED_NOW


def add_user(
    engine: HousingEngine,
    nric: str,
    age: int,
    marital_status: MaritalStatus = MaritalStatus.SINGLE,
    role: Role = Role.APPLICANT,
    name: str = "",
) -> Session:
    """Register a user and open a session for them."""
    engine.add_user(User(nric, name or f"User {nric}", age, marital_status, role))
    return engine.open_session(nric)


def successful_application(engine: HousingEngine, manager: Session, applicant: Session, project_id: str = PROJECT_ID):
    """Submit and approve an application; returns the application copy."""
    application = engine.applications.submit(applicant, project_id)
    return engine.applications.decide(manager, application.application_id, ApplicationStatus.SUCCESSFUL)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def _reset_engine_singleton():
    reset_engine()
    yield
    reset_engine()


@pytest.fixture
def repository():
    return HousingRepository()


@pytest.fixture
def engine(repository):
    return HousingEngine(repository, clock=fixed_clock)


@pytest.fixture
def manager(engine):
    return add_user(engine, MANAGER_NRIC, 45, MaritalStatus.MARRIED, Role.MANAGER, name="Mona Tan")


@pytest.fixture
def other_manager(engine):
    return add_user(engine, OTHER_MANAGER_NRIC, 50, MaritalStatus.MARRIED, Role.MANAGER, name="Kumar Raj")


@pytest.fixture
def officer(engine):
    return add_user(engine, OFFICER_NRIC, 30, MaritalStatus.MARRIED, Role.OFFICER, name="Olivia Lim")


@pytest.fixture
def project(engine, manager):
    """Open project: 2 TWO_ROOM, 3 THREE_ROOM, 2 officer slots, March 2025."""
    return engine.projects.create_project(
        manager,
        name="Acacia Breeze",
        neighbourhood="Yishun",
        open_date=date(2025, 3, 1),
        close_date=date(2025, 3, 31),
        units={FlatType.TWO_ROOM: 2, FlatType.THREE_ROOM: 3},
        officer_slots=2,
        project_id=PROJECT_ID,
    )


@pytest.fixture
def handling_officer(engine, manager, officer, project):
    """Officer registered for and approved on the project."""
    registration = engine.registrations.register(officer, project.project_id)
    engine.registrations.process_registration(manager, registration.registration_id, approve=True)
    return officer


@pytest.fixture
def single_applicant(engine):
    return add_user(engine, "S3000001D", 40, MaritalStatus.SINGLE, name="Alice Ng")


@pytest.fixture
def married_applicant(engine):
    return add_user(engine, "S3000002E", 28, MaritalStatus.MARRIED, name="Ben Koh")

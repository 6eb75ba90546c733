"""
Application Service - Submit, Decide, Book

Principles:
- Validate everything first, then mutate through the unit of work
- A refused operation leaves every entity untouched
- Inventory moves only at booking and at an approved withdrawal
"""

from __future__ import annotations

import logging
from typing import Optional, Union

from bto.eligibility import check_eligibility
from bto.errors import (
    AlreadyDecidedError,
    DuplicateActiveApplicationError,
    FlatAlreadyBookedError,
    IneligibleApplicantError,
    InvalidTransitionError,
    NotAuthorizedError,
    ProjectNotOpenError,
)
from bto.inventory import Flat, generate_flat_id
from bto.lifecycle import Application
from bto.locking import application_key, project_key, user_key
from bto.models import ApplicationStatus, FlatType, MaritalStatus, Role
from bto.roles import Capability
from bto.services.base import HousingService
from bto.session import Session

logger = logging.getLogger(__name__)

DECISION_OUTCOMES = frozenset({ApplicationStatus.SUCCESSFUL, ApplicationStatus.UNSUCCESSFUL})


def parse_flat_type(value: Union[FlatType, str]) -> FlatType:
    """
    Raises:
        ValueError: For an unknown flat type
    """
    if isinstance(value, FlatType):
        return value
    parsed = FlatType.from_string(value) if isinstance(value, str) else None
    if parsed is None:
        raise ValueError(f"Unknown flat type: {value!r}")
    return parsed


def parse_outcome(value: Union[ApplicationStatus, str]) -> ApplicationStatus:
    if isinstance(value, ApplicationStatus):
        return value
    try:
        return ApplicationStatus(str(value).strip().lower())
    except ValueError:
        raise ValueError(f"Unknown application status: {value!r}") from None


class ApplicationService(HousingService):
    """Application lifecycle operations."""

    # =========================================================================
    # Submit
    # =========================================================================

    def submit(self, session: Session, project_id: str) -> Application:
        """
        Create a PENDING application for the session's user.

        Checks, in order: role, no active application, eligibility (including
        an officer's own projects), project visible and open today.

        Raises:
            NotAuthorizedError, DuplicateActiveApplicationError,
            IneligibleApplicantError, InvalidMaritalStatusError,
            ProjectNotOpenError, EntityNotFoundError
        """
        with self._atomic("submit", user_key(session.user_id)) as uow:
            session.require(Capability.APPLY)
            applicant = self.repository.users.checkout(session.user_id)
            project = self.repository.projects.checkout(project_id)

            active = self.repository.active_application_of(applicant.user_id)
            if active is not None:
                raise DuplicateActiveApplicationError(applicant.user_id, active.application_id)

            if applicant.role is Role.OFFICER and self._officer_involved(applicant.user_id, project_id):
                raise IneligibleApplicantError(
                    f"Officer {applicant.user_id} handles or is registered for project {project_id}",
                    applicant_id=applicant.user_id,
                    project_id=project_id,
                )

            result = check_eligibility(applicant.age, applicant.marital_status, project, self.policy)
            if not result.eligible:
                raise IneligibleApplicantError(
                    result.reason,
                    applicant_id=applicant.user_id,
                    project_id=project_id,
                )

            if not project.visible:
                raise ProjectNotOpenError(project_id, "project is not visible")
            if self._context.enforce_window and not project.is_open_on(self.today()):
                raise ProjectNotOpenError(project_id, "outside the application window")

            application = uow.add(
                self.repository.applications,
                Application.create(applicant.user_id, project_id, when=self.now()),
            )
            logger.info(
                "Application %s submitted by %s for project %s",
                application.application_id,
                applicant.user_id,
                project_id,
            )
        return self.repository.applications.get(application.application_id)

    def _officer_involved(self, officer_id: str, project_id: str) -> bool:
        project = self.repository.projects.checkout(project_id)
        if project.has_officer(officer_id):
            return True
        return any(
            r.project_id == project_id and r.is_live
            for r in self.repository.registrations_of(officer_id)
        )

    # =========================================================================
    # Decide
    # =========================================================================

    def decide(
        self,
        session: Session,
        application_id: str,
        outcome: Union[ApplicationStatus, str],
    ) -> Application:
        """
        Record the manager's decision on a PENDING application.

        Raises:
            NotAuthorizedError: Not the manager in charge of the project
            AlreadyDecidedError: Application is no longer PENDING
            InvalidTransitionError: Outcome is not SUCCESSFUL/UNSUCCESSFUL
        """
        requested = parse_outcome(outcome)
        with self._atomic("decide", application_key(application_id)) as uow:
            session.require(Capability.DECIDE)
            application = self.repository.applications.checkout(application_id)
            project = self.repository.projects.checkout(application.project_id)
            if project.manager_id != session.user_id:
                raise NotAuthorizedError(session.user_id, f"decide applications for project {project.project_id}")

            if application.status is not ApplicationStatus.PENDING:
                raise AlreadyDecidedError(application_id, application.status, requested)
            if requested not in DECISION_OUTCOMES:
                raise InvalidTransitionError(application.status, requested)

            now = self.now()
            application = uow.track(application)
            application.transition_to(requested, when=now)
            application.decided_at = now
            logger.info("Application %s decided %s by %s", application_id, requested.value, session.user_id)
        return self.repository.applications.get(application_id)

    # =========================================================================
    # Book
    # =========================================================================

    def book(
        self,
        session: Session,
        application_id: str,
        flat_type: Union[FlatType, str],
        flat_id: Optional[str] = None,
    ) -> Application:
        """
        Book a flat for a SUCCESSFUL application.

        One unit: decrement available units, link flat and application,
        move the application to BOOKED.

        Raises:
            NotAuthorizedError: Officer does not handle the project
            InvalidTransitionError: Not SUCCESSFUL, or a flat is already owned
            IneligibleApplicantError: Flat type not open to the applicant
            FlatAlreadyBookedError: Named flat is taken
            NoUnitsAvailableError: Available counter is zero
        """
        wanted = parse_flat_type(flat_type)
        project_id = self.repository.applications.checkout(application_id).project_id
        with self._atomic("book", project_key(project_id), application_key(application_id)) as uow:
            session.require(Capability.BOOK)
            project = self.repository.projects.checkout(project_id)
            if not project.has_officer(session.user_id):
                raise NotAuthorizedError(session.user_id, f"book flats for project {project_id}")

            application = self.repository.applications.checkout(application_id)
            if application.status is not ApplicationStatus.SUCCESSFUL or application.flat_id is not None:
                raise InvalidTransitionError(application.status, ApplicationStatus.BOOKED)

            applicant = self.repository.users.checkout(application.applicant_id)
            if applicant.marital_status is MaritalStatus.SINGLE and wanted not in self.policy.single_flat_types:
                raise IneligibleApplicantError(
                    f"Single applicants may not book {wanted.value} flats",
                    applicant_id=applicant.user_id,
                    flat_type=wanted,
                )

            flat = self._resolve_flat(project_id, wanted, flat_id)

            now = self.now()
            uow.track(project).decrement_units(wanted)
            if self.repository.flats.contains(flat.flat_id):
                uow.track(flat).assign(application_id, when=now)
            else:
                flat.assign(application_id, when=now)
                uow.add(self.repository.flats, flat)
            application = uow.track(application)
            application.attach_flat(flat.flat_id)
            application.transition_to(ApplicationStatus.BOOKED, when=now)
            logger.info(
                "Application %s booked flat %s (%s) by officer %s; %s left",
                application_id,
                flat.flat_id,
                wanted.value,
                session.user_id,
                project.available_units(wanted),
            )
        return self.repository.applications.get(application_id)

    def _resolve_flat(self, project_id: str, flat_type: FlatType, flat_id: Optional[str]) -> Flat:
        if flat_id is None:
            return Flat(flat_id=generate_flat_id(), project_id=project_id, flat_type=flat_type)
        flat = self.repository.flats.checkout(flat_id)
        if flat.project_id != project_id:
            raise ValueError(f"Flat {flat_id} does not belong to project {project_id}")
        if flat.flat_type is not flat_type:
            raise ValueError(f"Flat {flat_id} is a {flat.flat_type.value} flat, not {flat_type.value}")
        if flat.is_booked:
            raise FlatAlreadyBookedError(flat_id, flat.application_id)
        return flat

    # =========================================================================
    # Reads
    # =========================================================================

    def my_applications(self, session: Session) -> list[Application]:
        """Application history of the session's user, oldest first."""
        return sorted(
            self.repository.applications.find(lambda a: a.applicant_id == session.user_id),
            key=lambda a: a.created_at,
        )

    def applications_for_project(self, session: Session, project_id: str) -> list[Application]:
        """Applications of a project; for its manager and handling officers."""
        project = self.repository.projects.checkout(project_id)
        if session.user_id != project.manager_id and not project.has_officer(session.user_id):
            raise NotAuthorizedError(session.user_id, f"view applications for project {project_id}")
        return sorted(
            self.repository.applications.find(lambda a: a.project_id == project_id),
            key=lambda a: a.created_at,
        )

    def get_application(self, session: Session, application_id: str) -> Application:
        application = self.repository.applications.get(application_id)
        if application.applicant_id != session.user_id:
            project = self.repository.projects.checkout(application.project_id)
            if session.user_id != project.manager_id and not project.has_officer(session.user_id):
                raise NotAuthorizedError(session.user_id, f"view application {application_id}")
        return application

    def booked_flat(self, session: Session) -> Optional[Flat]:
        """Flat of the session user's BOOKED application, if any."""
        for application in self.repository.applications_of(session.user_id):
            if application.status is ApplicationStatus.BOOKED and application.flat_id:
                return self.repository.flats.get(application.flat_id)
        return None

"""
Registration Service - Officers Registering to Handle Projects

An officer may hold at most one live (PENDING/APPROVED) commitment per
application period: registering for a project whose window overlaps another
project the officer is registered for or assigned to is a scheduling
conflict, as is registering for a project the officer has applied for.
"""

from __future__ import annotations

import logging

from bto.errors import (
    AlreadyRegisteredError,
    ConflictOfInterestError,
    NoSlotsAvailableError,
    NotAuthorizedError,
    SchedulingConflictError,
)
from bto.lifecycle import OfficerRegistration
from bto.locking import project_key, registration_key, user_key
from bto.roles import Capability
from bto.services.base import HousingService
from bto.session import Session

logger = logging.getLogger(__name__)


class RegistrationService(HousingService):
    """Officer registration lifecycle."""

    def register(self, session: Session, project_id: str) -> OfficerRegistration:
        """
        Create a PENDING registration for the session's officer.

        Raises:
            NotAuthorizedError: Role is not OFFICER
            AlreadyRegisteredError: Live registration or assignment exists
            ConflictOfInterestError: Officer applied for this project
            SchedulingConflictError: Overlapping commitment elsewhere
        """
        officer_id = session.user_id
        with self._atomic("register", user_key(officer_id)) as uow:
            session.require(Capability.REGISTER)
            project = self.repository.projects.checkout(project_id)
            registrations = self.repository.registrations_of(officer_id)

            if project.has_officer(officer_id) or any(
                r.project_id == project_id and r.is_live for r in registrations
            ):
                raise AlreadyRegisteredError(officer_id, project_id)

            if any(
                a.project_id == project_id and a.is_withdrawable
                for a in self.repository.applications_of(officer_id)
            ):
                raise ConflictOfInterestError(officer_id, project_id)

            committed = {r.project_id for r in registrations if r.is_live}
            committed.update(p.project_id for p in self.repository.projects_handled_by(officer_id))
            committed.discard(project_id)
            for other_id in sorted(committed):
                other = self.repository.projects.checkout(other_id)
                if other.overlaps(project):
                    raise SchedulingConflictError(officer_id, project_id, other_id)

            registration = uow.add(
                self.repository.registrations,
                OfficerRegistration.create(officer_id, project_id, when=self.now()),
            )
            logger.info(
                "Officer %s registered for project %s (%s)",
                officer_id,
                project_id,
                registration.registration_id,
            )
        return self.repository.registrations.get(registration.registration_id)

    def process_registration(self, session: Session, registration_id: str, approve: bool) -> OfficerRegistration:
        """
        Approve or reject a PENDING registration.

        Approval takes an officer slot and assigns the officer. With no slot
        free the registration stays PENDING and NoSlotsAvailableError is
        raised; the manager may retry once a slot frees up.

        Raises:
            NotAuthorizedError, AlreadyProcessedError, NoSlotsAvailableError
        """
        project_id = self.repository.registrations.checkout(registration_id).project_id
        with self._atomic(
            "process_registration", project_key(project_id), registration_key(registration_id)
        ) as uow:
            session.require(Capability.PROCESS_REGISTRATION)
            registration = self.repository.registrations.checkout(registration_id)
            project = self.repository.projects.checkout(project_id)
            if project.manager_id != session.user_id:
                raise NotAuthorizedError(session.user_id, f"process registrations for project {project_id}")

            now = self.now()
            if not approve:
                uow.track(registration).mark_processed(False, session.user_id, when=now)
                logger.info("Registration %s rejected by %s", registration_id, session.user_id)
            else:
                already_assigned = project.has_officer(registration.officer_id)
                if registration.is_pending and not already_assigned and project.available_officer_slots <= 0:
                    raise NoSlotsAvailableError(project_id)
                uow.track(registration).mark_processed(True, session.user_id, when=now)
                uow.track(project).assign_officer(registration.officer_id)
                logger.info(
                    "Registration %s approved by %s; project %s has %s slot(s) left",
                    registration_id,
                    session.user_id,
                    project_id,
                    project.available_officer_slots,
                )
        return self.repository.registrations.get(registration_id)

    # =========================================================================
    # Reads
    # =========================================================================

    def my_registrations(self, session: Session) -> list[OfficerRegistration]:
        return sorted(
            self.repository.registrations.find(lambda r: r.officer_id == session.user_id),
            key=lambda r: r.registered_at,
        )

    def registrations_for_project(self, session: Session, project_id: str) -> list[OfficerRegistration]:
        """Registrations of a project; for its manager."""
        project = self.repository.projects.checkout(project_id)
        if project.manager_id != session.user_id:
            raise NotAuthorizedError(session.user_id, f"view registrations for project {project_id}")
        return sorted(
            self.repository.registrations.find(lambda r: r.project_id == project_id),
            key=lambda r: r.registered_at,
        )

"""
Withdrawal Service - Request and Process Withdrawals

An approved withdrawal resets the application to UNSUCCESSFUL and gives back
the unit it held:
- BOOKED: the flat is released and its type's counter incremented
- SUCCESSFUL: inventory untouched; a decision never takes a unit
- PENDING: inventory untouched
"""

from __future__ import annotations

import logging

from bto.eligibility import infer_flat_type
from bto.errors import InvalidTransitionError, NotAuthorizedError, WithdrawalAlreadyPendingError
from bto.lifecycle import WithdrawalRequest
from bto.locking import application_key, project_key, withdrawal_key
from bto.models import ApplicationStatus
from bto.roles import Capability
from bto.services.base import HousingService
from bto.session import Session

logger = logging.getLogger(__name__)


class WithdrawalService(HousingService):
    """Withdrawal request lifecycle."""

    def request_withdrawal(self, session: Session, application_id: str, reason: str = "") -> WithdrawalRequest:
        """
        File a PENDING withdrawal request; the application is not changed.

        Raises:
            NotAuthorizedError: Not the application's applicant
            InvalidTransitionError: Application is UNSUCCESSFUL
            WithdrawalAlreadyPendingError: A request is already waiting
        """
        with self._atomic("request_withdrawal", application_key(application_id)) as uow:
            session.require(Capability.REQUEST_WITHDRAWAL)
            application = self.repository.applications.checkout(application_id)
            if application.applicant_id != session.user_id:
                raise NotAuthorizedError(session.user_id, f"withdraw application {application_id}")
            if not application.is_withdrawable:
                raise InvalidTransitionError(application.status, ApplicationStatus.UNSUCCESSFUL)

            pending = self.repository.pending_withdrawal_for(application_id)
            if pending is not None:
                raise WithdrawalAlreadyPendingError(application_id, pending.request_id)

            request = uow.add(
                self.repository.withdrawals,
                WithdrawalRequest.create(application_id, reason, when=self.now()),
            )
            logger.info("Withdrawal %s requested for application %s", request.request_id, application_id)
        return self.repository.withdrawals.get(request.request_id)

    def process_withdrawal(self, session: Session, request_id: str, approve: bool) -> WithdrawalRequest:
        """
        Approve or reject a PENDING withdrawal request.

        Raises:
            NotAuthorizedError: Not the manager in charge of the project
            AlreadyProcessedError: Request already approved or rejected
            AtCapacityError: Releasing a booked unit would exceed the total
        """
        application_id = self.repository.withdrawals.checkout(request_id).application_id
        project_id = self.repository.applications.checkout(application_id).project_id
        keys = (project_key(project_id), application_key(application_id), withdrawal_key(request_id))

        with self._atomic("process_withdrawal", *keys) as uow:
            session.require(Capability.PROCESS_WITHDRAWAL)
            request = self.repository.withdrawals.checkout(request_id)
            application = self.repository.applications.checkout(application_id)
            project = self.repository.projects.checkout(project_id)
            if project.manager_id != session.user_id:
                raise NotAuthorizedError(session.user_id, f"process withdrawals for project {project_id}")

            now = self.now()
            if not approve:
                uow.track(request).mark_processed(False, session.user_id, when=now)
                logger.info("Withdrawal %s rejected by %s", request_id, session.user_id)
            else:
                if request.is_pending and not application.is_withdrawable:
                    raise InvalidTransitionError(application.status, ApplicationStatus.UNSUCCESSFUL)
                uow.track(request).mark_processed(True, session.user_id, when=now)
                prior = uow.track(application).force_unsuccessful(when=now)
                if prior in (ApplicationStatus.SUCCESSFUL, ApplicationStatus.BOOKED):
                    self._release_unit(uow, project, application, prior)
                logger.info(
                    "Withdrawal %s approved by %s; application %s %s -> unsuccessful",
                    request_id,
                    session.user_id,
                    application_id,
                    prior.value,
                )
        return self.repository.withdrawals.get(request_id)

    def _release_unit(self, uow, project, application, prior: ApplicationStatus) -> None:
        if prior is not ApplicationStatus.BOOKED or application.flat_id is None:
            # A decision never takes a unit, so there is nothing to give back
            applicant = self.repository.users.checkout(application.applicant_id)
            logger.info(
                "Application %s held no flat; project %s %s inventory unchanged",
                application.application_id,
                project.project_id,
                infer_flat_type(applicant.marital_status, project).value,
            )
            return

        flat_id = application.detach_flat()
        flat = uow.checkout(self.repository.flats, flat_id)
        flat.release()
        uow.track(project).increment_units(flat.flat_type)

    # =========================================================================
    # Reads
    # =========================================================================

    def my_withdrawals(self, session: Session) -> list[WithdrawalRequest]:
        own = {a.application_id for a in self.repository.applications_of(session.user_id)}
        return sorted(
            self.repository.withdrawals.find(lambda w: w.application_id in own),
            key=lambda w: w.requested_at,
        )

    def withdrawals_for_project(self, session: Session, project_id: str) -> list[WithdrawalRequest]:
        """Withdrawal requests of a project; for its manager."""
        project = self.repository.projects.checkout(project_id)
        if project.manager_id != session.user_id:
            raise NotAuthorizedError(session.user_id, f"view withdrawals for project {project_id}")
        applications = {a.application_id for a in self.repository.applications_for_project(project_id)}
        return sorted(
            self.repository.withdrawals.find(lambda w: w.application_id in applications),
            key=lambda w: w.requested_at,
        )

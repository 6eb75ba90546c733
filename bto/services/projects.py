"""
Project Service - Administration and Listings

Managers create projects and resize their inventories; everybody else can
only list what they are allowed to apply for.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Mapping, Optional, Union

from bto.eligibility import is_eligible
from bto.errors import NotAuthorizedError, SchedulingConflictError
from bto.inventory import Project, generate_project_id
from bto.locking import project_key, user_key
from bto.models import DateWindow, FlatType
from bto.roles import Capability
from bto.services.applications import parse_flat_type
from bto.services.base import HousingService
from bto.session import Session

logger = logging.getLogger(__name__)


class ProjectService(HousingService):
    """Project administration and read access."""

    def _check_slot_bounds(self, slots: int) -> None:
        maximum = self._context.max_officer_slots
        if not 1 <= slots <= maximum:
            raise ValueError(f"Officer slots must be between 1 and {maximum}")

    def _managed(self, session: Session, project_id: str, action: str) -> Project:
        session.require(Capability.MANAGE_PROJECT)
        project = self.repository.projects.checkout(project_id)
        if project.manager_id != session.user_id:
            raise NotAuthorizedError(session.user_id, f"{action} for project {project_id}")
        return project

    # =========================================================================
    # Administration
    # =========================================================================

    def create_project(
        self,
        session: Session,
        name: str,
        neighbourhood: str,
        open_date: date,
        close_date: date,
        units: Mapping[Union[FlatType, str], int],
        officer_slots: int,
        visible: bool = True,
        project_id: Optional[str] = None,
    ) -> Project:
        """
        Create a project managed by the session's manager.

        Raises:
            NotAuthorizedError: Role is not MANAGER
            SchedulingConflictError: Manager already runs a project whose
                window overlaps
            ValueError: Bad window, unit counts, slot count or duplicate ID
        """
        with self._atomic("create_project", user_key(session.user_id)) as uow:
            session.require(Capability.MANAGE_PROJECT)
            self._check_slot_bounds(officer_slots)
            window = DateWindow(open_date, close_date)
            new_id = project_id or generate_project_id()
            if self.repository.projects.contains(new_id):
                raise ValueError(f"Project {new_id} already exists")

            for existing in self.repository.projects_managed_by(session.user_id):
                if existing.window.overlaps(window):
                    raise SchedulingConflictError(session.user_id, new_id, existing.project_id)

            project = Project(
                project_id=new_id,
                name=name,
                neighbourhood=neighbourhood,
                window=window,
                manager_id=session.user_id,
                total_units={parse_flat_type(ft): count for ft, count in units.items()},
                officer_slots=officer_slots,
                visible=visible,
                created_at=self.now(),
            )
            uow.add(self.repository.projects, project)
            logger.info("Project %s (%s) created by %s", new_id, project.name, session.user_id)
        return self.repository.projects.get(new_id)

    def set_unit_total(
        self,
        session: Session,
        project_id: str,
        flat_type: Union[FlatType, str],
        total: int,
    ) -> Project:
        """
        Resize a flat type's total; available is clamped to the units not
        held by booked flats.

        Raises:
            ValueError: If total is negative or below the flats already booked
        """
        wanted = parse_flat_type(flat_type)
        with self._atomic("set_unit_total", project_key(project_id)) as uow:
            project = self._managed(session, project_id, "change unit totals")
            booked = self.repository.booked_flat_count(project_id, wanted)
            uow.track(project).set_total_units(wanted, total, booked=booked)
            logger.info(
                "Project %s %s total set to %s (available %s)",
                project_id,
                wanted.value,
                total,
                project.available_units(wanted),
            )
        return self.repository.projects.get(project_id)

    def set_officer_slots(self, session: Session, project_id: str, slots: int) -> Project:
        """Resize officer seats; never below the officers already assigned."""
        with self._atomic("set_officer_slots", project_key(project_id)) as uow:
            project = self._managed(session, project_id, "change officer slots")
            self._check_slot_bounds(slots)
            uow.track(project).set_officer_slots(slots)
            logger.info("Project %s officer slots set to %s", project_id, project.max_officer_slots)
        return self.repository.projects.get(project_id)

    def set_visibility(self, session: Session, project_id: str, visible: bool) -> Project:
        with self._atomic("set_visibility", project_key(project_id)) as uow:
            project = self._managed(session, project_id, "change visibility")
            uow.track(project).visible = bool(visible)
            logger.info("Project %s visibility set to %s", project_id, visible)
        return self.repository.projects.get(project_id)

    # =========================================================================
    # Reads
    # =========================================================================

    def get_project(self, project_id: str) -> Project:
        return self.repository.projects.get(project_id)

    def list_projects(self, session: Session) -> list[Project]:
        """
        Projects the session may see: managers see all, officers see
        visible projects plus the ones they handle, applicants see visible
        projects.
        """
        def visible_to(project: Project) -> bool:
            if session.is_manager:
                return True
            return project.visible or project.has_officer(session.user_id)

        return sorted(self.repository.projects.find(visible_to), key=lambda p: p.name)

    def managed_projects(self, session: Session) -> list[Project]:
        return sorted(
            self.repository.projects.find(lambda p: p.manager_id == session.user_id),
            key=lambda p: p.name,
        )

    def handled_projects(self, session: Session) -> list[Project]:
        return sorted(
            self.repository.projects.find(lambda p: p.has_officer(session.user_id)),
            key=lambda p: p.name,
        )

    def available_projects(self, session: Session) -> list[Project]:
        """
        Visible projects the session's user may apply for.

        Empty for managers. Officers never see projects they handle.
        """
        if session.is_manager:
            return []
        user = self.repository.users.checkout(session.user_id)

        def open_to_user(project: Project) -> bool:
            if not project.visible or project.has_officer(user.user_id):
                return False
            return is_eligible(user.age, user.marital_status, project, self.policy)

        return sorted(self.repository.projects.find(open_to_user), key=lambda p: p.name)

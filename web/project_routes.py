"""
Project Routes - Listings and Manager Administration

Routes:
- GET   /api/projects                          - Projects visible to the session
- POST  /api/projects                          - Create project (manager)
- GET   /api/projects/available                - Projects the session may apply for
- GET   /api/projects/{id}                     - Project detail
- PUT   /api/projects/{id}/units               - Set a flat type's total (manager)
- PUT   /api/projects/{id}/officer-slots       - Set officer slots (manager)
- PUT   /api/projects/{id}/visibility          - Toggle visibility (manager)
- GET   /api/projects/{id}/applications        - Project applications (manager/officer)
- GET   /api/projects/{id}/registrations       - Officer registrations (manager)
- GET   /api/projects/{id}/withdrawals         - Withdrawal requests (manager)
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from bto import HousingEngine, Project, Session
from web.session_auth import get_housing_engine, require_session


# =============================================================================
# Router Setup
# =============================================================================

router = APIRouter(prefix="/api/projects", tags=["projects"])


# =============================================================================
# Request Models
# =============================================================================


class ProjectCreateRequest(BaseModel):
    """Request body for project creation."""
    name: str
    neighbourhood: str = ""
    open_date: date
    close_date: date
    units: dict[str, int] = Field(default_factory=dict)
    officer_slots: int
    visible: bool = True
    project_id: Optional[str] = None


class UnitTotalRequest(BaseModel):
    flat_type: str
    total: int = Field(ge=0)


class OfficerSlotsRequest(BaseModel):
    slots: int


class VisibilityRequest(BaseModel):
    visible: bool


def project_payload(project: Project) -> dict:
    """Project as JSON with derived flat type listing."""
    data = project.to_dict()
    data["flat_types"] = [ft.value for ft in project.flat_types]
    return data


# =============================================================================
# Listings
# =============================================================================


@router.get("")
def list_projects(
    session: Session = Depends(require_session),
    engine: HousingEngine = Depends(get_housing_engine),
):
    return {"projects": [project_payload(p) for p in engine.projects.list_projects(session)]}


@router.get("/available")
def available_projects(
    session: Session = Depends(require_session),
    engine: HousingEngine = Depends(get_housing_engine),
):
    """Visible projects the session's user is eligible to apply for."""
    return {"projects": [project_payload(p) for p in engine.projects.available_projects(session)]}


@router.get("/{project_id}")
def get_project(
    project_id: str,
    session: Session = Depends(require_session),
    engine: HousingEngine = Depends(get_housing_engine),
):
    return project_payload(engine.projects.get_project(project_id))


# =============================================================================
# Administration
# =============================================================================


@router.post("", status_code=201)
def create_project(
    body: ProjectCreateRequest,
    session: Session = Depends(require_session),
    engine: HousingEngine = Depends(get_housing_engine),
):
    project = engine.projects.create_project(
        session,
        name=body.name,
        neighbourhood=body.neighbourhood,
        open_date=body.open_date,
        close_date=body.close_date,
        units=body.units,
        officer_slots=body.officer_slots,
        visible=body.visible,
        project_id=body.project_id,
    )
    return project_payload(project)


@router.put("/{project_id}/units")
def set_unit_total(
    project_id: str,
    body: UnitTotalRequest,
    session: Session = Depends(require_session),
    engine: HousingEngine = Depends(get_housing_engine),
):
    return project_payload(engine.projects.set_unit_total(session, project_id, body.flat_type, body.total))


@router.put("/{project_id}/officer-slots")
def set_officer_slots(
    project_id: str,
    body: OfficerSlotsRequest,
    session: Session = Depends(require_session),
    engine: HousingEngine = Depends(get_housing_engine),
):
    return project_payload(engine.projects.set_officer_slots(session, project_id, body.slots))


@router.put("/{project_id}/visibility")
def set_visibility(
    project_id: str,
    body: VisibilityRequest,
    session: Session = Depends(require_session),
    engine: HousingEngine = Depends(get_housing_engine),
):
    return project_payload(engine.projects.set_visibility(session, project_id, body.visible))


# =============================================================================
# Project Views
# =============================================================================


@router.get("/{project_id}/applications")
def project_applications(
    project_id: str,
    session: Session = Depends(require_session),
    engine: HousingEngine = Depends(get_housing_engine),
):
    applications = engine.applications.applications_for_project(session, project_id)
    return {"applications": [a.to_dict() for a in applications]}


@router.get("/{project_id}/registrations")
def project_registrations(
    project_id: str,
    session: Session = Depends(require_session),
    engine: HousingEngine = Depends(get_housing_engine),
):
    registrations = engine.registrations.registrations_for_project(session, project_id)
    return {"registrations": [r.to_dict() for r in registrations]}


@router.get("/{project_id}/withdrawals")
def project_withdrawals(
    project_id: str,
    session: Session = Depends(require_session),
    engine: HousingEngine = Depends(get_housing_engine),
):
    withdrawals = engine.withdrawals.withdrawals_for_project(session, project_id)
    return {"withdrawals": [w.to_dict() for w in withdrawals]}

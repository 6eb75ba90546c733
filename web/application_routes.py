"""
Application Routes - Applications, Withdrawals and Officer Registrations

Routes:
- POST /api/applications                         - Submit an application
- GET  /api/applications/mine                    - Session user's applications
- GET  /api/applications/{id}                    - Application detail
- POST /api/applications/{id}/decision           - Decide (manager)
- POST /api/applications/{id}/booking            - Book a flat (officer)
- POST /api/applications/{id}/withdrawals        - Request withdrawal (applicant)
- GET  /api/withdrawals/mine                     - Session user's withdrawal requests
- POST /api/withdrawals/{id}/process             - Approve/reject withdrawal (manager)
- POST /api/registrations                        - Register to handle a project (officer)
- GET  /api/registrations/mine                   - Session officer's registrations
- POST /api/registrations/{id}/process           - Approve/reject registration (manager)
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from bto import Application, HousingEngine, Session
from web.session_auth import get_housing_engine, require_session


# =============================================================================
# Router Setup
# =============================================================================

router = APIRouter(prefix="/api", tags=["applications"])


# =============================================================================
# Request Models
# =============================================================================


class SubmitRequest(BaseModel):
    project_id: str


class DecisionRequest(BaseModel):
    outcome: str


class BookingRequest(BaseModel):
    flat_type: str
    flat_id: Optional[str] = None


class WithdrawalCreateRequest(BaseModel):
    reason: str = ""


class ProcessRequest(BaseModel):
    """Manager's decision on a request or registration."""
    approve: bool


class RegisterRequest(BaseModel):
    project_id: str


def application_payload(application: Application, engine: HousingEngine) -> dict:
    """Application as JSON, with the booked flat inlined."""
    data = application.to_dict()
    data["flat"] = engine.repository.flats.get(application.flat_id).to_dict() if application.flat_id else None
    return data


# =============================================================================
# Applications
# =============================================================================


@router.post("/applications", status_code=201)
def submit_application(
    body: SubmitRequest,
    session: Session = Depends(require_session),
    engine: HousingEngine = Depends(get_housing_engine),
):
    return application_payload(engine.applications.submit(session, body.project_id), engine)


@router.get("/applications/mine")
def my_applications(
    session: Session = Depends(require_session),
    engine: HousingEngine = Depends(get_housing_engine),
):
    return {
        "applications": [
            application_payload(a, engine) for a in engine.applications.my_applications(session)
        ]
    }


@router.get("/applications/{application_id}")
def get_application(
    application_id: str,
    session: Session = Depends(require_session),
    engine: HousingEngine = Depends(get_housing_engine),
):
    return application_payload(engine.applications.get_application(session, application_id), engine)


@router.post("/applications/{application_id}/decision")
def decide_application(
    application_id: str,
    body: DecisionRequest,
    session: Session = Depends(require_session),
    engine: HousingEngine = Depends(get_housing_engine),
):
    return application_payload(engine.applications.decide(session, application_id, body.outcome), engine)


@router.post("/applications/{application_id}/booking")
def book_flat(
    application_id: str,
    body: BookingRequest,
    session: Session = Depends(require_session),
    engine: HousingEngine = Depends(get_housing_engine),
):
    application = engine.applications.book(session, application_id, body.flat_type, body.flat_id)
    return application_payload(application, engine)


# =============================================================================
# Withdrawals
# =============================================================================


@router.post("/applications/{application_id}/withdrawals", status_code=201)
def request_withdrawal(
    application_id: str,
    body: WithdrawalCreateRequest,
    session: Session = Depends(require_session),
    engine: HousingEngine = Depends(get_housing_engine),
):
    return engine.withdrawals.request_withdrawal(session, application_id, body.reason).to_dict()


@router.get("/withdrawals/mine")
def my_withdrawals(
    session: Session = Depends(require_session),
    engine: HousingEngine = Depends(get_housing_engine),
):
    return {"withdrawals": [w.to_dict() for w in engine.withdrawals.my_withdrawals(session)]}


@router.post("/withdrawals/{request_id}/process")
def process_withdrawal(
    request_id: str,
    body: ProcessRequest,
    session: Session = Depends(require_session),
    engine: HousingEngine = Depends(get_housing_engine),
):
    return engine.withdrawals.process_withdrawal(session, request_id, body.approve).to_dict()


# =============================================================================
# Officer Registrations
# =============================================================================


@router.post("/registrations", status_code=201)
def register_for_project(
    body: RegisterRequest,
    session: Session = Depends(require_session),
    engine: HousingEngine = Depends(get_housing_engine),
):
    return engine.registrations.register(session, body.project_id).to_dict()


@router.get("/registrations/mine")
def my_registrations(
    session: Session = Depends(require_session),
    engine: HousingEngine = Depends(get_housing_engine),
):
    return {"registrations": [r.to_dict() for r in engine.registrations.my_registrations(session)]}


@router.post("/registrations/{registration_id}/process")
def process_registration(
    registration_id: str,
    body: ProcessRequest,
    session: Session = Depends(require_session),
    engine: HousingEngine = Depends(get_housing_engine),
):
    return engine.registrations.process_registration(session, registration_id, body.approve).to_dict()

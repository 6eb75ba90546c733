"""
FastAPI application for the BTO allocation engine.

JSON API only. Every call names its acting user in the X-User-NRIC header;
refusals from the core are translated into HTTP responses in one place.

Production deployment configuration via environment variables.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from bto import (
    EntityNotFoundError,
    HousingEngine,
    HousingError,
    IneligibleApplicantError,
    InvalidMaritalStatusError,
    NotAuthorizedError,
    Role,
    Session,
    User,
    set_engine,
)
from web.application_routes import router as application_router
from web.project_routes import router as project_router
from web.session_auth import get_housing_engine, require_session

logger = logging.getLogger(__name__)

# =============================================================================
# Environment Configuration
# =============================================================================

IS_PRODUCTION = os.getenv("PRODUCTION", "").lower() == "true"

ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "").split(",") if os.getenv("ALLOWED_ORIGINS") else []
if not ALLOWED_ORIGINS and not IS_PRODUCTION:
    # Development fallback only
    ALLOWED_ORIGINS = ["http://localhost:8000", "http://127.0.0.1:8000"]

DEBUG_MODE = os.getenv("DEBUG", "false").lower() == "true" and not IS_PRODUCTION

APP_VERSION = "0.1.0"


# =============================================================================
# Error Translation
# =============================================================================

# Anything not listed is a conflict with current state
STATUS_BY_ERROR: dict[type[HousingError], int] = {
    EntityNotFoundError: 404,
    NotAuthorizedError: 403,
    IneligibleApplicantError: 422,
    InvalidMaritalStatusError: 422,
}
DEFAULT_ERROR_STATUS = 409


def status_for(exc: HousingError) -> int:
    for cls in type(exc).__mro__:
        if cls in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[cls]
    return DEFAULT_ERROR_STATUS


async def housing_error_handler(request: Request, exc: HousingError) -> JSONResponse:
    return JSONResponse(status_code=status_for(exc), content=exc.to_dict())


async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": "INVALID_INPUT", "detail": str(exc)})


# =============================================================================
# User Registration
# =============================================================================


class UserCreateRequest(BaseModel):
    """Request body for registering a user record."""
    nric: str
    name: str
    age: int
    marital_status: str
    role: str = Role.APPLICANT.value


def create_app(engine: Optional[HousingEngine] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    if engine is not None:
        set_engine(engine)

    app = FastAPI(
        title="BTO Allocation Engine",
        description="Application, inventory and officer registration workflow for BTO projects",
        version=APP_VERSION,
        docs_url=None if IS_PRODUCTION else "/docs",
        redoc_url=None if IS_PRODUCTION else "/redoc",
        openapi_url=None if IS_PRODUCTION else "/openapi.json",
        debug=DEBUG_MODE,
    )

    # Healthchecks first: no dependencies, no IO
    @app.get("/", include_in_schema=False)
    def root():
        return {"status": "ok"}

    @app.get("/health", include_in_schema=False)
    def health():
        return {"status": "healthy"}

    if ALLOWED_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=ALLOWED_ORIGINS,
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT"],
            allow_headers=["*"],
        )

    app.add_exception_handler(HousingError, housing_error_handler)
    app.add_exception_handler(ValueError, value_error_handler)

    app.include_router(project_router)
    app.include_router(application_router)

    @app.post("/api/users", status_code=201, tags=["users"])
    def register_user(body: UserCreateRequest, engine: HousingEngine = Depends(get_housing_engine)):
        """Register a user record. Account management beyond this is out of scope."""
        user = engine.add_user(
            User(
                nric=body.nric,
                name=body.name,
                age=body.age,
                marital_status=body.marital_status,
                role=Role(body.role.lower()),
            )
        )
        return user.to_dict()

    @app.get("/api/me", tags=["users"])
    def whoami(
        session: Session = Depends(require_session),
        engine: HousingEngine = Depends(get_housing_engine),
    ):
        user = engine.get_user(session.user_id).to_dict()
        flat = engine.applications.booked_flat(session)
        user["booked_flat"] = flat.to_dict() if flat else None
        return user

    @app.get("/api/health")
    def api_health(engine: HousingEngine = Depends(get_housing_engine)):
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": APP_VERSION,
            "environment": "production" if IS_PRODUCTION else "development",
            "entities": engine.repository.count_by_kind(),
        }

    logger.info("BTO Allocation Engine app created")
    return app


# Create app instance for uvicorn
app = create_app()

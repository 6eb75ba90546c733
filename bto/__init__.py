"""
BTO Allocation Engine - Core Business Logic

The application / inventory / registration state machine of a public housing
Build-To-Order scheme:
1. Single active application per applicant
2. Eligibility gating by age, marital status and flat type
3. Application transitions from submission through booking or withdrawal
4. Atomic decrement/increment of per-type unit inventory
5. Officer registration with its own approval gate and slot inventory
"""

from .errors import (
    HousingError,
    EntityNotFoundError,
    DuplicateActiveApplicationError,
    IneligibleApplicantError,
    InvalidMaritalStatusError,
    InvalidTransitionError,
    AlreadyDecidedError,
    ProjectNotOpenError,
    FlatAlreadyBookedError,
    WithdrawalAlreadyPendingError,
    NoUnitsAvailableError,
    AtCapacityError,
    InvariantViolationError,
    AlreadyRegisteredError,
    SchedulingConflictError,
    ConflictOfInterestError,
    NoSlotsAvailableError,
    NotAuthorizedError,
    AlreadyProcessedError,
)
from .models import (
    ApplicationStatus,
    DateWindow,
    FlatType,
    MaritalStatus,
    RegistrationStatus,
    Role,
    User,
    WithdrawalStatus,
)
from .eligibility import (
    EligibilityPolicy,
    EligibilityResult,
    DEFAULT_POLICY,
    check_eligibility,
    eligible_flat_types,
    infer_flat_type,
    is_eligible,
)
from .inventory import Flat, Project
from .lifecycle import Application, OfficerRegistration, WithdrawalRequest
from .repository import HousingRepository, get_housing_repository, reset_housing_repository
from .roles import Capability, ROLE_CAPABILITIES
from .session import Session
from .engine import HousingEngine, get_engine, reset_engine, set_engine

__all__ = [
    # Errors
    "HousingError",
    "EntityNotFoundError",
    "DuplicateActiveApplicationError",
    "IneligibleApplicantError",
    "InvalidMaritalStatusError",
    "InvalidTransitionError",
    "AlreadyDecidedError",
    "ProjectNotOpenError",
    "FlatAlreadyBookedError",
    "WithdrawalAlreadyPendingError",
    "NoUnitsAvailableError",
    "AtCapacityError",
    "InvariantViolationError",
    "AlreadyRegisteredError",
    "SchedulingConflictError",
    "ConflictOfInterestError",
    "NoSlotsAvailableError",
    "NotAuthorizedError",
    "AlreadyProcessedError",
    # Models
    "ApplicationStatus",
    "DateWindow",
    "FlatType",
    "MaritalStatus",
    "RegistrationStatus",
    "Role",
    "User",
    "WithdrawalStatus",
    # Eligibility
    "EligibilityPolicy",
    "EligibilityResult",
    "DEFAULT_POLICY",
    "check_eligibility",
    "eligible_flat_types",
    "infer_flat_type",
    "is_eligible",
    # Entities
    "Flat",
    "Project",
    "Application",
    "OfficerRegistration",
    "WithdrawalRequest",
    # Infrastructure
    "HousingRepository",
    "get_housing_repository",
    "reset_housing_repository",
    "Capability",
    "ROLE_CAPABILITIES",
    "Session",
    "HousingEngine",
    "get_engine",
    "reset_engine",
    "set_engine",
]

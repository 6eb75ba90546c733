"""
Error Taxonomy - Recoverable Outcomes of Core Operations

Every refusal raised by the housing core is a subclass of HousingError and
carries a stable ``code`` string. Collaborators (web API, CLI) translate the
code into a user-facing message; the core only guarantees the kind and that
no entity was mutated when the error was raised.
"""

from __future__ import annotations

from typing import Any, Optional


class HousingError(Exception):
    """Base class for every refusal surfaced by the housing core."""

    code: str = "HOUSING_ERROR"
    retryable: bool = False

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.context = context
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "error": self.code,
            "detail": self.message,
            "retryable": self.retryable,
            "context": {k: _plain(v) for k, v in self.context.items()},
        }


def _plain(value: Any) -> Any:
    # Enums are rendered by value so the context is JSON-safe
    return getattr(value, "value", value)


# =============================================================================
# Lookup
# =============================================================================


class EntityNotFoundError(HousingError):
    """Raised when an identifier does not resolve in its store."""

    code = "ENTITY_NOT_FOUND"

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found", entity=entity, entity_id=entity_id)


# =============================================================================
# Application Lifecycle
# =============================================================================


class DuplicateActiveApplicationError(HousingError):
    """Applicant already holds a PENDING or SUCCESSFUL application."""

    code = "DUPLICATE_ACTIVE_APPLICATION"

    def __init__(self, applicant_id: str, application_id: str):
        super().__init__(
            f"Applicant {applicant_id} already has an active application ({application_id})",
            applicant_id=applicant_id,
            application_id=application_id,
        )


class IneligibleApplicantError(HousingError):
    """Applicant fails the eligibility rules for the project or flat type."""

    code = "INELIGIBLE_APPLICANT"

    def __init__(self, reason: str, **context: Any):
        self.reason = reason
        super().__init__(reason, **context)


class InvalidMaritalStatusError(HousingError):
    """Marital status outside the closed set of supported values."""

    code = "INVALID_MARITAL_STATUS"

    def __init__(self, value: Any):
        self.value = value
        super().__init__(f"Unsupported marital status: {value!r}", value=str(value))


class InvalidTransitionError(HousingError):
    """Requested status change is not in the transition table."""

    code = "INVALID_TRANSITION"

    def __init__(self, current: Any, requested: Any, message: Optional[str] = None):
        self.current = current
        self.requested = requested
        super().__init__(
            message or f"Cannot move from {_plain(current)} to {_plain(requested)}",
            current=current,
            requested=requested,
        )


class AlreadyDecidedError(InvalidTransitionError):
    """Application has already left PENDING."""

    code = "ALREADY_DECIDED"

    def __init__(self, application_id: str, current: Any, requested: Any):
        self.application_id = application_id
        super().__init__(
            current,
            requested,
            message=f"Application {application_id} was already decided ({_plain(current)})",
        )


class ProjectNotOpenError(HousingError):
    """Project is hidden or outside its application window."""

    code = "PROJECT_NOT_OPEN"

    def __init__(self, project_id: str, reason: str):
        super().__init__(f"Project {project_id} is not open for application: {reason}", project_id=project_id)


class FlatAlreadyBookedError(HousingError):
    """Flat selected for booking is already linked to an application."""

    code = "FLAT_ALREADY_BOOKED"

    def __init__(self, flat_id: str, application_id: Optional[str]):
        super().__init__(
            f"Flat {flat_id} is already booked",
            flat_id=flat_id,
            application_id=application_id,
        )


class WithdrawalAlreadyPendingError(HousingError):
    """A withdrawal request for the application is still awaiting a decision."""

    code = "WITHDRAWAL_ALREADY_PENDING"

    def __init__(self, application_id: str, request_id: str):
        super().__init__(
            f"Application {application_id} already has a pending withdrawal ({request_id})",
            application_id=application_id,
            request_id=request_id,
        )


# =============================================================================
# Inventory
# =============================================================================


class NoUnitsAvailableError(HousingError):
    """Available counter for the flat type is already zero."""

    code = "NO_UNITS_AVAILABLE"

    def __init__(self, project_id: str, flat_type: Any):
        self.flat_type = flat_type
        super().__init__(
            f"No {_plain(flat_type)} units available in project {project_id}",
            project_id=project_id,
            flat_type=flat_type,
        )


class AtCapacityError(HousingError):
    """Available counter already equals its total."""

    code = "AT_CAPACITY"

    def __init__(self, project_id: str, counter: str):
        self.counter = counter
        super().__init__(
            f"{counter} in project {project_id} is already at capacity",
            project_id=project_id,
            counter=counter,
        )


class InvariantViolationError(HousingError):
    """Internal guard: a counter left its bounds after a mutation."""

    code = "INVARIANT_VIOLATION"


# =============================================================================
# Officer Registration
# =============================================================================


class AlreadyRegisteredError(HousingError):
    """Officer already registered for, or assigned to, the project."""

    code = "ALREADY_REGISTERED"

    def __init__(self, officer_id: str, project_id: str):
        super().__init__(
            f"Officer {officer_id} is already registered for project {project_id}",
            officer_id=officer_id,
            project_id=project_id,
        )


class SchedulingConflictError(HousingError):
    """Application windows of two commitments overlap."""

    code = "SCHEDULING_CONFLICT"

    def __init__(self, user_id: str, project_id: str, conflicting_project_id: str):
        self.conflicting_project_id = conflicting_project_id
        super().__init__(
            f"{user_id} is already committed to project {conflicting_project_id} "
            f"whose application window overlaps {project_id}",
            user_id=user_id,
            project_id=project_id,
            conflicting_project_id=conflicting_project_id,
        )


class ConflictOfInterestError(HousingError):
    """Officer holds an application for the project they want to handle."""

    code = "CONFLICT_OF_INTEREST"

    def __init__(self, officer_id: str, project_id: str):
        super().__init__(
            f"Officer {officer_id} has applied for project {project_id} and cannot handle it",
            officer_id=officer_id,
            project_id=project_id,
        )


class NoSlotsAvailableError(HousingError):
    """Project has no free officer slot; the caller may retry later."""

    code = "NO_SLOTS_AVAILABLE"
    retryable = True

    def __init__(self, project_id: str):
        super().__init__(f"No officer slots available in project {project_id}", project_id=project_id)


# =============================================================================
# Authorization / Processing
# =============================================================================


class NotAuthorizedError(HousingError):
    """Acting user may not perform the operation."""

    code = "NOT_AUTHORIZED"

    def __init__(self, user_id: str, action: str):
        super().__init__(f"{user_id} is not authorized to {action}", user_id=user_id, action=action)


class AlreadyProcessedError(HousingError):
    """Request or registration has already reached a terminal status."""

    code = "ALREADY_PROCESSED"

    def __init__(self, entity_id: str, status: Any):
        super().__init__(
            f"{entity_id} has already been processed ({_plain(status)})",
            entity_id=entity_id,
            status=status,
        )

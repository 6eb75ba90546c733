"""
Eligibility Evaluator - Age / Marital Status / Flat Type Gate

Pure functions with no side effects. Called when an application is
submitted, when a flat is booked, and when listing the projects a user may
apply for.

Default policy:
- SINGLE, 35 years and above: TWO_ROOM only, project must offer TWO_ROOM
- MARRIED, 21 years and above: any flat type the project offers
- Anything else: rejected as an invalid marital status

The thresholds are policy defaults, not regulatory constants. They can be
overridden through EligibilityPolicy (see utils.config).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final, Optional, Union

from bto.models import FlatType, MaritalStatus, parse_marital_status

if TYPE_CHECKING:
    from bto.inventory.project import Project


DEFAULT_SINGLE_MIN_AGE: Final[int] = 35
DEFAULT_MARRIED_MIN_AGE: Final[int] = 21


@dataclass(frozen=True)
class EligibilityPolicy:
    """Tunable eligibility thresholds."""

    single_min_age: int = DEFAULT_SINGLE_MIN_AGE
    married_min_age: int = DEFAULT_MARRIED_MIN_AGE
    single_flat_types: frozenset[FlatType] = field(
        default_factory=lambda: frozenset({FlatType.TWO_ROOM})
    )

    def min_age(self, marital_status: MaritalStatus) -> int:
        if marital_status is MaritalStatus.SINGLE:
            return self.single_min_age
        return self.married_min_age

    def to_dict(self) -> dict:
        return {
            "single_min_age": self.single_min_age,
            "married_min_age": self.married_min_age,
            "single_flat_types": sorted(ft.value for ft in self.single_flat_types),
        }


DEFAULT_POLICY: Final[EligibilityPolicy] = EligibilityPolicy()


@dataclass(frozen=True)
class EligibilityResult:
    """Outcome of an eligibility check with the reason for a refusal."""

    eligible: bool
    flat_types: tuple[FlatType, ...] = ()
    reason: Optional[str] = None


def eligible_flat_types(
    marital_status: Union[MaritalStatus, str],
    project: "Project",
    policy: EligibilityPolicy = DEFAULT_POLICY,
) -> tuple[FlatType, ...]:
    """
    Flat types the project offers that this marital status may take.

    Ignores age; combine with is_eligible for the full rule.
    """
    status = parse_marital_status(marital_status)
    offered = [ft for ft in FlatType if project.offers(ft)]
    if status is MaritalStatus.SINGLE:
        return tuple(ft for ft in offered if ft in policy.single_flat_types)
    return tuple(offered)


def check_eligibility(
    age: int,
    marital_status: Union[MaritalStatus, str],
    project: "Project",
    policy: EligibilityPolicy = DEFAULT_POLICY,
) -> EligibilityResult:
    """
    Evaluate eligibility and explain a refusal.

    Raises:
        InvalidMaritalStatusError: If marital_status is outside the closed set
    """
    status = parse_marital_status(marital_status)
    min_age = policy.min_age(status)

    if age < min_age:
        return EligibilityResult(
            eligible=False,
            reason=f"{status.value} applicants must be at least {min_age} years old",
        )

    flat_types = eligible_flat_types(status, project, policy)
    if status is MaritalStatus.SINGLE and not flat_types:
        allowed = ", ".join(sorted(ft.value for ft in policy.single_flat_types))
        return EligibilityResult(
            eligible=False,
            reason=f"Single applicants may only take {allowed} flats, which this project does not offer",
        )

    return EligibilityResult(eligible=True, flat_types=flat_types)


def is_eligible(
    age: int,
    marital_status: Union[MaritalStatus, str],
    project: "Project",
    policy: EligibilityPolicy = DEFAULT_POLICY,
) -> bool:
    """Predicate form of check_eligibility."""
    return check_eligibility(age, marital_status, project, policy).eligible


def infer_flat_type(
    marital_status: Union[MaritalStatus, str],
    project: "Project",
) -> FlatType:
    """
    Guess the flat type a withdrawn application would have booked.

    Used only when no flat is attached to the application:
    SINGLE -> TWO_ROOM, MARRIED -> THREE_ROOM if offered else TWO_ROOM.
    """
    status = parse_marital_status(marital_status)
    if status is MaritalStatus.MARRIED and project.offers(FlatType.THREE_ROOM):
        return FlatType.THREE_ROOM
    return FlatType.TWO_ROOM

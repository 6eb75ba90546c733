"""
Services - The Only Mutation Entry Points of the Housing Core
"""

from bto.services.applications import ApplicationService, parse_flat_type, parse_outcome
from bto.services.base import DEFAULT_MAX_OFFICER_SLOTS, HousingService, ServiceContext
from bto.services.projects import ProjectService
from bto.services.registrations import RegistrationService
from bto.services.withdrawals import WithdrawalService

__all__ = [
    "ApplicationService",
    "parse_flat_type",
    "parse_outcome",
    "DEFAULT_MAX_OFFICER_SLOTS",
    "HousingService",
    "ServiceContext",
    "ProjectService",
    "RegistrationService",
    "WithdrawalService",
]

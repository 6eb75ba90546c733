"""
Lifecycle - Applications, Withdrawal Requests and Officer Registrations
"""

from bto.lifecycle.application import ALLOWED_TRANSITIONS, Application, generate_application_id
from bto.lifecycle.registration import (
    LIVE_REGISTRATION_STATUSES,
    OfficerRegistration,
    generate_registration_id,
)
from bto.lifecycle.withdrawal import WithdrawalRequest, generate_withdrawal_id

__all__ = [
    "ALLOWED_TRANSITIONS",
    "Application",
    "generate_application_id",
    "LIVE_REGISTRATION_STATUSES",
    "OfficerRegistration",
    "generate_registration_id",
    "WithdrawalRequest",
    "generate_withdrawal_id",
]

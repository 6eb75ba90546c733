"""
Housing Engine - Facade over the Core Services

Wires one repository, one lock registry and one eligibility policy into the
four services. Collaborators (web API, CLI, tests) hold an engine and open a
Session per acting user:

    engine = HousingEngine(HousingRepository())
    engine.add_user(User("S1234567A", "Ann", 40, MaritalStatus.SINGLE))
    session = engine.open_session("S1234567A")
    engine.applications.submit(session, "PRJ-...")
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Optional

from bto.eligibility import DEFAULT_POLICY, EligibilityPolicy
from bto.locking import LockRegistry, user_key
from bto.models import User, normalise_nric, utcnow
from bto.repository import HousingRepository
from bto.services import (
    DEFAULT_MAX_OFFICER_SLOTS,
    ApplicationService,
    ProjectService,
    RegistrationService,
    ServiceContext,
    WithdrawalService,
)
from bto.session import Session

if TYPE_CHECKING:
    from utils.config import Config

logger = logging.getLogger(__name__)

DATA_FILENAME = "housing.json"


class HousingEngine:
    """Entry point to every core operation."""

    def __init__(
        self,
        repository: HousingRepository,
        policy: EligibilityPolicy = DEFAULT_POLICY,
        clock: Callable[[], datetime] = utcnow,
        enforce_window: bool = True,
        max_officer_slots: int = DEFAULT_MAX_OFFICER_SLOTS,
        locks: Optional[LockRegistry] = None,
    ):
        self.context = ServiceContext(
            repository=repository,
            locks=locks or LockRegistry(),
            policy=policy,
            clock=clock,
            enforce_window=enforce_window,
            max_officer_slots=max_officer_slots,
        )
        self.applications = ApplicationService(self.context)
        self.withdrawals = WithdrawalService(self.context)
        self.registrations = RegistrationService(self.context)
        self.projects = ProjectService(self.context)

    @classmethod
    def from_config(cls, config: "Config") -> "HousingEngine":
        """Build an engine persisting under ``config.data_dir``."""
        persist_path = Path(config.data_dir) / DATA_FILENAME
        logger.info("Housing data file: %s", persist_path)
        return cls(
            HousingRepository(str(persist_path)),
            policy=config.eligibility_policy(),
            enforce_window=config.enforce_window,
            max_officer_slots=config.max_officer_slots,
        )

    @property
    def repository(self) -> HousingRepository:
        return self.context.repository

    @property
    def policy(self) -> EligibilityPolicy:
        return self.context.policy

    # =========================================================================
    # Users and Sessions
    # =========================================================================

    def add_user(self, user: User) -> User:
        """
        Register a user record.

        Raises:
            ValueError: If the NRIC is already registered
        """
        with self.context.locks.hold(user_key(user.nric)), self.repository.operation():
            self.repository.users.add(user)
            self.repository.commit()
        logger.info("User %s registered as %s", user.nric, user.role.value)
        return self.repository.users.get(user.nric)

    def get_user(self, nric: str) -> User:
        return self.repository.users.get(normalise_nric(nric))

    def open_session(self, nric: str) -> Session:
        """
        Raises:
            EntityNotFoundError: If no user has this NRIC
        """
        return Session.for_user(self.repository.users.checkout(normalise_nric(nric)))


# =============================================================================
# Singleton Instance
# =============================================================================

_engine_instance: Optional[HousingEngine] = None


def get_engine(config: Optional["Config"] = None) -> HousingEngine:
    """Get the engine singleton, building it from configuration on first use."""
    global _engine_instance
    if _engine_instance is None:
        if config is None:
            from utils.config import Config

            config = Config.load()
        _engine_instance = HousingEngine.from_config(config)
    return _engine_instance


def set_engine(engine: HousingEngine) -> None:
    """Install a prepared engine (tests, CLI)."""
    global _engine_instance
    _engine_instance = engine


def reset_engine() -> None:
    """Reset the singleton (for testing)."""
    global _engine_instance
    _engine_instance = None

"""
Service Base - Shared Context and the Atomic Unit of Work

Every mutating operation follows the same shape:

    with self._atomic("book", project_key(pid), application_key(aid)) as uow:
        ... validate (raise on refusal) ...
        ... apply through uow.checkout / uow.add ...

Locks are held for the whole block. Any exception rolls every touched entity
back to its pre-image; on success the repository is committed, and the file
is written once no other operation is in flight.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, Iterator

from bto.eligibility import DEFAULT_POLICY, EligibilityPolicy
from bto.errors import HousingError
from bto.locking import LockRegistry
from bto.models import utcnow
from bto.repository import HousingRepository, UnitOfWork

logger = logging.getLogger(__name__)

DEFAULT_MAX_OFFICER_SLOTS = 10


@dataclass
class ServiceContext:
    """Collaborators shared by every service of one engine."""

    repository: HousingRepository
    locks: LockRegistry = field(default_factory=LockRegistry)
    policy: EligibilityPolicy = DEFAULT_POLICY
    clock: Callable[[], datetime] = utcnow
    enforce_window: bool = True
    max_officer_slots: int = DEFAULT_MAX_OFFICER_SLOTS


class HousingService:
    """Base class for the core services."""

    def __init__(self, context: ServiceContext):
        self._context = context

    @property
    def repository(self) -> HousingRepository:
        return self._context.repository

    @property
    def policy(self) -> EligibilityPolicy:
        return self._context.policy

    def now(self) -> datetime:
        return self._context.clock()

    def today(self) -> date:
        return self.now().date()

    @contextmanager
    def _atomic(self, operation: str, *lock_keys: str) -> Iterator[UnitOfWork]:
        """Hold ``lock_keys``, run the block as one unit, commit on success."""
        with self._context.locks.hold(*lock_keys), self.repository.operation():
            uow = UnitOfWork()
            try:
                yield uow
                self.repository.commit()
            except HousingError as e:
                uow.rollback()
                logger.warning("%s refused: %s (%s)", operation, e.code, e.message)
                raise
            except ValueError as e:
                uow.rollback()
                logger.warning("%s refused: %s", operation, e)
                raise
            except Exception:
                touched = uow.touched
                uow.rollback()
                logger.exception("%s failed; %s change(s) rolled back", operation, touched)
                raise

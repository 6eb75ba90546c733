"""
Housing Repository - Arena Storage for Every Entity

Each entity kind lives in its own store keyed by identity; entities refer to
one another by ID only. Reads hand out deep copies, so a caller can never
mutate stored state except through the services.

Persistence: optional single JSON document, rewritten after a successful
mutation once no other operation is in flight (see operation and commit).
A corrupt file is logged and the repository starts empty.
"""

from __future__ import annotations

import copy
import json
import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Generic, Iterator, Optional, TypeVar

from bto.errors import EntityNotFoundError, HousingError
from bto.inventory import Flat, Project
from bto.lifecycle import Application, OfficerRegistration, WithdrawalRequest
from bto.models import FlatType, User, format_datetime, utcnow

logger = logging.getLogger(__name__)

T = TypeVar("T")

SNAPSHOT_VERSION = 1


# =============================================================================
# Entity Store
# =============================================================================


class EntityStore(Generic[T]):
    """
    Identity-keyed store for one entity kind.

    ``get``/``list``/``find`` return copies. ``checkout`` returns the live
    object and is reserved for services running inside a unit of work.
    """

    def __init__(self, entity: str, key: Callable[[T], str]):
        self.entity = entity
        self._key = key
        self._items: dict[str, T] = {}
        self._guard = threading.RLock()

    def key_of(self, item: T) -> str:
        return self._key(item)

    def add(self, item: T) -> T:
        """
        Raises:
            ValueError: If an item with the same key exists
        """
        key = self._key(item)
        with self._guard:
            if key in self._items:
                raise ValueError(f"{self.entity} {key} already exists")
            self._items[key] = item
        return item

    def discard(self, key: str) -> None:
        with self._guard:
            self._items.pop(key, None)

    def replace_all(self, items: list[T]) -> None:
        with self._guard:
            self._items = {self._key(item): item for item in items}

    def contains(self, key: str) -> bool:
        return key in self._items

    def checkout(self, key: str) -> T:
        """Live entity; raises EntityNotFoundError."""
        item = self._items.get(key)
        if item is None:
            raise EntityNotFoundError(self.entity, key)
        return item

    def get(self, key: str) -> T:
        """Copy of the entity; raises EntityNotFoundError."""
        return copy.deepcopy(self.checkout(key))

    def live(self) -> list[T]:
        """Live entities, for queries inside the core."""
        with self._guard:
            return list(self._items.values())

    def list(self) -> list[T]:
        return copy.deepcopy(self.live())

    def find(self, predicate: Callable[[T], bool]) -> list[T]:
        return copy.deepcopy([item for item in self.live() if predicate(item)])

    def __contains__(self, key: object) -> bool:
        return key in self._items

    def __iter__(self) -> Iterator[T]:
        return iter(self.live())

    def __len__(self) -> int:
        return len(self._items)


# =============================================================================
# Unit of Work
# =============================================================================


class UnitOfWork:
    """
    Records pre-images of every entity touched by one operation.

    rollback() restores each touched entity in place and removes entities
    added during the operation, leaving every store as it was.
    """

    def __init__(self):
        self._pre_images: dict[int, tuple[Any, dict]] = {}
        self._added: list[tuple[EntityStore, str]] = []

    def track(self, entity: T) -> T:
        marker = id(entity)
        if marker not in self._pre_images:
            self._pre_images[marker] = (entity, copy.deepcopy(entity.__dict__))
        return entity

    def checkout(self, store: EntityStore[T], key: str) -> T:
        """Live entity, with its pre-image recorded."""
        return self.track(store.checkout(key))

    def add(self, store: EntityStore[T], item: T) -> T:
        store.add(item)
        self._added.append((store, store.key_of(item)))
        return item

    @property
    def touched(self) -> int:
        return len(self._pre_images) + len(self._added)

    def rollback(self) -> None:
        for entity, state in self._pre_images.values():
            attributes = entity.__dict__
            for name in [name for name in attributes if name not in state]:
                del attributes[name]
            attributes.update(state)
        for store, key in reversed(self._added):
            store.discard(key)
        self._pre_images.clear()
        self._added.clear()


# =============================================================================
# Repository
# =============================================================================


class HousingRepository:
    """
    Stores for users, projects, flats, applications, registrations and
    withdrawal requests, with optional JSON file persistence.
    """

    def __init__(self, persist_path: Optional[str] = None):
        """
        Initialise repository.

        Args:
            persist_path: Optional path to persist data to JSON file
        """
        self.users: EntityStore[User] = EntityStore("User", lambda u: u.nric)
        self.projects: EntityStore[Project] = EntityStore("Project", lambda p: p.project_id)
        self.flats: EntityStore[Flat] = EntityStore("Flat", lambda f: f.flat_id)
        self.applications: EntityStore[Application] = EntityStore(
            "Application", lambda a: a.application_id
        )
        self.registrations: EntityStore[OfficerRegistration] = EntityStore(
            "OfficerRegistration", lambda r: r.registration_id
        )
        self.withdrawals: EntityStore[WithdrawalRequest] = EntityStore(
            "WithdrawalRequest", lambda w: w.request_id
        )
        self._persist_path = Path(persist_path) if persist_path else None
        self._activity = threading.Condition()
        self._in_flight = 0
        self._dirty = False

        if self._persist_path and self._persist_path.exists():
            self._load_from_file()

    @property
    def persist_path(self) -> Optional[Path]:
        return self._persist_path

    def _stores(self) -> dict[str, tuple[EntityStore, Callable[[dict], Any]]]:
        return {
            "users": (self.users, User.from_dict),
            "projects": (self.projects, Project.from_dict),
            "flats": (self.flats, Flat.from_dict),
            "applications": (self.applications, Application.from_dict),
            "registrations": (self.registrations, OfficerRegistration.from_dict),
            "withdrawals": (self.withdrawals, WithdrawalRequest.from_dict),
        }

    # =========================================================================
    # Snapshot
    # =========================================================================

    def snapshot(self) -> dict:
        """
        Whole-repository snapshot keyed by entity identity.

        Waits until no operation is in flight. Do not call from inside one.
        """
        with self._activity:
            self._activity.wait_for(lambda: self._in_flight == 0)
            return self._build_snapshot()

    def _build_snapshot(self) -> dict:
        data: dict[str, Any] = {"version": SNAPSHOT_VERSION}
        for name, (store, _) in self._stores().items():
            data[name] = {store.key_of(item): item.to_dict() for item in store.live()}
        data["saved_at"] = format_datetime(utcnow())
        return data

    def restore(self, data: dict) -> None:
        """
        Replace every store with the contents of a snapshot.

        All entities are decoded before any store is touched.

        Raises:
            KeyError, ValueError, HousingError: On a malformed snapshot
        """
        decoded: dict[str, list[Any]] = {}
        for name, (_, from_dict) in self._stores().items():
            decoded[name] = [from_dict(item) for item in data.get(name, {}).values()]

        for name, (store, _) in self._stores().items():
            store.replace_all(decoded[name])

    @classmethod
    def from_snapshot(cls, data: dict) -> "HousingRepository":
        repository = cls()
        repository.restore(data)
        return repository

    # =========================================================================
    # Persistence
    # =========================================================================

    @contextmanager
    def operation(self) -> Iterator[None]:
        """
        Bracket one mutating operation, from its first change to its commit
        or rollback.

        Operations on different projects run side by side, so the file is
        written only when none is in flight. A new operation cannot start
        while the file is being written.
        """
        with self._activity:
            self._in_flight += 1
        try:
            yield
        finally:
            with self._activity:
                self._in_flight -= 1
                if self._in_flight == 0:
                    self._activity.notify_all()
                    self._flush()

    def _flush(self) -> None:
        # caller holds self._activity with nothing in flight
        if self._dirty:
            self._save_to_file()
            self._dirty = False

    def _save_to_file(self) -> None:
        """Persist data to file."""
        if not self._persist_path:
            return

        data = self._build_snapshot()
        self._persist_path.parent.mkdir(parents=True, exist_ok=True)
        self._persist_path.write_text(json.dumps(data, indent=2))

    def _load_from_file(self) -> None:
        """Load data from file."""
        if not self._persist_path or not self._persist_path.exists():
            return

        try:
            self.restore(json.loads(self._persist_path.read_text()))
            logger.info("Loaded housing data from %s", self._persist_path)
        except (json.JSONDecodeError, KeyError, ValueError, HousingError) as e:
            # Start fresh rather than refuse to boot
            logger.warning("Could not load repository data from %s: %s", self._persist_path, e)

    def commit(self) -> None:
        """
        Called after each successful mutation. Saves now when nothing is in
        flight, otherwise when the last running operation finishes.
        """
        with self._activity:
            self._dirty = True
            if self._in_flight == 0:
                self._flush()

    # =========================================================================
    # Queries (live objects; callers inside the core only)
    # =========================================================================

    def applications_of(self, applicant_id: str) -> list[Application]:
        return [a for a in self.applications.live() if a.applicant_id == applicant_id]

    def active_application_of(self, applicant_id: str) -> Optional[Application]:
        for application in self.applications_of(applicant_id):
            if application.is_active:
                return application
        return None

    def applications_for_project(self, project_id: str) -> list[Application]:
        return [a for a in self.applications.live() if a.project_id == project_id]

    def registrations_of(self, officer_id: str) -> list[OfficerRegistration]:
        return [r for r in self.registrations.live() if r.officer_id == officer_id]

    def registrations_for_project(self, project_id: str) -> list[OfficerRegistration]:
        return [r for r in self.registrations.live() if r.project_id == project_id]

    def pending_withdrawal_for(self, application_id: str) -> Optional[WithdrawalRequest]:
        for request in self.withdrawals.live():
            if request.application_id == application_id and request.is_pending:
                return request
        return None

    def booked_flat_count(self, project_id: str, flat_type: FlatType) -> int:
        return sum(
            1
            for f in self.flats.live()
            if f.project_id == project_id and f.flat_type is flat_type and f.is_booked
        )

    def projects_managed_by(self, manager_id: str) -> list[Project]:
        return [p for p in self.projects.live() if p.manager_id == manager_id]

    def projects_handled_by(self, officer_id: str) -> list[Project]:
        return [p for p in self.projects.live() if p.has_officer(officer_id)]

    def count_by_kind(self) -> dict[str, int]:
        return {name: len(store) for name, (store, _) in self._stores().items()}


# =============================================================================
# Singleton Instance
# =============================================================================

_repository_instance: Optional[HousingRepository] = None


def get_housing_repository(persist_path: Optional[str] = None) -> HousingRepository:
    """
    Get the housing repository singleton.

    Args:
        persist_path: Optional path for persistence (only used on first call)
    """
    global _repository_instance
    if _repository_instance is None:
        _repository_instance = HousingRepository(persist_path)
    return _repository_instance


def reset_housing_repository() -> None:
    """Reset the singleton (for testing)."""
    global _repository_instance
    _repository_instance = None

"""
Storage interface shared by the in-memory and SQL backends.

Services only ever talk to a ``Store``; which backend sits behind it is
decided once, when the application is built.
"""

import itertools
import logging
import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence, Type

from sqlmodel import SQLModel

from .errors import Conflict
from .models import User, Bin, Complaint, Schedule

logger = logging.getLogger(__name__)


class Store(ABC):
    """Create/read/update/list over users, bins, complaints and schedules.

    Records are returned as detached model instances; mutating them has no
    effect on the store. Identifiers are assigned by the store and are
    strictly increasing per entity type.
    """

    # Users
    @abstractmethod
    def get_user(self, user_id: int) -> Optional[User]: ...

    @abstractmethod
    def get_user_by_username(self, username: str) -> Optional[User]: ...

    @abstractmethod
    def create_user(self, username: str, role: str) -> User:
        """Insert a user. Raises ``Conflict`` if the username is taken."""

    @abstractmethod
    def list_users(self, roles: Optional[Sequence[str]] = None) -> List[User]: ...

    # Bins
    @abstractmethod
    def get_bin(self, bin_id: int) -> Optional[Bin]: ...

    @abstractmethod
    def create_bin(self, **data) -> Bin: ...

    @abstractmethod
    def list_bins(self, status: Optional[str] = None) -> List[Bin]:
        """Bins ordered by id, optionally restricted to one status."""

    @abstractmethod
    def update_bin(self, bin_id: int, **changes) -> Optional[Bin]: ...

    # Complaints
    @abstractmethod
    def get_complaint(self, complaint_id: int) -> Optional[Complaint]: ...

    @abstractmethod
    def create_complaint(self, **data) -> Complaint: ...

    @abstractmethod
    def list_complaints(self, user_id: Optional[int] = None) -> List[Complaint]:
        """Complaints newest first, optionally only those reported by ``user_id``."""

    @abstractmethod
    def update_complaint(self, complaint_id: int, **changes) -> Optional[Complaint]: ...

    # Schedules
    @abstractmethod
    def get_schedule(self, schedule_id: int) -> Optional[Schedule]: ...

    @abstractmethod
    def create_schedule(self, **data) -> Schedule: ...

    @abstractmethod
    def list_schedules(self, user_id: Optional[int] = None,
                       worker_id: Optional[int] = None) -> List[Schedule]:
        """Schedules by collection date and time, most recent first.

        With ``user_id`` only rows requested by that user are returned; with
        ``worker_id`` only rows assigned to that worker. When both are given
        a row matching either condition is returned once.
        """

    @abstractmethod
    def update_schedule(self, schedule_id: int, **changes) -> Optional[Schedule]: ...


class MemoryStore(Store):
    """Dict-backed store. Everything is lost when the process exits."""

    def __init__(self):
        self._lock = threading.RLock()
        self._rows: Dict[Type[SQLModel], Dict[int, dict]] = {}
        self._ids: Dict[Type[SQLModel], itertools.count] = {}
        for model in (User, Bin, Complaint, Schedule):
            self._rows[model] = {}
            self._ids[model] = itertools.count(1)

    # generic helpers

    def _get(self, model, row_id):
        row = self._rows[model].get(row_id)
        return model(**row) if row is not None else None

    def _insert(self, model, data: dict):
        with self._lock:
            obj = model(**data)
            obj.id = next(self._ids[model])
            self._rows[model][obj.id] = obj.model_dump()
            logger.debug("Inserted %s %s", model.__name__, obj.id)
            return model(**self._rows[model][obj.id])

    def _update(self, model, row_id, changes: dict):
        with self._lock:
            row = self._rows[model].get(row_id)
            if row is None:
                return None
            row.update(changes)
            return model(**row)

    def _all(self, model) -> List:
        return [model(**row) for row in list(self._rows[model].values())]

    # users

    def get_user(self, user_id):
        return self._get(User, user_id)

    def get_user_by_username(self, username):
        for user in self._all(User):
            if user.username == username:
                return user
        return None

    def create_user(self, username, role):
        with self._lock:
            if any(row["username"] == username for row in self._rows[User].values()):
                raise Conflict(f"Username '{username}' already exists")
            return self._insert(User, {"username": username, "role": role})

    def list_users(self, roles=None):
        users = sorted(self._all(User), key=lambda u: u.id)
        if roles is not None:
            users = [u for u in users if u.role in roles]
        return users

    # bins

    def get_bin(self, bin_id):
        return self._get(Bin, bin_id)

    def create_bin(self, **data):
        return self._insert(Bin, data)

    def list_bins(self, status=None):
        bins = sorted(self._all(Bin), key=lambda b: b.id)
        if status is not None:
            bins = [b for b in bins if b.status == status]
        return bins

    def update_bin(self, bin_id, **changes):
        return self._update(Bin, bin_id, changes)

    # complaints

    def get_complaint(self, complaint_id):
        return self._get(Complaint, complaint_id)

    def create_complaint(self, **data):
        return self._insert(Complaint, data)

    def list_complaints(self, user_id=None):
        complaints = self._all(Complaint)
        if user_id is not None:
            complaints = [c for c in complaints if c.user_id == user_id]
        return sorted(complaints, key=lambda c: (c.created_at, c.id), reverse=True)

    def update_complaint(self, complaint_id, **changes):
        return self._update(Complaint, complaint_id, changes)

    # schedules

    def get_schedule(self, schedule_id):
        return self._get(Schedule, schedule_id)

    def create_schedule(self, **data):
        return self._insert(Schedule, data)

    def list_schedules(self, user_id=None, worker_id=None):
        schedules = self._all(Schedule)
        if user_id is not None or worker_id is not None:
            schedules = [
                s for s in schedules
                if (user_id is not None and s.user_id == user_id)
                or (worker_id is not None and s.assigned_worker_id == worker_id)
            ]
        return sorted(
            schedules,
            key=lambda s: (s.collection_date, s.collection_time, s.id),
            reverse=True,
        )

    def update_schedule(self, schedule_id, **changes):
        return self._update(Schedule, schedule_id, changes)

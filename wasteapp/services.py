"""
Entity services: validation, role scoping, status changes and read-time
enrichment for bins, complaints and schedules.

Every operation takes the acting identity explicitly (``None`` for an
anonymous caller) and talks to storage only through the ``Store``
interface. Status changes are guarded by role alone; any status of an
entity may be reached from any other.
"""

import logging
import math
from datetime import date, time
from typing import Dict, List, Optional

from .auth import require_any_role, require_authenticated
from .errors import Forbidden, NotFound, ValidationError
from .models import (
    User, utcnow,
    STAFF_ROLES, BIN_TYPES, COMPLAINT_PRIORITIES, COMPLAINT_STATUSES, SCHEDULE_STATUSES,
)
from .schemas import BinRead, ComplaintView, ScheduleView, WorkerRead, UserRead, DashboardSummary
from .store import Store

logger = logging.getLogger(__name__)


# -------------------------
# Input coercion
# -------------------------

def _blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())

def _text(value) -> Optional[str]:
    if _blank(value):
        return None
    return str(value).strip()

def _float(value, field: str, required: bool = False) -> Optional[float]:
    if _blank(value):
        if required:
            raise ValidationError(f"{field} is required")
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        result = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not math.isfinite(result):
        raise ValidationError(f"{field} must be a finite number")
    return result

def _ref(value, field: str) -> Optional[int]:
    if _blank(value):
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer id")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer id")

def _choice(value, allowed, field: str) -> str:
    if value not in allowed:
        raise ValidationError(f"Invalid {field} '{value}'; expected one of: {', '.join(allowed)}")
    return value

def _date(value) -> date:
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise ValidationError(f"Invalid collection date '{value}'; expected YYYY-MM-DD")

def _time(value) -> time:
    try:
        return time.fromisoformat(str(value).strip())
    except ValueError:
        raise ValidationError(f"Invalid collection time '{value}'; expected HH:MM")


class _UserNames:
    """Memoised id -> username lookups for one enrichment pass."""

    def __init__(self, store: Store):
        self.store = store
        self._cache: Dict[int, Optional[str]] = {}

    def get(self, user_id: Optional[int]) -> Optional[str]:
        if user_id is None:
            return None
        if user_id not in self._cache:
            user = self.store.get_user(user_id)
            self._cache[user_id] = user.username if user else None
        return self._cache[user_id]


# -------------------------
# Bins
# -------------------------

class BinService:
    def __init__(self, store: Store):
        self.store = store

    def list_active(self) -> List[BinRead]:
        return [BinRead.model_validate(b) for b in self.store.list_bins(status="active")]

    def list_all(self, identity: Optional[User]) -> List[BinRead]:
        require_any_role(identity, STAFF_ROLES)
        return [BinRead.model_validate(b) for b in self.store.list_bins()]

    def create(self, identity: Optional[User], type: Optional[str], latitude, longitude,
               location_name: Optional[str] = None) -> int:
        user = require_any_role(identity, STAFF_ROLES)
        if _blank(type) or _blank(latitude) or _blank(longitude):
            raise ValidationError("Type, latitude, and longitude are required")
        _choice(type, BIN_TYPES, "bin type")
        b = self.store.create_bin(
            type=type,
            latitude=_float(latitude, "Latitude", required=True),
            longitude=_float(longitude, "Longitude", required=True),
            location_name=_text(location_name),
            status="active",
            created_by=user.id,
        )
        logger.info("Bin %s (%s) created by '%s'", b.id, b.type, user.username)
        return b.id

    def soft_delete(self, identity: Optional[User], bin_id: int) -> None:
        user = require_any_role(identity, STAFF_ROLES)
        b = self.store.get_bin(bin_id)
        if b is None:
            raise NotFound("Bin not found")
        if b.status == "inactive":
            return
        self.store.update_bin(bin_id, status="inactive")
        logger.info("Bin %s deactivated by '%s'", bin_id, user.username)


# -------------------------
# Complaints
# -------------------------

class ComplaintService:
    def __init__(self, store: Store):
        self.store = store

    def list(self, identity: Optional[User]) -> List[ComplaintView]:
        user = require_authenticated(identity)
        owner = user.id if user.role == "public" else None
        names = _UserNames(self.store)
        return [
            ComplaintView(
                **c.model_dump(),
                user_name=names.get(c.user_id) or "Unknown",
                resolved_by_name=names.get(c.resolved_by),
            )
            for c in self.store.list_complaints(user_id=owner)
        ]

    def create(self, identity: Optional[User], title: Optional[str], description: Optional[str],
               latitude=None, longitude=None, location_name: Optional[str] = None,
               priority: Optional[str] = None) -> int:
        user = require_authenticated(identity)
        if _blank(title) or _blank(description):
            raise ValidationError("Title and description are required")
        if _blank(priority):
            priority = "medium"
        _choice(priority, COMPLAINT_PRIORITIES, "priority")
        c = self.store.create_complaint(
            user_id=user.id,
            title=title.strip(),
            description=description.strip(),
            latitude=_float(latitude, "Latitude"),
            longitude=_float(longitude, "Longitude"),
            location_name=_text(location_name),
            priority=priority,
            status="pending",
        )
        logger.info("Complaint %s filed by '%s' (%s priority)", c.id, user.username, priority)
        return c.id

    def update_status(self, identity: Optional[User], complaint_id: int, status: Optional[str]) -> None:
        user = require_any_role(identity, STAFF_ROLES)
        if _blank(status):
            raise ValidationError("Status is required")
        _choice(status, COMPLAINT_STATUSES, "complaint status")
        updated = self.store.update_complaint(
            complaint_id, status=status, resolved_by=user.id, updated_at=utcnow()
        )
        if updated is None:
            raise NotFound("Complaint not found")
        logger.info("Complaint %s -> %s by '%s'", complaint_id, status, user.username)


# -------------------------
# Schedules
# -------------------------

class ScheduleService:
    def __init__(self, store: Store):
        self.store = store

    def _assignee(self, worker_id: int) -> User:
        worker = self.store.get_user(worker_id)
        if worker is None:
            raise ValidationError("Assigned worker not found")
        if worker.role not in STAFF_ROLES:
            raise ValidationError(f"User '{worker.username}' is not a worker")
        return worker

    def list(self, identity: Optional[User]) -> List[ScheduleView]:
        user = require_authenticated(identity)
        if user.role == "public":
            rows = self.store.list_schedules(user_id=user.id)
        elif user.role == "worker":
            rows = self.store.list_schedules(user_id=user.id, worker_id=user.id)
        else:
            rows = self.store.list_schedules()

        names = _UserNames(self.store)
        bins = {}
        views = []
        for s in rows:
            if s.bin_id is not None and s.bin_id not in bins:
                bins[s.bin_id] = self.store.get_bin(s.bin_id)
            b = bins.get(s.bin_id)
            views.append(ScheduleView(
                **s.model_dump(),
                user_name=names.get(s.user_id) or "Unknown",
                assigned_worker_name=names.get(s.assigned_worker_id),
                bin_location=b.location_name if b else None,
                bin_type=b.type if b else None,
            ))
        return views

    def create(self, identity: Optional[User], collection_date, collection_time,
               bin_id=None, notes: Optional[str] = None,
               assigned_worker_id=None, admin_notes: Optional[str] = None) -> int:
        user = require_authenticated(identity)
        if _blank(collection_date) or _blank(collection_time):
            raise ValidationError("Collection date and time are required")
        day = _date(collection_date)
        at = _time(collection_time)

        worker_id = _ref(assigned_worker_id, "assigned_worker_id")
        admin_notes = _text(admin_notes)
        if (worker_id is not None or admin_notes is not None) and user.role != "admin":
            logger.warning("'%s' tried to set admin-only schedule fields", user.username)
            raise Forbidden("Only admins can assign workers or add admin notes")
        if worker_id is not None:
            self._assignee(worker_id)

        bin_ref = _ref(bin_id, "bin_id")
        if bin_ref is not None and self.store.get_bin(bin_ref) is None:
            raise ValidationError("Bin not found")

        s = self.store.create_schedule(
            user_id=user.id,
            bin_id=bin_ref,
            collection_date=day,
            collection_time=at,
            notes=_text(notes),
            assigned_worker_id=worker_id,
            admin_notes=admin_notes,
            status="scheduled",
        )
        logger.info("Schedule %s for %s %s created by '%s'", s.id, day, at, user.username)
        return s.id

    def update_status(self, identity: Optional[User], schedule_id: int, status: Optional[str],
                      collector_name: Optional[str] = None) -> None:
        user = require_authenticated(identity)
        schedule = self.store.get_schedule(schedule_id)
        if schedule is None:
            raise NotFound("Schedule not found")
        if user.role != "admin" and schedule.assigned_worker_id != user.id:
            logger.warning("'%s' is not assigned to schedule %s", user.username, schedule_id)
            raise Forbidden("Only an admin or the assigned worker can update this schedule")
        if _blank(status):
            raise ValidationError("Status is required")
        _choice(status, SCHEDULE_STATUSES, "schedule status")

        changes = {"status": status}
        if collector_name is not None:
            changes["collector_name"] = collector_name
        self.store.update_schedule(schedule_id, **changes)
        logger.info("Schedule %s -> %s by '%s'", schedule_id, status, user.username)

    def assign_worker(self, identity: Optional[User], schedule_id: int, worker_id,
                      admin_notes: Optional[str] = None) -> None:
        user = require_any_role(identity, ("admin",))
        worker_ref = _ref(worker_id, "assigned_worker_id")
        if worker_ref is None:
            raise ValidationError("Worker is required")
        if self.store.get_schedule(schedule_id) is None:
            raise NotFound("Schedule not found")
        worker = self._assignee(worker_ref)
        self.store.update_schedule(schedule_id, assigned_worker_id=worker.id, admin_notes=_text(admin_notes))
        logger.info("Schedule %s assigned to '%s' by '%s'", schedule_id, worker.username, user.username)


# -------------------------
# Directories and dashboard
# -------------------------

class WorkerDirectory:
    def __init__(self, store: Store):
        self.store = store

    def list_workers(self, identity: Optional[User]) -> List[WorkerRead]:
        require_any_role(identity, STAFF_ROLES)
        return [WorkerRead.model_validate(u) for u in self.store.list_users(roles=STAFF_ROLES)]


class UserDirectory:
    def __init__(self, store: Store):
        self.store = store

    def list_users(self, identity: Optional[User]) -> List[UserRead]:
        require_any_role(identity, ("admin",))
        return [UserRead.model_validate(u) for u in self.store.list_users()]


class DashboardService:
    """Headline counts computed from the caller's own scoped views."""

    def __init__(self, bins: BinService, complaints: ComplaintService, schedules: ScheduleService):
        self.bins = bins
        self.complaints = complaints
        self.schedules = schedules

    def summary(self, identity: Optional[User]) -> DashboardSummary:
        complaints = self.complaints.list(identity)
        schedules = self.schedules.list(identity)
        return DashboardSummary(
            total_bins=len(self.bins.list_active()),
            pending_complaints=sum(1 for c in complaints if c.status == "pending"),
            scheduled_collections=sum(1 for s in schedules if s.status == "scheduled"),
            completed_tasks=sum(1 for s in schedules if s.status == "completed"),
        )


class Services:
    """All services wired to one store."""

    def __init__(self, store: Store):
        self.store = store
        self.bins = BinService(store)
        self.complaints = ComplaintService(store)
        self.schedules = ScheduleService(store)
        self.workers = WorkerDirectory(store)
        self.users = UserDirectory(store)
        self.dashboard = DashboardService(self.bins, self.complaints, self.schedules)

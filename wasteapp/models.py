from typing import Optional
from datetime import datetime, date, time, timezone
from sqlmodel import SQLModel, Field

ROLES = ("public", "worker", "admin")
STAFF_ROLES = ("worker", "admin")
BIN_TYPES = ("paper", "plastic", "metal")
BIN_STATUSES = ("active", "inactive", "full")
COMPLAINT_PRIORITIES = ("low", "medium", "high")
COMPLAINT_STATUSES = ("pending", "in_progress", "solved", "unsolved")
SCHEDULE_STATUSES = ("scheduled", "in_progress", "completed", "cancelled")


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(index=True, unique=True)
    role: str = Field(default="public")  # public, worker, admin
    created_at: datetime = Field(default_factory=utcnow)


class Bin(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    type: str  # paper, plastic, metal
    latitude: float
    longitude: float
    location_name: Optional[str] = None
    status: str = Field(default="active", index=True)  # active, inactive, full
    created_by: Optional[int] = Field(default=None, foreign_key="user.id")
    created_at: datetime = Field(default_factory=utcnow)


class Complaint(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    title: str
    description: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    location_name: Optional[str] = None
    priority: str = Field(default="medium")  # low, medium, high
    status: str = Field(default="pending")  # pending, in_progress, solved, unsolved
    resolved_by: Optional[int] = Field(default=None, foreign_key="user.id")
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Schedule(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    bin_id: Optional[int] = Field(default=None, foreign_key="bin.id")
    collection_date: date
    collection_time: time
    notes: Optional[str] = None
    admin_notes: Optional[str] = None
    assigned_worker_id: Optional[int] = Field(default=None, foreign_key="user.id", index=True)
    status: str = Field(default="scheduled")  # scheduled, in_progress, completed, cancelled
    collector_name: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)

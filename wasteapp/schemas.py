from typing import Optional, Union
from datetime import datetime, date, time
from pydantic import BaseModel

# Request bodies are deliberately loose: the services own validation so
# that every rejected value comes back as a 400 with a readable message.

Number = Union[float, int, str]
Ref = Union[int, str]


# ==== Auth ====
class LoginRequest(BaseModel):
    username: Optional[str] = None

class UserRead(BaseModel):
    id: int
    username: str
    role: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class LoginResponse(BaseModel):
    user: UserRead
    message: str

class MeResponse(BaseModel):
    user: UserRead


# ==== Generic ====
class MessageResponse(BaseModel):
    message: str

class CreatedResponse(BaseModel):
    id: int
    message: str


# ==== Bins ====
class BinCreate(BaseModel):
    type: Optional[str] = None
    latitude: Optional[Number] = None
    longitude: Optional[Number] = None
    location_name: Optional[str] = None

class BinRead(BaseModel):
    id: int
    type: str
    latitude: float
    longitude: float
    location_name: Optional[str] = None
    status: str
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ==== Complaints ====
class ComplaintCreate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    latitude: Optional[Number] = None
    longitude: Optional[Number] = None
    location_name: Optional[str] = None
    priority: Optional[str] = None

class ComplaintStatusUpdate(BaseModel):
    status: Optional[str] = None

class ComplaintView(BaseModel):
    id: int
    user_id: int
    title: str
    description: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    location_name: Optional[str] = None
    priority: str
    status: str
    resolved_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    # joined on read
    user_name: Optional[str] = None
    resolved_by_name: Optional[str] = None

    class Config:
        from_attributes = True


# ==== Schedules ====
class ScheduleCreate(BaseModel):
    bin_id: Optional[Ref] = None
    collection_date: Optional[str] = None
    collection_time: Optional[str] = None
    notes: Optional[str] = None
    assigned_worker_id: Optional[Ref] = None
    admin_notes: Optional[str] = None

class ScheduleStatusUpdate(BaseModel):
    status: Optional[str] = None
    collector_name: Optional[str] = None

class ScheduleAssign(BaseModel):
    assigned_worker_id: Optional[Ref] = None
    admin_notes: Optional[str] = None

class ScheduleView(BaseModel):
    id: int
    user_id: int
    bin_id: Optional[int] = None
    collection_date: date
    collection_time: time
    notes: Optional[str] = None
    admin_notes: Optional[str] = None
    assigned_worker_id: Optional[int] = None
    status: str
    collector_name: Optional[str] = None
    created_at: datetime
    # joined on read
    user_name: Optional[str] = None
    assigned_worker_name: Optional[str] = None
    bin_location: Optional[str] = None
    bin_type: Optional[str] = None

    class Config:
        from_attributes = True


# ==== Workers / dashboard ====
class WorkerRead(BaseModel):
    id: int
    username: str

    class Config:
        from_attributes = True

class DashboardSummary(BaseModel):
    total_bins: int
    pending_complaints: int
    scheduled_collections: int
    completed_tasks: int

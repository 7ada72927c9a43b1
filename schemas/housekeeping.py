from typing import Optional, Dict
from datetime import datetime
from pydantic import BaseModel, Field, ConfigDict

from models import CleaningStatus, MaintenanceStatus, Priority


# ===== CLEANING TASKS =====

class CleaningTaskCreate(BaseModel):
    room_id: int
    assigned_to_id: Optional[int] = None
    description: Optional[str] = Field(None, max_length=200)
    priority: Priority = Priority.MEDIUM


class CleaningTaskForRoom(BaseModel):
    room_id: int
    priority: Priority = Priority.MEDIUM


class CleaningTaskUpdate(BaseModel):
    assigned_to_id: Optional[int] = None
    description: Optional[str] = Field(None, max_length=200)
    priority: Optional[Priority] = None
    status: Optional[CleaningStatus] = None
    completion_notes: Optional[str] = None


class CleaningTaskComplete(BaseModel):
    notes: Optional[str] = None


class CleaningTaskRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    task_number: str
    room_id: int
    room_number: Optional[str] = None
    assigned_to_id: Optional[int] = None
    assigned_to_name: Optional[str] = None
    description: str
    priority: Priority
    status: CleaningStatus
    created_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    completion_notes: Optional[str] = None
    duration_minutes: Optional[float] = None


class CleaningStatistics(BaseModel):
    total_tasks: int
    completed_tasks: int
    pending_tasks: int
    in_progress_tasks: int
    average_completion_minutes: float
    average_minutes_by_housekeeper: Dict[str, float]
    by_status: Dict[str, int]
    by_priority: Dict[str, int]


# ===== MAINTENANCE =====

class MaintenanceRequestCreate(BaseModel):
    room_id: Optional[int] = None
    issue_description: str = Field(..., min_length=3, max_length=1000)
    priority: Priority = Priority.MEDIUM


class MaintenanceRequestUpdate(BaseModel):
    room_id: Optional[int] = None
    issue_description: Optional[str] = Field(None, min_length=3, max_length=1000)
    priority: Optional[Priority] = None
    status: Optional[MaintenanceStatus] = None
    assigned_to_id: Optional[int] = None
    resolution_notes: Optional[str] = None
    cost_of_repair: Optional[float] = Field(None, ge=0)


class MaintenanceComplete(BaseModel):
    resolution_notes: Optional[str] = None
    cost_of_repair: Optional[float] = Field(None, ge=0)


class MaintenanceRequestRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    room_id: Optional[int] = None
    room_number: Optional[str] = None
    floor: Optional[int] = None
    issue_description: str
    priority: Priority
    status: MaintenanceStatus
    reported_by_id: Optional[int] = None
    reported_by_name: Optional[str] = None
    assigned_to_id: Optional[int] = None
    assigned_to_name: Optional[str] = None
    report_date: datetime
    completed_at: Optional[datetime] = None
    resolution_notes: Optional[str] = None
    cost_of_repair: Optional[float] = None
    time_to_resolve_hours: Optional[float] = None

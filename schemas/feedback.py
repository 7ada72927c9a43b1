from typing import Any, Optional
from datetime import date, datetime
from pydantic import BaseModel, ConfigDict, EmailStr, Field

from models import ReportType


# ========== FEEDBACK ==========

class FeedbackCreate(BaseModel):
    reservation_id: Optional[int] = None
    guest_name: Optional[str] = Field(None, max_length=100)
    guest_email: Optional[EmailStr] = None
    rating: int = Field(..., ge=1, le=5)
    subject: Optional[str] = Field(None, max_length=200)
    comments: Optional[str] = Field(None, max_length=2000)
    category: Optional[str] = Field(None, max_length=50)


class FeedbackUpdate(BaseModel):
    rating: Optional[int] = Field(None, ge=1, le=5)
    subject: Optional[str] = Field(None, max_length=200)
    comments: Optional[str] = Field(None, max_length=2000)
    category: Optional[str] = Field(None, max_length=50)


class FeedbackResolve(BaseModel):
    resolution_notes: Optional[str] = None


class FeedbackRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: Optional[int] = None
    user_name: Optional[str] = None
    reservation_id: Optional[int] = None
    reservation_number: Optional[str] = None
    guest_name: Optional[str] = None
    guest_email: Optional[str] = None
    rating: int
    subject: Optional[str] = None
    comments: Optional[str] = None
    category: Optional[str] = None
    is_resolved: bool
    resolution_notes: Optional[str] = None
    resolved_by_id: Optional[int] = None
    resolved_by_name: Optional[str] = None
    resolved_at: Optional[datetime] = None
    created_at: datetime


# ========== REPORTS ==========

class ReportCreate(BaseModel):
    report_name: str = Field(..., min_length=2, max_length=100)
    report_type: ReportType
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class ReportRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    report_name: str
    report_type: ReportType
    report_data: Any
    creation_date: datetime
    created_by_id: Optional[int] = None
    created_by_name: Optional[str] = None

"""
Schemas de reservas
"""
from typing import List, Optional
from datetime import date, datetime
from pydantic import BaseModel, ConfigDict, Field

from models import PaymentMethod, PaymentStatus, ReservationStatus


class ServiceLine(BaseModel):
    service_id: int
    quantity: int = Field(1, ge=1, le=100)


class ReservationCreate(BaseModel):
    room_type_id: int
    check_in_date: date
    check_out_date: date
    number_of_guests: int = Field(1, ge=1, le=10)
    special_requests: Optional[str] = Field(None, max_length=500)
    payment_method: Optional[PaymentMethod] = None
    services: List[ServiceLine] = []
    user_id: Optional[int] = None


class ReservationUpdate(BaseModel):
    room_type_id: Optional[int] = None
    check_in_date: Optional[date] = None
    check_out_date: Optional[date] = None
    number_of_guests: Optional[int] = Field(None, ge=1, le=10)
    special_requests: Optional[str] = Field(None, max_length=500)
    payment_method: Optional[PaymentMethod] = None


class CheckInRequest(BaseModel):
    room_id: Optional[int] = None


class CancelRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class ReservationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    reservation_number: str
    user_id: int
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    reservation_date: datetime
    check_in_date: date
    check_out_date: date
    nights: int
    status: ReservationStatus
    total_price: float
    payment_method: Optional[PaymentMethod] = None
    payment_status: PaymentStatus
    number_of_guests: int
    special_requests: Optional[str] = None
    room_id: Optional[int] = None
    room_number: Optional[str] = None
    room_type_id: int
    room_type_name: Optional[str] = None
    checked_in_time: Optional[datetime] = None
    checked_in_by_name: Optional[str] = None
    checked_out_time: Optional[datetime] = None
    checked_out_by_name: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    service_orders_count: int = 0
    invoices_count: int = 0
    feedback_count: int = 0
    has_unpaid_invoices: bool = False


class ReservationStats(BaseModel):
    total: int
    pending: int
    confirmed: int
    reserved: int
    checked_in: int
    checked_out: int
    cancelled: int
    today_arrivals: int
    today_departures: int


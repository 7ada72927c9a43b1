"""
Schemas del catálogo de servicios y órdenes de servicio
"""
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field

from models import ServiceOrderStatus


# ========== CATALOG ==========

class ServiceCreate(BaseModel):
    service_name: str = Field(..., min_length=2, max_length=100)
    service_type: str = Field(..., min_length=2, max_length=50)
    description: Optional[str] = Field(None, max_length=500)
    price: float = Field(..., ge=0, le=10000)
    is_active: bool = True


class ServiceUpdate(BaseModel):
    service_name: Optional[str] = Field(None, min_length=2, max_length=100)
    service_type: Optional[str] = Field(None, min_length=2, max_length=50)
    description: Optional[str] = Field(None, max_length=500)
    price: Optional[float] = Field(None, ge=0, le=10000)
    is_active: Optional[bool] = None


class ServiceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    service_name: str
    service_type: str
    description: Optional[str] = None
    price: float
    is_active: bool
    total_orders: int = 0
    total_revenue: float = 0.0


# ========== ORDERS ==========

class ServiceOrderCreate(BaseModel):
    reservation_id: int
    service_id: int
    quantity: int = Field(1, ge=1, le=100)
    scheduled_time: Optional[datetime] = None
    delivery_location: Optional[str] = Field(None, max_length=100)
    special_instructions: Optional[str] = Field(None, max_length=500)


class ServiceOrderUpdate(BaseModel):
    quantity: Optional[int] = Field(None, ge=1, le=100)
    status: Optional[ServiceOrderStatus] = None
    scheduled_time: Optional[datetime] = None
    delivery_location: Optional[str] = Field(None, max_length=100)
    special_instructions: Optional[str] = Field(None, max_length=500)
    completed_by_id: Optional[int] = None
    completion_notes: Optional[str] = None


class ServiceOrderComplete(BaseModel):
    notes: Optional[str] = None


class ServiceOrderCancel(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class ServiceOrderRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    reservation_id: int
    reservation_number: Optional[str] = None
    room_number: Optional[str] = None
    guest_name: Optional[str] = None
    service_id: int
    service_name: Optional[str] = None
    service_type: Optional[str] = None
    order_datetime: datetime
    quantity: int
    price_charged: float
    total_price: float
    status: ServiceOrderStatus
    scheduled_time: Optional[datetime] = None
    delivery_location: Optional[str] = None
    special_instructions: Optional[str] = None
    completed_by_id: Optional[int] = None
    completed_by_name: Optional[str] = None
    completed_at: Optional[datetime] = None
    completion_notes: Optional[str] = None

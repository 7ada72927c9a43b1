from typing import List, Optional
from datetime import date, datetime
from pydantic import BaseModel, ConfigDict, Field

from models import RoomStatus


# ========== ROOM TYPES ==========

class RoomTypeCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=50)
    description: Optional[str] = None
    base_price: float = Field(..., ge=0, le=100000)
    capacity: int = Field(2, ge=1, le=10)
    image_url: Optional[str] = Field(None, max_length=255)
    amenities: Optional[List[str]] = None


class RoomTypeRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    base_price: float
    capacity: int
    image_url: Optional[str] = None
    amenities: List[str] = []
    room_count: int = 0


# ========== ROOMS ==========

class RoomCreate(BaseModel):
    room_number: str = Field(..., min_length=1, max_length=10)
    floor: int = Field(1, ge=0, le=200)
    room_type_id: int
    base_price: Optional[float] = Field(None, ge=0, le=100000)
    status: RoomStatus = RoomStatus.AVAILABLE
    notes: Optional[str] = None


class RoomUpdate(BaseModel):
    room_number: Optional[str] = Field(None, min_length=1, max_length=10)
    floor: Optional[int] = Field(None, ge=0, le=200)
    room_type_id: Optional[int] = None
    base_price: Optional[float] = Field(None, ge=0, le=100000)
    status: Optional[RoomStatus] = None
    needs_cleaning: Optional[bool] = None
    notes: Optional[str] = None


class RoomRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    room_number: str
    floor: int
    room_type_id: int
    room_type_name: Optional[str] = None
    capacity: Optional[int] = None
    base_price: Optional[float] = None
    price: Optional[float] = None
    status: RoomStatus
    needs_cleaning: bool
    last_cleaned: Optional[datetime] = None
    cleaned_by_id: Optional[int] = None
    cleaned_by_name: Optional[str] = None
    notes: Optional[str] = None
    active_reservations_count: int = 0
    pending_cleaning_tasks_count: int = 0
    created_at: datetime
    updated_at: Optional[datetime] = None


class RoomAvailability(BaseModel):
    room_id: int
    room_number: str
    floor: int
    room_type_id: int
    room_type_name: str
    capacity: int
    price_per_night: float
    nights: int
    total_price: float
    amenities: List[str] = []
    image_url: Optional[str] = None
    is_available: bool
    next_available_date: Optional[date] = None


class RoomPrice(BaseModel):
    room_id: int
    room_number: str
    check_in_date: date
    check_out_date: date
    nights: int
    price_per_night: float
    total_price: float


class OccupancyStats(BaseModel):
    total_rooms: int
    available_rooms: int
    occupied_rooms: int
    reserved_rooms: int
    maintenance_rooms: int
    rooms_needing_cleaning: int
    occupancy_rate: float

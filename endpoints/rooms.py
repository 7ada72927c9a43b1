"""
Endpoints para gestión de Habitaciones y Tipos de Habitaciones
"""
from typing import List
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from database import conexion
from models import RoomStatus, User
from schemas.rooms import (
    OccupancyStats, RoomAvailability, RoomCreate, RoomPrice, RoomRead, RoomTypeCreate, RoomTypeRead, RoomUpdate,
)
from services.common import NotFoundError, parse_enum
from services.mapping import room_to_dto, room_type_to_dto
from services.room_service import RoomService, RoomTypeService
from utils.dependencies import (
    ADMIN, FRONT_DESK, HOUSEKEEPER, MANAGEMENT, get_current_active_user, require_roles,
)
from utils.http_errors import database_error

router = APIRouter(prefix="/api/rooms", tags=["rooms"])

ROOM_OPERATIONS = FRONT_DESK + [HOUSEKEEPER]


# ========== ROOM TYPES ==========

@router.get("/types", response_model=List[RoomTypeRead])
def list_room_types(
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(get_current_active_user),
):
    return RoomTypeService.list(db)


@router.post("/types", response_model=RoomTypeRead, status_code=status.HTTP_201_CREATED)
def create_room_type(
    payload: RoomTypeCreate,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    try:
        room_type = RoomTypeService.create(db, payload.model_dump(), current_user.username)
        return room_type_to_dto(room_type)
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "rooms", current_user.username, "Creating room type", e)


# ========== QUERIES ==========

@router.get("", response_model=List[RoomRead])
def list_rooms(
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(get_current_active_user),
):
    return [room_to_dto(r) for r in RoomService.get_all(db)]


@router.get("/available", response_model=List[RoomAvailability])
def available_rooms(
    check_in_date: date = Query(...),
    check_out_date: date = Query(...),
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Disponibilidad de cada habitación vendible para la estadía pedida"""
    return RoomService.available(db, check_in_date, check_out_date)


@router.get("/price-range", response_model=List[RoomRead])
def rooms_by_price_range(
    min_price: float = Query(0, ge=0),
    max_price: float = Query(..., ge=0),
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(get_current_active_user),
):
    return [room_to_dto(r) for r in RoomService.by_price_range(db, min_price, max_price)]


@router.get("/occupancy", response_model=OccupancyStats)
def occupancy(
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    return RoomService.occupancy(db)


@router.get("/stats/bytype")
def rooms_by_type_stats(
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    return RoomService.rooms_by_type(db)


@router.get("/status/{room_status}", response_model=List[RoomRead])
def rooms_by_status(
    room_status: str,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(ROOM_OPERATIONS)),
):
    wanted = parse_enum(RoomStatus, room_status)
    return [room_to_dto(r) for r in RoomService.by_status(db, wanted)]


@router.get("/type/{room_type_id}", response_model=List[RoomRead])
def rooms_by_type(
    room_type_id: int,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(get_current_active_user),
):
    return [room_to_dto(r) for r in RoomService.by_type(db, room_type_id)]


@router.get("/floor/{floor}", response_model=List[RoomRead])
def rooms_by_floor(
    floor: int,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(get_current_active_user),
):
    return [room_to_dto(r) for r in RoomService.by_floor(db, floor)]


@router.get("/{room_id}", response_model=RoomRead)
def get_room(
    room_id: int,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(get_current_active_user),
):
    room = RoomService.get(db, room_id)
    if room is None:
        raise NotFoundError(f"Room with ID {room_id} not found")
    return room_to_dto(room)


@router.get("/{room_id}/price", response_model=RoomPrice)
def room_price(
    room_id: int,
    check_in_date: date = Query(...),
    check_out_date: date = Query(...),
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(FRONT_DESK)),
):
    return RoomService.calculate_price(db, room_id, check_in_date, check_out_date)


# ========== CRUD ==========

@router.post("", response_model=RoomRead, status_code=status.HTTP_201_CREATED)
def create_room(
    payload: RoomCreate,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    try:
        return room_to_dto(RoomService.create(db, payload.model_dump(), current_user.username))
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "rooms", current_user.username, "Creating room", e)


@router.put("/{room_id}", response_model=RoomRead)
def update_room(
    room_id: int,
    payload: RoomUpdate,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    try:
        data = payload.model_dump(exclude_unset=True)
        return room_to_dto(RoomService.update(db, room_id, data, current_user.username))
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "rooms", current_user.username, "Updating room", e)


@router.delete("/{room_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_room(
    room_id: int,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles([ADMIN])),
):
    try:
        if not RoomService.delete(db, room_id, current_user.username):
            raise NotFoundError(f"Room with ID {room_id} not found")
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "rooms", current_user.username, "Deleting room", e)


@router.post("/{room_id}/status/{room_status}", response_model=RoomRead)
def update_room_status(
    room_id: int,
    room_status: str,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(ROOM_OPERATIONS)),
):
    try:
        wanted = parse_enum(RoomStatus, room_status)
        return room_to_dto(RoomService.update_status(db, room_id, wanted, current_user.username))
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "rooms", current_user.username, "Changing room status", e)

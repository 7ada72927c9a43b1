"""
Endpoints de Reservas: alta, ciclo de recepción y planificación de ocupación
"""
from typing import Dict, List, Optional
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from database import conexion
from models import User
from schemas.reservations import (
    CancelRequest, CheckInRequest, ReservationCreate, ReservationRead, ReservationStats, ReservationUpdate,
)
from schemas.rooms import RoomRead
from services.common import NotFoundError
from services.mapping import reservation_to_dto, room_to_dto
from services.reservation_service import ReservationService
from utils.dependencies import (
    FRONT_DESK, GUEST, MANAGEMENT, ensure_owner_or_staff, require_roles,
)
from utils.http_errors import database_error

router = APIRouter(prefix="/api/reservations", tags=["reservations"])

FRONT_DESK_AND_GUEST = FRONT_DESK + [GUEST]


def _get_or_404(db: Session, reservation_id: int):
    reservation = ReservationService.get(db, reservation_id)
    if reservation is None:
        raise NotFoundError(f"Reservation with ID {reservation_id} not found")
    return reservation


# ========== QUERIES ==========

@router.get("", response_model=List[ReservationRead])
def list_reservations(
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(FRONT_DESK)),
):
    return [reservation_to_dto(r) for r in ReservationService.get_all(db)]


@router.get("/stats", response_model=ReservationStats)
def reservation_stats(
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    return ReservationService.statistics(db)


@router.get("/forecast", response_model=Dict[str, int])
def occupancy_forecast(
    start_date: date = Query(...),
    end_date: date = Query(...),
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    """Habitaciones ocupadas por noche dentro del rango"""
    forecast = ReservationService.forecast(db, start_date, end_date)
    return {day.isoformat(): count for day, count in forecast.items()}


@router.get("/daterange", response_model=List[ReservationRead])
def reservations_by_date_range(
    start_date: date = Query(...),
    end_date: date = Query(...),
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(FRONT_DESK)),
):
    return [reservation_to_dto(r) for r in ReservationService.by_date_range(db, start_date, end_date)]


@router.get("/today/arrivals", response_model=List[ReservationRead])
def today_arrivals(
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(FRONT_DESK)),
):
    return [reservation_to_dto(r) for r in ReservationService.today_arrivals(db)]


@router.get("/today/departures", response_model=List[ReservationRead])
def today_departures(
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(FRONT_DESK)),
):
    return [reservation_to_dto(r) for r in ReservationService.today_departures(db)]


@router.get("/status/{reservation_status}", response_model=List[ReservationRead])
def reservations_by_status(
    reservation_status: str,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(FRONT_DESK)),
):
    return [reservation_to_dto(r) for r in ReservationService.by_status(db, reservation_status)]


@router.get("/room/{room_id}", response_model=List[ReservationRead])
def reservations_by_room(
    room_id: int,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(FRONT_DESK)),
):
    return [reservation_to_dto(r) for r in ReservationService.by_room(db, room_id)]


@router.get("/user/{user_id}", response_model=List[ReservationRead])
def reservations_by_user(
    user_id: int,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(FRONT_DESK_AND_GUEST)),
):
    ensure_owner_or_staff(current_user, user_id)
    return [reservation_to_dto(r) for r in ReservationService.by_user(db, user_id)]


@router.get("/{reservation_id}", response_model=ReservationRead)
def get_reservation(
    reservation_id: int,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(FRONT_DESK_AND_GUEST)),
):
    reservation = _get_or_404(db, reservation_id)
    ensure_owner_or_staff(current_user, reservation.user_id)
    return reservation_to_dto(reservation)


@router.get("/{reservation_id}/available-rooms", response_model=List[RoomRead])
def available_rooms_for_reservation(
    reservation_id: int,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(FRONT_DESK)),
):
    """Habitaciones del tipo reservado libres para las fechas de la reserva"""
    return [room_to_dto(r) for r in ReservationService.available_rooms(db, reservation_id)]


# ========== CRUD ==========

@router.post("", response_model=ReservationRead, status_code=status.HTTP_201_CREATED)
def create_reservation(
    payload: ReservationCreate,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(FRONT_DESK_AND_GUEST)),
):
    """
    Crea una reserva en estado Pending junto con su factura.

    Un huésped siempre reserva para sí mismo; el personal puede indicar user_id.
    """
    try:
        reservation = ReservationService.create(db, payload.model_dump(), current_user)
        return reservation_to_dto(reservation)
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "reservations", current_user.username, "Creating reservation", e)


@router.put("/{reservation_id}", response_model=ReservationRead)
def update_reservation(
    reservation_id: int,
    payload: ReservationUpdate,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(FRONT_DESK)),
):
    try:
        data = payload.model_dump(exclude_unset=True)
        reservation = ReservationService.update(db, reservation_id, data, current_user.username)
        return reservation_to_dto(reservation)
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "reservations", current_user.username, "Updating reservation", e)


@router.delete("/{reservation_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_reservation(
    reservation_id: int,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    try:
        if not ReservationService.delete(db, reservation_id, current_user.username):
            raise NotFoundError(f"Reservation with ID {reservation_id} not found")
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "reservations", current_user.username, "Deleting reservation", e)


# ========== FRONT DESK ==========

@router.post("/{reservation_id}/confirm", response_model=ReservationRead)
def confirm_reservation(
    reservation_id: int,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(FRONT_DESK)),
):
    try:
        return reservation_to_dto(ReservationService.confirm(db, reservation_id, current_user.username))
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "reservations", current_user.username, "Confirming reservation", e)


@router.post("/{reservation_id}/assign-room/{room_id}", response_model=ReservationRead)
def assign_room(
    reservation_id: int,
    room_id: int,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(FRONT_DESK)),
):
    try:
        reservation = ReservationService.assign_room(db, reservation_id, room_id, current_user.username)
        return reservation_to_dto(reservation)
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "reservations", current_user.username, "Assigning room", e)


@router.post("/{reservation_id}/checkin", response_model=ReservationRead)
def check_in(
    reservation_id: int,
    payload: Optional[CheckInRequest] = None,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(FRONT_DESK)),
):
    """Check-in en la habitación indicada, o en la ya asignada si no se indica ninguna"""
    try:
        reservation = ReservationService.check_in(
            db, reservation_id, payload.room_id if payload else None, current_user
        )
        return reservation_to_dto(reservation)
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "reservations", current_user.username, "Check-in", e)


@router.post("/{reservation_id}/checkout", response_model=ReservationRead)
def check_out(
    reservation_id: int,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(FRONT_DESK)),
):
    """Check-out: libera la habitación y genera la tarea de limpieza"""
    try:
        return reservation_to_dto(ReservationService.check_out(db, reservation_id, current_user))
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "reservations", current_user.username, "Check-out", e)


@router.post("/{reservation_id}/cancel", response_model=ReservationRead)
def cancel_reservation(
    reservation_id: int,
    payload: Optional[CancelRequest] = None,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(FRONT_DESK_AND_GUEST)),
):
    try:
        reservation = _get_or_404(db, reservation_id)
        ensure_owner_or_staff(current_user, reservation.user_id)
        reason = payload.reason if payload else None
        return reservation_to_dto(ReservationService.cancel(db, reservation_id, reason, current_user.username))
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "reservations", current_user.username, "Cancelling reservation", e)

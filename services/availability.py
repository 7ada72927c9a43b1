"""
Room inventory checks shared by the room and reservation services.

Two stays [a_in, a_out) and [b_in, b_out) overlap when
a_in < b_out and a_out > b_in; the check-out day is free for a new arrival.
"""
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from models import Reservation, Room, RoomStatus, BLOCKING_STATUSES
from services.common import InvalidOperationError, NotFoundError, money


def nights_between(check_in: date, check_out: date) -> int:
    return (check_out - check_in).days


def stay_price(nightly_rate, check_in: date, check_out: date) -> Decimal:
    nights = nights_between(check_in, check_out)
    if nights <= 0:
        raise InvalidOperationError("Check-out date must be after check-in date")
    return money(Decimal(str(nightly_rate)) * nights)


def overlapping_reservations(db: Session, start: date, end: date, exclude_id: Optional[int] = None):
    """Blocking reservations whose stay intersects [start, end)"""
    query = db.query(Reservation).filter(
        Reservation.status.in_(BLOCKING_STATUSES),
        Reservation.check_in_date < end,
        Reservation.check_out_date > start,
    )
    if exclude_id is not None:
        query = query.filter(Reservation.id != exclude_id)
    return query


def is_room_available(db: Session, room_id: int, start: date, end: date, exclude_id: Optional[int] = None) -> bool:
    room = db.query(Room).filter(Room.id == room_id).first()
    if room is None:
        raise NotFoundError(f"Room with ID {room_id} not found")
    if room.status == RoomStatus.MAINTENANCE:
        return False
    conflicts = overlapping_reservations(db, start, end, exclude_id).filter(Reservation.room_id == room_id)
    return conflicts.first() is None


def is_room_type_available(db: Session, room_type_id: int, start: date, end: date,
                           exclude_id: Optional[int] = None) -> bool:
    """
    True while the type still has a sellable room for the whole stay.
    Reservations without an assigned room count against the type too.
    """
    sellable = db.query(func.count(Room.id)).filter(
        Room.room_type_id == room_type_id,
        Room.status != RoomStatus.MAINTENANCE,
    ).scalar() or 0
    booked = overlapping_reservations(db, start, end, exclude_id).filter(
        Reservation.room_type_id == room_type_id
    ).count()
    return sellable > booked


def available_rooms_for_type(db: Session, room_type_id: int, start: date, end: date,
                             exclude_id: Optional[int] = None):
    rooms = db.query(Room).filter(
        Room.room_type_id == room_type_id,
        Room.status != RoomStatus.MAINTENANCE,
    ).order_by(Room.room_number).all()
    busy = {
        r.room_id
        for r in overlapping_reservations(db, start, end, exclude_id).filter(Reservation.room_id.isnot(None))
    }
    return [room for room in rooms if room.id not in busy]


def next_available_date(stays: Iterable[Tuple[date, date]], check_in: date, nights: int) -> date:
    """
    Earliest start >= check_in such that [start, start + nights) misses every stay.

    stays are (check_in, check_out) pairs of the reservations holding the room.
    """
    candidate = check_in
    for stay_in, stay_out in sorted(stays):
        if stay_out <= candidate:
            continue
        if stay_in < candidate + timedelta(days=nights):
            candidate = stay_out
    return candidate

"""
Rooms and room types: CRUD, availability search, pricing and occupancy figures
"""
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload, selectinload

from models import (
    Room, RoomType, RoomStatus, Reservation, ReservationStatus, BLOCKING_STATUSES,
)
from services import availability
from services.common import InvalidOperationError, NotFoundError, get_or_404
from services.mapping import room_type_to_dto
from utils.logging_utils import log_event


def _room_query(db: Session):
    return db.query(Room).options(
        joinedload(Room.room_type),
        joinedload(Room.cleaned_by),
        selectinload(Room.reservations),
        selectinload(Room.cleaning_tasks),
    )


class RoomTypeService:

    @staticmethod
    def list(db: Session) -> List[dict]:
        counts = dict(
            db.query(Room.room_type_id, func.count(Room.id)).group_by(Room.room_type_id).all()
        )
        return [
            room_type_to_dto(rt, counts.get(rt.id, 0))
            for rt in db.query(RoomType).order_by(RoomType.base_price).all()
        ]

    @staticmethod
    def create(db: Session, data: dict, username: str) -> RoomType:
        if db.query(RoomType).filter(RoomType.name == data["name"]).first():
            raise InvalidOperationError(f"Room type '{data['name']}' already exists")
        amenities = data.pop("amenities", None)
        room_type = RoomType(**data)
        room_type.amenities = ",".join(amenities) if amenities else None
        db.add(room_type)
        db.commit()
        db.refresh(room_type)
        log_event("rooms", username, "Room type created", f"name={room_type.name}")
        return room_type


class RoomService:

    # ========== CRUD ==========

    @staticmethod
    def get_all(db: Session) -> List[Room]:
        return _room_query(db).order_by(Room.room_number).all()

    @staticmethod
    def get(db: Session, room_id: int) -> Optional[Room]:
        return _room_query(db).filter(Room.id == room_id).first()

    @staticmethod
    def create(db: Session, data: dict, username: str) -> Room:
        if db.query(Room).filter(Room.room_number == data["room_number"]).first():
            raise InvalidOperationError(f"Room number {data['room_number']} already exists")
        get_or_404(db, RoomType, data["room_type_id"], "Room type")

        room = Room(**data)
        db.add(room)
        db.commit()
        log_event("rooms", username, "Room created", f"room={room.room_number}")
        return RoomService.get(db, room.id)

    @staticmethod
    def update(db: Session, room_id: int, data: dict, username: str) -> Room:
        room = get_or_404(db, Room, room_id, "Room")

        number = data.get("room_number")
        if number and number != room.room_number:
            if db.query(Room).filter(Room.room_number == number, Room.id != room_id).first():
                raise InvalidOperationError(f"Room number {number} already exists")
        if data.get("room_type_id") is not None:
            get_or_404(db, RoomType, data["room_type_id"], "Room type")

        for field, value in data.items():
            setattr(room, field, value)
        if data.get("needs_cleaning") is False:
            room.last_cleaned = datetime.utcnow()

        db.commit()
        log_event("rooms", username, "Room updated", f"room={room.room_number} fields={list(data)}")
        return RoomService.get(db, room.id)

    @staticmethod
    def delete(db: Session, room_id: int, username: str) -> bool:
        room = db.query(Room).filter(Room.id == room_id).first()
        if room is None:
            return False
        active = db.query(Reservation).filter(
            Reservation.room_id == room_id,
            Reservation.status.in_(BLOCKING_STATUSES),
        ).count()
        if active:
            raise InvalidOperationError(
                f"Cannot delete room {room.room_number}: it has {active} active reservation(s)"
            )
        db.delete(room)
        db.commit()
        log_event("rooms", username, "Room deleted", f"room={room.room_number}")
        return True

    # ========== QUERIES ==========

    @staticmethod
    def by_status(db: Session, status: RoomStatus) -> List[Room]:
        return _room_query(db).filter(Room.status == status).order_by(Room.room_number).all()

    @staticmethod
    def by_type(db: Session, room_type_id: int) -> List[Room]:
        return _room_query(db).filter(Room.room_type_id == room_type_id).order_by(Room.room_number).all()

    @staticmethod
    def by_floor(db: Session, floor: int) -> List[Room]:
        return _room_query(db).filter(Room.floor == floor).order_by(Room.room_number).all()

    @staticmethod
    def by_price_range(db: Session, min_price: float, max_price: float) -> List[Room]:
        if min_price > max_price:
            raise InvalidOperationError("Minimum price must not exceed maximum price")
        rooms = RoomService.get_all(db)
        return [r for r in rooms if min_price <= float(r.effective_price) <= max_price]

    @staticmethod
    def available(db: Session, check_in: date, check_out: date) -> List[dict]:
        """
        Availability of every sellable room for a stay.
        Unavailable rooms carry the first date the same stay length would fit.
        """
        nights = availability.nights_between(check_in, check_out)
        if nights <= 0:
            raise InvalidOperationError("Check-out date must be after check-in date")

        rooms = db.query(Room).options(joinedload(Room.room_type)).filter(
            Room.status != RoomStatus.MAINTENANCE
        ).order_by(Room.room_number).all()

        holding = {}
        for r in db.query(Reservation).filter(
            Reservation.room_id.isnot(None),
            Reservation.status.in_(BLOCKING_STATUSES),
            Reservation.check_out_date > check_in,
        ).all():
            holding.setdefault(r.room_id, []).append((r.check_in_date, r.check_out_date))

        result = []
        for room in rooms:
            stays = holding.get(room.id, [])
            is_free = not any(s_in < check_out and s_out > check_in for s_in, s_out in stays)
            result.append({
                "room_id": room.id,
                "room_number": room.room_number,
                "floor": room.floor,
                "room_type_id": room.room_type_id,
                "room_type_name": room.room_type.name,
                "capacity": room.room_type.capacity,
                "price_per_night": float(room.effective_price),
                "nights": nights,
                "total_price": float(availability.stay_price(room.effective_price, check_in, check_out)),
                "amenities": room.room_type.amenities_list,
                "image_url": room.room_type.image_url,
                "is_available": is_free,
                "next_available_date": None if is_free else availability.next_available_date(stays, check_in, nights),
            })
        return result

    @staticmethod
    def calculate_price(db: Session, room_id: int, check_in: date, check_out: date) -> dict:
        room = RoomService.get(db, room_id)
        if room is None:
            raise NotFoundError(f"Room with ID {room_id} not found")
        total = availability.stay_price(room.effective_price, check_in, check_out)
        return {
            "room_id": room.id,
            "room_number": room.room_number,
            "check_in_date": check_in,
            "check_out_date": check_out,
            "nights": availability.nights_between(check_in, check_out),
            "price_per_night": float(room.effective_price),
            "total_price": float(total),
        }

    # ========== STATUS ==========

    @staticmethod
    def update_status(db: Session, room_id: int, status: RoomStatus, username: str) -> Room:
        room = get_or_404(db, Room, room_id, "Room")
        if status == RoomStatus.AVAILABLE:
            occupied_by = db.query(Reservation).filter(
                Reservation.room_id == room_id,
                Reservation.status == ReservationStatus.CHECKED_IN,
            ).first()
            if occupied_by:
                raise InvalidOperationError(
                    f"Room {room.room_number} is occupied by reservation {occupied_by.reservation_number}"
                )
        previous = room.status
        room.status = status
        db.commit()
        log_event("rooms", username, "Room status changed", f"room={room.room_number} {previous}->{status}")
        return RoomService.get(db, room.id)

    # ========== STATISTICS ==========

    @staticmethod
    def occupancy(db: Session) -> dict:
        counts = dict(db.query(Room.status, func.count(Room.id)).group_by(Room.status).all())
        total = sum(counts.values())
        occupied = counts.get(RoomStatus.OCCUPIED, 0)
        reserved = counts.get(RoomStatus.RESERVED, 0)
        maintenance = counts.get(RoomStatus.MAINTENANCE, 0)
        sellable = total - maintenance
        needs_cleaning = db.query(func.count(Room.id)).filter(Room.needs_cleaning.is_(True)).scalar() or 0
        return {
            "total_rooms": total,
            "available_rooms": counts.get(RoomStatus.AVAILABLE, 0),
            "occupied_rooms": occupied,
            "reserved_rooms": reserved,
            "maintenance_rooms": maintenance,
            "rooms_needing_cleaning": needs_cleaning,
            "occupancy_rate": round((occupied + reserved) / sellable * 100, 2) if sellable > 0 else 0.0,
        }

    @staticmethod
    def rooms_by_type(db: Session) -> dict:
        rows = (
            db.query(RoomType.name, func.count(Room.id))
            .outerjoin(Room, Room.room_type_id == RoomType.id)
            .group_by(RoomType.name)
            .all()
        )
        return {name: count for name, count in rows}


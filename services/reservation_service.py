"""
Reservations: booking, the front desk state machine and occupancy planning.

Status flow:
    Pending -> Confirmed -> Reserved (room assigned) -> CheckedIn -> CheckedOut
    Pending / Confirmed / Reserved -> Cancelled
"""
import random
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session, joinedload, selectinload

from models import (
    Invoice, Reservation, ReservationStatus, RoleName, Room, RoomStatus, RoomType,
    Service, ServiceOrder, ServiceOrderStatus, User, Priority, UPCOMING_STATUSES,
)
from services import availability
from services.cleaning_service import CleaningService, random_housekeeper
from services.common import (
    InvalidOperationError, NotFoundError, get_or_404, money, parse_enum, validate_date_range,
)
from services.invoice_service import InvoiceService, compute_tax
from utils.logging_utils import log_event
from utils.timezone import hotel_today

TERMINAL_STATUSES = (
    ReservationStatus.CHECKED_OUT,
    ReservationStatus.COMPLETED,
    ReservationStatus.CANCELLED,
)


def _reservation_query(db: Session):
    return db.query(Reservation).options(
        joinedload(Reservation.user),
        joinedload(Reservation.room),
        joinedload(Reservation.room_type),
        joinedload(Reservation.checked_in_by),
        joinedload(Reservation.checked_out_by),
        selectinload(Reservation.invoices).selectinload(Invoice.payments),
        selectinload(Reservation.service_orders),
        selectinload(Reservation.feedback),
    )


def generate_reservation_number(db: Session) -> str:
    while True:
        number = f"RES-{datetime.utcnow():%Y%m%d%H%M%S}-{random.randint(1000, 9999)}"
        if not db.query(Reservation.id).filter(Reservation.reservation_number == number).first():
            return number


def _validate_stay(check_in: date, check_out: date, guests: int, room_type: RoomType) -> None:
    if check_out <= check_in:
        raise InvalidOperationError("Check-out date must be after check-in date")
    if check_in < hotel_today():
        raise InvalidOperationError("Check-in date cannot be in the past")
    if guests > room_type.capacity:
        raise InvalidOperationError(
            f"Number of guests ({guests}) exceeds the capacity of {room_type.name} ({room_type.capacity})"
        )


def _is_staff(user: User) -> bool:
    return user.role_name != RoleName.GUEST.value


class ReservationService:

    # ========== CRUD ==========

    @staticmethod
    def get_all(db: Session) -> List[Reservation]:
        return _reservation_query(db).order_by(Reservation.check_in_date.desc()).all()

    @staticmethod
    def get(db: Session, reservation_id: int) -> Optional[Reservation]:
        return _reservation_query(db).filter(Reservation.id == reservation_id).first()

    @staticmethod
    def create(db: Session, data: dict, current_user: User) -> Reservation:
        room_type = get_or_404(db, RoomType, data["room_type_id"], "Room type")
        check_in, check_out = data["check_in_date"], data["check_out_date"]
        guests = data.get("number_of_guests") or 1
        _validate_stay(check_in, check_out, guests, room_type)

        guest = current_user
        if data.get("user_id") and _is_staff(current_user):
            guest = get_or_404(db, User, data["user_id"], "User")

        if not availability.is_room_type_available(db, room_type.id, check_in, check_out):
            raise InvalidOperationError(
                f"No {room_type.name} rooms available from {check_in} to {check_out}"
            )

        lines = []
        for line in data.get("services") or []:
            service = get_or_404(db, Service, line["service_id"], "Service")
            if not service.is_active:
                raise InvalidOperationError(f"Service '{service.service_name}' is not active")
            lines.append((service, line.get("quantity") or 1))

        total = availability.stay_price(room_type.base_price, check_in, check_out)
        total += sum((money(Decimal(s.price) * qty) for s, qty in lines), Decimal("0"))

        reservation = Reservation(
            reservation_number=generate_reservation_number(db),
            user=guest,
            room_type=room_type,
            check_in_date=check_in,
            check_out_date=check_out,
            status=ReservationStatus.PENDING,
            total_price=total,
            payment_method=data.get("payment_method"),
            number_of_guests=guests,
            special_requests=data.get("special_requests"),
            created_by_id=current_user.id,
        )
        db.add(reservation)

        for service, quantity in lines:
            db.add(ServiceOrder(
                reservation=reservation,
                service=service,
                quantity=quantity,
                price_charged=service.price,
                total_price=money(Decimal(service.price) * quantity),
                status=ServiceOrderStatus.PENDING,
                delivery_location="Front desk",
            ))
        db.flush()

        InvoiceService.build(
            db,
            reservation,
            total,
            due_date=check_out,
            notes=f"Accommodation charges for reservation {reservation.reservation_number}",
        )
        db.commit()
        log_event(
            "reservations", current_user.username, "Reservation created",
            f"number={reservation.reservation_number} guest={guest.username} total={total}",
        )
        return ReservationService.get(db, reservation.id)

    @staticmethod
    def update(db: Session, reservation_id: int, data: dict, username: str) -> Reservation:
        reservation = get_or_404(db, Reservation, reservation_id, "Reservation")
        if reservation.status not in UPCOMING_STATUSES:
            raise InvalidOperationError(
                f"Cannot update a reservation with status {reservation.status.value}"
            )

        room_type = reservation.room_type
        if data.get("room_type_id") is not None:
            room_type = get_or_404(db, RoomType, data["room_type_id"], "Room type")
        check_in = data.get("check_in_date") or reservation.check_in_date
        check_out = data.get("check_out_date") or reservation.check_out_date
        guests = data.get("number_of_guests") or reservation.number_of_guests

        stay_changed = (
            check_in != reservation.check_in_date
            or check_out != reservation.check_out_date
            or room_type.id != reservation.room_type_id
        )
        if stay_changed or guests != reservation.number_of_guests:
            if check_out <= check_in:
                raise InvalidOperationError("Check-out date must be after check-in date")
            if guests > room_type.capacity:
                raise InvalidOperationError(
                    f"Number of guests ({guests}) exceeds the capacity of {room_type.name} ({room_type.capacity})"
                )

        release_room = False
        if stay_changed:
            if check_in != reservation.check_in_date and check_in < hotel_today():
                raise InvalidOperationError("Check-in date cannot be in the past")
            if not availability.is_room_type_available(db, room_type.id, check_in, check_out, reservation.id):
                raise InvalidOperationError(
                    f"No {room_type.name} rooms available from {check_in} to {check_out}"
                )
            if reservation.room_id is not None:
                if room_type.id != reservation.room_type_id:
                    release_room = True
                elif not availability.is_room_available(db, reservation.room_id, check_in, check_out, reservation.id):
                    raise InvalidOperationError(
                        f"Room {reservation.room.room_number} is not available for the new dates"
                    )

        reservation.room_type = room_type
        reservation.check_in_date = check_in
        reservation.check_out_date = check_out
        reservation.number_of_guests = guests
        if "special_requests" in data:
            reservation.special_requests = data["special_requests"]
        if data.get("payment_method") is not None:
            reservation.payment_method = data["payment_method"]

        if release_room:
            if reservation.room.status == RoomStatus.RESERVED:
                reservation.room.status = RoomStatus.AVAILABLE
            reservation.room = None
            if reservation.status == ReservationStatus.RESERVED:
                reservation.status = ReservationStatus.CONFIRMED

        if stay_changed:
            services_total = sum(
                (Decimal(o.total_price) for o in reservation.service_orders
                 if o.status != ServiceOrderStatus.CANCELLED),
                Decimal("0"),
            )
            total = availability.stay_price(room_type.base_price, check_in, check_out) + services_total
            reservation.total_price = total

            invoice = next(
                (i for i in reservation.invoices if not i.is_paid and not i.is_cancelled), None
            )
            if invoice is not None:
                pct = (
                    float(Decimal(invoice.tax) / Decimal(invoice.amount) * 100)
                    if Decimal(invoice.amount) else 0
                )
                invoice.amount = money(total)
                invoice.tax = compute_tax(invoice.amount, round(pct, 2))
                invoice.total = invoice.amount + invoice.tax
                invoice.due_date = check_out

        db.commit()
        log_event("reservations", username, "Reservation updated", f"number={reservation.reservation_number}")
        return ReservationService.get(db, reservation.id)

    @staticmethod
    def delete(db: Session, reservation_id: int, username: str) -> bool:
        reservation = db.query(Reservation).filter(Reservation.id == reservation_id).first()
        if reservation is None:
            return False
        if any(invoice.payments for invoice in reservation.invoices):
            raise InvalidOperationError("Cannot delete a reservation with recorded payments")
        if reservation.room is not None and reservation.room.status == RoomStatus.RESERVED:
            reservation.room.status = RoomStatus.AVAILABLE
        number = reservation.reservation_number
        db.delete(reservation)
        db.commit()
        log_event("reservations", username, "Reservation deleted", f"number={number}")
        return True

    # ========== QUERIES ==========

    @staticmethod
    def by_user(db: Session, user_id: int) -> List[Reservation]:
        return (
            _reservation_query(db)
            .filter(Reservation.user_id == user_id)
            .order_by(Reservation.check_in_date.desc())
            .all()
        )

    @staticmethod
    def by_status(db: Session, status: str) -> List[Reservation]:
        wanted = parse_enum(ReservationStatus, status)
        return _reservation_query(db).filter(Reservation.status == wanted).order_by(Reservation.check_in_date).all()

    @staticmethod
    def by_room(db: Session, room_id: int) -> List[Reservation]:
        get_or_404(db, Room, room_id, "Room")
        return _reservation_query(db).filter(Reservation.room_id == room_id).order_by(Reservation.check_in_date).all()

    @staticmethod
    def by_date_range(db: Session, start: date, end: date) -> List[Reservation]:
        validate_date_range(start, end)
        return (
            _reservation_query(db)
            .filter(Reservation.check_in_date <= end, Reservation.check_out_date > start)
            .order_by(Reservation.check_in_date)
            .all()
        )

    @staticmethod
    def today_arrivals(db: Session) -> List[Reservation]:
        return (
            _reservation_query(db)
            .filter(
                Reservation.check_in_date == hotel_today(),
                Reservation.status.in_(UPCOMING_STATUSES),
            )
            .order_by(Reservation.id)
            .all()
        )

    @staticmethod
    def today_departures(db: Session) -> List[Reservation]:
        return (
            _reservation_query(db)
            .filter(
                Reservation.check_out_date == hotel_today(),
                Reservation.status == ReservationStatus.CHECKED_IN,
            )
            .order_by(Reservation.id)
            .all()
        )

    # ========== FRONT DESK ==========

    @staticmethod
    def confirm(db: Session, reservation_id: int, username: str) -> Reservation:
        reservation = get_or_404(db, Reservation, reservation_id, "Reservation")
        if reservation.status != ReservationStatus.PENDING:
            raise InvalidOperationError(
                f"Only pending reservations can be confirmed (current status: {reservation.status.value})"
            )
        reservation.status = ReservationStatus.CONFIRMED
        db.commit()
        log_event("reservations", username, "Reservation confirmed", f"number={reservation.reservation_number}")
        return ReservationService.get(db, reservation.id)

    @staticmethod
    def assign_room(db: Session, reservation_id: int, room_id: int, username: str) -> Reservation:
        reservation = get_or_404(db, Reservation, reservation_id, "Reservation")
        if reservation.status not in UPCOMING_STATUSES:
            raise InvalidOperationError(
                f"Cannot assign a room to a reservation with status {reservation.status.value}"
            )
        room = get_or_404(db, Room, room_id, "Room")
        if room.room_type_id != reservation.room_type_id:
            raise InvalidOperationError(
                f"Room {room.room_number} is not of the reserved room type {reservation.room_type.name}"
            )
        if not availability.is_room_available(
            db, room.id, reservation.check_in_date, reservation.check_out_date, reservation.id
        ):
            raise InvalidOperationError(f"Room {room.room_number} is not available for the reserved dates")

        previous = reservation.room
        if previous is not None and previous.id != room.id and previous.status == RoomStatus.RESERVED:
            previous.status = RoomStatus.AVAILABLE
        reservation.room = room
        reservation.status = ReservationStatus.RESERVED
        room.status = RoomStatus.RESERVED
        db.commit()
        log_event(
            "reservations", username, "Room assigned",
            f"number={reservation.reservation_number} room={room.room_number}",
        )
        return ReservationService.get(db, reservation.id)

    @staticmethod
    def check_in(db: Session, reservation_id: int, room_id: Optional[int], current_user: User) -> Reservation:
        reservation = get_or_404(db, Reservation, reservation_id, "Reservation")
        if reservation.status == ReservationStatus.CHECKED_IN:
            raise InvalidOperationError("Reservation is already checked in")
        if reservation.status not in UPCOMING_STATUSES:
            raise InvalidOperationError(
                f"Cannot check in a reservation with status {reservation.status.value}"
            )

        room_id = room_id or reservation.room_id
        if room_id is None:
            raise InvalidOperationError("A room must be provided for check-in")
        room = get_or_404(db, Room, room_id, "Room")
        if room.room_type_id != reservation.room_type_id:
            raise InvalidOperationError(
                f"Room {room.room_number} is not of the reserved room type {reservation.room_type.name}"
            )
        if room.status in (RoomStatus.MAINTENANCE, RoomStatus.OCCUPIED):
            raise InvalidOperationError(f"Room {room.room_number} is {room.status.value}")
        if room.needs_cleaning:
            raise InvalidOperationError(f"Room {room.room_number} needs cleaning before check-in")
        if not availability.is_room_available(
            db, room.id, reservation.check_in_date, reservation.check_out_date, reservation.id
        ):
            raise InvalidOperationError(f"Room {room.room_number} is held by another reservation")

        previous = reservation.room
        if previous is not None and previous.id != room.id and previous.status == RoomStatus.RESERVED:
            previous.status = RoomStatus.AVAILABLE

        reservation.status = ReservationStatus.CHECKED_IN
        reservation.room = room
        reservation.checked_in_time = datetime.utcnow()
        reservation.checked_in_by_id = current_user.id
        room.status = RoomStatus.OCCUPIED
        db.commit()
        log_event(
            "reservations", current_user.username, "Check-in",
            f"number={reservation.reservation_number} room={room.room_number}",
        )
        return ReservationService.get(db, reservation.id)

    @staticmethod
    def check_out(db: Session, reservation_id: int, current_user: User) -> Reservation:
        reservation = get_or_404(db, Reservation, reservation_id, "Reservation")
        if reservation.status != ReservationStatus.CHECKED_IN:
            raise InvalidOperationError(
                f"Only checked-in reservations can be checked out (current status: {reservation.status.value})"
            )

        reservation.status = ReservationStatus.CHECKED_OUT
        reservation.checked_out_time = datetime.utcnow()
        reservation.checked_out_by_id = current_user.id

        room = reservation.room
        task = None
        if room is not None:
            room.status = RoomStatus.AVAILABLE
            task = CleaningService.build(
                db,
                room,
                Priority.MEDIUM,
                f"Cleaning task for room {room.room_number} after checkout",
                random_housekeeper(db),
            )
        db.commit()
        log_event(
            "reservations", current_user.username, "Check-out",
            f"number={reservation.reservation_number} cleaning_task={task.task_number if task else None}",
        )
        return ReservationService.get(db, reservation.id)

    @staticmethod
    def cancel(db: Session, reservation_id: int, reason: Optional[str], username: str) -> Reservation:
        reservation = get_or_404(db, Reservation, reservation_id, "Reservation")
        if reservation.status == ReservationStatus.CHECKED_IN:
            raise InvalidOperationError("Cannot cancel a reservation that is already checked in")
        if reservation.status in TERMINAL_STATUSES:
            raise InvalidOperationError(
                f"Cannot cancel a reservation with status {reservation.status.value}"
            )

        reservation.status = ReservationStatus.CANCELLED
        reservation.cancellation_reason = reason
        reservation.cancelled_at = datetime.utcnow()
        if reservation.room is not None and reservation.room.status == RoomStatus.RESERVED:
            reservation.room.status = RoomStatus.AVAILABLE

        for invoice in list(reservation.invoices):
            if invoice.payments:
                invoice.is_cancelled = True
            else:
                reservation.invoices.remove(invoice)

        for order in reservation.service_orders:
            if order.status == ServiceOrderStatus.PENDING:
                order.status = ServiceOrderStatus.CANCELLED
                order.completion_notes = "Cancelled: reservation cancelled"

        db.commit()
        log_event(
            "reservations", username, "Reservation cancelled",
            f"number={reservation.reservation_number} reason={reason}",
        )
        return ReservationService.get(db, reservation.id)

    # ========== PLANNING ==========

    @staticmethod
    def statistics(db: Session) -> dict:
        reservations = db.query(Reservation.status).all()
        counts = {}
        for (status,) in reservations:
            counts[status] = counts.get(status, 0) + 1
        return {
            "total": len(reservations),
            "pending": counts.get(ReservationStatus.PENDING, 0),
            "confirmed": counts.get(ReservationStatus.CONFIRMED, 0),
            "reserved": counts.get(ReservationStatus.RESERVED, 0),
            "checked_in": counts.get(ReservationStatus.CHECKED_IN, 0),
            "checked_out": counts.get(ReservationStatus.CHECKED_OUT, 0) + counts.get(ReservationStatus.COMPLETED, 0),
            "cancelled": counts.get(ReservationStatus.CANCELLED, 0),
            "today_arrivals": len(ReservationService.today_arrivals(db)),
            "today_departures": len(ReservationService.today_departures(db)),
        }

    @staticmethod
    def forecast(db: Session, start: date, end: date) -> dict:
        """Occupied room-nights per date in [start, end]"""
        validate_date_range(start, end)
        result = {}
        day = start
        while day <= end:
            result[day] = 0
            day += timedelta(days=1)

        stays = db.query(Reservation).filter(
            Reservation.status != ReservationStatus.CANCELLED,
            Reservation.check_in_date <= end,
            Reservation.check_out_date > start,
        ).all()
        for reservation in stays:
            night = max(reservation.check_in_date, start)
            while night < reservation.check_out_date and night <= end:
                result[night] += 1
                night += timedelta(days=1)
        return result

    @staticmethod
    def available_rooms(db: Session, reservation_id: int) -> List[Room]:
        reservation = ReservationService.get(db, reservation_id)
        if reservation is None:
            raise NotFoundError(f"Reservation with ID {reservation_id} not found")
        return availability.available_rooms_for_type(
            db,
            reservation.room_type_id,
            reservation.check_in_date,
            reservation.check_out_date,
            reservation.id,
        )

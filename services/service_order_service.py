"""
Service orders placed against a reservation
"""
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session, joinedload

from models import (
    Reservation, ReservationStatus, RoleName, Service, ServiceOrder, ServiceOrderStatus, User,
)
from services.common import (
    AccessDeniedError, InvalidOperationError, get_or_404, money, parse_enum, validate_date_range,
)
from utils.logging_utils import log_event
from utils.timezone import range_bounds_utc

CLOSED_RESERVATION_STATUSES = (
    ReservationStatus.CANCELLED,
    ReservationStatus.CHECKED_OUT,
    ReservationStatus.COMPLETED,
)


def _order_query(db: Session):
    return db.query(ServiceOrder).options(
        joinedload(ServiceOrder.reservation).joinedload(Reservation.room),
        joinedload(ServiceOrder.reservation).joinedload(Reservation.user),
        joinedload(ServiceOrder.service),
        joinedload(ServiceOrder.completed_by),
    )


class ServiceOrderService:

    # ========== CRUD ==========

    @staticmethod
    def get_all(db: Session) -> List[ServiceOrder]:
        return _order_query(db).order_by(ServiceOrder.order_datetime.desc()).all()

    @staticmethod
    def get(db: Session, order_id: int) -> Optional[ServiceOrder]:
        return _order_query(db).filter(ServiceOrder.id == order_id).first()

    @staticmethod
    def create(db: Session, data: dict, current_user: User) -> ServiceOrder:
        reservation = get_or_404(db, Reservation, data["reservation_id"], "Reservation")
        service = get_or_404(db, Service, data["service_id"], "Service")
        if current_user.role_name == RoleName.GUEST.value and reservation.user_id != current_user.id:
            raise AccessDeniedError("You can only order services for your own reservations")
        if not service.is_active:
            raise InvalidOperationError(f"Service '{service.service_name}' is not active")
        if reservation.status in CLOSED_RESERVATION_STATUSES:
            raise InvalidOperationError(
                f"Cannot order services for a reservation with status {reservation.status.value}"
            )

        quantity = data.get("quantity") or 1
        location = data.get("delivery_location")
        if not location:
            location = f"Room {reservation.room.room_number}" if reservation.room else "Front desk"

        order = ServiceOrder(
            reservation=reservation,
            service=service,
            quantity=quantity,
            price_charged=service.price,
            total_price=money(Decimal(service.price) * quantity),
            status=ServiceOrderStatus.PENDING,
            scheduled_time=data.get("scheduled_time"),
            delivery_location=location,
            special_instructions=data.get("special_instructions"),
        )
        db.add(order)
        db.commit()
        log_event(
            "services", current_user.username, "Service ordered",
            f"reservation={reservation.reservation_number} service={service.service_name} qty={quantity}",
        )
        return ServiceOrderService.get(db, order.id)

    @staticmethod
    def update(db: Session, order_id: int, data: dict, username: str) -> ServiceOrder:
        order = get_or_404(db, ServiceOrder, order_id, "Service order")
        if data.get("completed_by_id") is not None:
            get_or_404(db, User, data["completed_by_id"], "User")

        was_completed = order.status == ServiceOrderStatus.COMPLETED
        for field, value in data.items():
            setattr(order, field, value)

        if "quantity" in data:
            order.total_price = money(Decimal(order.price_charged) * order.quantity)
        if order.status == ServiceOrderStatus.COMPLETED and not was_completed:
            order.completed_at = datetime.utcnow()

        db.commit()
        log_event("services", username, "Service order updated", f"id={order_id} fields={list(data)}")
        return ServiceOrderService.get(db, order.id)

    @staticmethod
    def delete(db: Session, order_id: int, username: str) -> bool:
        order = db.query(ServiceOrder).filter(ServiceOrder.id == order_id).first()
        if order is None:
            return False
        if order.status == ServiceOrderStatus.COMPLETED:
            raise InvalidOperationError("Cannot delete a completed service order")
        db.delete(order)
        db.commit()
        log_event("services", username, "Service order deleted", f"id={order_id}")
        return True

    # ========== QUERIES ==========

    @staticmethod
    def by_reservation(db: Session, reservation_id: int) -> List[ServiceOrder]:
        return (
            _order_query(db)
            .filter(ServiceOrder.reservation_id == reservation_id)
            .order_by(ServiceOrder.order_datetime)
            .all()
        )

    @staticmethod
    def by_status(db: Session, status: str) -> List[ServiceOrder]:
        wanted = parse_enum(ServiceOrderStatus, status)
        return _order_query(db).filter(ServiceOrder.status == wanted).order_by(ServiceOrder.order_datetime).all()

    @staticmethod
    def by_date_range(db: Session, start: date, end: date) -> List[ServiceOrder]:
        validate_date_range(start, end)
        lower, upper = range_bounds_utc(start, end)
        return (
            _order_query(db)
            .filter(ServiceOrder.order_datetime >= lower, ServiceOrder.order_datetime < upper)
            .order_by(ServiceOrder.order_datetime)
            .all()
        )

    # ========== WORKFLOW ==========

    @staticmethod
    def complete(db: Session, order_id: int, notes: Optional[str], current_user: User) -> ServiceOrder:
        order = get_or_404(db, ServiceOrder, order_id, "Service order")
        if order.status in (ServiceOrderStatus.CANCELLED, ServiceOrderStatus.COMPLETED):
            raise InvalidOperationError(f"Cannot complete a service order with status {order.status.value}")
        order.status = ServiceOrderStatus.COMPLETED
        order.completed_at = datetime.utcnow()
        order.completed_by_id = current_user.id
        order.completion_notes = notes
        db.commit()
        log_event("services", current_user.username, "Service order completed", f"id={order_id}")
        return ServiceOrderService.get(db, order.id)

    @staticmethod
    def cancel(db: Session, order_id: int, reason: Optional[str], username: str) -> ServiceOrder:
        order = get_or_404(db, ServiceOrder, order_id, "Service order")
        if order.status == ServiceOrderStatus.COMPLETED:
            raise InvalidOperationError("Cannot cancel a completed service order")
        if order.status == ServiceOrderStatus.CANCELLED:
            raise InvalidOperationError("Service order is already cancelled")
        order.status = ServiceOrderStatus.CANCELLED
        order.completion_notes = f"Cancelled: {reason or 'no reason given'}"
        db.commit()
        log_event("services", username, "Service order cancelled", f"id={order_id} reason={reason}")
        return ServiceOrderService.get(db, order.id)

    # ========== STATISTICS ==========

    @staticmethod
    def statistics(db: Session) -> dict:
        orders = ServiceOrderService.get_all(db)
        by_status = {s.value: 0 for s in ServiceOrderStatus}
        revenue_by_type = {}
        durations = []
        for order in orders:
            by_status[order.status.value] += 1
            if order.status == ServiceOrderStatus.COMPLETED:
                kind = order.service.service_type
                revenue_by_type[kind] = round(revenue_by_type.get(kind, 0.0) + float(order.total_price), 2)
                if order.completed_at:
                    durations.append((order.completed_at - order.order_datetime).total_seconds() / 60)
        return {
            "total_orders": len(orders),
            "by_status": by_status,
            "total_revenue": round(sum(revenue_by_type.values()), 2),
            "revenue_by_service_type": revenue_by_type,
            "average_completion_minutes": round(sum(durations) / len(durations), 2) if durations else 0.0,
        }

    @staticmethod
    def stats_by_type(db: Session) -> dict:
        result = {}
        for order in ServiceOrderService.get_all(db):
            entry = result.setdefault(order.service.service_type, {"orders": 0, "quantity": 0, "revenue": 0.0})
            entry["orders"] += 1
            entry["quantity"] += order.quantity
            if order.status == ServiceOrderStatus.COMPLETED:
                entry["revenue"] = round(entry["revenue"] + float(order.total_price), 2)
        return result

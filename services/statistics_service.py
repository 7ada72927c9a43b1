"""
Dashboard figures: occupancy, revenue, ADR / RevPAR and the per-role summaries.

Money comes from three sources:
    payments received  -> cash in (non-refunded payments)
    room revenue       -> nightly rate of every occupied night
    service revenue    -> completed service orders
"""
import calendar
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Dict, List

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload, selectinload

from models import (
    BLOCKING_STATUSES, CleaningStatus, CleaningTask, Feedback, Invoice, MaintenanceRequest,
    MaintenanceStatus, Payment, Reservation, ReservationStatus, Room, RoomStatus,
    ServiceOrder, ServiceOrderStatus, UPCOMING_STATUSES, URGENT_PRIORITIES, User,
)
from services.common import validate_date_range
from services.payment_service import PaymentService
from services.reservation_service import ReservationService
from utils.timezone import day_bounds_utc, hotel_today, range_bounds_utc, to_hotel_time

# Reservations whose nights count as sold
STAYED_STATUSES = (
    ReservationStatus.CHECKED_IN,
    ReservationStatus.CHECKED_OUT,
    ReservationStatus.COMPLETED,
)
NON_CANCELLED_STATUSES = tuple(s for s in ReservationStatus if s != ReservationStatus.CANCELLED)
FORECAST_DAYS = 7


def _round(value) -> float:
    return round(float(value), 2)


def _growth(current: Decimal, previous: Decimal) -> float:
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return _round((current - previous) / previous * 100)


def _hotel_date(dt: datetime) -> date:
    return to_hotel_time(dt).date()


def _dates(start: date, end: date) -> List[date]:
    return [start + timedelta(days=i) for i in range((end - start).days + 1)]


def room_revenue(reservation: Reservation) -> Decimal:
    """Accommodation part of the reservation total"""
    services = sum(
        (Decimal(o.total_price) for o in reservation.service_orders if o.status != ServiceOrderStatus.CANCELLED),
        Decimal("0"),
    )
    return Decimal(reservation.total_price) - services


def nightly_rate(reservation: Reservation) -> Decimal:
    nights = reservation.nights
    return room_revenue(reservation) / nights if nights > 0 else Decimal("0")


def _payments_between(db: Session, start: date, end: date) -> Decimal:
    lower, upper = range_bounds_utc(start, end)
    total = db.query(func.coalesce(func.sum(Payment.amount_paid), 0)).filter(
        Payment.is_refunded.is_(False),
        Payment.payment_date >= lower,
        Payment.payment_date < upper,
    ).scalar()
    return Decimal(str(total))


def _stays_overlapping(db: Session, start: date, end: date, statuses) -> List[Reservation]:
    return (
        db.query(Reservation)
        .options(
            joinedload(Reservation.room_type),
            selectinload(Reservation.service_orders),
            selectinload(Reservation.invoices),
        )
        .filter(
            Reservation.status.in_(statuses),
            Reservation.check_in_date <= end,
            Reservation.check_out_date > start,
        )
        .all()
    )


def _occupied_on(reservation: Reservation, day: date) -> bool:
    return reservation.check_in_date <= day < reservation.check_out_date


def _room_counts(db: Session) -> Dict[RoomStatus, int]:
    return dict(db.query(Room.status, func.count(Room.id)).group_by(Room.status).all())


class StatisticsService:

    # ========== DASHBOARD ==========

    @staticmethod
    def dashboard(db: Session) -> dict:
        today = hotel_today()
        day_start, day_end = day_bounds_utc(today)

        counts = _room_counts(db)
        total_rooms = sum(counts.values())
        occupied = counts.get(RoomStatus.OCCUPIED, 0)
        maintenance = counts.get(RoomStatus.MAINTENANCE, 0)
        sellable = total_rooms - maintenance
        needs_cleaning = db.query(func.count(Room.id)).filter(Room.needs_cleaning.is_(True)).scalar() or 0

        status_counts = dict(
            db.query(Reservation.status, func.count(Reservation.id)).group_by(Reservation.status).all()
        )
        current_guests = db.query(func.coalesce(func.sum(Reservation.number_of_guests), 0)).filter(
            Reservation.status == ReservationStatus.CHECKED_IN
        ).scalar()
        expected_arrivals = db.query(func.count(Reservation.id)).filter(
            Reservation.status.in_(UPCOMING_STATUSES),
            Reservation.check_in_date > today,
            Reservation.check_in_date <= today + timedelta(days=FORECAST_DAYS),
        ).scalar()
        new_today = db.query(func.count(Reservation.id)).filter(
            Reservation.reservation_date >= day_start,
            Reservation.reservation_date < day_end,
        ).scalar()

        pending_maintenance = db.query(MaintenanceRequest).filter(
            MaintenanceRequest.status.in_([MaintenanceStatus.REPORTED, MaintenanceStatus.IN_PROGRESS])
        ).all()

        open_invoices = (
            db.query(Invoice)
            .options(selectinload(Invoice.payments))
            .filter(Invoice.is_paid.is_(False), Invoice.is_cancelled.is_(False))
            .all()
        )

        since = datetime.utcnow() - timedelta(days=30)
        avg_rating = db.query(func.avg(Feedback.rating)).filter(Feedback.created_at >= since).scalar()
        unresolved = db.query(func.count(Feedback.id)).filter(Feedback.is_resolved.is_(False)).scalar()

        horizon_end = today + timedelta(days=FORECAST_DAYS - 1)
        upcoming = _stays_overlapping(db, today, horizon_end, BLOCKING_STATUSES)
        occupancy_forecast = {}
        revenue_forecast = {}
        for day in _dates(today, horizon_end):
            staying = [r for r in upcoming if _occupied_on(r, day)]
            occupancy_forecast[day.isoformat()] = len(staying)
            revenue_forecast[day.isoformat()] = _round(sum((nightly_rate(r) for r in staying), Decimal("0")))

        return {
            "date": today,
            "total_rooms": total_rooms,
            "occupied_rooms": occupied,
            "available_rooms": counts.get(RoomStatus.AVAILABLE, 0),
            "maintenance_rooms": maintenance,
            "rooms_needing_cleaning": needs_cleaning,
            "occupancy_rate": round(occupied / sellable * 100, 2) if sellable > 0 else 0.0,
            "today_new_reservations": new_today,
            "today_arrivals": len(ReservationService.today_arrivals(db)),
            "today_departures": len(ReservationService.today_departures(db)),
            "active_reservations": sum(status_counts.get(s, 0) for s in BLOCKING_STATUSES),
            "pending_reservations": status_counts.get(ReservationStatus.PENDING, 0),
            "checked_in_reservations": status_counts.get(ReservationStatus.CHECKED_IN, 0),
            "current_guests": int(current_guests or 0),
            "expected_arrivals_next_7_days": expected_arrivals,
            "pending_maintenance": len(pending_maintenance),
            "urgent_maintenance": sum(1 for m in pending_maintenance if m.priority in URGENT_PRIORITIES),
            "today_revenue": _round(_payments_between(db, today, today)),
            "outstanding_balance": _round(sum((i.balance for i in open_invoices), Decimal("0"))),
            "unpaid_invoices": len(open_invoices),
            "average_rating_last_30_days": _round(avg_rating) if avg_rating is not None else 0.0,
            "unresolved_feedback": unresolved,
            "occupancy_forecast": occupancy_forecast,
            "revenue_forecast": revenue_forecast,
        }

    # ========== REVENUE ==========

    @staticmethod
    def revenue(db: Session, start: date, end: date) -> dict:
        validate_date_range(start, end)
        days = (end - start).days + 1
        total_rooms = db.query(func.count(Room.id)).scalar() or 0
        total = _payments_between(db, start, end)

        bookings = db.query(func.count(Reservation.id)).filter(
            Reservation.status != ReservationStatus.CANCELLED,
            Reservation.check_in_date >= start,
            Reservation.check_in_date <= end,
        ).scalar() or 0

        today = hotel_today()
        month_start = today.replace(day=1)
        prev_month_end = month_start - timedelta(days=1)
        prev_month_start = prev_month_end.replace(day=1)
        current_month = _payments_between(db, month_start, today)
        previous_month = _payments_between(db, prev_month_start, prev_month_end)
        current_year = _payments_between(db, date(today.year, 1, 1), today)
        previous_year = _payments_between(db, date(today.year - 1, 1, 1), date(today.year - 1, 12, 31))

        by_room_type = {}
        for reservation in _stays_overlapping(db, start, end, NON_CANCELLED_STATUSES):
            name = reservation.room_type.name
            invoiced = sum(
                (Decimal(i.total) for i in reservation.invoices if not i.is_cancelled), Decimal("0")
            )
            by_room_type[name] = _round(Decimal(str(by_room_type.get(name, 0))) + invoiced)

        lower, upper = range_bounds_utc(start, end)
        by_service_type = {}
        completed_orders = (
            db.query(ServiceOrder)
            .options(joinedload(ServiceOrder.service))
            .filter(
                ServiceOrder.status == ServiceOrderStatus.COMPLETED,
                ServiceOrder.completed_at >= lower,
                ServiceOrder.completed_at < upper,
            )
            .all()
        )
        for order in completed_orders:
            kind = order.service.service_type
            by_service_type[kind] = _round(by_service_type.get(kind, 0) + float(order.total_price))

        monthly = {}
        for month in range(1, 13):
            last_day = calendar.monthrange(today.year, month)[1]
            monthly[calendar.month_name[month]] = _round(
                _payments_between(db, date(today.year, month, 1), date(today.year, month, last_day))
            )

        checked_out = (
            db.query(Reservation)
            .options(joinedload(Reservation.room_type), selectinload(Reservation.service_orders))
            .filter(
                Reservation.status.in_([ReservationStatus.CHECKED_OUT, ReservationStatus.COMPLETED]),
                Reservation.check_out_date >= start,
                Reservation.check_out_date <= end,
            )
            .all()
        )
        adr_totals = {}
        for reservation in checked_out:
            revenue, nights = adr_totals.get(reservation.room_type.name, (Decimal("0"), 0))
            adr_totals[reservation.room_type.name] = (revenue + room_revenue(reservation), nights + reservation.nights)
        all_revenue = sum((r for r, _ in adr_totals.values()), Decimal("0"))
        all_nights = sum(n for _, n in adr_totals.values())

        sold = _stays_overlapping(db, start, end, STAYED_STATUSES)
        night_revenue = sum(
            (nightly_rate(r) for r in sold for day in _dates(start, end) if _occupied_on(r, day)),
            Decimal("0"),
        )
        available_room_nights = total_rooms * days

        return {
            "start_date": start,
            "end_date": end,
            "total_revenue": _round(total),
            "average_revenue_per_room_day": _round(total / available_room_nights) if available_room_nights else 0.0,
            "average_revenue_per_booking": _round(total / bookings) if bookings else 0.0,
            "current_month_revenue": _round(current_month),
            "previous_month_revenue": _round(previous_month),
            "month_over_month_growth": _growth(current_month, previous_month),
            "current_year_revenue": _round(current_year),
            "previous_year_revenue": _round(previous_year),
            "year_over_year_growth": _growth(current_year, previous_year),
            "revenue_by_room_type": by_room_type,
            "revenue_by_service_type": by_service_type,
            "monthly_revenue": monthly,
            "average_daily_rate": _round(all_revenue / all_nights) if all_nights else 0.0,
            "average_daily_rate_by_room_type": {
                name: _round(revenue / nights) if nights else 0.0
                for name, (revenue, nights) in adr_totals.items()
            },
            "revpar": _round(night_revenue / available_room_nights) if available_room_nights else 0.0,
            "revenue_by_payment_method": PaymentService.stats_by_method(db, start, end),
        }

    @staticmethod
    def daily_revenue(db: Session, start: date, end: date) -> List[dict]:
        validate_date_range(start, end)
        total_rooms = db.query(func.count(Room.id)).scalar() or 0
        lower, upper = range_bounds_utc(start, end)

        def bucket(rows):
            result = {}
            for stamp, value in rows:
                if stamp is not None:
                    key = _hotel_date(stamp)
                    result[key] = result.get(key, Decimal("0")) + Decimal(str(value))
            return result

        payments = bucket(
            (p.payment_date, p.amount_paid)
            for p in db.query(Payment).filter(
                Payment.is_refunded.is_(False),
                Payment.payment_date >= lower,
                Payment.payment_date < upper,
            )
        )
        services = bucket(
            (o.completed_at, o.total_price)
            for o in db.query(ServiceOrder).filter(
                ServiceOrder.status == ServiceOrderStatus.COMPLETED,
                ServiceOrder.completed_at >= lower,
                ServiceOrder.completed_at < upper,
            )
        )

        def events(column):
            return bucket(
                (stamp, 1)
                for (stamp,) in db.query(column).filter(column >= lower, column < upper)
            )

        new_reservations = events(Reservation.reservation_date)
        check_ins = events(Reservation.checked_in_time)
        check_outs = events(Reservation.checked_out_time)
        cancellations = events(Reservation.cancelled_at)

        sold = _stays_overlapping(db, start, end, STAYED_STATUSES)
        rows = []
        for day in _dates(start, end):
            staying = [r for r in sold if _occupied_on(r, day)]
            room_income = sum((nightly_rate(r) for r in staying), Decimal("0"))
            service_income = services.get(day, Decimal("0"))
            occupied = len(staying)
            rows.append({
                "date": day,
                "payments_received": _round(payments.get(day, 0)),
                "room_revenue": _round(room_income),
                "service_revenue": _round(service_income),
                "total_revenue": _round(room_income + service_income),
                "occupied_rooms": occupied,
                "occupancy_rate": round(occupied / total_rooms * 100, 2) if total_rooms else 0.0,
                "adr": _round(room_income / occupied) if occupied else 0.0,
                "revpar": _round(room_income / total_rooms) if total_rooms else 0.0,
                "new_reservations": int(new_reservations.get(day, 0)),
                "check_ins": int(check_ins.get(day, 0)),
                "check_outs": int(check_outs.get(day, 0)),
                "cancellations": int(cancellations.get(day, 0)),
            })
        return rows

    # ========== ROLE VIEWS ==========

    @staticmethod
    def receptionist(db: Session) -> dict:
        stats = StatisticsService.dashboard(db)
        keys = (
            "date", "today_arrivals", "today_departures", "today_new_reservations", "current_guests",
            "occupied_rooms", "available_rooms", "expected_arrivals_next_7_days", "unpaid_invoices",
            "occupancy_rate",
        )
        return {key: stats[key] for key in keys}

    @staticmethod
    def housekeeper(db: Session, current_user: User) -> dict:
        counts = _room_counts(db)
        own_open = db.query(func.count(CleaningTask.id)).filter(
            CleaningTask.assigned_to_id == current_user.id,
            CleaningTask.status != CleaningStatus.CLEANED,
        ).scalar()
        return {
            "date": hotel_today(),
            "rooms_needing_cleaning": db.query(func.count(Room.id)).filter(Room.needs_cleaning.is_(True)).scalar() or 0,
            "today_departures": len(ReservationService.today_departures(db)),
            "occupied_rooms": counts.get(RoomStatus.OCCUPIED, 0),
            "maintenance_rooms": counts.get(RoomStatus.MAINTENANCE, 0),
            "my_open_tasks": own_open,
        }

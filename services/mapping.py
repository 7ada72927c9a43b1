"""
Conversion of ORM entities into the response dictionaries validated by the
schemas in schemas/. Every router returns these dicts, never raw entities.
"""
import json
from typing import Optional

from models import (
    BLOCKING_STATUSES,
    CleaningStatus,
    PaymentStatus,
    ServiceOrderStatus,
)
from utils.timezone import hotel_today


def _f(value) -> Optional[float]:
    return float(value) if value is not None else None


def _name(user) -> Optional[str]:
    return user.full_name if user is not None else None


# ========== USERS ==========

def user_to_dto(user) -> dict:
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "full_name": user.full_name,
        "phone_number": user.phone_number,
        "date_of_birth": user.date_of_birth,
        "address": user.address,
        "city": user.city,
        "state": user.state,
        "country": user.country,
        "postal_code": user.postal_code,
        "id_type": user.id_type,
        "id_number": user.id_number,
        "hire_date": user.hire_date,
        "role": user.role_name,
        "is_active": user.is_active,
        "account_status": user.account_status,
        "password_reset_required": user.password_reset_required,
        "created_at": user.created_at,
        "last_login": user.last_login,
    }


def role_to_dto(role, user_count: int = 0) -> dict:
    return {
        "id": role.id,
        "name": role.name,
        "description": role.description,
        "user_count": user_count,
    }


# ========== ROOMS ==========

def room_type_to_dto(room_type, room_count: int = 0) -> dict:
    return {
        "id": room_type.id,
        "name": room_type.name,
        "description": room_type.description,
        "base_price": _f(room_type.base_price),
        "capacity": room_type.capacity,
        "image_url": room_type.image_url,
        "amenities": room_type.amenities_list,
        "room_count": room_count,
    }


def room_to_dto(room) -> dict:
    room_type = room.room_type
    return {
        "id": room.id,
        "room_number": room.room_number,
        "floor": room.floor,
        "room_type_id": room.room_type_id,
        "room_type_name": room_type.name if room_type else None,
        "capacity": room_type.capacity if room_type else None,
        "base_price": _f(room.base_price),
        "price": _f(room.effective_price),
        "status": room.status,
        "needs_cleaning": room.needs_cleaning,
        "last_cleaned": room.last_cleaned,
        "cleaned_by_id": room.cleaned_by_id,
        "cleaned_by_name": _name(room.cleaned_by),
        "notes": room.notes,
        "active_reservations_count": sum(1 for r in room.reservations if r.status in BLOCKING_STATUSES),
        "pending_cleaning_tasks_count": sum(1 for t in room.cleaning_tasks if t.status != CleaningStatus.CLEANED),
        "created_at": room.created_at,
        "updated_at": room.updated_at,
    }


# ========== RESERVATIONS ==========

def reservation_payment_status(reservation) -> PaymentStatus:
    invoices = [i for i in reservation.invoices if not i.is_cancelled]
    if not invoices:
        if reservation.invoices:
            return PaymentStatus.CANCELLED
        return PaymentStatus.PENDING
    statuses = [i.status for i in invoices]
    if all(s == PaymentStatus.PAID for s in statuses):
        return PaymentStatus.PAID
    if any(s in (PaymentStatus.PAID, PaymentStatus.PARTIALLY_PAID) for s in statuses):
        return PaymentStatus.PARTIALLY_PAID
    if all(s == PaymentStatus.REFUNDED for s in statuses):
        return PaymentStatus.REFUNDED
    return PaymentStatus.PENDING


def reservation_to_dto(reservation) -> dict:
    user = reservation.user
    return {
        "id": reservation.id,
        "reservation_number": reservation.reservation_number,
        "user_id": reservation.user_id,
        "user_name": _name(user),
        "user_email": user.email if user else None,
        "reservation_date": reservation.reservation_date,
        "check_in_date": reservation.check_in_date,
        "check_out_date": reservation.check_out_date,
        "nights": reservation.nights,
        "status": reservation.status,
        "total_price": _f(reservation.total_price),
        "payment_method": reservation.payment_method,
        "payment_status": reservation_payment_status(reservation),
        "number_of_guests": reservation.number_of_guests,
        "special_requests": reservation.special_requests,
        "room_id": reservation.room_id,
        "room_number": reservation.room.room_number if reservation.room else None,
        "room_type_id": reservation.room_type_id,
        "room_type_name": reservation.room_type.name if reservation.room_type else None,
        "checked_in_time": reservation.checked_in_time,
        "checked_in_by_name": _name(reservation.checked_in_by),
        "checked_out_time": reservation.checked_out_time,
        "checked_out_by_name": _name(reservation.checked_out_by),
        "cancelled_at": reservation.cancelled_at,
        "cancellation_reason": reservation.cancellation_reason,
        "service_orders_count": len(reservation.service_orders),
        "invoices_count": len(reservation.invoices),
        "feedback_count": len(reservation.feedback),
        "has_unpaid_invoices": any(not i.is_paid and not i.is_cancelled for i in reservation.invoices),
    }


# ========== HOUSEKEEPING ==========

def cleaning_task_to_dto(task) -> dict:
    duration = None
    if task.completed_at and task.created_at:
        duration = round((task.completed_at - task.created_at).total_seconds() / 60, 2)
    return {
        "id": task.id,
        "task_number": task.task_number,
        "room_id": task.room_id,
        "room_number": task.room.room_number if task.room else None,
        "assigned_to_id": task.assigned_to_id,
        "assigned_to_name": _name(task.assigned_to),
        "description": task.description,
        "priority": task.priority,
        "status": task.status,
        "created_at": task.created_at,
        "started_at": task.started_at,
        "completed_at": task.completed_at,
        "completion_notes": task.completion_notes,
        "duration_minutes": duration,
    }


def maintenance_request_to_dto(request) -> dict:
    time_to_resolve = None
    if request.completed_at:
        time_to_resolve = round((request.completed_at - request.report_date).total_seconds() / 3600, 2)
    return {
        "id": request.id,
        "room_id": request.room_id,
        "room_number": request.room.room_number if request.room else None,
        "floor": request.room.floor if request.room else None,
        "issue_description": request.issue_description,
        "priority": request.priority,
        "status": request.status,
        "reported_by_id": request.reported_by_id,
        "reported_by_name": _name(request.reported_by),
        "assigned_to_id": request.assigned_to_id,
        "assigned_to_name": _name(request.assigned_to),
        "report_date": request.report_date,
        "completed_at": request.completed_at,
        "resolution_notes": request.resolution_notes,
        "cost_of_repair": _f(request.cost_of_repair),
        "time_to_resolve_hours": time_to_resolve,
    }


# ========== BILLING ==========

def payment_to_dto(payment) -> dict:
    return {
        "id": payment.id,
        "invoice_id": payment.invoice_id,
        "invoice_number": payment.invoice.invoice_number if payment.invoice else None,
        "amount_paid": _f(payment.amount_paid),
        "method": payment.method,
        "payment_date": payment.payment_date,
        "transaction_id": payment.transaction_id,
        "notes": payment.notes,
        "processed_by_id": payment.processed_by_id,
        "processed_by_name": _name(payment.processed_by),
        "is_refunded": payment.is_refunded,
        "refund_reason": payment.refund_reason,
        "refunded_at": payment.refunded_at,
    }


def invoice_to_dto(invoice) -> dict:
    reservation = invoice.reservation
    guest = reservation.user if reservation else None
    amount = float(invoice.amount)
    tax_percentage = round(float(invoice.tax) / amount * 100, 2) if amount else 0.0
    is_overdue = bool(
        invoice.due_date
        and invoice.due_date < hotel_today()
        and not invoice.is_paid
        and not invoice.is_cancelled
    )
    return {
        "id": invoice.id,
        "invoice_number": invoice.invoice_number,
        "reservation_id": invoice.reservation_id,
        "reservation_number": reservation.reservation_number if reservation else None,
        "guest_name": _name(guest),
        "guest_email": guest.email if guest else None,
        "amount": amount,
        "tax": _f(invoice.tax),
        "tax_percentage": tax_percentage,
        "total": _f(invoice.total),
        "amount_paid": _f(invoice.amount_paid),
        "balance": _f(invoice.balance),
        "status": invoice.status,
        "is_paid": invoice.is_paid,
        "is_cancelled": invoice.is_cancelled,
        "paid_at": invoice.paid_at,
        "due_date": invoice.due_date,
        "is_overdue": is_overdue,
        "nights": reservation.nights if reservation else None,
        "notes": invoice.notes,
        "created_at": invoice.created_at,
        "payments": [payment_to_dto(p) for p in invoice.payments],
    }


# ========== SERVICES ==========

def service_to_dto(service) -> dict:
    completed = [o for o in service.orders if o.status == ServiceOrderStatus.COMPLETED]
    return {
        "id": service.id,
        "service_name": service.service_name,
        "service_type": service.service_type,
        "description": service.description,
        "price": _f(service.price),
        "is_active": service.is_active,
        "total_orders": len(service.orders),
        "total_revenue": float(sum(o.total_price for o in completed)),
    }


def service_order_to_dto(order) -> dict:
    reservation = order.reservation
    service = order.service
    return {
        "id": order.id,
        "reservation_id": order.reservation_id,
        "reservation_number": reservation.reservation_number if reservation else None,
        "room_number": reservation.room.room_number if reservation and reservation.room else None,
        "guest_name": _name(reservation.user) if reservation else None,
        "service_id": order.service_id,
        "service_name": service.service_name if service else None,
        "service_type": service.service_type if service else None,
        "order_datetime": order.order_datetime,
        "quantity": order.quantity,
        "price_charged": _f(order.price_charged),
        "total_price": _f(order.total_price),
        "status": order.status,
        "scheduled_time": order.scheduled_time,
        "delivery_location": order.delivery_location,
        "special_instructions": order.special_instructions,
        "completed_by_id": order.completed_by_id,
        "completed_by_name": _name(order.completed_by),
        "completed_at": order.completed_at,
        "completion_notes": order.completion_notes,
    }


# ========== FEEDBACK / REPORTS ==========

def feedback_to_dto(feedback) -> dict:
    return {
        "id": feedback.id,
        "user_id": feedback.user_id,
        "user_name": _name(feedback.user),
        "reservation_id": feedback.reservation_id,
        "reservation_number": feedback.reservation.reservation_number if feedback.reservation else None,
        "guest_name": feedback.guest_name,
        "guest_email": feedback.guest_email,
        "rating": feedback.rating,
        "subject": feedback.subject,
        "comments": feedback.comments,
        "category": feedback.category,
        "is_resolved": feedback.is_resolved,
        "resolution_notes": feedback.resolution_notes,
        "resolved_by_id": feedback.resolved_by_id,
        "resolved_by_name": _name(feedback.resolved_by),
        "resolved_at": feedback.resolved_at,
        "created_at": feedback.created_at,
    }


def report_to_dto(report) -> dict:
    return {
        "id": report.id,
        "report_name": report.report_name,
        "report_type": report.report_type,
        "report_data": json.loads(report.report_data),
        "creation_date": report.creation_date,
        "created_by_id": report.created_by_id,
        "created_by_name": _name(report.created_by),
    }

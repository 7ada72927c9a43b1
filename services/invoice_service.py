"""
Invoices: numbering, tax computation, derived payment status and collection figures
"""
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session, joinedload, selectinload

import config
from models import Invoice, Payment, PaymentStatus, Reservation
from services.common import (
    InvalidOperationError, NotFoundError, get_or_404, money, parse_enum, validate_date_range,
)
from utils.logging_utils import log_event
from utils.timezone import hotel_today, range_bounds_utc


def _invoice_query(db: Session):
    return db.query(Invoice).options(
        joinedload(Invoice.reservation).joinedload(Reservation.user),
        selectinload(Invoice.payments).joinedload(Payment.processed_by),
    )


def compute_tax(amount, tax_percentage) -> Decimal:
    if tax_percentage < 0 or tax_percentage > config.MAX_TAX_PERCENTAGE:
        raise InvalidOperationError(
            f"Tax percentage must be between 0 and {config.MAX_TAX_PERCENTAGE:g}"
        )
    return money(Decimal(str(amount)) * Decimal(str(tax_percentage)) / Decimal("100"))


def next_invoice_number(db: Session, day: Optional[date] = None) -> str:
    prefix = f"INV-{(day or datetime.utcnow().date()):%Y%m%d}-"
    last = (
        db.query(Invoice.invoice_number)
        .filter(Invoice.invoice_number.like(f"{prefix}%"))
        .order_by(Invoice.invoice_number.desc())
        .first()
    )
    sequence = int(last[0].rsplit("-", 1)[1]) + 1 if last else 1
    return f"{prefix}{sequence:04d}"


def sync_paid_flag(invoice: Invoice) -> None:
    """Keeps is_paid / paid_at in line with the non-refunded payments"""
    fully_paid = invoice.amount_paid >= Decimal(invoice.total)
    if fully_paid and not invoice.is_paid:
        invoice.is_paid = True
        invoice.paid_at = datetime.utcnow()
    elif not fully_paid and invoice.is_paid:
        invoice.is_paid = False
        invoice.paid_at = None


class InvoiceService:

    # ========== CRUD ==========

    @staticmethod
    def get_all(db: Session) -> List[Invoice]:
        return _invoice_query(db).order_by(Invoice.created_at.desc()).all()

    @staticmethod
    def get(db: Session, invoice_id: int) -> Optional[Invoice]:
        return _invoice_query(db).filter(Invoice.id == invoice_id).first()

    @staticmethod
    def build(db: Session, reservation: Reservation, amount, tax_percentage: float = None,
              due_date: Optional[date] = None, notes: Optional[str] = None) -> Invoice:
        """Creates the invoice row without committing, used inside larger transactions"""
        if tax_percentage is None:
            tax_percentage = config.DEFAULT_TAX_PERCENTAGE
        amount = money(amount)
        tax = compute_tax(amount, tax_percentage)
        invoice = Invoice(
            invoice_number=next_invoice_number(db),
            reservation=reservation,
            amount=amount,
            tax=tax,
            total=amount + tax,
            due_date=due_date,
            notes=notes,
        )
        db.add(invoice)
        db.flush()
        return invoice

    @staticmethod
    def create(db: Session, data: dict, username: str) -> Invoice:
        reservation = get_or_404(db, Reservation, data["reservation_id"], "Reservation")
        invoice = InvoiceService.build(
            db,
            reservation,
            data["amount"],
            data.get("tax_percentage"),
            data.get("due_date"),
            data.get("notes"),
        )
        db.commit()
        log_event("billing", username, "Invoice created", f"invoice={invoice.invoice_number} total={invoice.total}")
        return InvoiceService.get(db, invoice.id)

    @staticmethod
    def update(db: Session, invoice_id: int, data: dict, username: str) -> Invoice:
        invoice = InvoiceService.get(db, invoice_id)
        if invoice is None:
            raise NotFoundError(f"Invoice with ID {invoice_id} not found")
        if invoice.is_paid:
            raise InvalidOperationError("Cannot update a paid invoice")
        if invoice.is_cancelled:
            raise InvalidOperationError("Cannot update a cancelled invoice")

        if "amount" in data or "tax_percentage" in data:
            amount = money(data.get("amount", invoice.amount))
            if "tax_percentage" in data and data["tax_percentage"] is not None:
                pct = data["tax_percentage"]
            elif Decimal(invoice.amount):
                pct = float(Decimal(invoice.tax) / Decimal(invoice.amount) * 100)
            else:
                pct = config.DEFAULT_TAX_PERCENTAGE
            tax = compute_tax(amount, pct)
            invoice.amount = amount
            invoice.tax = tax
            invoice.total = amount + tax

        if "due_date" in data:
            invoice.due_date = data["due_date"]
        if "notes" in data:
            invoice.notes = data["notes"]
        if data.get("paid_at"):
            invoice.paid_at = data["paid_at"]
            invoice.is_paid = True

        db.commit()
        log_event("billing", username, "Invoice updated", f"invoice={invoice.invoice_number}")
        return InvoiceService.get(db, invoice.id)

    @staticmethod
    def delete(db: Session, invoice_id: int, username: str) -> bool:
        invoice = db.query(Invoice).filter(Invoice.id == invoice_id).first()
        if invoice is None:
            return False
        if invoice.payments:
            raise InvalidOperationError("Cannot delete an invoice that has payments")
        db.delete(invoice)
        db.commit()
        log_event("billing", username, "Invoice deleted", f"invoice={invoice.invoice_number}")
        return True

    # ========== QUERIES ==========

    @staticmethod
    def by_reservation(db: Session, reservation_id: int) -> List[Invoice]:
        return _invoice_query(db).filter(Invoice.reservation_id == reservation_id).order_by(Invoice.created_at).all()

    @staticmethod
    def by_user(db: Session, user_id: int) -> List[Invoice]:
        return (
            _invoice_query(db)
            .join(Reservation, Invoice.reservation_id == Reservation.id)
            .filter(Reservation.user_id == user_id)
            .order_by(Invoice.created_at.desc())
            .all()
        )

    @staticmethod
    def by_status(db: Session, status: str) -> List[Invoice]:
        wanted = parse_enum(PaymentStatus, status)
        return [i for i in InvoiceService.get_all(db) if i.status == wanted]

    @staticmethod
    def by_date_range(db: Session, start: date, end: date) -> List[Invoice]:
        validate_date_range(start, end)
        lower, upper = range_bounds_utc(start, end)
        return (
            _invoice_query(db)
            .filter(Invoice.created_at >= lower, Invoice.created_at < upper)
            .order_by(Invoice.created_at.desc())
            .all()
        )

    @staticmethod
    def by_number(db: Session, invoice_number: str) -> Optional[Invoice]:
        return _invoice_query(db).filter(Invoice.invoice_number == invoice_number).first()

    @staticmethod
    def unpaid(db: Session) -> List[Invoice]:
        return (
            _invoice_query(db)
            .filter(Invoice.is_paid.is_(False), Invoice.is_cancelled.is_(False))
            .order_by(Invoice.due_date)
            .all()
        )

    @staticmethod
    def overdue(db: Session) -> List[Invoice]:
        return (
            _invoice_query(db)
            .filter(
                Invoice.is_paid.is_(False),
                Invoice.is_cancelled.is_(False),
                Invoice.due_date.isnot(None),
                Invoice.due_date < hotel_today(),
            )
            .order_by(Invoice.due_date)
            .all()
        )

    # ========== OPERATIONS ==========

    @staticmethod
    def generate_for_reservation(db: Session, reservation_id: int, username: str) -> Invoice:
        reservation = get_or_404(db, Reservation, reservation_id, "Reservation")
        if any(not i.is_cancelled for i in reservation.invoices):
            raise InvalidOperationError(
                f"Reservation {reservation.reservation_number} already has an invoice"
            )
        amount = Decimal(reservation.room_type.base_price) * reservation.nights
        invoice = InvoiceService.build(
            db,
            reservation,
            amount,
            due_date=reservation.check_out_date,
            notes=f"Accommodation charges for reservation {reservation.reservation_number}",
        )
        db.commit()
        log_event("billing", username, "Invoice generated", f"invoice={invoice.invoice_number}")
        return InvoiceService.get(db, invoice.id)

    @staticmethod
    def finalize(db: Session, invoice_id: int, username: str) -> Invoice:
        invoice = InvoiceService.get(db, invoice_id)
        if invoice is None:
            raise NotFoundError(f"Invoice with ID {invoice_id} not found")
        if invoice.is_cancelled:
            raise InvalidOperationError("Cannot finalize a cancelled invoice")
        if invoice.balance > 0:
            raise InvalidOperationError(f"Invoice has an outstanding balance of {money(invoice.balance)}")
        if not invoice.is_paid:
            invoice.is_paid = True
            invoice.paid_at = datetime.utcnow()
            db.commit()
        log_event("billing", username, "Invoice finalized", f"invoice={invoice.invoice_number}")
        return InvoiceService.get(db, invoice.id)

    @staticmethod
    def send(db: Session, invoice_id: int, email: Optional[str], username: str) -> bool:
        invoice = InvoiceService.get(db, invoice_id)
        if invoice is None:
            raise NotFoundError(f"Invoice with ID {invoice_id} not found")
        recipient = email or (invoice.reservation.user.email if invoice.reservation else None)
        # No mail transport configured: the dispatch is recorded in the event log only
        log_event("billing", username, "Invoice sent", f"invoice={invoice.invoice_number} to={recipient}")
        return True

    # ========== STATISTICS ==========

    @staticmethod
    def statistics(db: Session) -> dict:
        invoices = InvoiceService.get_all(db)
        live = [i for i in invoices if not i.is_cancelled]
        by_status = {s.value: 0 for s in PaymentStatus}
        for invoice in invoices:
            by_status[invoice.status.value] += 1

        since = datetime.utcnow() - timedelta(days=30)
        recent = [i for i in live if i.created_at >= since]
        collected_recent = sum(
            (p.amount_paid for i in invoices for p in i.payments if not p.is_refunded and p.payment_date >= since),
            Decimal("0"),
        )
        total_amount = sum((Decimal(i.total) for i in live), Decimal("0"))
        total_paid = sum((i.amount_paid for i in live), Decimal("0"))
        return {
            "total_invoices": len(invoices),
            "by_status": by_status,
            "total_amount": float(total_amount),
            "total_paid": float(total_paid),
            "outstanding_amount": float(total_amount - total_paid),
            "overdue_count": sum(
                1 for i in live if not i.is_paid and i.due_date and i.due_date < hotel_today()
            ),
            "last_30_days_invoiced": float(sum((Decimal(i.total) for i in recent), Decimal("0"))),
            "last_30_days_collected": float(collected_recent),
        }

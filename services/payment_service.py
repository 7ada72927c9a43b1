"""
Payments against invoices, card processing and refunds
"""
import re
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session, joinedload

from models import Invoice, Payment, PaymentMethod, User
from services.common import InvalidOperationError, get_or_404, money, validate_date_range
from services.invoice_service import sync_paid_flag
from utils.logging_utils import log_event
from utils.timezone import range_bounds_utc

RECENT_PAYMENTS_LIMIT = 20


def _payment_query(db: Session):
    return db.query(Payment).options(
        joinedload(Payment.invoice),
        joinedload(Payment.processed_by),
    )


def generate_transaction_id(method: PaymentMethod, now: Optional[datetime] = None) -> str:
    stamp = f"{(now or datetime.utcnow()):%Y%m%d%H%M%S}"
    if method in (PaymentMethod.CREDIT_CARD, PaymentMethod.DEBIT_CARD):
        return f"CC-{stamp}-{uuid.uuid4().hex[:8].upper()}"
    if method == PaymentMethod.BANK_TRANSFER:
        return f"BT-{stamp}"
    if method == PaymentMethod.ONLINE:
        return f"ONL-{stamp}"
    return f"CASH-{stamp}"


def normalize_card_number(card_number: str) -> str:
    return re.sub(r"[\s-]", "", card_number or "")


def validate_card(card_number: str, expiry: str, cvv: str, holder_name: str,
                  today: Optional[date] = None) -> str:
    """
    Checks the card fields and returns the normalized number.

    Raises InvalidOperationError on the first failing field.
    """
    number = normalize_card_number(card_number)
    if not number.isdigit() or not 13 <= len(number) <= 19:
        raise InvalidOperationError("Invalid card number")

    match = re.fullmatch(r"(\d{2})/(\d{2})", (expiry or "").strip())
    if not match or not 1 <= int(match.group(1)) <= 12:
        raise InvalidOperationError("Invalid expiry date, expected MM/YY")
    today = today or datetime.utcnow().date()
    month, year = int(match.group(1)), 2000 + int(match.group(2))
    if (year, month) < (today.year, today.month):
        raise InvalidOperationError("Card has expired")

    if not re.fullmatch(r"\d{3,4}", cvv or ""):
        raise InvalidOperationError("Invalid CVV")

    if not holder_name or len(holder_name.strip()) < 2:
        raise InvalidOperationError("Invalid card holder name")
    return number


def mask_card(number: str) -> str:
    return f"**** **** **** {number[-4:]}"


class PaymentService:

    @staticmethod
    def get_all(db: Session) -> List[Payment]:
        return _payment_query(db).order_by(Payment.payment_date.desc()).all()

    @staticmethod
    def get(db: Session, payment_id: int) -> Optional[Payment]:
        return _payment_query(db).filter(Payment.id == payment_id).first()

    @staticmethod
    def create(db: Session, data: dict, current_user: User) -> Payment:
        invoice = get_or_404(db, Invoice, data["invoice_id"], "Invoice")
        if invoice.is_cancelled:
            raise InvalidOperationError(f"Invoice {invoice.invoice_number} is cancelled")

        amount = money(data["amount_paid"])
        if amount <= 0:
            raise InvalidOperationError("Payment amount must be greater than zero")
        if amount > invoice.balance:
            raise InvalidOperationError("Payment amount exceeds invoice balance")

        method = data.get("method") or PaymentMethod.CASH
        payment = Payment(
            invoice=invoice,
            amount_paid=amount,
            method=method,
            payment_date=datetime.utcnow(),
            transaction_id=data.get("transaction_id") or generate_transaction_id(method),
            notes=data.get("notes"),
            processed_by_id=current_user.id,
        )
        db.add(payment)
        db.flush()
        sync_paid_flag(invoice)
        db.commit()
        log_event(
            "billing", current_user.username, "Payment recorded",
            f"invoice={invoice.invoice_number} amount={amount} method={method.value} paid={invoice.is_paid}",
        )
        return PaymentService.get(db, payment.id)

    @staticmethod
    def process_credit_card(db: Session, data: dict, current_user: User) -> Payment:
        number = validate_card(
            data["card_number"],
            data["expiry_date"],
            data["cvv"],
            data["card_holder_name"],
        )
        notes = f"Card payment {mask_card(number)} ({data['card_holder_name'].strip()})"
        if data.get("notes"):
            notes = f"{notes} - {data['notes']}"
        return PaymentService.create(
            db,
            {
                "invoice_id": data["invoice_id"],
                "amount_paid": data["amount"],
                "method": data.get("method") or PaymentMethod.CREDIT_CARD,
                "notes": notes,
            },
            current_user,
        )

    @staticmethod
    def refund(db: Session, payment_id: int, reason: str, username: str) -> Payment:
        payment = get_or_404(db, Payment, payment_id, "Payment")
        if payment.is_refunded:
            raise InvalidOperationError("Payment has already been refunded")
        payment.is_refunded = True
        payment.refund_reason = reason
        payment.refunded_at = datetime.utcnow()
        db.flush()
        sync_paid_flag(payment.invoice)
        db.commit()
        log_event(
            "billing", username, "Payment refunded",
            f"payment={payment.id} amount={payment.amount_paid} reason={reason}",
        )
        return PaymentService.get(db, payment.id)

    # ========== QUERIES ==========

    @staticmethod
    def by_invoice(db: Session, invoice_id: int) -> List[Payment]:
        get_or_404(db, Invoice, invoice_id, "Invoice")
        return _payment_query(db).filter(Payment.invoice_id == invoice_id).order_by(Payment.payment_date).all()

    @staticmethod
    def by_reservation(db: Session, reservation_id: int) -> List[Payment]:
        return (
            _payment_query(db)
            .join(Invoice, Payment.invoice_id == Invoice.id)
            .filter(Invoice.reservation_id == reservation_id)
            .order_by(Payment.payment_date)
            .all()
        )

    @staticmethod
    def recent(db: Session, limit: int = RECENT_PAYMENTS_LIMIT) -> List[Payment]:
        return _payment_query(db).order_by(Payment.payment_date.desc()).limit(limit).all()

    @staticmethod
    def by_date_range(db: Session, start: date, end: date) -> List[Payment]:
        validate_date_range(start, end)
        lower, upper = range_bounds_utc(start, end)
        return (
            _payment_query(db)
            .filter(Payment.payment_date >= lower, Payment.payment_date < upper)
            .order_by(Payment.payment_date)
            .all()
        )

    @staticmethod
    def total_for_period(db: Session, start: date, end: date) -> Decimal:
        return sum(
            (Decimal(p.amount_paid) for p in PaymentService.by_date_range(db, start, end) if not p.is_refunded),
            Decimal("0"),
        )

    @staticmethod
    def stats_by_method(db: Session, start: Optional[date] = None, end: Optional[date] = None) -> dict:
        if start is not None and end is not None:
            payments = PaymentService.by_date_range(db, start, end)
        else:
            payments = PaymentService.get_all(db)
        result = {m.value: {"count": 0, "amount": 0.0} for m in PaymentMethod}
        for payment in payments:
            if payment.is_refunded:
                continue
            entry = result[payment.method.value]
            entry["count"] += 1
            entry["amount"] = round(entry["amount"] + float(payment.amount_paid), 2)
        return result


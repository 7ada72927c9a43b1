"""
Invoices and payments
"""
import enum
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Column, Integer, String, Boolean, Date, DateTime, ForeignKey, Index, Numeric, Text, Enum
from sqlalchemy.orm import relationship

from database.conexion import Base
from .reservation import PaymentMethod


class PaymentStatus(str, enum.Enum):
    PENDING = "Pending"
    PAID = "Paid"
    PARTIALLY_PAID = "PartiallyPaid"
    REFUNDED = "Refunded"
    CANCELLED = "Cancelled"


class Invoice(Base):
    __tablename__ = "invoices"
    __table_args__ = (
        Index("idx_invoice_reservation", "reservation_id"),
        Index("idx_invoice_created", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    invoice_number = Column(String(30), unique=True, nullable=False)
    reservation_id = Column(Integer, ForeignKey("reservations.id", ondelete="CASCADE"), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    tax = Column(Numeric(10, 2), nullable=False, default=0)
    total = Column(Numeric(10, 2), nullable=False)
    due_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)
    is_paid = Column(Boolean, default=False, nullable=False)
    paid_at = Column(DateTime, nullable=True)
    is_cancelled = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    reservation = relationship("Reservation", back_populates="invoices")
    payments = relationship("Payment", back_populates="invoice", passive_deletes="all", order_by="Payment.payment_date")

    @property
    def amount_paid(self) -> Decimal:
        return sum((p.amount_paid for p in self.payments if not p.is_refunded), Decimal("0"))

    @property
    def balance(self) -> Decimal:
        return Decimal(self.total) - self.amount_paid

    @property
    def status(self) -> PaymentStatus:
        if self.is_cancelled:
            return PaymentStatus.CANCELLED
        paid = self.amount_paid
        if paid >= Decimal(self.total) and (paid > 0 or Decimal(self.total) == 0):
            return PaymentStatus.PAID
        if paid > 0:
            return PaymentStatus.PARTIALLY_PAID
        if self.payments and all(p.is_refunded for p in self.payments):
            return PaymentStatus.REFUNDED
        return PaymentStatus.PENDING

    def __repr__(self):
        return f"<Invoice(id={self.id}, number='{self.invoice_number}', total={self.total})>"


class Payment(Base):
    __tablename__ = "payments"
    __table_args__ = (
        Index("idx_payment_invoice", "invoice_id"),
        Index("idx_payment_date", "payment_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id", ondelete="RESTRICT"), nullable=False)
    amount_paid = Column(Numeric(10, 2), nullable=False)
    method = Column(
        Enum(PaymentMethod, values_callable=lambda obj: [e.value for e in obj]),
        nullable=False,
    )
    payment_date = Column(DateTime, default=datetime.utcnow, nullable=False)
    transaction_id = Column(String(60), nullable=True)
    notes = Column(Text, nullable=True)
    processed_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    is_refunded = Column(Boolean, default=False, nullable=False)
    refund_reason = Column(Text, nullable=True)
    refunded_at = Column(DateTime, nullable=True)

    invoice = relationship("Invoice", back_populates="payments")
    processed_by = relationship("User", foreign_keys=[processed_by_id])

    def __repr__(self):
        return f"<Payment(id={self.id}, amount={self.amount_paid}, method='{self.method}')>"

"""
Schemas de facturación: invoices y pagos
"""
from typing import Dict, List, Optional
from datetime import date, datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator

import config
from models import PaymentMethod, PaymentStatus


# ========== INVOICES ==========

class InvoiceCreate(BaseModel):
    reservation_id: int
    amount: float = Field(..., ge=0, le=config.MAX_INVOICE_AMOUNT)
    tax_percentage: float = Field(config.DEFAULT_TAX_PERCENTAGE, ge=0, le=config.MAX_TAX_PERCENTAGE)
    due_date: Optional[date] = None
    notes: Optional[str] = Field(None, max_length=500)


class InvoiceUpdate(BaseModel):
    amount: Optional[float] = Field(None, ge=0, le=config.MAX_INVOICE_AMOUNT)
    tax_percentage: Optional[float] = Field(None, ge=0, le=config.MAX_TAX_PERCENTAGE)
    due_date: Optional[date] = None
    notes: Optional[str] = Field(None, max_length=500)
    paid_at: Optional[datetime] = None


class InvoiceSend(BaseModel):
    email: Optional[str] = None


class PaymentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    invoice_id: int
    invoice_number: Optional[str] = None
    amount_paid: float
    method: PaymentMethod
    payment_date: datetime
    transaction_id: Optional[str] = None
    notes: Optional[str] = None
    processed_by_id: Optional[int] = None
    processed_by_name: Optional[str] = None
    is_refunded: bool
    refund_reason: Optional[str] = None
    refunded_at: Optional[datetime] = None


class InvoiceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    invoice_number: str
    reservation_id: int
    reservation_number: Optional[str] = None
    guest_name: Optional[str] = None
    guest_email: Optional[str] = None
    amount: float
    tax: float
    tax_percentage: float
    total: float
    amount_paid: float
    balance: float
    status: PaymentStatus
    is_paid: bool
    is_cancelled: bool
    paid_at: Optional[datetime] = None
    due_date: Optional[date] = None
    is_overdue: bool
    nights: Optional[int] = None
    notes: Optional[str] = None
    created_at: datetime
    payments: List[PaymentRead] = []


class InvoiceStatistics(BaseModel):
    total_invoices: int
    by_status: Dict[str, int]
    total_amount: float
    total_paid: float
    outstanding_amount: float
    overdue_count: int
    last_30_days_invoiced: float
    last_30_days_collected: float


# ========== PAYMENTS ==========

class PaymentCreate(BaseModel):
    invoice_id: int
    amount_paid: float = Field(..., gt=0)
    method: PaymentMethod = PaymentMethod.CASH
    transaction_id: Optional[str] = Field(None, max_length=60)
    notes: Optional[str] = Field(None, max_length=500)


class CreditCardPayment(BaseModel):
    invoice_id: int
    amount: float = Field(..., gt=0)
    card_number: str = Field(..., max_length=30)
    expiry_date: str = Field(..., max_length=5, description="MM/YY")
    cvv: str = Field(..., max_length=4)
    card_holder_name: str = Field(..., max_length=100)
    method: PaymentMethod = PaymentMethod.CREDIT_CARD
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator("method")
    @classmethod
    def card_method(cls, v: PaymentMethod) -> PaymentMethod:
        if v not in (PaymentMethod.CREDIT_CARD, PaymentMethod.DEBIT_CARD):
            raise ValueError("Card payments must use CreditCard or DebitCard")
        return v


class RefundRequest(BaseModel):
    reason: str = Field(..., min_length=3, max_length=500)


class PaymentTotals(BaseModel):
    start_date: date
    end_date: date
    total: float

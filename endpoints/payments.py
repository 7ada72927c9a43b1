"""
Endpoints de pagos
"""
from typing import Dict, List, Optional
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from database import conexion
from models import User
from schemas.billing import CreditCardPayment, PaymentCreate, PaymentRead, PaymentTotals, RefundRequest
from services.common import NotFoundError
from services.mapping import payment_to_dto
from services.payment_service import PaymentService
from utils.dependencies import FRONT_DESK, MANAGEMENT, require_roles
from utils.http_errors import database_error

router = APIRouter(prefix="/api/payment", tags=["billing"])


def _dtos(payments) -> List[dict]:
    return [payment_to_dto(p) for p in payments]


# ========== QUERIES ==========

@router.get("", response_model=List[PaymentRead])
def list_payments(
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(FRONT_DESK)),
):
    return _dtos(PaymentService.get_all(db))


@router.get("/recent", response_model=List[PaymentRead])
def recent_payments(
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(FRONT_DESK)),
):
    return _dtos(PaymentService.recent(db))


@router.get("/daterange", response_model=List[PaymentRead])
def payments_by_date_range(
    start_date: date = Query(...),
    end_date: date = Query(...),
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    return _dtos(PaymentService.by_date_range(db, start_date, end_date))


@router.get("/totals", response_model=PaymentTotals)
def payment_totals(
    start_date: date = Query(...),
    end_date: date = Query(...),
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    """Total cobrado en el período, sin pagos reembolsados"""
    total = PaymentService.total_for_period(db, start_date, end_date)
    return {"start_date": start_date, "end_date": end_date, "total": float(total)}


@router.get("/stats/bymethod", response_model=Dict[str, Dict[str, float]])
def payments_by_method(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    return PaymentService.stats_by_method(db, start_date, end_date)


@router.get("/invoice/{invoice_id}", response_model=List[PaymentRead])
def payments_by_invoice(
    invoice_id: int,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(FRONT_DESK)),
):
    return _dtos(PaymentService.by_invoice(db, invoice_id))


@router.get("/reservation/{reservation_id}", response_model=List[PaymentRead])
def payments_by_reservation(
    reservation_id: int,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(FRONT_DESK)),
):
    return _dtos(PaymentService.by_reservation(db, reservation_id))


@router.get("/{payment_id}", response_model=PaymentRead)
def get_payment(
    payment_id: int,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(FRONT_DESK)),
):
    payment = PaymentService.get(db, payment_id)
    if payment is None:
        raise NotFoundError(f"Payment with ID {payment_id} not found")
    return payment_to_dto(payment)


# ========== OPERATIONS ==========

@router.post("", response_model=PaymentRead, status_code=status.HTTP_201_CREATED)
def create_payment(
    payload: PaymentCreate,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(FRONT_DESK)),
):
    """Registra un pago; la factura queda pagada cuando el saldo llega a cero"""
    try:
        return payment_to_dto(PaymentService.create(db, payload.model_dump(), current_user))
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "billing", current_user.username, "Recording payment", e)


@router.post("/creditcard", response_model=PaymentRead, status_code=status.HTTP_201_CREATED)
def credit_card_payment(
    payload: CreditCardPayment,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(FRONT_DESK)),
):
    try:
        return payment_to_dto(PaymentService.process_credit_card(db, payload.model_dump(), current_user))
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "billing", current_user.username, "Processing card payment", e)


@router.post("/{payment_id}/refund", response_model=PaymentRead)
def refund_payment(
    payment_id: int,
    payload: RefundRequest,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    try:
        return payment_to_dto(PaymentService.refund(db, payment_id, payload.reason, current_user.username))
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "billing", current_user.username, "Refunding payment", e)

"""
Endpoints de facturación: invoices por reserva
"""
from typing import List, Optional
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from database import conexion
from models import Reservation, User
from schemas.auth import MessageResponse
from schemas.billing import InvoiceCreate, InvoiceRead, InvoiceSend, InvoiceStatistics, InvoiceUpdate
from services.common import NotFoundError, get_or_404
from services.invoice_service import InvoiceService
from services.mapping import invoice_to_dto
from utils.dependencies import FRONT_DESK, GUEST, MANAGEMENT, ensure_owner_or_staff, require_roles
from utils.http_errors import database_error

router = APIRouter(prefix="/api/invoice", tags=["billing"])

FRONT_DESK_AND_GUEST = FRONT_DESK + [GUEST]


def _dtos(invoices) -> List[dict]:
    return [invoice_to_dto(i) for i in invoices]


def _get_or_404(db: Session, invoice_id: int):
    invoice = InvoiceService.get(db, invoice_id)
    if invoice is None:
        raise NotFoundError(f"Invoice with ID {invoice_id} not found")
    return invoice


# ========== QUERIES ==========

@router.get("", response_model=List[InvoiceRead])
def list_invoices(
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(FRONT_DESK)),
):
    return _dtos(InvoiceService.get_all(db))


@router.get("/unpaid", response_model=List[InvoiceRead])
def unpaid_invoices(
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(FRONT_DESK)),
):
    return _dtos(InvoiceService.unpaid(db))


@router.get("/overdue", response_model=List[InvoiceRead])
def overdue_invoices(
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    """Impagas con fecha de vencimiento anterior a hoy"""
    return _dtos(InvoiceService.overdue(db))


@router.get("/stats", response_model=InvoiceStatistics)
def invoice_statistics(
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    return InvoiceService.statistics(db)


@router.get("/daterange", response_model=List[InvoiceRead])
def invoices_by_date_range(
    start_date: date = Query(...),
    end_date: date = Query(...),
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    return _dtos(InvoiceService.by_date_range(db, start_date, end_date))


@router.get("/status/{invoice_status}", response_model=List[InvoiceRead])
def invoices_by_status(
    invoice_status: str,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(FRONT_DESK)),
):
    return _dtos(InvoiceService.by_status(db, invoice_status))


@router.get("/number/{invoice_number}", response_model=InvoiceRead)
def invoice_by_number(
    invoice_number: str,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(FRONT_DESK)),
):
    invoice = InvoiceService.by_number(db, invoice_number)
    if invoice is None:
        raise NotFoundError(f"Invoice {invoice_number} not found")
    return invoice_to_dto(invoice)


@router.get("/reservation/{reservation_id}", response_model=List[InvoiceRead])
def invoices_by_reservation(
    reservation_id: int,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(FRONT_DESK_AND_GUEST)),
):
    reservation = get_or_404(db, Reservation, reservation_id, "Reservation")
    ensure_owner_or_staff(current_user, reservation.user_id)
    return _dtos(InvoiceService.by_reservation(db, reservation_id))


@router.get("/user/{user_id}", response_model=List[InvoiceRead])
def invoices_by_user(
    user_id: int,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(FRONT_DESK_AND_GUEST)),
):
    ensure_owner_or_staff(current_user, user_id)
    return _dtos(InvoiceService.by_user(db, user_id))


@router.get("/{invoice_id}", response_model=InvoiceRead)
def get_invoice(
    invoice_id: int,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(FRONT_DESK_AND_GUEST)),
):
    invoice = _get_or_404(db, invoice_id)
    ensure_owner_or_staff(current_user, invoice.reservation.user_id)
    return invoice_to_dto(invoice)


# ========== CRUD ==========

@router.post("", response_model=InvoiceRead, status_code=status.HTTP_201_CREATED)
def create_invoice(
    payload: InvoiceCreate,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(FRONT_DESK)),
):
    try:
        return invoice_to_dto(InvoiceService.create(db, payload.model_dump(), current_user.username))
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "billing", current_user.username, "Creating invoice", e)


@router.put("/{invoice_id}", response_model=InvoiceRead)
def update_invoice(
    invoice_id: int,
    payload: InvoiceUpdate,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(FRONT_DESK)),
):
    try:
        data = payload.model_dump(exclude_unset=True)
        return invoice_to_dto(InvoiceService.update(db, invoice_id, data, current_user.username))
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "billing", current_user.username, "Updating invoice", e)


@router.delete("/{invoice_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_invoice(
    invoice_id: int,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    try:
        if not InvoiceService.delete(db, invoice_id, current_user.username):
            raise NotFoundError(f"Invoice with ID {invoice_id} not found")
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "billing", current_user.username, "Deleting invoice", e)


# ========== OPERATIONS ==========

@router.post("/reservation/{reservation_id}/generate", response_model=InvoiceRead,
             status_code=status.HTTP_201_CREATED)
def generate_invoice(
    reservation_id: int,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(FRONT_DESK)),
):
    """Factura el alojamiento (tarifa base x noches) con el impuesto por defecto"""
    try:
        return invoice_to_dto(InvoiceService.generate_for_reservation(db, reservation_id, current_user.username))
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "billing", current_user.username, "Generating invoice", e)


@router.post("/{invoice_id}/finalize", response_model=InvoiceRead)
def finalize_invoice(
    invoice_id: int,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(FRONT_DESK)),
):
    try:
        return invoice_to_dto(InvoiceService.finalize(db, invoice_id, current_user.username))
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "billing", current_user.username, "Finalizing invoice", e)


@router.post("/{invoice_id}/send", response_model=MessageResponse)
def send_invoice(
    invoice_id: int,
    payload: Optional[InvoiceSend] = None,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(FRONT_DESK)),
):
    email = payload.email if payload else None
    InvoiceService.send(db, invoice_id, email, current_user.username)
    return {"message": "Invoice sent successfully"}

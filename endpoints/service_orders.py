"""
Endpoints de órdenes de servicio (room service, spa, lavandería...)
"""
from typing import List, Optional
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from database import conexion
from models import Reservation, User
from schemas.services import (
    ServiceOrderCancel, ServiceOrderComplete, ServiceOrderCreate, ServiceOrderRead, ServiceOrderUpdate,
)
from services.common import NotFoundError, get_or_404
from services.mapping import service_order_to_dto
from services.service_order_service import ServiceOrderService
from utils.dependencies import (
    FRONT_DESK, GUEST, MANAGEMENT, STAFF, ensure_owner_or_staff, require_roles,
)
from utils.http_errors import database_error

router = APIRouter(prefix="/api/serviceorder", tags=["services"])

ORDER_DESK = FRONT_DESK + [STAFF]
ORDER_READERS = ORDER_DESK + [GUEST]
ORDERING = FRONT_DESK + [GUEST]
DELIVERY = MANAGEMENT + [STAFF]


def _dtos(orders) -> List[dict]:
    return [service_order_to_dto(o) for o in orders]


def _get_or_404(db: Session, order_id: int):
    order = ServiceOrderService.get(db, order_id)
    if order is None:
        raise NotFoundError(f"Service order with ID {order_id} not found")
    return order


# ========== QUERIES ==========

@router.get("", response_model=List[ServiceOrderRead])
def list_orders(
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(ORDER_DESK)),
):
    return _dtos(ServiceOrderService.get_all(db))


@router.get("/daterange", response_model=List[ServiceOrderRead])
def orders_by_date_range(
    start_date: date = Query(...),
    end_date: date = Query(...),
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    return _dtos(ServiceOrderService.by_date_range(db, start_date, end_date))


@router.get("/stats")
def order_statistics(
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    return ServiceOrderService.statistics(db)


@router.get("/stats/bytype")
def orders_by_type_stats(
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    return ServiceOrderService.stats_by_type(db)


@router.get("/status/{order_status}", response_model=List[ServiceOrderRead])
def orders_by_status(
    order_status: str,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(ORDER_DESK)),
):
    return _dtos(ServiceOrderService.by_status(db, order_status))


@router.get("/reservation/{reservation_id}", response_model=List[ServiceOrderRead])
def orders_by_reservation(
    reservation_id: int,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(ORDER_READERS)),
):
    reservation = get_or_404(db, Reservation, reservation_id, "Reservation")
    ensure_owner_or_staff(current_user, reservation.user_id)
    return _dtos(ServiceOrderService.by_reservation(db, reservation_id))


@router.get("/{order_id}", response_model=ServiceOrderRead)
def get_order(
    order_id: int,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(ORDER_READERS)),
):
    order = _get_or_404(db, order_id)
    ensure_owner_or_staff(current_user, order.reservation.user_id)
    return service_order_to_dto(order)


# ========== CRUD ==========

@router.post("", response_model=ServiceOrderRead, status_code=status.HTTP_201_CREATED)
def create_order(
    payload: ServiceOrderCreate,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(ORDERING)),
):
    """El precio se congela al momento de la orden"""
    try:
        return service_order_to_dto(ServiceOrderService.create(db, payload.model_dump(), current_user))
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "services", current_user.username, "Creating service order", e)


@router.put("/{order_id}", response_model=ServiceOrderRead)
def update_order(
    order_id: int,
    payload: ServiceOrderUpdate,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(ORDER_DESK)),
):
    try:
        data = payload.model_dump(exclude_unset=True)
        return service_order_to_dto(ServiceOrderService.update(db, order_id, data, current_user.username))
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "services", current_user.username, "Updating service order", e)


@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_order(
    order_id: int,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    try:
        if not ServiceOrderService.delete(db, order_id, current_user.username):
            raise NotFoundError(f"Service order with ID {order_id} not found")
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "services", current_user.username, "Deleting service order", e)


# ========== WORKFLOW ==========

@router.post("/{order_id}/complete", response_model=ServiceOrderRead)
def complete_order(
    order_id: int,
    payload: Optional[ServiceOrderComplete] = None,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(DELIVERY)),
):
    try:
        notes = payload.notes if payload else None
        return service_order_to_dto(ServiceOrderService.complete(db, order_id, notes, current_user))
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "services", current_user.username, "Completing service order", e)


@router.post("/{order_id}/cancel", response_model=ServiceOrderRead)
def cancel_order(
    order_id: int,
    payload: Optional[ServiceOrderCancel] = None,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(ORDERING)),
):
    try:
        order = _get_or_404(db, order_id)
        ensure_owner_or_staff(current_user, order.reservation.user_id)
        reason = payload.reason if payload else None
        return service_order_to_dto(ServiceOrderService.cancel(db, order_id, reason, current_user.username))
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "services", current_user.username, "Cancelling service order", e)

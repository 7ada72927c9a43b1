"""
Endpoints de solicitudes de mantenimiento
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from database import conexion
from models import User
from schemas.housekeeping import (
    MaintenanceComplete, MaintenanceRequestCreate, MaintenanceRequestRead, MaintenanceRequestUpdate,
)
from services.common import NotFoundError
from services.maintenance_service import MaintenanceService
from services.mapping import maintenance_request_to_dto
from utils.dependencies import (
    HOUSEKEEPER, MAINTENANCE, MANAGEMENT, RECEPTIONIST, STAFF, require_roles,
)
from utils.http_errors import database_error

router = APIRouter(prefix="/api/maintenancerequest", tags=["maintenance"])

MAINTENANCE_TEAM = MANAGEMENT + [MAINTENANCE]
MAINTENANCE_VIEWERS = MAINTENANCE_TEAM + [STAFF]
REPORTERS = MANAGEMENT + [STAFF, RECEPTIONIST, HOUSEKEEPER]


def _dtos(requests) -> List[dict]:
    return [maintenance_request_to_dto(r) for r in requests]


@router.get("", response_model=List[MaintenanceRequestRead])
def list_requests(
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MAINTENANCE_TEAM)),
):
    """Urgentes primero, luego las más recientes"""
    return _dtos(MaintenanceService.get_all(db))


@router.get("/status/{request_status}", response_model=List[MaintenanceRequestRead])
def requests_by_status(
    request_status: str,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MAINTENANCE_TEAM)),
):
    return _dtos(MaintenanceService.by_status(db, request_status))


@router.get("/assigned/{user_id}", response_model=List[MaintenanceRequestRead])
def requests_by_assignee(
    user_id: int,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MAINTENANCE_TEAM)),
):
    return _dtos(MaintenanceService.by_assignee(db, user_id))


@router.get("/room/{room_id}", response_model=List[MaintenanceRequestRead])
def requests_by_room(
    room_id: int,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MAINTENANCE_VIEWERS)),
):
    return _dtos(MaintenanceService.by_room(db, room_id))


@router.get("/{request_id}", response_model=MaintenanceRequestRead)
def get_request(
    request_id: int,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MAINTENANCE_VIEWERS)),
):
    request = MaintenanceService.get(db, request_id)
    if request is None:
        raise NotFoundError(f"Maintenance request with ID {request_id} not found")
    return maintenance_request_to_dto(request)


@router.post("", response_model=MaintenanceRequestRead, status_code=status.HTTP_201_CREATED)
def create_request(
    payload: MaintenanceRequestCreate,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(REPORTERS)),
):
    """
    Reporta un problema. Si la prioridad es High o Urgent la habitación
    pasa a Maintenance hasta que se resuelva.
    """
    try:
        return maintenance_request_to_dto(MaintenanceService.create(db, payload.model_dump(), current_user))
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "maintenance", current_user.username, "Creating maintenance request", e)


@router.put("/{request_id}", response_model=MaintenanceRequestRead)
def update_request(
    request_id: int,
    payload: MaintenanceRequestUpdate,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MAINTENANCE_TEAM)),
):
    try:
        data = payload.model_dump(exclude_unset=True)
        return maintenance_request_to_dto(MaintenanceService.update(db, request_id, data, current_user.username))
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "maintenance", current_user.username, "Updating maintenance request", e)


@router.delete("/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_request(
    request_id: int,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    try:
        if not MaintenanceService.delete(db, request_id, current_user.username):
            raise NotFoundError(f"Maintenance request with ID {request_id} not found")
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "maintenance", current_user.username, "Deleting maintenance request", e)


@router.post("/{request_id}/assign/{user_id}", response_model=MaintenanceRequestRead)
def assign_request(
    request_id: int,
    user_id: int,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    try:
        return maintenance_request_to_dto(
            MaintenanceService.assign(db, request_id, user_id, current_user.username)
        )
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "maintenance", current_user.username, "Assigning maintenance request", e)


@router.post("/{request_id}/complete", response_model=MaintenanceRequestRead)
def complete_request(
    request_id: int,
    payload: Optional[MaintenanceComplete] = None,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MAINTENANCE_TEAM)),
):
    try:
        notes = payload.resolution_notes if payload else None
        cost = payload.cost_of_repair if payload else None
        return maintenance_request_to_dto(
            MaintenanceService.complete(db, request_id, notes, cost, current_user.username)
        )
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "maintenance", current_user.username, "Completing maintenance request", e)

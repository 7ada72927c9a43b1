"""
Endpoints del catálogo de servicios del hotel
"""
from typing import Dict, List
from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from database import conexion
from models import User
from schemas.services import ServiceCreate, ServiceRead, ServiceUpdate
from services.common import NotFoundError
from services.mapping import service_to_dto
from services.service_catalog_service import ServiceCatalogService
from utils.dependencies import MANAGEMENT, get_current_active_user, require_roles
from utils.http_errors import database_error

router = APIRouter(prefix="/api/service", tags=["services"])


@router.get("", response_model=List[ServiceRead])
def list_services(
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(get_current_active_user),
):
    return [service_to_dto(s) for s in ServiceCatalogService.get_all(db)]


@router.get("/active", response_model=List[ServiceRead])
def active_services(
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(get_current_active_user),
):
    return [service_to_dto(s) for s in ServiceCatalogService.active(db)]


@router.get("/stats/bytype", response_model=Dict[str, Dict[str, float]])
def services_by_type_stats(
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    return ServiceCatalogService.stats_by_type(db)


@router.get("/type/{service_type}", response_model=List[ServiceRead])
def services_by_type(
    service_type: str,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(get_current_active_user),
):
    return [service_to_dto(s) for s in ServiceCatalogService.by_type(db, service_type)]


@router.get("/{service_id}", response_model=ServiceRead)
def get_service(
    service_id: int,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(get_current_active_user),
):
    service = ServiceCatalogService.get(db, service_id)
    if service is None:
        raise NotFoundError(f"Service with ID {service_id} not found")
    return service_to_dto(service)


@router.post("", response_model=ServiceRead, status_code=status.HTTP_201_CREATED)
def create_service(
    payload: ServiceCreate,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    try:
        return service_to_dto(ServiceCatalogService.create(db, payload.model_dump(), current_user.username))
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "services", current_user.username, "Creating service", e)


@router.put("/{service_id}", response_model=ServiceRead)
def update_service(
    service_id: int,
    payload: ServiceUpdate,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    try:
        data = payload.model_dump(exclude_unset=True)
        return service_to_dto(ServiceCatalogService.update(db, service_id, data, current_user.username))
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "services", current_user.username, "Updating service", e)


@router.delete("/{service_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_service(
    service_id: int,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    """Un servicio con órdenes se desactiva en lugar de borrarse"""
    try:
        if not ServiceCatalogService.delete(db, service_id, current_user.username):
            raise NotFoundError(f"Service with ID {service_id} not found")
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "services", current_user.username, "Deleting service", e)

"""
Endpoints de Housekeeping: tareas de limpieza por habitación
"""
from typing import Dict, List, Optional
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from database import conexion
from models import User
from schemas.housekeeping import (
    CleaningStatistics, CleaningTaskComplete, CleaningTaskCreate, CleaningTaskForRoom, CleaningTaskRead,
    CleaningTaskUpdate,
)
from services.cleaning_service import CleaningService
from services.common import NotFoundError
from services.mapping import cleaning_task_to_dto
from utils.dependencies import FRONT_DESK, HOUSEKEEPER, MANAGEMENT, require_roles
from utils.http_errors import database_error
from utils.timezone import hotel_today

router = APIRouter(prefix="/api/cleaningtask", tags=["housekeeping"])

HOUSEKEEPING = MANAGEMENT + [HOUSEKEEPER]


def _dtos(tasks) -> List[dict]:
    return [cleaning_task_to_dto(t) for t in tasks]


# ========== QUERIES ==========

@router.get("", response_model=List[CleaningTaskRead])
def list_tasks(
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(HOUSEKEEPING)),
):
    return _dtos(CleaningService.get_all(db))


@router.get("/daterange", response_model=List[CleaningTaskRead])
def tasks_by_date_range(
    start_date: date = Query(...),
    end_date: date = Query(...),
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    return _dtos(CleaningService.by_date_range(db, start_date, end_date))


@router.get("/stats", response_model=CleaningStatistics)
def cleaning_statistics(
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    return CleaningService.statistics(db)


@router.get("/stats/status", response_model=Dict[str, int])
def stats_by_status(
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    return CleaningService.stats_by_status(db)


@router.get("/stats/priority", response_model=Dict[str, int])
def stats_by_priority(
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    return CleaningService.stats_by_priority(db)


@router.get("/stats/cleaner", response_model=Dict[str, int])
def stats_by_cleaner(
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    return CleaningService.stats_by_cleaner(db)


@router.get("/room/{room_id}", response_model=List[CleaningTaskRead])
def tasks_by_room(
    room_id: int,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(HOUSEKEEPING)),
):
    return _dtos(CleaningService.by_room(db, room_id))


@router.get("/cleaner/{cleaner_id}", response_model=List[CleaningTaskRead])
def tasks_by_cleaner(
    cleaner_id: int,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(HOUSEKEEPING)),
):
    return _dtos(CleaningService.by_cleaner(db, cleaner_id))


@router.get("/status/{task_status}", response_model=List[CleaningTaskRead])
def tasks_by_status(
    task_status: str,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(HOUSEKEEPING)),
):
    return _dtos(CleaningService.by_status(db, task_status))


@router.get("/priority/{priority}", response_model=List[CleaningTaskRead])
def tasks_by_priority(
    priority: str,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(HOUSEKEEPING)),
):
    return _dtos(CleaningService.by_priority(db, priority))


@router.get("/{task_id}", response_model=CleaningTaskRead)
def get_task(
    task_id: int,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(HOUSEKEEPING)),
):
    task = CleaningService.get(db, task_id)
    if task is None:
        raise NotFoundError(f"Cleaning task with ID {task_id} not found")
    return cleaning_task_to_dto(task)


# ========== CRUD ==========

@router.post("", response_model=CleaningTaskRead, status_code=status.HTTP_201_CREATED)
def create_task(
    payload: CleaningTaskCreate,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(FRONT_DESK)),
):
    try:
        return cleaning_task_to_dto(CleaningService.create(db, payload.model_dump(), current_user.username))
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "housekeeping", current_user.username, "Creating cleaning task", e)


@router.post("/room", response_model=CleaningTaskRead, status_code=status.HTTP_201_CREATED)
def create_task_for_room(
    payload: CleaningTaskForRoom,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(FRONT_DESK)),
):
    """Tarea con descripción estándar asignada a un housekeeper al azar"""
    try:
        task = CleaningService.create_for_room(db, payload.room_id, payload.priority, current_user.username)
        return cleaning_task_to_dto(task)
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "housekeeping", current_user.username, "Creating cleaning task", e)


@router.post("/checkout-tasks", response_model=List[CleaningTaskRead], status_code=status.HTTP_201_CREATED)
def create_checkout_tasks(
    day: Optional[date] = Query(None),
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    """Genera las tareas de limpieza de las salidas del día (hoy por defecto)"""
    try:
        return _dtos(CleaningService.create_checkout_tasks(db, day or hotel_today(), current_user.username))
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "housekeeping", current_user.username, "Creating checkout tasks", e)


@router.put("/{task_id}", response_model=CleaningTaskRead)
def update_task(
    task_id: int,
    payload: CleaningTaskUpdate,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(HOUSEKEEPING)),
):
    try:
        data = payload.model_dump(exclude_unset=True)
        return cleaning_task_to_dto(CleaningService.update(db, task_id, data, current_user))
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "housekeeping", current_user.username, "Updating cleaning task", e)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task(
    task_id: int,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    try:
        if not CleaningService.delete(db, task_id, current_user.username):
            raise NotFoundError(f"Cleaning task with ID {task_id} not found")
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "housekeeping", current_user.username, "Deleting cleaning task", e)


# ========== WORKFLOW ==========

@router.post("/{task_id}/assign/{cleaner_id}", response_model=CleaningTaskRead)
def assign_task(
    task_id: int,
    cleaner_id: int,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    """Asigna la tarea a un housekeeper; cleaner_id=0 la deja sin asignar"""
    try:
        return cleaning_task_to_dto(CleaningService.assign(db, task_id, cleaner_id, current_user.username))
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "housekeeping", current_user.username, "Assigning cleaning task", e)


@router.post("/{task_id}/start", response_model=CleaningTaskRead)
def start_task(
    task_id: int,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(HOUSEKEEPING)),
):
    try:
        return cleaning_task_to_dto(CleaningService.start(db, task_id, current_user))
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "housekeeping", current_user.username, "Starting cleaning task", e)


@router.post("/{task_id}/complete", response_model=CleaningTaskRead)
def complete_task(
    task_id: int,
    payload: Optional[CleaningTaskComplete] = None,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(HOUSEKEEPING)),
):
    """Completa la tarea y marca la habitación como limpia"""
    try:
        notes = payload.notes if payload else None
        return cleaning_task_to_dto(CleaningService.complete(db, task_id, notes, current_user))
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "housekeeping", current_user.username, "Completing cleaning task", e)

"""
Endpoints de reportes guardados
"""
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from database import conexion
from models import User
from schemas.feedback import ReportCreate, ReportRead
from services.common import NotFoundError
from services.mapping import report_to_dto
from services.report_service import ReportService
from utils.dependencies import MANAGEMENT, require_roles
from utils.http_errors import database_error

router = APIRouter(prefix="/api/report", tags=["reports"])


@router.get("", response_model=List[ReportRead])
def list_reports(
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    return [report_to_dto(r) for r in ReportService.get_all(db)]


@router.get("/type/{report_type}", response_model=List[ReportRead])
def reports_by_type(
    report_type: str,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    return [report_to_dto(r) for r in ReportService.by_type(db, report_type)]


@router.get("/{report_id}", response_model=ReportRead)
def get_report(
    report_id: int,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    report = ReportService.get(db, report_id)
    if report is None:
        raise NotFoundError(f"Report with ID {report_id} not found")
    return report_to_dto(report)


@router.post("", response_model=ReportRead, status_code=status.HTTP_201_CREATED)
def create_report(
    payload: ReportCreate,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    """
    Genera y guarda un snapshot de estadísticas.

    Revenue y DailyRevenue usan el rango indicado (últimos 30 días por defecto).
    """
    try:
        return report_to_dto(ReportService.create(db, payload.model_dump(), current_user))
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "reports", current_user.username, "Generating report", e)


@router.delete("/{report_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_report(
    report_id: int,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    try:
        if not ReportService.delete(db, report_id, current_user.username):
            raise NotFoundError(f"Report with ID {report_id} not found")
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "reports", current_user.username, "Deleting report", e)

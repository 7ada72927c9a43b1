"""
Endpoints de estadísticas del hotel para los dashboards de cada rol
"""
from typing import Optional, Tuple
from datetime import date, timedelta
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from database import conexion
from models import User
from services.statistics_service import StatisticsService
from utils.dependencies import FRONT_DESK, HOUSEKEEPER, MANAGEMENT, require_roles
from utils.timezone import hotel_today

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])

DEFAULT_RANGE_DAYS = 30


def _range(start_date: Optional[date], end_date: Optional[date]) -> Tuple[date, date]:
    end = end_date or hotel_today()
    start = start_date or end - timedelta(days=DEFAULT_RANGE_DAYS)
    return start, end


@router.get("/manager")
def manager_dashboard(
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    """
    Resumen general: habitaciones, reservas, mantenimiento, dinero,
    feedback y previsión de los próximos 7 días
    """
    return StatisticsService.dashboard(db)


@router.get("/revenue")
def revenue_statistics(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    """Ingresos del período (últimos 30 días por defecto) con ADR y RevPAR"""
    start, end = _range(start_date, end_date)
    return StatisticsService.revenue(db, start, end)


@router.get("/daily-revenue")
def daily_revenue(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    start, end = _range(start_date, end_date)
    return StatisticsService.daily_revenue(db, start, end)


@router.get("/receptionist")
def receptionist_dashboard(
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(FRONT_DESK)),
):
    return StatisticsService.receptionist(db)


@router.get("/housekeeper")
def housekeeper_dashboard(
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT + [HOUSEKEEPER])),
):
    return StatisticsService.housekeeper(db, current_user)

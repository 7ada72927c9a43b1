"""
Stored report snapshots: the statistics of the moment serialized as JSON
"""
import json
from datetime import date, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session, joinedload

from models import Report, ReportType, User
from services.cleaning_service import CleaningService
from services.common import parse_enum
from services.feedback_service import FeedbackService
from services.room_service import RoomService
from services.statistics_service import StatisticsService
from utils.logging_utils import log_event
from utils.timezone import hotel_today

DEFAULT_RANGE_DAYS = 30


def _report_query(db: Session):
    return db.query(Report).options(joinedload(Report.created_by))


def _snapshot(db: Session, report_type: ReportType, start: Optional[date], end: Optional[date]):
    if report_type in (ReportType.REVENUE, ReportType.DAILY_REVENUE):
        end = end or hotel_today()
        start = start or end - timedelta(days=DEFAULT_RANGE_DAYS)
        if report_type == ReportType.REVENUE:
            return StatisticsService.revenue(db, start, end)
        return StatisticsService.daily_revenue(db, start, end)
    if report_type == ReportType.OCCUPANCY:
        return RoomService.occupancy(db)
    if report_type == ReportType.HOUSEKEEPING:
        return CleaningService.statistics(db)
    if report_type == ReportType.FEEDBACK:
        return FeedbackService.summary(db)
    return StatisticsService.dashboard(db)


class ReportService:

    @staticmethod
    def get_all(db: Session) -> List[Report]:
        return _report_query(db).order_by(Report.creation_date.desc()).all()

    @staticmethod
    def get(db: Session, report_id: int) -> Optional[Report]:
        return _report_query(db).filter(Report.id == report_id).first()

    @staticmethod
    def by_type(db: Session, report_type: str) -> List[Report]:
        wanted = parse_enum(ReportType, report_type, "report type")
        return _report_query(db).filter(Report.report_type == wanted).order_by(Report.creation_date.desc()).all()

    @staticmethod
    def create(db: Session, data: dict, current_user: User) -> Report:
        report_type = data["report_type"]
        payload = _snapshot(db, report_type, data.get("start_date"), data.get("end_date"))
        report = Report(
            report_name=data["report_name"],
            report_type=report_type,
            report_data=json.dumps(payload, default=str),
            created_by_id=current_user.id,
        )
        db.add(report)
        db.commit()
        log_event(
            "reports", current_user.username, "Report generated",
            f"id={report.id} type={report_type.value} name={report.report_name}",
        )
        return ReportService.get(db, report.id)

    @staticmethod
    def delete(db: Session, report_id: int, username: str) -> bool:
        report = db.query(Report).filter(Report.id == report_id).first()
        if report is None:
            return False
        db.delete(report)
        db.commit()
        log_event("reports", username, "Report deleted", f"id={report_id}")
        return True

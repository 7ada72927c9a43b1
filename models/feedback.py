import enum
from datetime import datetime

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Index, Text, Enum, CheckConstraint
from sqlalchemy.orm import relationship

from database.conexion import Base


class ReportType(str, enum.Enum):
    DASHBOARD = "Dashboard"
    REVENUE = "Revenue"
    DAILY_REVENUE = "DailyRevenue"
    OCCUPANCY = "Occupancy"
    HOUSEKEEPING = "Housekeeping"
    FEEDBACK = "Feedback"


class Feedback(Base):
    """Guest feedback, optionally tied to a stay"""
    __tablename__ = "feedback"
    __table_args__ = (
        Index("idx_feedback_category", "category"),
        Index("idx_feedback_resolved", "is_resolved"),
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_feedback_rating"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    reservation_id = Column(Integer, ForeignKey("reservations.id", ondelete="CASCADE"), nullable=True)
    guest_name = Column(String(100), nullable=True)
    guest_email = Column(String(100), nullable=True)
    rating = Column(Integer, nullable=False)
    subject = Column(String(200), nullable=True)
    comments = Column(Text, nullable=True)
    category = Column(String(50), nullable=True)

    is_resolved = Column(Boolean, default=False, nullable=False)
    resolution_notes = Column(Text, nullable=True)
    resolved_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    resolved_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", foreign_keys=[user_id])
    reservation = relationship("Reservation", back_populates="feedback")
    resolved_by = relationship("User", foreign_keys=[resolved_by_id])

    def __repr__(self):
        return f"<Feedback(id={self.id}, rating={self.rating}, resolved={self.is_resolved})>"


class Report(Base):
    """Stored statistics snapshot, report_data holds the JSON payload"""
    __tablename__ = "reports"
    __table_args__ = (
        Index("idx_report_type", "report_type"),
    )

    id = Column(Integer, primary_key=True, index=True)
    report_name = Column(String(100), nullable=False)
    report_type = Column(
        Enum(ReportType, values_callable=lambda obj: [e.value for e in obj]),
        nullable=False,
    )
    report_data = Column(Text, nullable=False)
    creation_date = Column(DateTime, default=datetime.utcnow, nullable=False)
    created_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_by = relationship("User", foreign_keys=[created_by_id])

    def __repr__(self):
        return f"<Report(id={self.id}, name='{self.report_name}', type='{self.report_type}')>"

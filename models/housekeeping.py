"""
Housekeeping and maintenance models
"""
import enum
from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index, Numeric, Text, Enum
from sqlalchemy.orm import relationship

from database.conexion import Base


class Priority(str, enum.Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    URGENT = "Urgent"


PRIORITY_RANK = {
    Priority.LOW: 0,
    Priority.MEDIUM: 1,
    Priority.HIGH: 2,
    Priority.URGENT: 3,
}

URGENT_PRIORITIES = (Priority.HIGH, Priority.URGENT)


class CleaningStatus(str, enum.Enum):
    DIRTY = "Dirty"
    IN_PROGRESS = "InProgress"
    CLEANED = "Cleaned"


class MaintenanceStatus(str, enum.Enum):
    REPORTED = "Reported"
    IN_PROGRESS = "InProgress"
    RESOLVED = "Resolved"


class CleaningTask(Base):
    __tablename__ = "cleaning_tasks"
    __table_args__ = (
        Index("idx_cleaning_task_status", "status"),
        Index("idx_cleaning_task_room", "room_id"),
        Index("idx_cleaning_task_assignee", "assigned_to_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    task_number = Column(String(30), unique=True, nullable=False)
    room_id = Column(Integer, ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False)
    assigned_to_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    description = Column(String(200), nullable=False)
    priority = Column(
        Enum(Priority, name="task_priority", values_callable=lambda obj: [e.value for e in obj]),
        default=Priority.MEDIUM,
        nullable=False,
    )
    status = Column(
        Enum(CleaningStatus, values_callable=lambda obj: [e.value for e in obj]),
        default=CleaningStatus.DIRTY,
        nullable=False,
    )
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    completion_notes = Column(Text, nullable=True)

    room = relationship("Room", back_populates="cleaning_tasks")
    assigned_to = relationship("User", foreign_keys=[assigned_to_id])

    def __repr__(self):
        return f"<CleaningTask(id={self.id}, number='{self.task_number}', status='{self.status}')>"


class MaintenanceRequest(Base):
    __tablename__ = "maintenance_requests"
    __table_args__ = (
        Index("idx_maintenance_status", "status"),
        Index("idx_maintenance_room", "room_id"),
        Index("idx_maintenance_assignee", "assigned_to_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    room_id = Column(Integer, ForeignKey("rooms.id", ondelete="SET NULL"), nullable=True)
    issue_description = Column(Text, nullable=False)
    priority = Column(
        Enum(Priority, name="task_priority", values_callable=lambda obj: [e.value for e in obj]),
        default=Priority.MEDIUM,
        nullable=False,
    )
    status = Column(
        Enum(MaintenanceStatus, values_callable=lambda obj: [e.value for e in obj]),
        default=MaintenanceStatus.REPORTED,
        nullable=False,
    )
    reported_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    assigned_to_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    report_date = Column(DateTime, default=datetime.utcnow, nullable=False)
    completed_at = Column(DateTime, nullable=True)
    resolution_notes = Column(Text, nullable=True)
    cost_of_repair = Column(Numeric(10, 2), nullable=True)

    room = relationship("Room", back_populates="maintenance_requests")
    reported_by = relationship("User", foreign_keys=[reported_by_id])
    assigned_to = relationship("User", foreign_keys=[assigned_to_id])

    def __repr__(self):
        return f"<MaintenanceRequest(id={self.id}, status='{self.status}', priority='{self.priority}')>"

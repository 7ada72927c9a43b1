"""
Service catalog and service orders placed against a reservation
"""
import enum
from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, DateTime, Boolean, Numeric, Text, Index, ForeignKey, Enum
)
from sqlalchemy.orm import relationship

from database.conexion import Base


class ServiceOrderStatus(str, enum.Enum):
    PENDING = "Pending"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class Service(Base):
    __tablename__ = "services"
    __table_args__ = (
        Index("idx_service_type", "service_type"),
        Index("idx_service_active", "is_active"),
    )

    id = Column(Integer, primary_key=True, index=True)
    service_name = Column(String(100), nullable=False)
    service_type = Column(String(50), nullable=False)
    description = Column(String(500), nullable=True)
    price = Column(Numeric(10, 2), nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    orders = relationship("ServiceOrder", back_populates="service", passive_deletes="all")

    def __repr__(self):
        return f"<Service(id={self.id}, name='{self.service_name}', type='{self.service_type}')>"


class ServiceOrder(Base):
    __tablename__ = "service_orders"
    __table_args__ = (
        Index("idx_service_order_reservation", "reservation_id"),
        Index("idx_service_order_status", "status"),
        Index("idx_service_order_date", "order_datetime"),
    )

    id = Column(Integer, primary_key=True, index=True)
    reservation_id = Column(Integer, ForeignKey("reservations.id", ondelete="CASCADE"), nullable=False)
    service_id = Column(Integer, ForeignKey("services.id", ondelete="RESTRICT"), nullable=False)
    order_datetime = Column(DateTime, default=datetime.utcnow, nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    price_charged = Column(Numeric(10, 2), nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)
    status = Column(
        Enum(ServiceOrderStatus, values_callable=lambda obj: [e.value for e in obj]),
        default=ServiceOrderStatus.PENDING,
        nullable=False,
    )
    scheduled_time = Column(DateTime, nullable=True)
    delivery_location = Column(String(100), nullable=True)
    special_instructions = Column(Text, nullable=True)
    completed_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    completed_at = Column(DateTime, nullable=True)
    completion_notes = Column(Text, nullable=True)

    reservation = relationship("Reservation", back_populates="service_orders")
    service = relationship("Service", back_populates="orders")
    completed_by = relationship("User", foreign_keys=[completed_by_id])

    def __repr__(self):
        return f"<ServiceOrder(id={self.id}, service_id={self.service_id}, status='{self.status}')>"

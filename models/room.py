import enum
from datetime import datetime

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Index, Numeric, Text, Enum
from sqlalchemy.orm import relationship

from database.conexion import Base


class RoomStatus(str, enum.Enum):
    AVAILABLE = "Available"
    OCCUPIED = "Occupied"
    MAINTENANCE = "Maintenance"
    RESERVED = "Reserved"


class RoomType(Base):
    """Room category with its nightly base price and capacity"""
    __tablename__ = "room_types"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    base_price = Column(Numeric(10, 2), nullable=False)
    capacity = Column(Integer, nullable=False, default=2)
    image_url = Column(String(255), nullable=True)
    amenities = Column(String(500), nullable=True)  # comma separated

    rooms = relationship("Room", back_populates="room_type", passive_deletes="all")
    reservations = relationship("Reservation", back_populates="room_type", passive_deletes="all")

    @property
    def amenities_list(self):
        if not self.amenities:
            return []
        return [a.strip() for a in self.amenities.split(",") if a.strip()]

    def __repr__(self):
        return f"<RoomType(id={self.id}, name='{self.name}')>"


class Room(Base):
    __tablename__ = "rooms"
    __table_args__ = (
        Index("idx_room_status", "status"),
        Index("idx_room_type", "room_type_id"),
        Index("idx_room_floor", "floor"),
    )

    id = Column(Integer, primary_key=True, index=True)
    room_number = Column(String(10), unique=True, nullable=False)
    floor = Column(Integer, nullable=False, default=1)
    room_type_id = Column(Integer, ForeignKey("room_types.id", ondelete="RESTRICT"), nullable=False)
    base_price = Column(Numeric(10, 2), nullable=True)  # override of the room type price
    status = Column(
        Enum(RoomStatus, values_callable=lambda obj: [e.value for e in obj]),
        default=RoomStatus.AVAILABLE,
        nullable=False,
    )
    needs_cleaning = Column(Boolean, default=False, nullable=False)
    last_cleaned = Column(DateTime, nullable=True)
    cleaned_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    room_type = relationship("RoomType", back_populates="rooms")
    cleaned_by = relationship("User", foreign_keys=[cleaned_by_id])
    reservations = relationship("Reservation", back_populates="room", passive_deletes="all")
    cleaning_tasks = relationship("CleaningTask", back_populates="room", cascade="all, delete-orphan")
    maintenance_requests = relationship("MaintenanceRequest", back_populates="room")

    @property
    def effective_price(self):
        if self.base_price is not None:
            return self.base_price
        return self.room_type.base_price if self.room_type else None

    def __repr__(self):
        return f"<Room(id={self.id}, number='{self.room_number}', status='{self.status}')>"

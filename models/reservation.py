import enum
from datetime import datetime

from sqlalchemy import Column, Integer, String, Date, DateTime, ForeignKey, Index, Numeric, Text, Enum, CheckConstraint
from sqlalchemy.orm import relationship

from database.conexion import Base


class ReservationStatus(str, enum.Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    CHECKED_IN = "CheckedIn"
    CHECKED_OUT = "CheckedOut"
    CANCELLED = "Cancelled"
    RESERVED = "Reserved"
    COMPLETED = "Completed"


# Reservations that hold inventory for their dates
BLOCKING_STATUSES = (
    ReservationStatus.PENDING,
    ReservationStatus.CONFIRMED,
    ReservationStatus.RESERVED,
    ReservationStatus.CHECKED_IN,
)

# Reservations that have not arrived yet and can still be modified
UPCOMING_STATUSES = (
    ReservationStatus.PENDING,
    ReservationStatus.CONFIRMED,
    ReservationStatus.RESERVED,
)


class PaymentMethod(str, enum.Enum):
    CASH = "Cash"
    CREDIT_CARD = "CreditCard"
    DEBIT_CARD = "DebitCard"
    BANK_TRANSFER = "BankTransfer"
    ONLINE = "Online"


class Reservation(Base):
    __tablename__ = "reservations"
    __table_args__ = (
        Index("idx_reservation_dates", "check_in_date", "check_out_date"),
        Index("idx_reservation_status", "status"),
        Index("idx_reservation_user", "user_id"),
        Index("idx_reservation_room", "room_id"),
        CheckConstraint("check_out_date > check_in_date", name="ck_reservation_dates"),
        CheckConstraint("number_of_guests BETWEEN 1 AND 10", name="ck_reservation_guests"),
    )

    id = Column(Integer, primary_key=True, index=True)
    reservation_number = Column(String(40), unique=True, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    room_id = Column(Integer, ForeignKey("rooms.id", ondelete="RESTRICT"), nullable=True)
    room_type_id = Column(Integer, ForeignKey("room_types.id", ondelete="RESTRICT"), nullable=False)

    reservation_date = Column(DateTime, default=datetime.utcnow, nullable=False)
    check_in_date = Column(Date, nullable=False)
    check_out_date = Column(Date, nullable=False)
    status = Column(
        Enum(ReservationStatus, values_callable=lambda obj: [e.value for e in obj]),
        default=ReservationStatus.PENDING,
        nullable=False,
    )
    total_price = Column(Numeric(10, 2), nullable=False, default=0)
    payment_method = Column(
        Enum(PaymentMethod, values_callable=lambda obj: [e.value for e in obj]),
        nullable=True,
    )
    number_of_guests = Column(Integer, nullable=False, default=1)
    special_requests = Column(String(500), nullable=True)

    # Front desk audit
    created_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    checked_in_time = Column(DateTime, nullable=True)
    checked_in_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    checked_out_time = Column(DateTime, nullable=True)
    checked_out_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="reservations", foreign_keys=[user_id])
    created_by = relationship("User", foreign_keys=[created_by_id])
    checked_in_by = relationship("User", foreign_keys=[checked_in_by_id])
    checked_out_by = relationship("User", foreign_keys=[checked_out_by_id])
    room = relationship("Room", back_populates="reservations")
    room_type = relationship("RoomType", back_populates="reservations")
    invoices = relationship("Invoice", back_populates="reservation", cascade="all, delete-orphan")
    service_orders = relationship("ServiceOrder", back_populates="reservation", cascade="all, delete-orphan")
    feedback = relationship("Feedback", back_populates="reservation", cascade="all, delete-orphan")

    @property
    def nights(self) -> int:
        return (self.check_out_date - self.check_in_date).days

    def __repr__(self):
        return f"<Reservation(id={self.id}, number='{self.reservation_number}', status='{self.status}')>"

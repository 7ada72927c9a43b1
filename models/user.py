"""
Users and roles for authentication and authorization
"""
import enum
from datetime import datetime

from sqlalchemy import Column, Integer, String, Boolean, Date, DateTime, ForeignKey, Index, Text, Enum
from sqlalchemy.orm import relationship

from database.conexion import Base


class AccountStatus(str, enum.Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    SUSPENDED = "Suspended"
    LOCKED = "Locked"


class RoleName(str, enum.Enum):
    ADMIN = "Admin"
    MANAGER = "Manager"
    RECEPTIONIST = "Receptionist"
    HOUSEKEEPER = "Housekeeper"
    MAINTENANCE = "Maintenance"
    STAFF = "Staff"
    GUEST = "Guest"


class Role(Base):
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    users = relationship("User", back_populates="role")

    def __repr__(self):
        return f"<Role(id={self.id}, name='{self.name}')>"


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        Index("idx_user_role", "role_id"),
        Index("idx_user_active", "is_active"),
    )

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(30), unique=True, nullable=False, index=True)
    email = Column(String(100), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    role_id = Column(Integer, ForeignKey("roles.id", ondelete="RESTRICT"), nullable=False)

    # Profile
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    phone_number = Column(String(20), nullable=True)
    date_of_birth = Column(Date, nullable=True)
    address = Column(String(200), nullable=True)
    city = Column(String(50), nullable=True)
    state = Column(String(50), nullable=True)
    country = Column(String(50), nullable=True)
    postal_code = Column(String(20), nullable=True)
    id_type = Column(String(30), nullable=True)
    id_number = Column(String(50), nullable=True)
    hire_date = Column(Date, nullable=True)

    # Account state
    is_active = Column(Boolean, default=True, nullable=False)
    account_status = Column(
        Enum(AccountStatus, values_callable=lambda obj: [e.value for e in obj]),
        default=AccountStatus.ACTIVE,
        nullable=False,
    )
    password_reset_required = Column(Boolean, default=False, nullable=False)

    # Security
    failed_login_attempts = Column(Integer, default=0, nullable=False)
    locked_until = Column(DateTime, nullable=True)

    # Audit
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    last_login = Column(DateTime, nullable=True)

    role = relationship("Role", back_populates="users")
    reservations = relationship("Reservation", back_populates="user", foreign_keys="Reservation.user_id", passive_deletes="all")

    @property
    def role_name(self) -> str:
        return self.role.name if self.role else ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}', role='{self.role_name}')>"

"""
Archivo de inicialización del paquete models.
Expone todas las clases para que SQLAlchemy (Base.metadata) las detecte
al importar 'models'.
"""

# 1. Usuarios y roles
from .user import User, Role, RoleName, AccountStatus

# 2. Habitaciones
from .room import Room, RoomType, RoomStatus

# 3. Reservas
from .reservation import (
    Reservation,
    ReservationStatus,
    PaymentMethod,
    BLOCKING_STATUSES,
    UPCOMING_STATUSES,
)

# 4. Housekeeping y mantenimiento
from .housekeeping import (
    CleaningTask,
    MaintenanceRequest,
    CleaningStatus,
    MaintenanceStatus,
    Priority,
    PRIORITY_RANK,
    URGENT_PRIORITIES,
)

# 5. Facturación
from .billing import Invoice, Payment, PaymentStatus

# 6. Servicios
from .services import Service, ServiceOrder, ServiceOrderStatus

# 7. Feedback y reportes
from .feedback import Feedback, Report, ReportType

__all__ = [
    "User", "Role", "RoleName", "AccountStatus",
    "Room", "RoomType", "RoomStatus",
    "Reservation", "ReservationStatus", "PaymentMethod", "BLOCKING_STATUSES", "UPCOMING_STATUSES",
    "CleaningTask", "MaintenanceRequest", "CleaningStatus", "MaintenanceStatus", "Priority",
    "PRIORITY_RANK", "URGENT_PRIORITIES",
    "Invoice", "Payment", "PaymentStatus",
    "Service", "ServiceOrder", "ServiceOrderStatus",
    "Feedback", "Report", "ReportType",
]

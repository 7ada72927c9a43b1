"""
Servicios de negocio del back office del hotel
"""

from .auth_service import AuthService
from .cleaning_service import CleaningService
from .feedback_service import FeedbackService
from .invoice_service import InvoiceService
from .maintenance_service import MaintenanceService
from .payment_service import PaymentService
from .report_service import ReportService
from .reservation_service import ReservationService
from .room_service import RoomService, RoomTypeService
from .service_catalog_service import ServiceCatalogService
from .service_order_service import ServiceOrderService
from .statistics_service import StatisticsService
from .user_service import UserService

__all__ = [
    "AuthService",
    "CleaningService",
    "FeedbackService",
    "InvoiceService",
    "MaintenanceService",
    "PaymentService",
    "ReportService",
    "ReservationService",
    "RoomService",
    "RoomTypeService",
    "ServiceCatalogService",
    "ServiceOrderService",
    "StatisticsService",
    "UserService",
]

"""
Excepciones de dominio y helpers compartidos por los servicios.

Los servicios no conocen HTTP: lanzan estas excepciones y main.py
las traduce a 404 / 400 / 403 / 401.
"""
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Type, TypeVar

from sqlalchemy.orm import Session

E = TypeVar("E")

CENT = Decimal("0.01")


class ServiceError(Exception):
    """Base class for domain errors"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(ServiceError):
    pass


class InvalidOperationError(ServiceError):
    pass


class AccessDeniedError(ServiceError):
    pass


def get_or_404(db: Session, model, entity_id: int, label: str = None):
    entity = db.query(model).filter(model.id == entity_id).first()
    if entity is None:
        raise NotFoundError(f"{label or model.__name__} with ID {entity_id} not found")
    return entity


def parse_enum(enum_cls: Type[E], value: str, label: str = "status") -> E:
    """Case-insensitive lookup by value, 400 on unknown input"""
    for member in enum_cls:
        if member.value.lower() == str(value).lower():
            return member
    allowed = ", ".join(m.value for m in enum_cls)
    raise InvalidOperationError(f"Invalid {label} '{value}'. Allowed values: {allowed}")


def validate_date_range(start: date, end: date) -> None:
    if start > end:
        raise InvalidOperationError("Start date must be before end date")


def money(value) -> Decimal:
    """Decimal rounded to cents"""
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


class AuthenticationError(ServiceError):
    """Bad credentials, answered with 401 and a Bearer challenge"""

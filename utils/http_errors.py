"""
Traducción de errores de base de datos a respuestas HTTP para los routers
"""
from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from utils.logging_utils import log_error


def database_error(db: Session, area: str, username: str, action: str, exc: SQLAlchemyError) -> HTTPException:
    """Rolls back and returns the HTTPException to raise: 409 on constraint violations, 500 otherwise"""
    db.rollback()
    log_error(area, username, action, exc)
    if isinstance(exc, IntegrityError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="The operation conflicts with existing records"
        )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Database error while {action.lower()}"
    )

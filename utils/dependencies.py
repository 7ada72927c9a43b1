"""
Dependencias de autenticación y autorización
"""
from typing import List
from datetime import datetime
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session, joinedload

from database import conexion
from models import RoleName, User
from utils.auth import verify_token
from utils.logging_utils import log_event


# Esquema OAuth2 para obtener el token del header
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")

ADMIN = RoleName.ADMIN.value
MANAGER = RoleName.MANAGER.value
RECEPTIONIST = RoleName.RECEPTIONIST.value
HOUSEKEEPER = RoleName.HOUSEKEEPER.value
MAINTENANCE = RoleName.MAINTENANCE.value
STAFF = RoleName.STAFF.value
GUEST = RoleName.GUEST.value

MANAGEMENT = [ADMIN, MANAGER]
FRONT_DESK = [ADMIN, MANAGER, RECEPTIONIST]


# ========== DEPENDENCIAS DE AUTENTICACIÓN ==========

async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(conexion.get_db)
) -> User:
    """
    Obtiene el usuario actual desde el token JWT

    Raises:
        HTTPException: 401 si el token es inválido o el usuario no existe,
                       403 si el usuario está inactivo o bloqueado
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    payload = verify_token(token, token_type="access")
    username = payload.get("sub")
    user_id = payload.get("user_id")
    if username is None or user_id is None:
        raise credentials_exception

    user = db.query(User).options(joinedload(User.role)).filter(
        User.id == user_id,
        User.username == username,
    ).first()
    if user is None:
        raise credentials_exception

    if user.locked_until and user.locked_until > datetime.utcnow():
        minutes_left = int((user.locked_until - datetime.utcnow()).total_seconds() // 60) + 1
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Account is locked. Try again in {minutes_left} minutes"
        )
    return user


async def get_current_active_user(
    current_user: User = Depends(get_current_user)
) -> User:
    """Verifica que el usuario actual esté activo"""
    if not current_user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive"
        )
    return current_user


# ========== DEPENDENCIAS DE AUTORIZACIÓN ==========

def require_roles(allowed_roles: List[str]):
    """
    Dependency que exige uno de los roles indicados. Admin siempre pasa.

    Args:
        allowed_roles: roles con acceso (ej: ["Manager", "Receptionist"])
    """
    async def check_role(current_user: User = Depends(get_current_active_user)) -> User:
        role = current_user.role_name
        if role != ADMIN and role not in allowed_roles:
            log_event(
                "auth",
                current_user.username,
                "Unauthorized access attempt",
                f"role={role} required={allowed_roles}"
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Allowed roles: {', '.join([ADMIN] + [r for r in allowed_roles if r != ADMIN])}"
            )
        return current_user

    return check_role


# ========== UTILIDADES DE PERMISOS ==========

def is_guest(user: User) -> bool:
    return user.role_name == GUEST


def ensure_owner_or_staff(current_user: User, owner_id: int) -> None:
    """Un huésped solo puede acceder a sus propios recursos"""
    if is_guest(current_user) and current_user.id != owner_id:
        log_event("auth", current_user.username, "Access to another guest's data denied", f"owner_id={owner_id}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only access your own records"
        )

"""
Endpoints de gestión de usuarios y roles
"""
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from database import conexion
from models import User
from schemas.users import RoleRead, UserCreate, UserRead, UserUpdate
from services.common import AccessDeniedError, InvalidOperationError, NotFoundError
from services.mapping import user_to_dto
from services.user_service import UserService
from utils.dependencies import ADMIN, MANAGEMENT, require_roles
from utils.http_errors import database_error
from utils.logging_utils import log_event

router = APIRouter(prefix="/api/user", tags=["users"])


def _check_admin_target(db: Session, user_id: int, current_user: User) -> None:
    """Solo un Admin puede modificar, activar o desactivar a otro Admin"""
    target = UserService.get(db, user_id)
    if target is not None and target.role_name == ADMIN and current_user.role_name != ADMIN:
        log_event("users", current_user.username, "Access denied", f"target={target.username} role=Admin")
        raise AccessDeniedError("Only an Admin can modify Admin users")


@router.get("", response_model=List[UserRead])
def list_users(
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    return [user_to_dto(u) for u in UserService.get_all(db)]


@router.get("/roles", response_model=List[RoleRead])
def list_roles(
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    return UserService.roles(db)


@router.get("/roles/{role_name}", response_model=List[UserRead])
def users_by_role(
    role_name: str,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    return [user_to_dto(u) for u in UserService.by_role(db, role_name)]


@router.get("/{user_id}", response_model=UserRead)
def get_user(
    user_id: int,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    user = UserService.get(db, user_id)
    if user is None:
        raise NotFoundError(f"User with ID {user_id} not found")
    return user_to_dto(user)


@router.post("", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreate,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    """
    Alta de usuario con rol. Solo un Admin puede crear otro Admin.
    """
    try:
        if payload.role.lower() == ADMIN.lower() and current_user.role_name != ADMIN:
            raise InvalidOperationError("Only an Admin can create Admin users")
        return user_to_dto(UserService.create(db, payload.model_dump(), current_user.username))
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "users", current_user.username, "Creating user", e)


@router.put("/{user_id}", response_model=UserRead)
def update_user(
    user_id: int,
    payload: UserUpdate,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    try:
        _check_admin_target(db, user_id, current_user)
        data = payload.model_dump(exclude_unset=True)
        return user_to_dto(UserService.update(db, user_id, data, current_user.username))
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "users", current_user.username, "Updating user", e)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: int,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles([ADMIN])),
):
    """Baja lógica: el usuario queda inactivo"""
    try:
        if user_id == current_user.id:
            raise InvalidOperationError("You cannot delete your own account")
        if not UserService.delete(db, user_id, current_user.username):
            raise NotFoundError(f"User with ID {user_id} not found")
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "users", current_user.username, "Deleting user", e)


@router.post("/{user_id}/activate", response_model=UserRead)
def activate_user(
    user_id: int,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    try:
        _check_admin_target(db, user_id, current_user)
        return user_to_dto(UserService.set_active(db, user_id, True, current_user.username))
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "users", current_user.username, "Activating user", e)


@router.post("/{user_id}/deactivate", response_model=UserRead)
def deactivate_user(
    user_id: int,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles(MANAGEMENT)),
):
    try:
        if user_id == current_user.id:
            raise InvalidOperationError("You cannot deactivate your own account")
        _check_admin_target(db, user_id, current_user)
        return user_to_dto(UserService.set_active(db, user_id, False, current_user.username))
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "users", current_user.username, "Deactivating user", e)


@router.post("/{user_id}/role/{role_id}", response_model=UserRead)
def change_user_role(
    user_id: int,
    role_id: int,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(require_roles([ADMIN])),
):
    try:
        return user_to_dto(UserService.change_role(db, user_id, role_id, current_user.username))
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "users", current_user.username, "Changing role", e)

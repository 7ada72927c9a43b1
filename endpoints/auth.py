"""
Endpoints de autenticación
"""
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

import config
from database import conexion
from models import User
from schemas.auth import (
    ChangePasswordRequest, LoginResponse, MessageResponse, RefreshRequest, RegisterRequest,
    ResetPasswordRequest, TokenValidation, ValidateTokenRequest,
)
from schemas.users import UserRead
from services.auth_service import AuthService
from services.mapping import user_to_dto
from utils.dependencies import get_current_active_user
from utils.http_errors import database_error
from utils.logging_utils import log_event
from utils.rate_limiter import limiter


router = APIRouter(prefix="/api/auth", tags=["auth"])


def _token_response(tokens: dict) -> dict:
    tokens["user"] = user_to_dto(tokens["user"])
    return tokens


@router.post("/login", response_model=LoginResponse)
@limiter.limit(config.RATE_LIMIT_LOGIN)
def login(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(conexion.get_db),
):
    """
    Inicia sesión y retorna tokens de acceso y refresco.

    Tras MAX_FAILED_LOGINS intentos fallidos la cuenta queda bloqueada.
    """
    try:
        return _token_response(AuthService.login(db, form_data.username, form_data.password))
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "auth", form_data.username, "Login", e)


@router.post("/refresh", response_model=LoginResponse)
def refresh_token(
    payload: RefreshRequest,
    db: Session = Depends(conexion.get_db),
):
    """Renueva el access token usando el refresh token"""
    return _token_response(AuthService.refresh(db, payload.refresh_token))


@router.post("/logout", response_model=MessageResponse)
def logout(current_user: User = Depends(get_current_active_user)):
    log_event("auth", current_user.username, "Logout")
    return {"message": "Logged out successfully"}


@router.get("/current", response_model=UserRead)
def current_user_profile(current_user: User = Depends(get_current_active_user)):
    return user_to_dto(current_user)


@router.post("/change-password", response_model=MessageResponse)
def change_password(
    payload: ChangePasswordRequest,
    db: Session = Depends(conexion.get_db),
    current_user: User = Depends(get_current_active_user),
):
    try:
        AuthService.change_password(db, current_user, payload.current_password, payload.new_password)
        return {"message": "Password changed successfully"}
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "auth", current_user.username, "Changing password", e)


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(
    payload: ResetPasswordRequest,
    db: Session = Depends(conexion.get_db),
):
    """Asigna la contraseña temporal y obliga a cambiarla en el próximo login"""
    try:
        AuthService.reset_password(db, payload.email)
        return {"message": "Password has been reset. Check your email for the temporary password"}
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "auth", payload.email, "Resetting password", e)


@router.post("/register", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def register(
    payload: RegisterRequest,
    db: Session = Depends(conexion.get_db),
):
    """Auto-registro público, siempre con rol Guest"""
    try:
        return user_to_dto(AuthService.register(db, payload.model_dump()))
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        raise database_error(db, "auth", payload.username, "Registering user", e)


@router.post("/validate-token", response_model=TokenValidation)
def validate_token(
    payload: ValidateTokenRequest,
    db: Session = Depends(conexion.get_db),
):
    return AuthService.validate_token(db, payload.token)

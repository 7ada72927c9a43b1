"""
Login, token refresh, password management and self-registration
"""
from datetime import datetime, timedelta

from fastapi import HTTPException
from sqlalchemy.orm import Session

import config
from models import AccountStatus, RoleName, User
from services.common import AccessDeniedError, AuthenticationError, InvalidOperationError
from services.user_service import UserService, get_role_by_name
from utils.auth import (
    create_access_token,
    create_refresh_token,
    get_password_hash,
    verify_password,
    verify_token,
)
from utils.logging_utils import log_event


def issue_tokens(user: User) -> dict:
    access_token = create_access_token(
        data={"sub": user.username, "user_id": user.id, "role": user.role_name},
        expires_delta=timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    refresh_token = create_refresh_token(data={"sub": user.username, "user_id": user.id})
    return {
        "access_token": access_token,
        "refresh_token": refresh_token,
        "token_type": "bearer",
        "expires_in": config.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        "password_reset_required": user.password_reset_required,
        "user": user,
    }


def _check_lock(user: User) -> None:
    if user.locked_until and user.locked_until > datetime.utcnow():
        minutes_left = int((user.locked_until - datetime.utcnow()).total_seconds() // 60) + 1
        raise AccessDeniedError(f"Account is locked. Try again in {minutes_left} minutes")


class AuthService:

    @staticmethod
    def login(db: Session, username: str, password: str) -> dict:
        user = db.query(User).filter(User.username == username).first()
        if user is None:
            log_event("auth", username, "Login with unknown user")
            raise AuthenticationError("Incorrect username or password")

        _check_lock(user)
        if user.locked_until is not None:
            # lock expired
            user.locked_until = None
            user.failed_login_attempts = 0

        if not verify_password(password, user.hashed_password):
            user.failed_login_attempts = (user.failed_login_attempts or 0) + 1
            if user.failed_login_attempts >= config.MAX_FAILED_LOGINS:
                user.locked_until = datetime.utcnow() + timedelta(minutes=config.LOCKOUT_MINUTES)
                user.account_status = AccountStatus.LOCKED
                db.commit()
                log_event("auth", username, "Account locked", f"attempts={user.failed_login_attempts}")
                raise AccessDeniedError(
                    f"Account locked after {config.MAX_FAILED_LOGINS} failed attempts. "
                    f"Try again in {config.LOCKOUT_MINUTES} minutes"
                )
            db.commit()
            log_event("auth", username, "Login with wrong password", f"attempts={user.failed_login_attempts}")
            raise AuthenticationError("Incorrect username or password")

        if not user.is_active:
            log_event("auth", username, "Login of inactive user")
            raise AccessDeniedError("User account is inactive")

        user.failed_login_attempts = 0
        user.locked_until = None
        if user.account_status == AccountStatus.LOCKED:
            user.account_status = AccountStatus.ACTIVE
        user.last_login = datetime.utcnow()
        db.commit()

        log_event("auth", user.username, "Login", f"role={user.role_name}")
        return issue_tokens(user)

    @staticmethod
    def refresh(db: Session, refresh_token: str) -> dict:
        payload = verify_token(refresh_token, token_type="refresh")
        user = db.query(User).filter(User.id == payload.get("user_id")).first()
        if user is None or user.username != payload.get("sub"):
            raise AuthenticationError("Could not validate credentials")
        if not user.is_active:
            raise AccessDeniedError("User account is inactive")
        log_event("auth", user.username, "Token refreshed")
        return issue_tokens(user)

    @staticmethod
    def change_password(db: Session, user: User, current_password: str, new_password: str) -> None:
        if not verify_password(current_password, user.hashed_password):
            raise InvalidOperationError("Current password is incorrect")
        user.hashed_password = get_password_hash(new_password)
        user.password_reset_required = False
        db.commit()
        log_event("auth", user.username, "Password changed")

    @staticmethod
    def reset_password(db: Session, email: str) -> None:
        user = db.query(User).filter(User.email == email).first()
        if user is None:
            raise InvalidOperationError("No user registered with that email")
        user.hashed_password = get_password_hash(config.TEMPORARY_PASSWORD)
        user.password_reset_required = True
        user.failed_login_attempts = 0
        user.locked_until = None
        db.commit()
        log_event("auth", user.username, "Password reset")

    @staticmethod
    def register(db: Session, data: dict) -> User:
        data["role"] = get_role_by_name(db, RoleName.GUEST.value).name
        return UserService.create(db, data, data["username"])

    @staticmethod
    def validate_token(db: Session, token: str) -> dict:
        try:
            payload = verify_token(token, token_type="access")
        except HTTPException as exc:
            raise InvalidOperationError("Invalid or expired token") from exc
        user = db.query(User).filter(User.id == payload.get("user_id")).first()
        if user is None or not user.is_active:
            raise InvalidOperationError("Invalid or expired token")
        return {
            "valid": True,
            "user_id": user.id,
            "username": user.username,
            "role": user.role_name,
            "expires_at": datetime.utcfromtimestamp(payload["exp"]),
        }

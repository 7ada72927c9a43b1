"""
Users, roles and account administration
"""
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from models import AccountStatus, Role, User
from services.common import InvalidOperationError, NotFoundError, get_or_404
from services.mapping import role_to_dto
from utils.auth import get_password_hash
from utils.logging_utils import log_event


def _user_query(db: Session):
    return db.query(User).options(joinedload(User.role))


def get_role_by_name(db: Session, name: str) -> Role:
    role = db.query(Role).filter(func.lower(Role.name) == name.lower()).first()
    if role is None:
        raise NotFoundError(f"Role '{name}' not found")
    return role


class UserService:

    @staticmethod
    def get_all(db: Session) -> List[User]:
        return _user_query(db).order_by(User.username).all()

    @staticmethod
    def get(db: Session, user_id: int) -> Optional[User]:
        return _user_query(db).filter(User.id == user_id).first()

    @staticmethod
    def by_role(db: Session, role_name: str) -> List[User]:
        role = get_role_by_name(db, role_name)
        return _user_query(db).filter(User.role_id == role.id).order_by(User.username).all()

    @staticmethod
    def roles(db: Session) -> List[dict]:
        counts = dict(db.query(User.role_id, func.count(User.id)).group_by(User.role_id).all())
        return [role_to_dto(r, counts.get(r.id, 0)) for r in db.query(Role).order_by(Role.id).all()]

    @staticmethod
    def create(db: Session, data: dict, username: str) -> User:
        if db.query(User).filter(User.username == data["username"]).first():
            raise InvalidOperationError(f"Username '{data['username']}' is already taken")
        if db.query(User).filter(User.email == data["email"]).first():
            raise InvalidOperationError(f"Email '{data['email']}' is already registered")

        role = get_role_by_name(db, data.pop("role"))
        password = data.pop("password")
        user = User(**data, role=role, hashed_password=get_password_hash(password))
        db.add(user)
        db.commit()
        log_event("users", username, "User created", f"username={user.username} role={role.name}")
        return UserService.get(db, user.id)

    @staticmethod
    def update(db: Session, user_id: int, data: dict, username: str) -> User:
        user = get_or_404(db, User, user_id, "User")
        email = data.get("email")
        if email and email != user.email:
            if db.query(User).filter(User.email == email, User.id != user_id).first():
                raise InvalidOperationError(f"Email '{email}' is already registered")

        password = data.pop("password", None)
        if password:
            user.hashed_password = get_password_hash(password)
        for field, value in data.items():
            setattr(user, field, value)

        db.commit()
        log_event("users", username, "User updated", f"id={user_id} fields={list(data)}")
        return UserService.get(db, user.id)

    @staticmethod
    def delete(db: Session, user_id: int, username: str) -> bool:
        """Soft delete, reservations and audit rows keep pointing at the user"""
        user = db.query(User).filter(User.id == user_id).first()
        if user is None:
            return False
        user.is_active = False
        user.account_status = AccountStatus.INACTIVE
        db.commit()
        log_event("users", username, "User deleted", f"username={user.username}")
        return True

    @staticmethod
    def set_active(db: Session, user_id: int, active: bool, username: str) -> User:
        user = get_or_404(db, User, user_id, "User")
        user.is_active = active
        user.account_status = AccountStatus.ACTIVE if active else AccountStatus.INACTIVE
        if active:
            user.failed_login_attempts = 0
            user.locked_until = None
        db.commit()
        log_event("users", username, "User activated" if active else "User deactivated", f"username={user.username}")
        return UserService.get(db, user.id)

    @staticmethod
    def change_role(db: Session, user_id: int, role_id: int, username: str) -> User:
        user = get_or_404(db, User, user_id, "User")
        role = get_or_404(db, Role, role_id, "Role")
        previous = user.role_name
        user.role = role
        db.commit()
        log_event("users", username, "Role changed", f"username={user.username} {previous}->{role.name}")
        return UserService.get(db, user.id)

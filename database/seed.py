"""
Datos iniciales: roles, tipos de habitación y el usuario administrador.

Es idempotente, se puede ejecutar en cada arranque.
Ejecutar manualmente: python -m database.seed
"""
from sqlalchemy.orm import Session

import config
from database.conexion import Base, SessionLocal, engine
from models import AccountStatus, Role, RoleName, RoomType, User
from utils.auth import get_password_hash
from utils.logging_utils import log_event


ROLE_DESCRIPTIONS = {
    RoleName.ADMIN: "Full access to every module",
    RoleName.MANAGER: "Hotel management, reports and staff administration",
    RoleName.RECEPTIONIST: "Front desk: reservations, check-in/out and billing",
    RoleName.HOUSEKEEPER: "Cleaning tasks and room readiness",
    RoleName.MAINTENANCE: "Maintenance requests and repairs",
    RoleName.STAFF: "Service order delivery and issue reporting",
    RoleName.GUEST: "Own reservations, service orders and feedback",
}

ROOM_TYPES = [
    {
        "name": "Deluxe Room",
        "description": "Spacious room with a king bed and city view",
        "base_price": 120,
        "capacity": 2,
        "amenities": "WiFi,TV,Mini Bar,Air Conditioning",
    },
    {
        "name": "Executive Suite",
        "description": "Suite with separate living area and work desk",
        "base_price": 180,
        "capacity": 2,
        "amenities": "WiFi,TV,Mini Bar,Air Conditioning,Work Desk,Coffee Machine",
    },
    {
        "name": "Family Room",
        "description": "Two queen beds for families of up to four",
        "base_price": 216,
        "capacity": 4,
        "amenities": "WiFi,TV,Air Conditioning,Sofa Bed",
    },
    {
        "name": "Presidential Suite",
        "description": "Top floor suite with panoramic views and jacuzzi",
        "base_price": 360,
        "capacity": 4,
        "amenities": "WiFi,TV,Mini Bar,Air Conditioning,Jacuzzi,Butler Service",
    },
]


def seed_roles(db: Session) -> None:
    existing = {name for (name,) in db.query(Role.name).all()}
    for role_name, description in ROLE_DESCRIPTIONS.items():
        if role_name.value not in existing:
            db.add(Role(name=role_name.value, description=description))
    db.flush()


def seed_room_types(db: Session) -> None:
    existing = {name for (name,) in db.query(RoomType.name).all()}
    for data in ROOM_TYPES:
        if data["name"] not in existing:
            db.add(RoomType(**data))
    db.flush()


def seed_admin(db: Session) -> None:
    if db.query(User).filter(User.username == config.ADMIN_USERNAME).first():
        return
    admin_role = db.query(Role).filter(Role.name == RoleName.ADMIN.value).one()
    db.add(User(
        username=config.ADMIN_USERNAME,
        email=config.ADMIN_EMAIL,
        hashed_password=get_password_hash(config.ADMIN_PASSWORD),
        first_name="System",
        last_name="Administrator",
        role=admin_role,
        is_active=True,
        account_status=AccountStatus.ACTIVE,
    ))
    db.flush()
    log_event("seed", "system", "Admin user created", f"username={config.ADMIN_USERNAME}")


def seed_all(db: Session) -> None:
    seed_roles(db)
    seed_room_types(db)
    seed_admin(db)
    db.commit()


if __name__ == "__main__":
    import models  # noqa: F401  registra los modelos

    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        seed_all(session)
        print("[OK] Datos iniciales cargados")
    finally:
        session.close()

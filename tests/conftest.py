"""
Fixtures compartidas: base SQLite en memoria, usuarios por rol y tokens
"""
import os
import sys
import tempfile
from pathlib import Path

# La configuración se lee al importar, el entorno de test va primero
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SEED_ON_STARTUP"] = "false"
os.environ.setdefault("LOG_FILE", str(Path(tempfile.gettempdir()) / "hotel_ops_test_logs.txt"))

sys.path.insert(0, str(Path(__file__).parent.parent))

from datetime import timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import conexion
from database.conexion import Base
from database.seed import seed_roles, seed_room_types
from main import app
from models import AccountStatus, Role, RoleName, Room, RoomStatus, RoomType, Service, User
from utils.auth import create_access_token, get_password_hash
from utils.timezone import hotel_today

TEST_PASSWORD = "Secret123"
PASSWORD_HASH = get_password_hash(TEST_PASSWORD)

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    seed_roles(session)
    seed_room_types(session)
    session.commit()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    def override_get_db():
        try:
            yield db
        except Exception:
            db.rollback()
            raise

    app.dependency_overrides[conexion.get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def make_user(db, role: RoleName, username: str = None, **fields) -> User:
    username = username or role.value.lower()
    user = User(
        username=username,
        email=f"{username}@grandhotel.com",
        hashed_password=PASSWORD_HASH,
        first_name=fields.pop("first_name", username.capitalize()),
        last_name=fields.pop("last_name", "Tester"),
        role=db.query(Role).filter(Role.name == role.value).one(),
        is_active=True,
        account_status=AccountStatus.ACTIVE,
        **fields
    )
    db.add(user)
    db.commit()
    return user


def auth_headers(user: User) -> dict:
    token = create_access_token(
        data={"sub": user.username, "user_id": user.id, "role": user.role_name},
        expires_delta=timedelta(minutes=30),
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def users(db):
    """Un usuario por rol, más un segundo huésped"""
    created = {role: make_user(db, role) for role in RoleName}
    created["other_guest"] = make_user(db, RoleName.GUEST, "otherguest")
    return created


@pytest.fixture
def headers(users):
    return {key: auth_headers(user) for key, user in users.items()}


@pytest.fixture
def create_user(db):
    """Crea un usuario extra y devuelve (usuario, headers)"""
    def _create(role: RoleName, username: str = None, **fields):
        user = make_user(db, role, username, **fields)
        return user, auth_headers(user)
    return _create


@pytest.fixture
def deluxe(db):
    return db.query(RoomType).filter(RoomType.name == "Deluxe Room").one()


@pytest.fixture
def rooms(db, deluxe):
    """Dos habitaciones Deluxe disponibles y una Family Room"""
    family = db.query(RoomType).filter(RoomType.name == "Family Room").one()
    created = [
        Room(room_number="101", floor=1, room_type=deluxe, status=RoomStatus.AVAILABLE),
        Room(room_number="102", floor=1, room_type=deluxe, status=RoomStatus.AVAILABLE),
        Room(room_number="201", floor=2, room_type=family, status=RoomStatus.AVAILABLE),
    ]
    db.add_all(created)
    db.commit()
    return created


@pytest.fixture
def breakfast(db):
    service = Service(
        service_name="Breakfast",
        service_type="Food",
        description="Continental breakfast",
        price=Decimal("15.00"),
        is_active=True,
    )
    db.add(service)
    db.commit()
    return service


@pytest.fixture
def stay_dates():
    start = hotel_today() + timedelta(days=1)
    return start, start + timedelta(days=3)


@pytest.fixture
def booking(client, headers, users, deluxe, rooms, stay_dates):
    """Reserva Pending de 3 noches en Deluxe para el huésped"""
    check_in, check_out = stay_dates
    response = client.post(
        "/api/reservations",
        json={
            "room_type_id": deluxe.id,
            "check_in_date": check_in.isoformat(),
            "check_out_date": check_out.isoformat(),
            "number_of_guests": 2,
        },
        headers=headers[RoleName.GUEST],
    )
    assert response.status_code == 201, response.text
    return response.json()

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

import config

# URL de conexión: DATABASE_URL tiene prioridad, si no se arma la de PostgreSQL (psycopg2)
DATABASE_URL = config.DATABASE_URL or (
    f"postgresql://{config.DB_USER}:{config.DB_PASSWORD}@{config.DB_HOST}:{config.DB_PORT}/{config.DB_NAME}"
)

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, pool_pre_ping=True, connect_args=connect_args)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

# create_all se hace desde main.py luego de importar los modelos


def get_db():
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

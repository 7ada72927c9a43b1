from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

import config
from database.conexion import Base, SessionLocal, engine
from database.seed import seed_all
import models  # noqa: F401  registra todos los modelos en Base.metadata
from services.common import AccessDeniedError, AuthenticationError, InvalidOperationError, NotFoundError
from utils.logging_utils import log_error, log_event
from utils.rate_limiter import setup_rate_limiting

try:
    Base.metadata.create_all(bind=engine)
    print("[OK] Tablas creadas (o ya existian)")
except SQLAlchemyError as e:
    print(f"[ERROR] Error creando tablas: {e}")

if config.SEED_ON_STARTUP:
    _db = SessionLocal()
    try:
        seed_all(_db)
    finally:
        _db.close()

app = FastAPI(title="Hotel Operations API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_rate_limiting(app)


# ========== ERRORES DE DOMINIO ==========

@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": exc.message})


@app.exception_handler(InvalidOperationError)
async def invalid_operation_handler(request: Request, exc: InvalidOperationError):
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": exc.message})


@app.exception_handler(AccessDeniedError)
async def access_denied_handler(request: Request, exc: AccessDeniedError):
    return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content={"detail": exc.message})


@app.exception_handler(AuthenticationError)
async def authentication_handler(request: Request, exc: AuthenticationError):
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"detail": exc.message},
        headers={"WWW-Authenticate": "Bearer"},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    log_error("api", "system", f"Unhandled error on {request.method} {request.url.path}", exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


from endpoints import (  # noqa: E402
    auth, cleaning, dashboard, feedback, invoices, maintenance, payments, reports,
    reservations, rooms, service_catalog, service_orders, users,
)
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(rooms.router)
app.include_router(reservations.router)
app.include_router(cleaning.router)
app.include_router(maintenance.router)
app.include_router(invoices.router)
app.include_router(payments.router)
app.include_router(service_catalog.router)
app.include_router(service_orders.router)
app.include_router(feedback.router)
app.include_router(reports.router)
app.include_router(dashboard.router)

log_event("api", "system", "Application started", f"seed={config.SEED_ON_STARTUP}")


@app.get("/")
def read_root():
    return {"message": "Hotel Operations API", "docs": "/docs"}

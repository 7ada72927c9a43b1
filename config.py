"""
Configuración de la aplicación cargada desde variables de entorno (.env)
"""
import os

from dotenv import load_dotenv

load_dotenv()


def _get_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


# Database
DATABASE_URL = os.getenv("DATABASE_URL")
DB_USER = os.getenv("DB_USER", "postgres")
DB_PASSWORD = os.getenv("DB_PASSWORD", "postgres")
DB_HOST = os.getenv("DB_HOST", "localhost")
DB_PORT = os.getenv("DB_PORT", "5432")
DB_NAME = os.getenv("DB_NAME", "hotel_ops")

# Security
SECRET_KEY = os.getenv("SECRET_KEY", "change-this-secret-key-in-production")
ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))
REFRESH_TOKEN_EXPIRE_DAYS = int(os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", "7"))
MAX_FAILED_LOGINS = int(os.getenv("MAX_FAILED_LOGINS", "5"))
LOCKOUT_MINUTES = int(os.getenv("LOCKOUT_MINUTES", "30"))
TEMPORARY_PASSWORD = os.getenv("TEMPORARY_PASSWORD", "Password@123")

# Billing
DEFAULT_TAX_PERCENTAGE = float(os.getenv("DEFAULT_TAX_PERCENTAGE", "10"))
MAX_TAX_PERCENTAGE = float(os.getenv("MAX_TAX_PERCENTAGE", "30"))
MAX_INVOICE_AMOUNT = float(os.getenv("MAX_INVOICE_AMOUNT", "100000"))

# Hotel
HOTEL_TIMEZONE = os.getenv("HOTEL_TIMEZONE", "UTC")

# HTTP
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173").split(",")
    if origin.strip()
]

# Rate limiting
RATE_LIMIT_ENABLED = _get_bool("RATE_LIMIT_ENABLED", "true")
RATE_LIMIT_DEFAULT = os.getenv("RATE_LIMIT_DEFAULT", "100/minute")
RATE_LIMIT_LOGIN = os.getenv("RATE_LIMIT_LOGIN", "10/minute")
REDIS_URL = os.getenv("REDIS_URL", "memory://")

# Logging
LOG_FILE = os.getenv("LOG_FILE", "hotel_ops_logs.txt")

# Bootstrap
SEED_ON_STARTUP = _get_bool("SEED_ON_STARTUP", "true")
ADMIN_USERNAME = os.getenv("ADMIN_USERNAME", "admin")
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@hotel.local")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "Admin@123")

from typing import Optional
from datetime import date, datetime
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from models import AccountStatus


def validate_password_strength(v: str) -> str:
    if not any(c.isupper() for c in v):
        raise ValueError("Password must contain at least one uppercase letter")
    if not any(c.islower() for c in v):
        raise ValueError("Password must contain at least one lowercase letter")
    if not any(c.isdigit() for c in v):
        raise ValueError("Password must contain at least one digit")
    return v


class UserProfile(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    phone_number: Optional[str] = Field(None, max_length=20)
    date_of_birth: Optional[date] = None
    address: Optional[str] = Field(None, max_length=200)
    city: Optional[str] = Field(None, max_length=50)
    state: Optional[str] = Field(None, max_length=50)
    country: Optional[str] = Field(None, max_length=50)
    postal_code: Optional[str] = Field(None, max_length=20)
    id_type: Optional[str] = Field(None, max_length=30)
    id_number: Optional[str] = Field(None, max_length=50)
    hire_date: Optional[date] = None


class UserCreate(UserProfile):
    username: str = Field(..., min_length=3, max_length=30)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=72)
    role: str = Field(default="Guest", max_length=50)

    @field_validator("password")
    @classmethod
    def check_password(cls, v):
        return validate_password_strength(v)


class UserUpdate(BaseModel):
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=8, max_length=72)
    first_name: Optional[str] = Field(None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(None, min_length=1, max_length=50)
    phone_number: Optional[str] = Field(None, max_length=20)
    date_of_birth: Optional[date] = None
    address: Optional[str] = Field(None, max_length=200)
    city: Optional[str] = Field(None, max_length=50)
    state: Optional[str] = Field(None, max_length=50)
    country: Optional[str] = Field(None, max_length=50)
    postal_code: Optional[str] = Field(None, max_length=20)
    id_type: Optional[str] = Field(None, max_length=30)
    id_number: Optional[str] = Field(None, max_length=50)
    hire_date: Optional[date] = None

    @field_validator("password")
    @classmethod
    def check_password(cls, v):
        return validate_password_strength(v) if v is not None else v


class UserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    first_name: str
    last_name: str
    full_name: str
    phone_number: Optional[str] = None
    date_of_birth: Optional[date] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = None
    id_type: Optional[str] = None
    id_number: Optional[str] = None
    hire_date: Optional[date] = None
    role: str
    is_active: bool
    account_status: AccountStatus
    password_reset_required: bool
    created_at: datetime
    last_login: Optional[datetime] = None


class RoleRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    user_count: int = 0

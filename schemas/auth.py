"""
Schemas Pydantic para autenticación
"""
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, EmailStr, Field, field_validator

from schemas.users import UserRead, validate_password_strength


class Token(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int  # segundos


class LoginResponse(Token):
    password_reset_required: bool = False
    user: UserRead


class RefreshRequest(BaseModel):
    refresh_token: str


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1, max_length=72)
    new_password: str = Field(..., min_length=8, max_length=72)

    @field_validator("new_password")
    @classmethod
    def check_new_password(cls, v):
        return validate_password_strength(v)


class ResetPasswordRequest(BaseModel):
    email: EmailStr


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=30)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=72)
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    phone_number: Optional[str] = Field(None, max_length=20)

    @field_validator("password")
    @classmethod
    def check_password(cls, v):
        return validate_password_strength(v)


class ValidateTokenRequest(BaseModel):
    token: str


class TokenValidation(BaseModel):
    valid: bool
    user_id: int
    username: str
    role: str
    expires_at: datetime


class MessageResponse(BaseModel):
    message: str

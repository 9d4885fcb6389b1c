# backend/app/schemas/auth.py
from __future__ import annotations

import re
import uuid
from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from app.core.roles import UserRole, UserStatus
from app.schemas.common import CamelModel

_PASSWORD_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]")
_CODE_RE = re.compile(r"^\d{6}$")

PASSWORD_RULE_MESSAGE = (
    "Password must contain at least one uppercase letter, one lowercase letter, "
    "one number and one special character (@$!%*?&)"
)


def _validate_password(value: str) -> str:
    if not _PASSWORD_RE.match(value):
        raise ValueError(PASSWORD_RULE_MESSAGE)
    return value


def _normalize_name(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return " ".join(value.strip().split())


def _validate_code(value: str) -> str:
    v = value.strip()
    if not _CODE_RE.match(v):
        raise ValueError("Code must be 6 digits")
    return v


class RegisterRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=8, max_length=100)
    first_name: str = Field(min_length=2, max_length=100)
    last_name: str = Field(min_length=2, max_length=100)
    phone_number: Optional[str] = Field(default=None, max_length=50)
    role: Optional[UserRole] = None
    tenant_id: Optional[uuid.UUID] = None
    department: Optional[str] = Field(default=None, max_length=100)
    designation: Optional[str] = Field(default=None, max_length=100)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _validate_password(v)

    @field_validator("first_name", "last_name")
    @classmethod
    def validate_names(cls, v: str) -> str:
        return _normalize_name(v)

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: Optional[UserRole]) -> Optional[UserRole]:
        if v == UserRole.SUPER_ADMIN:
            raise ValueError("super_admin accounts cannot be self-registered")
        return v


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1)


class EmailRequest(CamelModel):
    email: EmailStr


class VerifyEmailRequest(CamelModel):
    email: EmailStr
    code: str

    @field_validator("code")
    @classmethod
    def validate_code(cls, v: str) -> str:
        return _validate_code(v)


class VerifyResetCodeRequest(VerifyEmailRequest):
    pass


class ResetPasswordRequest(CamelModel):
    email: EmailStr
    code: str
    new_password: str = Field(min_length=8, max_length=100)

    @field_validator("code")
    @classmethod
    def validate_code(cls, v: str) -> str:
        return _validate_code(v)

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v: str) -> str:
        return _validate_password(v)


class UserResponse(CamelModel):
    id: uuid.UUID
    email: EmailStr
    first_name: str
    last_name: str
    full_name: str
    phone_number: Optional[str] = None
    role: UserRole
    status: UserStatus
    tenant_id: Optional[uuid.UUID] = None
    department: Optional[str] = None
    designation: Optional[str] = None
    email_verified: bool
    email_verified_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None
    is_first_login: bool
    created_at: Optional[datetime] = None

    has_pending_request: bool = False
    pending_request_id: Optional[uuid.UUID] = None


class AuthResponse(CamelModel):
    access_token: str
    token_type: str = "Bearer"
    expires_in: int = 3600
    user: UserResponse
    # Only populated when RETURN_CODES_IN_RESPONSE is on.
    verification_code: Optional[str] = None


class CodeSentResponse(CamelModel):
    message: str
    expires_in_minutes: int = 10
    code: Optional[str] = None

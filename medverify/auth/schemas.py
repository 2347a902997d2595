"""
Authentication Schemas - Pydantic models for request validation and serialization.

JSON field names are camelCase on the wire and snake_case in Python.
"""
from typing import Annotated, Optional

from pydantic import BaseModel, BeforeValidator, EmailStr, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from ..core.phone import normalize_phone
from .models import AccountStatus, UserRole

MIN_PASSWORD_LENGTH = 8


class CamelModel(BaseModel):
    """Base schema accepting and emitting camelCase field names."""
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


def _normalize_email(value):
    if isinstance(value, str):
        return value.strip().lower()
    return value


NormalizedEmail = Annotated[EmailStr, BeforeValidator(_normalize_email)]


class RegisterRequest(CamelModel):
    """
    Registration Schema - Used for self-registration

    Fields:
    - full_name: User's full name
    - email: Email address (stored lowercase)
    - phone_number: Phone number, normalized to E.164
    - password / confirm_password: Password and its confirmation
    - role: USER (default) or MED
    """
    full_name: str
    email: NormalizedEmail
    phone_number: str
    password: str
    confirm_password: str
    role: Optional[UserRole] = None

    @field_validator("full_name")
    @classmethod
    def validate_full_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Full name is required")
        return v.strip()

    @field_validator("phone_number")
    @classmethod
    def validate_phone_number(cls, v: str) -> str:
        return normalize_phone(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if len(v) < MIN_PASSWORD_LENGTH:
            raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        return v

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class LoginRequest(CamelModel):
    """Login credentials."""
    email: NormalizedEmail
    password: str = Field(..., min_length=1)


class ForgotPasswordRequest(CamelModel):
    email: NormalizedEmail


class VerifyOtpRequest(CamelModel):
    """
    OTP Verification Schema

    Fields:
    - email: Email the OTP was sent to
    - otp: The 6-digit code
    """
    email: NormalizedEmail
    otp: str

    @field_validator("otp")
    @classmethod
    def validate_otp(cls, v: str) -> str:
        if not (len(v) == 6 and v.isascii() and v.isdigit()):
            raise ValueError("Valid 6-digit OTP is required")
        return v


class ResetPasswordRequest(CamelModel):
    """
    Password Reset Schema

    Fields:
    - reset_token: Token returned by OTP verification
    - new_password / confirm_password: New password and its confirmation
    """
    reset_token: str = Field(..., min_length=1)
    new_password: str
    confirm_password: str

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v: str) -> str:
        if len(v) < MIN_PASSWORD_LENGTH:
            raise ValueError(f"New password must be at least {MIN_PASSWORD_LENGTH} characters")
        return v

    @model_validator(mode="after")
    def passwords_match(self):
        if self.new_password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class UserResponse(CamelModel):
    """
    Public projection of a user. Never includes the password hash.
    """
    id: int
    full_name: str
    email: str
    phone_number: str
    role: UserRole
    account_status: AccountStatus
    has_submitted_verification: bool = False


class LoginData(CamelModel):
    token: str
    user: UserResponse


class ResetTokenData(CamelModel):
    reset_token: str

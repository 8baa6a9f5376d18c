"""Account Pydantic schemas: sign-up, login and account views."""

from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from app.schemas.review import LocationSchema

E164_PATTERN = r"^\+[1-9]\d{1,14}$"
OTP_PATTERN = r"^\d{6}$"


def check_password_strength(password: str) -> str:
    if not any(c.isalpha() for c in password):
        raise ValueError("Password must contain a letter")
    if not any(c.isdigit() for c in password):
        raise ValueError("Password must contain a digit")
    return password


class RegisterRequest(BaseModel):
    """Sign-up request. Admin accounts cannot be self-registered."""
    email: EmailStr
    username: str = Field(min_length=2, max_length=50, pattern=r"^[\x21-\x7e]+$")
    password: str = Field(min_length=8, max_length=128)
    role: Literal["user", "moderator"] = "user"
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    phone: Optional[str] = Field(default=None, pattern=E164_PATTERN)
    avatar: Optional[str] = Field(default=None, max_length=500)
    location: Optional[LocationSchema] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("password")
    @classmethod
    def password_strength(cls, v: str) -> str:
        return check_password_strength(v)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()


class TokenResponse(BaseModel):
    """Bearer token issued at sign-up and login."""
    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(description="Token lifetime in seconds")


class AccountResponse(BaseModel):
    """Account details, shown only to the account owner and admins."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    username: str
    first_name: str
    last_name: str
    full_name: str
    phone: Optional[str] = None
    avatar: Optional[str] = None
    role: str
    is_active: bool
    is_verified: bool
    created_at: datetime
    last_login_at: Optional[datetime] = None
    location: LocationSchema


class AuthSession(BaseModel):
    account: AccountResponse
    token: TokenResponse


class CodeIssuedResponse(BaseModel):
    """Returned when a one-time code has been mailed.

    ``token_id`` must accompany the code when it is redeemed.
    """
    token_id: UUID
    email: str
    expires_at: datetime


class VerifyAccountRequest(BaseModel):
    email: EmailStr
    token_id: UUID
    code: str = Field(pattern=OTP_PATTERN)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()


class ResetPasswordRequest(BaseModel):
    """Redeem a password-reset code and set a new password."""
    email: EmailStr
    token_id: UUID
    code: str = Field(pattern=OTP_PATTERN)
    password: str = Field(min_length=8, max_length=128)
    confirm_password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("password")
    @classmethod
    def password_strength(cls, v: str) -> str:
        return check_password_strength(v)

    @model_validator(mode="after")
    def passwords_match(self) -> "ResetPasswordRequest":
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self

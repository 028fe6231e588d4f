"""
Account models for registration, login and profile management.
"""

from pydantic import BaseModel, EmailStr, Field
from typing import Optional

PHONE_PATTERN = r"^\+?[0-9][0-9\s\-()]{6,18}$"


class RegisterRequest(BaseModel):
    """Self-service registration. Always creates a citizen account."""
    name: str = Field(..., min_length=2, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Asha Rao",
                "email": "asha@civicmail.org",
                "password": "s3cure-pass",
                "phone": "+919876543210",
            }
        }


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class TokenRequest(BaseModel):
    """Email verification token."""
    token: str = Field(..., min_length=1)


class EmailRequest(BaseModel):
    email: EmailStr


class OTPRequest(BaseModel):
    phone: str = Field(..., pattern=PHONE_PATTERN)


class OTPVerifyRequest(BaseModel):
    phone: str = Field(..., pattern=PHONE_PATTERN)
    otp: str = Field(..., pattern=r"^[0-9]{6}$", description="6-digit OTP")


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=6, max_length=128)


class ProfileUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=50)
    phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)

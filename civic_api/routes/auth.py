"""
Authentication endpoints - email/password accounts, email verification,
phone OTP login and password reset.
"""

from typing import Dict

from fastapi import APIRouter, Depends, status
import logging

from civic_api.models.base import ok
from civic_api.models.user import (
    EmailRequest,
    LoginRequest,
    OTPRequest,
    OTPVerifyRequest,
    ProfileUpdateRequest,
    RegisterRequest,
    ResetPasswordRequest,
    TokenRequest,
)
from civic_api.routes.deps import get_current_user
from civic_api.services.user_service import get_user_service, serialize_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(request: RegisterRequest):
    """
    Register a citizen account.

    The account starts unverified; a verification link is emailed. Email
    delivery failures are logged and do not fail registration.
    """
    user = get_user_service().register(request.name, request.email, request.password, phone=request.phone)
    return ok(
        {"user": serialize_user(user)},
        message="Registration successful. Please check your email to verify your account.",
    )


@router.post("/login")
async def login(request: LoginRequest):
    token, user = get_user_service().authenticate(request.email, request.password)
    logger.info(f"User {user['id']} logged in")
    return ok({"token": token, "user": serialize_user(user)}, message="Login successful")


@router.post("/verify-email")
async def verify_email(request: TokenRequest):
    user = get_user_service().verify_email(request.token)
    return ok({"user": serialize_user(user)}, message="Email verified successfully")


@router.post("/resend-verification")
async def resend_verification(request: EmailRequest):
    get_user_service().resend_verification(request.email)
    return ok(message="Verification email sent")


@router.post("/send-otp")
async def send_otp(request: OTPRequest):
    """
    Generate a 6-digit OTP for the account with this phone number and send
    it by SMS. The OTP itself is never returned.
    """
    get_user_service().send_otp(request.phone)
    return ok(message="OTP sent successfully")


@router.post("/verify-otp")
async def verify_otp(request: OTPVerifyRequest):
    token, user = get_user_service().verify_otp(request.phone, request.otp)
    return ok({"token": token, "user": serialize_user(user)}, message="Phone verified successfully")


@router.get("/me")
async def get_me(user: Dict = Depends(get_current_user)):
    return ok({"user": serialize_user(user)})


@router.put("/me")
async def update_me(request: ProfileUpdateRequest, user: Dict = Depends(get_current_user)):
    updated = get_user_service().update_profile(user["id"], name=request.name, phone=request.phone)
    return ok({"user": serialize_user(updated)}, message="Profile updated successfully")


@router.post("/forgot-password")
async def forgot_password(request: EmailRequest):
    get_user_service().forgot_password(request.email)
    return ok(message="Password reset email sent")


@router.post("/reset-password")
async def reset_password(request: ResetPasswordRequest):
    get_user_service().reset_password(request.token, request.password)
    return ok(message="Password reset successful")

"""
Authentication endpoints.

- Email/password signup with OTP email verification
- Sign-in, password reset, Google sign-in
- Token refresh and the current user's profile
"""

from __future__ import annotations

from typing import Union

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_auth_service, get_principal
from app.core.auth import Principal
from app.core.database import UnitOfWork, get_session, get_uow
from app.services.auth import AuthService
from prody_shared.schemas.auth import (
    ForgotPasswordRequest,
    GoogleAuthRequest,
    RefreshNotNeededResponse,
    RefreshRequest,
    ResendOtpRequest,
    ResetPasswordRequest,
    SigninRequest,
    SignupRequest,
    TokenResponse,
    UserSummary,
    VerifyEmailRequest,
)
from prody_shared.schemas.common import MessageResponse

router = APIRouter()


# ---------------------------------------------------------------------------
# Signup & verification
# ---------------------------------------------------------------------------

@router.post("/signup", response_model=MessageResponse, status_code=201)
async def signup(
    body: SignupRequest,
    uow: UnitOfWork = Depends(get_uow),
    auth: AuthService = Depends(get_auth_service),
):
    """Create an unverified account and email a one-time code."""
    return await auth.signup(uow, body)


@router.post("/verify-email", response_model=TokenResponse)
async def verify_email(
    body: VerifyEmailRequest,
    uow: UnitOfWork = Depends(get_uow),
    auth: AuthService = Depends(get_auth_service),
):
    return await auth.verify_email(uow, body.email, body.otp)


@router.post("/resend-otp", response_model=MessageResponse)
async def resend_otp(
    body: ResendOtpRequest,
    uow: UnitOfWork = Depends(get_uow),
    auth: AuthService = Depends(get_auth_service),
):
    return await auth.resend_otp(uow, body.email)


# ---------------------------------------------------------------------------
# Sign-in
# ---------------------------------------------------------------------------

@router.post("/signin", response_model=TokenResponse)
async def signin(
    body: SigninRequest,
    uow: UnitOfWork = Depends(get_uow),
    auth: AuthService = Depends(get_auth_service),
):
    return await auth.signin(uow, body.email, body.password)


@router.post("/google", response_model=TokenResponse)
async def google_signin(
    body: GoogleAuthRequest,
    uow: UnitOfWork = Depends(get_uow),
    auth: AuthService = Depends(get_auth_service),
):
    """Sign in (or sign up) with a Google ID token."""
    return await auth.google_signin(uow, body.id_token)


# ---------------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------------

@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    body: ForgotPasswordRequest,
    uow: UnitOfWork = Depends(get_uow),
    auth: AuthService = Depends(get_auth_service),
):
    """Always 200 with the same body, whether or not the account exists."""
    return await auth.forgot_password(uow, body.email)


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    body: ResetPasswordRequest,
    uow: UnitOfWork = Depends(get_uow),
    auth: AuthService = Depends(get_auth_service),
):
    return await auth.reset_password(uow, body.token, body.new_pass)


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

@router.post("/refresh", response_model=Union[TokenResponse, RefreshNotNeededResponse])
async def refresh(
    body: RefreshRequest,
    uow: UnitOfWork = Depends(get_uow),
    auth: AuthService = Depends(get_auth_service),
):
    """Mint a new pair unless the presented access token still has plenty of time left."""
    return await auth.refresh(uow, body.refresh_token, body.current_access_token)


@router.get("/me", response_model=UserSummary)
async def me(
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(get_session),
    auth: AuthService = Depends(get_auth_service),
):
    return await auth.me(session, principal)

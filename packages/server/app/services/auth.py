"""
Auth service: signup, email verification, sign-in, password reset,
Google sign-in and token refresh.

Account state machine: Unverified -> Verified. Every security-relevant
transition is written to the activity log in the same transaction as
the account change. Emails are sent after the commit; only the explicit
OTP resend surfaces a delivery failure to the caller.
"""

from __future__ import annotations

import secrets
import uuid
from datetime import timedelta
from functools import partial
from typing import Optional

import jwt
import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import (
    REFRESH,
    Principal,
    TokenIssuer,
    generate_otp,
    generate_reset_token,
    hash_password,
    verify_password,
)
from app.core.config import Settings
from app.core.database import UnitOfWork
from app.core.errors import Conflict, InvalidInput, NotFound, Unauthenticated
from app.core.side_effects import best_effort
from app.models.base import _utcnow
from app.models.user import User
from app.services.activity_logs import ActivityLogService
from app.services.google import GoogleIdentityVerifier, IdentityVerificationError
from app.services.mail import Mailer
from app.services.users import create_user, get_user_by_email
from prody_shared.schemas.auth import (
    RefreshNotNeededResponse,
    SignupRequest,
    TokenResponse,
    UserSummary,
)
from prody_shared.schemas.common import ActivityAction, MessageResponse

log = structlog.get_logger()

MIN_PASSWORD_LENGTH = 8
FORGOT_PASSWORD_MESSAGE = "If an account exists, a reset link has been sent."


def user_summary(user: User) -> UserSummary:
    return UserSummary(
        id=user.id,
        full_name=user.full_name,
        email=user.email,
        avatar_url=user.avatar_url,
        role=user.role,
        org_id=user.organization_id,
    )


def _check_password_strength(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise InvalidInput(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")


class AuthService:
    def __init__(
        self,
        tokens: TokenIssuer,
        mailer: Mailer,
        identity_verifier: GoogleIdentityVerifier,
        activity_log: ActivityLogService,
        settings: Settings,
    ):
        self._tokens = tokens
        self._mailer = mailer
        self._identity = identity_verifier
        self._activity = activity_log
        self._settings = settings

    # ---------------------------------------------------------------------
    # Helpers
    # ---------------------------------------------------------------------

    def _token_response(self, user: User) -> TokenResponse:
        pair = self._tokens.issue_pair(user)
        return TokenResponse(
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
            expires_in=pair.expires_in,
            user=user_summary(user),
        )

    def _new_otp(self, user: User) -> str:
        otp = generate_otp()
        user.verification_otp = otp
        user.otp_expires = _utcnow() + timedelta(minutes=self._settings.otp_expire_minutes)
        return otp

    # ---------------------------------------------------------------------
    # Signup & verification
    # ---------------------------------------------------------------------

    async def signup(self, uow: UnitOfWork, req: SignupRequest) -> MessageResponse:
        _check_password_strength(req.password)
        email = req.email.lower()
        if await get_user_by_email(email, uow.session):
            raise Conflict("User already registered")

        async with uow.transaction():
            try:
                user = await create_user(
                    uow.session,
                    email=email,
                    first_name=req.first_name,
                    last_name=req.last_name,
                    password=req.password,
                )
            except IntegrityError as exc:
                # Lost a race with a concurrent signup for the same email
                raise Conflict("User already registered") from exc
            otp = self._new_otp(user)
            uow.session.add(user)
            await self._activity.record(
                uow, user.id, ActivityAction.USER_SIGNUP_INITIATED, "User", user.id,
                {"email": email},
            )

        log.info("auth.signup", user_id=str(user.id))
        sent = await best_effort("mail.otp", partial(self._mailer.send_otp, email, otp))
        if not sent.ok:
            return MessageResponse(message="Account created. Please request OTP if not received.")
        return MessageResponse(message="OTP sent to your email")

    async def resend_otp(self, uow: UnitOfWork, email: str) -> MessageResponse:
        user = await get_user_by_email(email, uow.session)
        if not user:
            raise NotFound("User not found")
        if user.is_email_verified:
            raise InvalidInput("Email already verified")

        async with uow.transaction():
            otp = self._new_otp(user)
            uow.session.add(user)

        # Unlike the other sends, a delivery failure here propagates
        await self._mailer.send_otp(user.email, otp)
        return MessageResponse(message="OTP resent successfully")

    async def verify_email(self, uow: UnitOfWork, email: str, otp: str) -> TokenResponse:
        user = await get_user_by_email(email, uow.session)

        # Unknown accounts, wrong codes and expired codes are indistinguishable to the caller
        if (
            not user
            or not user.verification_otp
            or not secrets.compare_digest(user.verification_otp.encode(), otp.encode())
            or user.otp_expires is None
            or user.otp_expires < _utcnow()
        ):
            raise InvalidInput("Invalid or expired OTP")

        async with uow.transaction():
            user.is_email_verified = True
            user.verification_otp = None
            user.otp_expires = None
            uow.session.add(user)
            await self._activity.record(uow, user.id, ActivityAction.EMAIL_VERIFIED, "User", user.id)

        log.info("auth.email_verified", user_id=str(user.id))
        await best_effort("mail.welcome", partial(self._mailer.send_welcome, user.email, user.first_name))
        return self._token_response(user)

    # ---------------------------------------------------------------------
    # Sign-in
    # ---------------------------------------------------------------------

    async def signin(self, uow: UnitOfWork, email: str, password: str) -> TokenResponse:
        user = await get_user_by_email(email, uow.session)
        if not user:
            raise Unauthenticated("Invalid credentials")

        if not user.password_hash:
            raise Unauthenticated(
                "This account uses Google Login. Please sign in with Google.",
                error_msg="GOOGLE_ACCOUNT",
            )

        if not verify_password(password, user.password_hash):
            log.warning("auth.login_failure", user_id=str(user.id), reason="bad_password")
            raise Unauthenticated("Invalid password or email")

        if not user.is_email_verified:
            raise Unauthenticated(
                "Please verify your email first", error_msg="EMAIL_VERIFICATION_FAILED"
            )

        async with uow.transaction():
            await self._activity.record(uow, user.id, ActivityAction.USER_LOGIN, "User", user.id)

        log.info("auth.login_success", user_id=str(user.id))
        return self._token_response(user)

    # ---------------------------------------------------------------------
    # Password reset
    # ---------------------------------------------------------------------

    async def forgot_password(self, uow: UnitOfWork, email: str) -> MessageResponse:
        user = await get_user_by_email(email, uow.session)
        if user:
            token = generate_reset_token()
            async with uow.transaction():
                user.reset_token = token
                user.reset_token_exp = _utcnow() + timedelta(
                    minutes=self._settings.reset_token_expire_minutes
                )
                uow.session.add(user)
                await self._activity.record(
                    uow, user.id, ActivityAction.PASSWORD_RESET_REQUEST, "User", user.id
                )
            await best_effort(
                "mail.password_reset",
                partial(self._mailer.send_password_reset, user.email, token),
            )
        else:
            log.info("auth.reset_unknown_email")
        return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)

    async def reset_password(self, uow: UnitOfWork, token: str, new_password: str) -> MessageResponse:
        if not new_password:
            raise InvalidInput("New password is required")
        _check_password_strength(new_password)

        result = await uow.session.execute(
            select(User).where(User.reset_token == token, User.reset_token_exp > _utcnow())
        )
        user = result.scalar_one_or_none()
        if not token or not user:
            raise InvalidInput("Token invalid or expired")

        async with uow.transaction():
            user.password_hash = hash_password(new_password)
            user.reset_token = None
            user.reset_token_exp = None
            uow.session.add(user)
            await self._activity.record(uow, user.id, ActivityAction.PASSWORD_CHANGED, "User", user.id)

        log.info("auth.password_changed", user_id=str(user.id))
        return MessageResponse(message="Password updated successfully")

    # ---------------------------------------------------------------------
    # Google
    # ---------------------------------------------------------------------

    async def google_signin(self, uow: UnitOfWork, id_token: str) -> TokenResponse:
        try:
            identity = await self._identity.verify(id_token)
        except IdentityVerificationError as exc:
            log.warning("auth.google_failure", error=str(exc))
            raise Unauthenticated("Google authentication failed") from exc

        email = identity.email.lower()
        user = await get_user_by_email(email, uow.session)
        created = user is None

        async with uow.transaction():
            if user is None:
                user = await create_user(
                    uow.session,
                    email=email,
                    first_name=identity.given_name or email.split("@")[0],
                    last_name=identity.family_name,
                    verified=True,
                    avatar_url=identity.picture,
                )
            else:
                user.is_email_verified = True
                user.avatar_url = identity.picture or user.avatar_url
            uow.session.add(user)
            await uow.session.flush()
            await self._activity.record(
                uow, user.id, ActivityAction.USER_LOGIN, "User", user.id, {"provider": "google"}
            )

        log.info("auth.google_login", user_id=str(user.id), created=created)
        if created:
            await best_effort("mail.welcome", partial(self._mailer.send_welcome, user.email, user.first_name))
        return self._token_response(user)

    # ---------------------------------------------------------------------
    # Refresh & profile
    # ---------------------------------------------------------------------

    async def refresh(
        self,
        uow: UnitOfWork,
        refresh_token: str,
        current_access_token: Optional[str] = None,
    ) -> TokenResponse | RefreshNotNeededResponse:
        try:
            claims = self._tokens.decode(refresh_token, REFRESH)
            user_id = uuid.UUID(claims["sub"])
        except (jwt.PyJWTError, KeyError, ValueError):
            raise Unauthenticated("Invalid or expired refresh token")

        user = await uow.session.get(User, user_id)
        if not user:
            raise Unauthenticated("User not found")
        if not user.is_email_verified:
            raise Unauthenticated("Email not verified", error_msg="EMAIL_VERIFICATION_FAILED")

        if current_access_token:
            remaining = self._tokens.remaining_seconds(current_access_token)
            if remaining is not None and remaining > self._settings.refresh_threshold_minutes * 60:
                return RefreshNotNeededResponse(
                    message="Token is still valid, no refresh needed",
                    expires_in=remaining,
                )

        async with uow.transaction():
            await self._activity.record(uow, user.id, ActivityAction.TOKEN_REFRESHED, "User", user.id)

        return self._token_response(user)

    async def me(self, session: AsyncSession, principal: Principal) -> UserSummary:
        user = await session.get(User, principal.user_id)
        if not user:
            raise NotFound("User not found")
        return user_summary(user)

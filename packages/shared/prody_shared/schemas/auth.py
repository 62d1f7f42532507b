"""
Authentication request/response schemas.

Request bodies accept camelCase or snake_case keys. Token responses keep
the snake_case ``access_token`` / ``refresh_token`` names clients expect
from an OAuth-style endpoint, with a camelCase user summary inside.
"""

from __future__ import annotations

import uuid
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from .common import CamelModel, Role


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class SignupRequest(CamelModel):
    email: EmailStr
    password: str
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)


class VerifyEmailRequest(CamelModel):
    email: EmailStr
    otp: str = Field(..., min_length=1)


class ResendOtpRequest(CamelModel):
    email: EmailStr


class SigninRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., alias="pass")


class ForgotPasswordRequest(CamelModel):
    email: EmailStr


class ResetPasswordRequest(CamelModel):
    token: str
    new_pass: str = ""


class GoogleAuthRequest(CamelModel):
    id_token: str = Field(..., min_length=1)


class RefreshRequest(CamelModel):
    refresh_token: str
    current_access_token: Optional[str] = None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class UserSummary(CamelModel):
    id: uuid.UUID
    full_name: str
    email: str
    avatar_url: Optional[str] = None
    role: Role
    org_id: Optional[uuid.UUID] = None


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    expires_in: int  # seconds until the access token expires
    user: UserSummary


class RefreshNotNeededResponse(BaseModel):
    message: str
    expires_in: int

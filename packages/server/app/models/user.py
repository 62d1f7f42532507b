"""User model."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class User(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "users"

    email: str = Field(nullable=False, unique=True, index=True)
    first_name: str = Field(nullable=False)
    last_name: Optional[str] = None
    full_name: str = Field(nullable=False)
    password_hash: str = Field(default="", nullable=False)  # "" for Google-provisioned accounts
    avatar_url: Optional[str] = None
    role: str = Field(default="member", nullable=False)  # member | admin
    organization_id: Optional[uuid.UUID] = Field(
        default=None, foreign_key="organizations.id", index=True
    )

    # Email verification
    is_email_verified: bool = Field(default=False, nullable=False)
    verification_otp: Optional[str] = None
    otp_expires: Optional[datetime] = Field(default=None, sa_type=sa.DateTime())

    # Password reset
    reset_token: Optional[str] = Field(default=None, index=True)
    reset_token_exp: Optional[datetime] = Field(default=None, sa_type=sa.DateTime())


def full_name_of(first_name: str, last_name: Optional[str]) -> str:
    return f"{first_name} {last_name}".strip() if last_name else first_name

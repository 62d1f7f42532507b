"""
User service: lookups and account creation shared by auth flows and scripts.
"""

from __future__ import annotations

from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import hash_password
from app.models.user import User, full_name_of
from prody_shared.schemas.common import Role

log = structlog.get_logger()


async def get_user_by_email(email: str, session: AsyncSession) -> Optional[User]:
    result = await session.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


async def create_user(
    session: AsyncSession,
    *,
    email: str,
    first_name: str,
    last_name: Optional[str] = None,
    password: Optional[str] = None,
    role: Role = Role.MEMBER,
    verified: bool = False,
    avatar_url: Optional[str] = None,
) -> User:
    """Add a user to the session and flush. ``password=None`` makes a federated-only account."""
    user = User(
        email=email.lower(),
        first_name=first_name,
        last_name=last_name,
        full_name=full_name_of(first_name, last_name),
        password_hash=hash_password(password) if password else "",
        role=role.value,
        is_email_verified=verified,
        avatar_url=avatar_url,
    )
    session.add(user)
    await session.flush()
    log.info("user.created", user_id=str(user.id), federated=password is None)
    return user

"""
Authentication and authorization primitives.

- Password hashing (bcrypt), one-time codes and reset tokens
- JWT access/refresh credentials via ``TokenIssuer``
- The request pipeline as plain functions, composable without FastAPI:
  ``extract_bearer_token`` -> ``authenticate`` -> ``resolve_principal`` -> ``authorize``
"""

from __future__ import annotations

import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import bcrypt
import jwt
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings
from app.core.errors import Forbidden, Unauthenticated
from app.models.user import User

ACCESS = "access"
REFRESH = "refresh"

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------

def hash_password(password: str) -> str:
    """Hash a password using bcrypt with cost factor 12."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=12)).decode()


def verify_password(password: str, hashed: str) -> bool:
    """Verify a password against a bcrypt hash."""
    return bcrypt.checkpw(password.encode(), hashed.encode())


# ---------------------------------------------------------------------------
# One-time secrets
# ---------------------------------------------------------------------------

def generate_otp() -> str:
    """Six random digits."""
    return str(100000 + secrets.randbelow(900000))


def generate_reset_token() -> str:
    """32 random bytes, hex encoded."""
    return secrets.token_hex(32)


# ---------------------------------------------------------------------------
# JWT
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    expires_in: int


class TokenIssuer:
    """Signs and verifies access/refresh credentials."""

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        access_ttl: timedelta = timedelta(minutes=30),
        refresh_ttl: timedelta = timedelta(days=7),
    ):
        self._secret_key = secret_key
        self._algorithm = algorithm
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenIssuer":
        return cls(
            settings.secret_key,
            settings.jwt_algorithm,
            access_ttl=timedelta(minutes=settings.access_token_expire_minutes),
            refresh_ttl=timedelta(days=settings.refresh_token_expire_days),
        )

    def issue(self, user: User, token_type: str = ACCESS) -> str:
        now = datetime.now(timezone.utc)
        ttl = self.access_ttl if token_type == ACCESS else self.refresh_ttl
        payload = {
            "sub": str(user.id),
            "email": user.email,
            "role": user.role,
            "org_id": str(user.organization_id) if user.organization_id else None,
            "type": token_type,
            "iat": now,
            "exp": now + ttl,
            "jti": str(uuid.uuid4()),
        }
        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)

    def issue_pair(self, user: User) -> TokenPair:
        return TokenPair(
            access_token=self.issue(user, ACCESS),
            refresh_token=self.issue(user, REFRESH),
            expires_in=int(self.access_ttl.total_seconds()),
        )

    def decode(self, token: str, expected_type: str = ACCESS) -> dict[str, Any]:
        """Decode and verify a JWT. Raises jwt.PyJWTError on failure."""
        claims = jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
        if claims.get("type") != expected_type:
            raise jwt.InvalidTokenError(f"Expected a {expected_type} token")
        return claims

    def remaining_seconds(self, token: str) -> Optional[int]:
        """Seconds of validity left on an access token, or None if it does not verify."""
        try:
            claims = self.decode(token, ACCESS)
        except jwt.PyJWTError:
            return None
        return int(claims["exp"] - datetime.now(timezone.utc).timestamp())


# ---------------------------------------------------------------------------
# Request pipeline
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Principal:
    """The authenticated caller."""

    user_id: uuid.UUID
    email: str
    role: str
    org_id: Optional[uuid.UUID] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @classmethod
    def from_claims(cls, claims: dict[str, Any]) -> "Principal":
        org_id = claims.get("org_id")
        return cls(
            user_id=uuid.UUID(claims["sub"]),
            email=claims.get("email", ""),
            role=claims.get("role", "member"),
            org_id=uuid.UUID(org_id) if org_id else None,
        )


def extract_bearer_token(authorization: Optional[str]) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        raise Unauthenticated("Authentication required")
    token = authorization[7:].strip()
    if not token:
        raise Unauthenticated("Authentication required")
    return token


def authenticate(tokens: TokenIssuer, token: str) -> dict[str, Any]:
    """Verify an access credential and return its claims."""
    try:
        claims = tokens.decode(token, ACCESS)
        uuid.UUID(claims["sub"])
    except (jwt.PyJWTError, KeyError, ValueError):
        raise Unauthenticated("Invalid or expired token")
    return claims


async def resolve_principal(session: AsyncSession, claims: dict[str, Any]) -> Principal:
    """Load the caller's current role and organization from the user row."""
    user = await session.get(User, uuid.UUID(claims["sub"]))
    if not user:
        raise Unauthenticated("User not found")
    return Principal(
        user_id=user.id,
        email=user.email,
        role=user.role,
        org_id=user.organization_id,
    )


def authorize(principal: Principal, *roles: str) -> Principal:
    """Pass through when no roles are required or the caller holds one of them."""
    if roles and principal.role not in roles:
        raise Forbidden("You do not have permission to perform this action")
    return principal

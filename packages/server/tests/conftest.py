"""
Shared fixtures for server tests.

Every test gets its own application built by ``create_app`` on an
in-memory SQLite database, with the outbound collaborators (mail, Google,
realtime) replaced by recording fakes.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

import pytest
from httpx import ASGITransport, AsyncClient

from app.core.config import Settings
from app.core.database import init_db
from app.core.errors import DependencyFailure
from app.core.realtime import RealtimeBroadcaster
from app.main import create_app
from app.models.organization import Organization
from app.services.google import GoogleIdentity, IdentityVerificationError
from app.services.users import create_user
from prody_shared.schemas.common import Role


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class FakeMailer:
    """Records every message instead of calling the mail provider."""

    def __init__(self):
        self.sent: list[tuple[str, str, str]] = []
        self.fail = False

    async def _record(self, kind: str, to: str, value: str) -> None:
        if self.fail:
            raise DependencyFailure("Failed to send email")
        self.sent.append((kind, to, value))

    async def send_otp(self, to: str, otp: str) -> None:
        await self._record("otp", to, otp)

    async def send_welcome(self, to: str, name: str) -> None:
        await self._record("welcome", to, name)

    async def send_password_reset(self, to: str, token: str) -> None:
        await self._record("reset", to, token)

    async def close(self) -> None:
        pass

    def last(self, kind: str) -> Optional[tuple[str, str, str]]:
        matches = [m for m in self.sent if m[0] == kind]
        return matches[-1] if matches else None


class FakeVerifier:
    """Maps ID tokens to identities; unknown tokens fail verification."""

    def __init__(self):
        self.identities: dict[str, GoogleIdentity] = {}

    async def verify(self, id_token: str) -> GoogleIdentity:
        if id_token not in self.identities:
            raise IdentityVerificationError("Invalid ID token")
        return self.identities[id_token]

    async def close(self) -> None:
        pass


class RecordingBroadcaster(RealtimeBroadcaster):
    """In-process broadcaster that also remembers every send."""

    def __init__(self):
        super().__init__()
        self.sent: list[tuple[str, str, dict]] = []
        self.fail = False

    async def _dispatch(self, room, event, payload) -> None:
        if self.fail:
            raise RuntimeError("broadcast down")
        name = event.value if isinstance(event, Enum) else event
        self.sent.append((room, name, payload))
        await super()._dispatch(room, event, payload)

    def events(self, name: str) -> list[tuple[str, dict]]:
        return [(room, payload) for room, event, payload in self.sent if event == name]


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------

@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        database_url="sqlite+aiosqlite:///:memory:",
        secret_key="test-secret-key-with-enough-length",
        log_format="console",
        log_level="warning",
    )


@pytest.fixture
def mailer() -> FakeMailer:
    return FakeMailer()


@pytest.fixture
def verifier() -> FakeVerifier:
    return FakeVerifier()


@pytest.fixture
def broadcaster() -> RecordingBroadcaster:
    return RecordingBroadcaster()


@pytest.fixture
async def application(settings, mailer, verifier, broadcaster):
    app = create_app(settings, mailer=mailer, identity_verifier=verifier, broadcaster=broadcaster)
    await init_db(app.state.engine)
    yield app
    await broadcaster.stop()
    await app.state.engine.dispose()


@pytest.fixture
async def client(application):
    async with AsyncClient(transport=ASGITransport(app=application), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def session_factory(application):
    return application.state.session_factory


# ---------------------------------------------------------------------------
# Data helpers
# ---------------------------------------------------------------------------

@pytest.fixture
def make_org(session_factory):
    async def _make(name: str = "Acme", slug: Optional[str] = None) -> Organization:
        async with session_factory() as session:
            org = Organization(name=name, slug=slug or name.lower().replace(" ", "-"))
            session.add(org)
            await session.commit()
            return org

    return _make


@pytest.fixture
def make_user(application, session_factory):
    """Create a user row directly and return ``(user, auth_headers)``.

    Users get no password unless one is passed, which keeps bcrypt out of
    tests that never sign in.
    """

    async def _make(
        email: str,
        *,
        password: Optional[str] = None,
        role: Role = Role.MEMBER,
        org: Optional[Organization] = None,
        verified: bool = True,
        first_name: str = "Test",
    ):
        async with session_factory() as session:
            user = await create_user(
                session,
                email=email,
                first_name=first_name,
                last_name="User",
                password=password,
                role=role,
                verified=verified,
            )
            user.organization_id = org.id if org else None
            session.add(user)
            await session.commit()
        token = application.state.tokens.issue(user)
        return user, {"Authorization": f"Bearer {token}"}

    return _make

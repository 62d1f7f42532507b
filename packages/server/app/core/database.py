"""
Database connection, session management and the unit of work.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel
from starlette.requests import HTTPConnection

from app.core.config import Settings
from app.core.side_effects import SideEffect, SideEffectResult, best_effort

log = structlog.get_logger()


def create_engine(settings: Settings) -> AsyncEngine:
    kwargs: dict = {"echo": settings.debug, "future": True}
    if settings.database_url.startswith("sqlite"):
        # One shared connection so in-memory databases survive across sessions
        kwargs["poolclass"] = StaticPool
        kwargs["connect_args"] = {"check_same_thread": False}
    return create_async_engine(settings.database_url, **kwargs)


def create_session_factory(engine: AsyncEngine) -> sessionmaker:
    return sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def init_db(engine: AsyncEngine) -> None:
    """Create all tables (development and tests only; use migrations in production)."""
    import app.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


class UnitOfWork:
    """
    Wraps one session so multi-step writes commit or roll back together.

    Post-commit hooks (realtime pushes, emails) are registered with
    ``on_commit`` while the transaction is open and run, best-effort, only
    after the commit succeeds. A rollback discards them.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self._hooks: list[tuple[str, SideEffect]] = []
        self.results: list[SideEffectResult] = []

    def on_commit(self, name: str, fn: SideEffect) -> None:
        self._hooks.append((name, fn))

    async def commit(self) -> list[SideEffectResult]:
        await self.session.commit()
        hooks, self._hooks = self._hooks, []
        self.results = [await best_effort(name, fn) for name, fn in hooks]
        return self.results

    async def rollback(self) -> None:
        self._hooks.clear()
        await self.session.rollback()

    @asynccontextmanager
    async def transaction(self):
        """Commit on clean exit, roll back (and drop hooks) on any exception."""
        try:
            yield self
        except Exception:
            await self.rollback()
            raise
        await self.commit()


async def get_session(conn: HTTPConnection) -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for database sessions."""
    async with conn.app.state.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_uow(session: AsyncSession = Depends(get_session)) -> UnitOfWork:
    return UnitOfWork(session)

"""
Best-effort side effects.

Email sends and realtime pushes must never fail the write that triggered
them. ``best_effort`` runs one, logs a failure, and hands back a
``SideEffectResult`` the caller may inspect or ignore.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

import structlog

log = structlog.get_logger()

SideEffect = Callable[[], Awaitable[Any]]


@dataclass(frozen=True)
class SideEffectResult:
    name: str
    ok: bool
    error: Optional[str] = None


async def best_effort(name: str, fn: SideEffect) -> SideEffectResult:
    try:
        await fn()
    except Exception as exc:
        log.warning("side_effect.failed", side_effect=name, error=repr(exc))
        return SideEffectResult(name=name, ok=False, error=repr(exc))
    return SideEffectResult(name=name, ok=True)

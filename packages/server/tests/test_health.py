"""
Health check endpoint and logging setup tests.
"""

import pytest
import structlog
from httpx import ASGITransport, AsyncClient
from structlog.testing import capture_logs

from app.core.logging import configure_logging
from app.main import create_app


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient):
    """Health endpoint should return status ok."""
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_ready_check(client: AsyncClient):
    """Ready endpoint should round-trip the database."""
    response = await client.get("/ready")
    assert response.status_code == 200
    assert response.json() == {"status": "ready"}


@pytest.mark.asyncio
async def test_ready_reports_database_outage(settings, mailer, verifier, broadcaster):
    broken = settings.model_copy(
        update={"database_url": "sqlite+aiosqlite:////nonexistent-dir/prody.db"}
    )
    app = create_app(broken, mailer=mailer, identity_verifier=verifier, broadcaster=broadcaster)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        response = await ac.get("/ready")
    assert response.status_code == 503
    assert response.json()["message"] == "Database unavailable"


@pytest.mark.asyncio
async def test_api_root(client: AsyncClient):
    """API root should list the endpoint groups."""
    response = await client.get("/api/")
    assert response.status_code == 200
    data = response.json()
    assert data["api"] == "prody"
    assert "/tasks" in data["endpoints"]


@pytest.mark.asyncio
async def test_security_headers_on_api_responses(client: AsyncClient):
    response = await client.get("/health")
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["Content-Security-Policy"].startswith("default-src 'none'")


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

@pytest.fixture
def restore_logging():
    yield
    structlog.reset_defaults()


@pytest.mark.parametrize("level", ["debug", "info", "WARNING", "error"])
@pytest.mark.parametrize("fmt", ["json", "console"])
def test_configure_logging_accepts_level_names(level, fmt, restore_logging):
    configure_logging(level, fmt)
    structlog.get_logger().error("logging.configured")


def test_configure_logging_filters_below_level(restore_logging):
    configure_logging("warning", "json")
    log = structlog.get_logger()
    with capture_logs() as logs:
        log.info("below.threshold")
        log.warning("at.threshold")
    assert [entry["event"] for entry in logs] == ["at.threshold"]

"""
Tests for the shared error envelope.

Every failure (domain errors, request validation, unknown routes and
unhandled exceptions) is rendered as
``{success: false, statusCode, message, timestamp, errorMsg?}``.
"""

from __future__ import annotations

from datetime import datetime

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from pydantic import BaseModel

from app.core.errors import (
    AppError,
    Conflict,
    DependencyFailure,
    Forbidden,
    InvalidInput,
    NotFound,
    Unauthenticated,
    error_envelope,
    register_exception_handlers,
)


class Body(BaseModel):
    name: str
    count: int


@pytest.fixture
def error_app() -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/unauthenticated")
    async def unauthenticated():
        raise Unauthenticated("Please verify your email first", error_msg="EMAIL_VERIFICATION_FAILED")

    @app.get("/conflict")
    async def conflict():
        raise Conflict("User already registered")

    @app.post("/validate")
    async def validate(body: Body):
        return body

    @app.get("/boom")
    async def boom():
        raise RuntimeError("kaboom")

    return app


@pytest.fixture
async def error_client(error_app):
    transport = ASGITransport(app=error_app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


class TestTaxonomy:
    @pytest.mark.parametrize(
        "cls,status",
        [
            (InvalidInput, 400),
            (Unauthenticated, 401),
            (Forbidden, 403),
            (NotFound, 404),
            (Conflict, 409),
            (DependencyFailure, 503),
        ],
    )
    def test_status_codes(self, cls, status):
        err = cls("nope")
        assert isinstance(err, AppError)
        assert err.status_code == status
        assert err.detail == "nope"
        assert err.error_msg is None

    def test_envelope_omits_empty_tag(self):
        body = error_envelope(404, "Task not found")
        assert body["success"] is False
        assert body["statusCode"] == 404
        assert "errorMsg" not in body
        datetime.fromisoformat(body["timestamp"])


class TestEnvelope:
    @pytest.mark.asyncio
    async def test_domain_error_with_tag(self, error_client):
        resp = await error_client.get("/unauthenticated")
        assert resp.status_code == 401
        body = resp.json()
        assert body["success"] is False
        assert body["statusCode"] == 401
        assert body["message"] == "Please verify your email first"
        assert body["errorMsg"] == "EMAIL_VERIFICATION_FAILED"
        assert "timestamp" in body

    @pytest.mark.asyncio
    async def test_conflict(self, error_client):
        body = (await error_client.get("/conflict")).json()
        assert body["statusCode"] == 409
        assert "errorMsg" not in body

    @pytest.mark.asyncio
    async def test_validation_errors_are_400_and_joined(self, error_client):
        resp = await error_client.post("/validate", json={"count": "many"})
        assert resp.status_code == 400
        message = resp.json()["message"]
        assert "name" in message and "count" in message
        assert "; " in message

    @pytest.mark.asyncio
    async def test_unknown_route(self, error_client):
        resp = await error_client.get("/nowhere")
        assert resp.status_code == 404
        assert resp.json()["success"] is False

    @pytest.mark.asyncio
    async def test_unhandled_exception(self, error_client):
        resp = await error_client.get("/boom")
        assert resp.status_code == 500
        assert resp.json()["message"] == "Internal server error"
        assert "kaboom" not in resp.text

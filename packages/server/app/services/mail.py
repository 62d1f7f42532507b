"""
Transactional email via the Resend HTTP API.

Three messages: the signup/verification code, the welcome note and the
password reset link. Without an API key sends are skipped with a warning
so local development works offline.
"""

from __future__ import annotations

import httpx
import structlog

from app.core.config import Settings
from app.core.errors import DependencyFailure

log = structlog.get_logger()


class Mailer:
    def __init__(
        self,
        api_key: str,
        sender: str,
        api_url: str = "https://api.resend.com/emails",
        frontend_url: str = "http://localhost:3000",
        request_timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        self._api_key = api_key
        self._sender = sender
        self._api_url = api_url
        self._frontend_url = frontend_url.rstrip("/")
        self._request_timeout = request_timeout
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "Mailer":
        return cls(
            api_key=settings.resend_api_key,
            sender=settings.mail_from,
            api_url=settings.mail_api_url,
            frontend_url=settings.frontend_url,
            request_timeout=settings.http_timeout_seconds,
        )

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self._request_timeout))
        return self._client

    # --- Messages ---

    async def send_otp(self, to: str, otp: str) -> None:
        await self._send(
            to,
            "Verify your email",
            f"<p>Your verification code is <strong>{otp}</strong>.</p>"
            "<p>It expires in 10 minutes.</p>",
        )

    async def send_welcome(self, to: str, name: str) -> None:
        await self._send(
            to,
            "Welcome to Prody",
            f"<p>Hi {name}, your account is ready.</p>",
        )

    async def send_password_reset(self, to: str, token: str) -> None:
        link = f"{self._frontend_url}/reset-password?token={token}"
        await self._send(
            to,
            "Reset your password",
            f'<p>Click <a href="{link}">here</a> to reset your password.</p>'
            "<p>The link expires in 1 hour.</p>",
        )

    async def _send(self, to: str, subject: str, html: str) -> None:
        if not self._api_key:
            log.warning("mail.skipped", reason="no_api_key", to=to, subject=subject)
            return

        try:
            resp = await self._get_client().post(
                self._api_url,
                json={"from": self._sender, "to": [to], "subject": subject, "html": html},
                headers={"Authorization": f"Bearer {self._api_key}"},
            )
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            log.error("mail.send_failed", to=to, subject=subject, error=str(exc))
            raise DependencyFailure("Failed to send email") from exc

        log.info("mail.sent", to=to, subject=subject)

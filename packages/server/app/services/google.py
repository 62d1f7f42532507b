"""Google ID token verification through the token-info endpoint."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import httpx
import structlog

from app.core.config import Settings

log = structlog.get_logger()


class IdentityVerificationError(Exception):
    """The identity token could not be verified."""


@dataclass(frozen=True)
class GoogleIdentity:
    email: str
    given_name: Optional[str] = None
    family_name: Optional[str] = None
    picture: Optional[str] = None


class GoogleIdentityVerifier:
    def __init__(
        self,
        client_id: str,
        tokeninfo_url: str = "https://oauth2.googleapis.com/tokeninfo",
        request_timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        self._client_id = client_id
        self._tokeninfo_url = tokeninfo_url
        self._request_timeout = request_timeout
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "GoogleIdentityVerifier":
        return cls(
            client_id=settings.google_client_id,
            tokeninfo_url=settings.google_tokeninfo_url,
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

    async def verify(self, id_token: str) -> GoogleIdentity:
        try:
            resp = await self._get_client().get(
                self._tokeninfo_url, params={"id_token": id_token}
            )
        except httpx.HTTPError as exc:
            log.warning("google.unreachable", error=str(exc))
            raise IdentityVerificationError("Identity provider unreachable") from exc

        if resp.status_code != 200:
            raise IdentityVerificationError("Invalid ID token")

        data = resp.json()
        if self._client_id and data.get("aud") != self._client_id:
            raise IdentityVerificationError("Token audience mismatch")
        if not data.get("email"):
            raise IdentityVerificationError("Token carries no email")
        if str(data.get("email_verified", "true")).lower() != "true":
            raise IdentityVerificationError("Email not verified by Google")

        return GoogleIdentity(
            email=data["email"],
            given_name=data.get("given_name"),
            family_name=data.get("family_name"),
            picture=data.get("picture"),
        )

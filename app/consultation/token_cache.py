"""
Access token for the balance provider.

Password-grant token fetched from the configured authority and kept in a
single process-wide slot until it is within the refresh margin of expiry.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

import httpx

from app.config import Settings
from app.errors import ConfigurationError, TokenFetchError, upstream_message

logger = logging.getLogger(__name__)

REQUIRED_KEYS = (
    "V8_AUTH_URL",
    "V8_CLIENT_ID",
    "V8_USERNAME",
    "V8_PASSWORD",
    "V8_AUDIENCE",
    "V8_SCOPE",
)


@dataclass
class CachedToken:
    token: str
    expires_at: float  # epoch seconds


class TokenCache:
    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._settings = settings
        self._transport = transport
        self._clock = clock
        self._cached: Optional[CachedToken] = None

    def _check_configuration(self) -> None:
        missing = [key for key in REQUIRED_KEYS if not getattr(self._settings, key)]
        if missing:
            raise ConfigurationError(
                "Token API environment variables are not configured: " + ", ".join(missing)
            )

    def invalidate(self) -> None:
        self._cached = None

    async def get_token(self) -> str:
        self._check_configuration()

        now = self._clock()
        margin = self._settings.TOKEN_REFRESH_MARGIN_SECONDS
        if self._cached and self._cached.expires_at > now + margin:
            return self._cached.token

        form = {
            "grant_type": "password",
            "username": self._settings.V8_USERNAME,
            "password": self._settings.V8_PASSWORD,
            "audience": self._settings.V8_AUDIENCE,
            "scope": self._settings.V8_SCOPE,
            "client_id": self._settings.V8_CLIENT_ID,
        }
        try:
            async with httpx.AsyncClient(
                transport=self._transport,
                timeout=self._settings.HTTP_TIMEOUT_SECONDS,
            ) as client:
                response = await client.post(self._settings.V8_AUTH_URL, data=form)
        except httpx.HTTPError as exc:
            logger.error("Token request failed: %s", exc)
            raise TokenFetchError(f"Falha ao obter token: {exc}") from exc

        if response.is_error:
            message = upstream_message(response)
            logger.error("Token authority rejected request (%d): %s", response.status_code, message)
            raise TokenFetchError(
                f"Falha ao obter token: {message}",
                upstream_status=response.status_code,
                upstream_body=response.text,
            )

        try:
            payload = response.json()
            if not isinstance(payload, dict):
                raise ValueError(f"unexpected payload type {type(payload).__name__}")
            token = payload.get("access_token")
            expires_in = float(payload.get("expires_in") or 0)
        except (ValueError, TypeError) as exc:
            logger.error("Token authority sent an unreadable response: %s", exc)
            raise TokenFetchError(
                "Falha ao obter token: resposta inválida",
                upstream_status=response.status_code,
                upstream_body=response.text,
            ) from exc

        if not token:
            raise TokenFetchError("Falha ao obter token: access_token ausente na resposta")

        self._cached = CachedToken(token=token, expires_at=now + expires_in)
        logger.info("Fetched provider token (expires in %ds)", int(expires_in))
        return token

"""
Outbound client for the balance provider.

Dispatch is fire-and-forget: the provider answers later on the webhook.
"""
from __future__ import annotations

import logging
from typing import Optional

import httpx

from app.config import Settings
from app.consultation.token_cache import TokenCache
from app.errors import ConfigurationError, ConsultationDispatchError, InvalidProviderError

logger = logging.getLogger(__name__)


def dispatch_error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return response.text


class ProviderClient:
    def __init__(
        self,
        settings: Settings,
        token_cache: TokenCache,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._settings = settings
        self._token_cache = token_cache
        self._transport = transport

    def validate_provider(self, provider: Optional[str]) -> str:
        if not provider or provider not in self._settings.ALLOWED_PROVIDERS:
            raise InvalidProviderError(provider, self._settings.ALLOWED_PROVIDERS)
        return provider

    async def send_consultation(
        self,
        document_number: str,
        provider: str,
        consultation_id: Optional[str] = None,
    ) -> None:
        self.validate_provider(provider)
        if not self._settings.V8_CONSULTATION_URL or not self._settings.WEBHOOK_URL:
            raise ConfigurationError("V8_CONSULTATION_URL and WEBHOOK_URL must be configured")

        token = await self._token_cache.get_token()

        payload = {
            "documentNumber": document_number,
            "provider": provider,
            "webhook": self._settings.WEBHOOK_URL,
        }
        if consultation_id:
            payload["consultaId"] = consultation_id

        try:
            async with httpx.AsyncClient(
                transport=self._transport,
                timeout=self._settings.HTTP_TIMEOUT_SECONDS,
            ) as client:
                response = await client.post(
                    self._settings.V8_CONSULTATION_URL,
                    json=payload,
                    headers={"Authorization": f"Bearer {token}"},
                )
        except httpx.HTTPError as exc:
            logger.error("Consultation dispatch failed for %s: %s", document_number, exc)
            raise ConsultationDispatchError(str(exc) or "Erro desconhecido") from exc

        if response.is_error:
            message = dispatch_error_message(response)
            logger.error(
                "Provider rejected consultation for %s (%d): %s",
                document_number, response.status_code, message,
            )
            raise ConsultationDispatchError(
                message,
                upstream_status=response.status_code,
                upstream_body=response.text,
            )

        logger.info("Dispatched consultation: document=%s provider=%s", document_number, provider)

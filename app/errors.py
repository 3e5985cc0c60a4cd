"""
Error taxonomy.

Every error carries the HTTP status it maps to; ``app.main`` renders them as
``{"error": message}``.
"""
from __future__ import annotations

from typing import Iterable, Optional


class PortalError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(PortalError):
    """A required credential or URL is not configured."""

    status_code = 500


class MissingDocumentNumberError(PortalError):
    status_code = 400

    def __init__(self, message: str = "documentNumber é obrigatório"):
        super().__init__(message)


class InvalidProviderError(PortalError):
    status_code = 400

    def __init__(self, provider: Optional[str], allowed: Iterable[str]):
        self.provider = provider
        self.allowed = list(allowed)
        super().__init__(
            "Provedor inválido ou ausente. Os valores permitidos são: "
            + ", ".join(self.allowed)
        )


class UpstreamError(PortalError):
    """An upstream HTTP call failed. Keeps the upstream status and body when known."""

    status_code = 502

    def __init__(
        self,
        message: str,
        upstream_status: Optional[int] = None,
        upstream_body: object = None,
    ):
        super().__init__(message)
        self.upstream_status = upstream_status
        self.upstream_body = upstream_body


class TokenFetchError(UpstreamError):
    """The token authority rejected the request or could not be reached."""


class ConsultationDispatchError(UpstreamError):
    """The balance provider refused or failed the outbound consultation."""


class IdentityProviderError(UpstreamError):
    """The identity provider failed an admin operation."""


class NotFoundError(PortalError):
    status_code = 404


class StorageError(PortalError):
    status_code = 500


def upstream_message(response) -> str:
    """Best human-readable message from an upstream ``httpx.Response`` error."""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        for key in ("message", "error_description", "msg", "error"):
            if body.get(key):
                return str(body[key])
    return response.text or f"HTTP {response.status_code}"

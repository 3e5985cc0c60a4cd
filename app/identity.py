"""
Identity provider client (Supabase Auth / GoTrue REST API).

Only what the portal needs: resolve a bearer token to a user, and the admin
create/delete user calls.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from app.errors import ConfigurationError, IdentityProviderError, upstream_message

logger = logging.getLogger(__name__)


@dataclass
class IdentityUser:
    id: str
    email: Optional[str] = None


class IdentityProvider:
    def __init__(
        self,
        base_url: str,
        service_key: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30.0,
    ):
        self._base_url = base_url.rstrip("/")
        self._service_key = service_key
        self._transport = transport
        self._timeout = timeout

    def _client(self) -> httpx.AsyncClient:
        if not self._base_url or not self._service_key:
            raise ConfigurationError("SUPABASE_URL and SUPABASE_SERVICE_KEY must be configured")
        return httpx.AsyncClient(
            base_url=f"{self._base_url}/auth/v1",
            transport=self._transport,
            timeout=self._timeout,
            headers={"apikey": self._service_key},
        )

    def _admin_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._service_key}"}

    async def get_user(self, token: str) -> Optional[IdentityUser]:
        """User owning ``token``, or None when the token is rejected."""
        try:
            async with self._client() as client:
                response = await client.get("/user", headers={"Authorization": f"Bearer {token}"})
        except httpx.HTTPError as exc:
            raise IdentityProviderError(f"Identity provider unreachable: {exc}") from exc

        if response.status_code in (401, 403, 404):
            return None
        if response.is_error:
            raise IdentityProviderError(
                upstream_message(response), upstream_status=response.status_code
            )
        body = response.json()
        if not body.get("id"):
            return None
        return IdentityUser(id=body["id"], email=body.get("email"))

    async def create_user(self, email: str, password: str) -> IdentityUser:
        try:
            async with self._client() as client:
                response = await client.post(
                    "/admin/users",
                    json={"email": email, "password": password, "email_confirm": True},
                    headers=self._admin_headers(),
                )
        except httpx.HTTPError as exc:
            raise IdentityProviderError(f"Identity provider unreachable: {exc}") from exc

        if response.is_error:
            message = upstream_message(response)
            logger.error("Error creating user in auth: %s", message)
            raise IdentityProviderError(message, upstream_status=response.status_code)
        body = response.json()
        return IdentityUser(id=body["id"], email=body.get("email", email))

    async def delete_user(self, user_id: str) -> None:
        try:
            async with self._client() as client:
                response = await client.delete(
                    f"/admin/users/{user_id}", headers=self._admin_headers()
                )
        except httpx.HTTPError as exc:
            raise IdentityProviderError(f"Identity provider unreachable: {exc}") from exc

        if response.is_error:
            message = upstream_message(response)
            logger.error("Error deleting user %s from auth: %s", user_id, message)
            raise IdentityProviderError(message, upstream_status=response.status_code)

from __future__ import annotations

import logging
import os
from typing import Any

import httpx

from dremioclone.core.api import ClusterConnection
from dremioclone.core.errors import RemoteCallError
from dremioclone.core.models import JsonObject

logger = logging.getLogger(__name__)


def _raise_for_status(response: httpx.Response) -> httpx.Response:
    """Raise RemoteCallError if the response indicates an error."""
    if 400 <= response.status_code < 600:
        try:
            body = response.json()
            details = body.get("errorMessage") or body.get("message") or response.text
        except (ValueError, AttributeError):
            details = response.text
        raise RemoteCallError(
            response.status_code,
            f"{'Client' if response.status_code < 500 else 'Server'} error for "
            f"{response.request.method} {response.url}: {str(details)[:500]}",
        )
    return response


def _data_list(payload: Any, key: str = "data") -> list[dict[str, Any]]:
    """Unwrap `{"data": [...]}` style list responses."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        return list(payload.get(key) or [])
    return []


class DremioAdapter:
    """Adapter around the Dremio REST API (catalog, users, sources)."""

    _TIMEOUT_ENV = "DREMIO_CLONE_TIMEOUT"
    _DEFAULT_TIMEOUT_SECONDS = 60.0

    def __init__(
        self,
        connection: ClusterConnection,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Create an unauthenticated adapter; call `login` before catalog calls."""
        self.connection = connection
        self._token: str | None = None
        self._client = httpx.AsyncClient(
            base_url=connection.base_url,
            timeout=httpx.Timeout(self._timeout_seconds()),
            transport=transport,
            follow_redirects=True,
        )

    @classmethod
    def _timeout_seconds(cls) -> float:
        """Return request timeout in seconds, honoring env override."""
        raw = os.getenv(cls._TIMEOUT_ENV)
        if raw is None:
            return cls._DEFAULT_TIMEOUT_SECONDS
        try:
            value = float(raw)
        except ValueError:
            return cls._DEFAULT_TIMEOUT_SECONDS
        return value if value > 0 else cls._DEFAULT_TIMEOUT_SECONDS

    def _headers(self) -> dict[str, str]:
        # Dremio expects the literal "_dremionull" before a session exists
        token = self._token if self._token is not None else "null"
        return {"Authorization": f"_dremio{token}"}

    async def _request(
        self, method: str, path: str, json_data: Any | None = None
    ) -> Any:
        logger.debug("%s %s", method, path)
        response = await self._client.request(
            method, path, json=json_data, headers=self._headers()
        )
        _raise_for_status(response)
        if not response.content:
            return {}
        return response.json()

    async def login(self, user_name: str, password: str) -> None:
        """Open a session; subsequent calls are made as this user."""
        payload = await self._request(
            "POST", "/apiv2/login", {"userName": user_name, "password": password}
        )
        token = payload.get("token") if isinstance(payload, dict) else None
        if not token:
            raise RemoteCallError(500, "Login response did not contain a token.")
        self._token = str(token)

    async def create_first_user(self, user: JsonObject, password: str) -> dict[str, Any]:
        """Create the initial admin of a freshly installed cluster (no session needed)."""
        body = dict(user)
        body["password"] = password
        return await self._request("PUT", "/apiv2/bootstrap/firstuser", body)

    async def get_top_level_containers(self) -> list[dict[str, Any]]:
        return _data_list(await self._request("GET", "/api/v3/catalog"))

    async def get_entity(self, entity_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/api/v3/catalog/{entity_id}")

    async def create_entity(self, entity: JsonObject) -> dict[str, Any]:
        return await self._request("POST", "/api/v3/catalog", dict(entity))

    async def get_users(self) -> list[dict[str, Any]]:
        users = _data_list(await self._request("GET", "/apiv2/users/all"), key="users")
        # the v2 listing nests identity fields under userConfig
        return [dict(u.get("userConfig") or u) for u in users]

    async def create_user(self, user: JsonObject, password: str) -> dict[str, Any]:
        body = dict(user)
        body.setdefault("name", body.get("userName"))
        body["password"] = password
        return await self._request("POST", "/api/v3/user", body)

    async def get_sources(self) -> list[dict[str, Any]]:
        return _data_list(await self._request("GET", "/api/v3/source"))

    async def create_source(self, source: JsonObject) -> dict[str, Any]:
        return await self._request("POST", "/api/v3/source", dict(source))

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> DremioAdapter:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

"""Authentication helpers for Dremio clusters.

This module centralizes creation of authenticated cluster sessions and
applies small normalization rules to the configured host (scheme, port and
trailing slashes are stripped) so a pasted URL still works.
"""

from __future__ import annotations

import re
from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx

from dremioclone.core.adapters.dremio import DremioAdapter
from dremioclone.core.api import DEFAULT_PORT, ClusterAPI, ClusterConnection
from dremioclone.core.errors import CloneError, RemoteCallError
from dremioclone.core.models import JsonObject, Login


class AuthError(CloneError):
    """Raised when logging in to a cluster fails."""


def _format_auth_error(message: str, user_name: str, connection: ClusterConnection) -> str:
    """Return a user-friendly auth error message."""
    if re.search(r"\b401\b", message):
        return (
            f"Login as '{user_name}' on {connection.base_url} was rejected. "
            "Check the user name and password."
        )
    return f"Could not log in to {connection.base_url}: {message}"


def _sanitize_host(host: str) -> str:
    """
    Normalize a coordinator host name.

    - Removes a scheme prefix (e.g. 'https://')
    - Removes any path and trailing slashes
    - Removes a ':port' suffix (the port is configured separately)
    """
    host = host.strip()
    host = re.sub(r"^[a-zA-Z][a-zA-Z0-9+.-]*://", "", host)
    host = host.split("/", 1)[0]
    return host.rsplit(":", 1)[0] if re.search(r":\d+$", host) else host


def make_connection(host: str, port: int = DEFAULT_PORT, ssl: bool = False) -> ClusterConnection:
    """Build a ClusterConnection from user input."""
    host = _sanitize_host(host)
    if not host:
        raise ValueError("Cluster host must not be empty.")
    return ClusterConnection(host=host, port=port, ssl=ssl)


class DremioConnector:
    """Opens sessions against a cluster given by a ClusterConnection."""

    def __init__(self, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._transport = transport

    async def create_first_user(
        self, connection: ClusterConnection, user: JsonObject, password: str
    ) -> None:
        """Bootstrap the first (admin) user of an empty cluster."""
        async with DremioAdapter(connection, transport=self._transport) as adapter:
            await adapter.create_first_user(user, password)

    @asynccontextmanager
    async def session(
        self, connection: ClusterConnection, login: Login
    ) -> AsyncIterator[ClusterAPI]:
        """
        Log in and yield an authenticated API; the session is closed on exit.

        Raises:
            AuthError: If the cluster rejects the login or cannot be reached.
        """
        async with DremioAdapter(connection, transport=self._transport) as adapter:
            try:
                await adapter.login(login.user_name, login.password)
            except (RemoteCallError, httpx.HTTPError) as exc:
                raise AuthError(
                    _format_auth_error(str(exc), login.user_name, connection)
                ) from exc
            yield adapter

"""Interface of the cluster API consumed by the replication engine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from dremioclone.core.models import JsonObject

DEFAULT_PORT = 9047


@dataclass(frozen=True)
class ClusterConnection:
    """Where a cluster's coordinator listens."""

    host: str
    port: int = DEFAULT_PORT
    ssl: bool = False

    @property
    def base_url(self) -> str:
        scheme = "https" if self.ssl else "http"
        return f"{scheme}://{self.host}:{self.port}"


class ClusterAPI(Protocol):
    """Catalog, user and source operations of an authenticated cluster session."""

    async def get_top_level_containers(self) -> list[dict[str, Any]]:
        """Return summaries of the top-level containers (spaces, homes, sources)."""
        ...

    async def get_entity(self, entity_id: str) -> dict[str, Any]:
        """Return the full catalog entity (with `children` summaries for containers)."""
        ...

    async def create_entity(self, entity: JsonObject) -> dict[str, Any]:
        """Create a catalog entity (space, folder or dataset)."""
        ...

    async def get_users(self) -> list[dict[str, Any]]:
        ...

    async def create_user(self, user: JsonObject, password: str) -> dict[str, Any]:
        ...

    async def get_sources(self) -> list[dict[str, Any]]:
        ...

    async def create_source(self, source: JsonObject) -> dict[str, Any]:
        ...

"""Capture and replay of cluster state.

`capture` reads users, sources and the full catalog of a cluster into a
`ClusterState`. `replay` recreates a captured state on another cluster in
four strictly ordered phases:

  1. users (optionally bootstrapping the first admin user),
  2. sources, with out-of-band credentials merged into their config,
  3. containers and non-SQL datasets, parents before children,
  4. SQL datasets, layer by layer in dependency order.

Within a batch every creation call is issued at once and awaited together.
Each creation is a single attempt. A failure either aborts the whole replay
(`fail_on_error=True`) or is reported and replay carries on with the other
entities, including the children of a container that failed.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from contextlib import AsyncExitStack
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable, Protocol, Sequence, TextIO

from dremioclone.core.api import ClusterAPI, ClusterConnection
from dremioclone.core.auth import DremioConnector
from dremioclone.core.credentials import SourceCredentials, inject_source_credentials
from dremioclone.core.dependencies import blocked_datasets, dependency_layers
from dremioclone.core.errors import ConfigurationError, UnexpectedEntityError
from dremioclone.core.forest import CatalogPartition, ForestNode, partition_catalog
from dremioclone.core.models import (
    CatalogEntity,
    ClusterState,
    Dataset,
    ExistingUser,
    Login,
    Source,
)
from dremioclone.core.sanitize import expunge_server_fields
from dremioclone.core.sql import extract_dependencies

logger = logging.getLogger(__name__)

_EXPANDED_CONTAINERS = frozenset({"SPACE", "FOLDER", "HOME"})
_CONTAINER_ENTITY_TYPES = frozenset({"space", "folder", "home"})


# ---------------------------------------------------------------------------
# capture
# ---------------------------------------------------------------------------


async def _expand_summary(api: ClusterAPI, summary: dict[str, Any]) -> list[dict[str, Any]]:
    """Fetch one catalog item and, for containers, everything below it (post-order)."""
    item_type = summary.get("type")
    if item_type == "CONTAINER":
        container_type = summary.get("containerType")
        if container_type == "SOURCE":
            # source content is represented by the source definition only
            return []
        if container_type not in _EXPANDED_CONTAINERS:
            raise UnexpectedEntityError(f"Unexpected container type: {container_type!r}")

        entity = await api.get_entity(summary["id"])
        if entity.get("entityType") not in _CONTAINER_ENTITY_TYPES:
            raise UnexpectedEntityError(
                f"Unexpected entity type {entity.get('entityType')!r} "
                f"for container {summary.get('path')}"
            )
        children = entity.get("children")
        if not children:
            return [entity]
        nested = await asyncio.gather(*(_expand_summary(api, c) for c in children))
        return [e for part in nested for e in part] + [entity]

    if item_type == "FILE":
        logger.debug("Not capturing uploaded file %s", summary.get("path"))
        return []

    return [await api.get_entity(summary["id"])]


async def capture_catalog(api: ClusterAPI) -> list[dict[str, Any]]:
    """Return every catalog entity below the top-level containers, flattened."""
    summaries = await api.get_top_level_containers()
    parts = await asyncio.gather(*(_expand_summary(api, s) for s in summaries))
    return [e for part in parts for e in part]


async def capture(api: ClusterAPI) -> ClusterState:
    """Capture users, sources and catalog of a cluster."""
    logger.info("Capturing cluster state")
    users, catalog, sources = await asyncio.gather(
        api.get_users(), capture_catalog(api), api.get_sources()
    )
    logger.info(
        "Captured %d users, %d catalog entities, %d sources",
        len(users),
        len(catalog),
        len(sources),
    )
    return ClusterState(users=tuple(users), catalog=tuple(catalog), sources=tuple(sources))


# ---------------------------------------------------------------------------
# progress reporting
# ---------------------------------------------------------------------------


class ReplayListener(Protocol):
    """Receives one callback per creation attempt."""

    def created(self, kind: str, name: str) -> None:
        ...

    def failed(self, kind: str, name: str, error: BaseException) -> None:
        ...


class StreamReplayListener:
    """Writes progress lines to `out` and error lines to `err` (if given)."""

    def __init__(self, out: TextIO | None = None, err: TextIO | None = None) -> None:
        self.out = out if out is not None else sys.stdout
        self.err = err

    def created(self, kind: str, name: str) -> None:
        self.out.write(f"Created {kind}: {name}\n")

    def failed(self, kind: str, name: str, error: BaseException) -> None:
        if self.err is None:
            return
        self.err.write(f"Error whilst creating {kind}: {name}\n")
        self.err.write(f"{error}\n")


@dataclass(frozen=True)
class ReplayFailure:
    """A creation attempt rejected by the target cluster."""

    kind: str
    name: str
    error: str


@dataclass(frozen=True)
class SkippedEntity:
    """An entity that was deliberately not replayed."""

    kind: str
    name: str
    reason: str


@dataclass
class ReplayReport:
    """Outcome of a replay."""

    created: list[tuple[str, str]] = field(default_factory=list)
    failed: list[ReplayFailure] = field(default_factory=list)
    skipped: list[SkippedEntity] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


# ---------------------------------------------------------------------------
# replay
# ---------------------------------------------------------------------------


class _Replayer:
    """Issues creation calls and applies the fail-fast / continue policy."""

    def __init__(
        self,
        listener: ReplayListener,
        fail_on_error: bool,
        max_concurrency: int | None,
    ) -> None:
        self.listener = listener
        self.fail_on_error = fail_on_error
        self.report = ReplayReport()
        self.aborted = False
        self._abort_error: BaseException | None = None
        self._limit = asyncio.Semaphore(max_concurrency) if max_concurrency else None

    async def attempt(self, kind: str, name: str, call: Callable[[], Awaitable[Any]]) -> bool:
        """Run one creation call; returns True on success."""
        if self.aborted:
            return False
        try:
            if self._limit is None:
                await call()
            else:
                async with self._limit:
                    if self.aborted:
                        return False
                    await call()
        except Exception as exc:
            if self.fail_on_error:
                if not self.aborted:
                    self.aborted = True
                    self._abort_error = exc
                raise
            logger.debug("Creating %s %s failed: %s", kind, name, exc)
            self.report.failed.append(ReplayFailure(kind=kind, name=name, error=str(exc)))
            self.listener.failed(kind, name, exc)
            return False
        self.report.created.append((kind, name))
        self.listener.created(kind, name)
        return True

    async def gather(self, calls: Iterable[Awaitable[Any]]) -> None:
        """Await a batch; every call settles before the first abort error is raised."""
        results = await asyncio.gather(*calls, return_exceptions=True)
        if self._abort_error is not None:
            raise self._abort_error
        for result in results:
            if isinstance(result, BaseException):
                raise result

    async def users(
        self,
        api: ClusterAPI,
        users: Sequence[ExistingUser],
        logins: Sequence[Login],
        exclude: str | None = None,
    ) -> None:
        passwords = {login.user_name: login.password for login in logins}
        batch = [
            u for u in users if u.user_name != exclude and u.user_name in passwords
        ]
        for u in users:
            if u.user_name != exclude and u.user_name not in passwords:
                logger.warning("No login supplied for user %s; not creating it", u.user_name)
        logger.info("Creating %d users", len(batch))
        await self.gather(
            self.attempt(
                "user",
                u.user_name,
                lambda u=u: api.create_user(u.payload, passwords[u.user_name]),
            )
            for u in batch
        )

    async def sources(
        self,
        api: ClusterAPI,
        sources: Sequence[Source],
        credentials: SourceCredentials,
    ) -> None:
        logger.info("Creating %d sources", len(sources))
        merged = [inject_source_credentials(s, credentials) for s in sources]
        await self.gather(
            self.attempt("source", s.name, lambda s=s: api.create_source(s.payload))
            for s in merged
        )

    async def _entity(self, api: ClusterAPI, entity: CatalogEntity) -> bool:
        return await self.attempt(
            entity.entity_type.value,
            entity.display_name,
            lambda: api.create_entity(entity.payload),
        )

    async def _node(self, api: ClusterAPI, node: ForestNode) -> None:
        if node.entity is not None:
            await self._entity(api, node.entity)
        if self.aborted:
            return
        await self.gather(self._node(api, child) for child in node.children.values())

    async def forest(self, api: ClusterAPI, partition: CatalogPartition) -> None:
        roots = partition.replayable_roots()
        logger.info("Creating catalog tree under %d spaces", len(roots))
        await self.gather(self._node(api, root) for root in roots.values())

    async def layers(self, api: ClusterAPI, layers: Sequence[Sequence[Dataset]]) -> None:
        for depth, layer in enumerate(layers):
            if self.aborted:
                return
            logger.info("Creating %d SQL datasets at dependency depth %d", len(layer), depth)
            await self.gather(self._entity(api, ds) for ds in layer)


def _skipped_entities(partition: CatalogPartition) -> list[SkippedEntity]:
    skipped = [
        SkippedEntity(e.entity_type.value, e.display_name, "home space content")
        for e in partition.unreplayable
    ]
    for record in blocked_datasets(partition.sql_datasets):
        if record.entity.is_home_scoped:
            continue
        skipped.append(
            SkippedEntity("dataset", record.entity.display_name, record.depth.reason)
        )
    return skipped


def _find_login(logins: Sequence[Login], user_name: str) -> Login | None:
    return next((login for login in logins if login.user_name == user_name), None)


async def replay(
    state: ClusterState,
    source_credentials: SourceCredentials,
    fail_on_error: bool,
    target: ClusterConnection | ClusterAPI,
    logins: Sequence[Login] | None = None,
    admin_user_name: str | None = None,
    bootstrap_first_user: bool = False,
    *,
    listener: ReplayListener | None = None,
    connector: DremioConnector | None = None,
    extract: Callable[[str], list[list[str]]] = extract_dependencies,
    max_concurrency: int | None = None,
) -> ReplayReport:
    """
    Recreate a captured cluster state on a target cluster.

    Args:
        state: Snapshot as captured (server-assigned fields are removed here).
        source_credentials: Source name -> config fields to merge in.
        fail_on_error: Abort on the first failed creation instead of continuing.
        target: Either connection details of the target, or an already
            authenticated API. Users are bootstrapped/logged in only for a
            connection.
        logins: User name/password pairs; only users with a login are created.
        admin_user_name: User to authenticate as (required with a connection).
        bootstrap_first_user: Create the admin as the cluster's first user.
        listener: Receives progress and error lines (defaults to stdout/stderr).
        connector: Opens sessions for a connection target.
        extract: SQL dependency extractor.
        max_concurrency: Optional cap on outstanding creation calls.

    Returns:
        A ReplayReport listing created, failed and skipped entities.

    Raises:
        ConfigurationError: If the admin login or admin user is missing
            (before anything is created).
        Exception: The first creation error when `fail_on_error` is set.
    """
    sanitized = ClusterState.from_dict(expunge_server_fields(state.to_dict()))
    users = sanitized.existing_users()
    sources = sanitized.source_list()
    partition = partition_catalog(sanitized.catalog_entities(), extract)
    layers = dependency_layers(partition.sql_datasets)
    logins = list(logins or ())

    runner = _Replayer(
        listener or StreamReplayListener(sys.stdout, sys.stderr),
        fail_on_error,
        max_concurrency,
    )
    runner.report.skipped.extend(_skipped_entities(partition))
    for skipped in runner.report.skipped:
        logger.warning("Not replaying %s %s: %s", skipped.kind, skipped.name, skipped.reason)

    async with AsyncExitStack() as stack:
        if isinstance(target, ClusterConnection):
            if not admin_user_name:
                raise ConfigurationError("An admin user name is required to log in.")
            admin_login = _find_login(logins, admin_user_name)
            if admin_login is None:
                raise ConfigurationError(
                    f"Admin user {admin_user_name} is not in the list of user credentials"
                )
            admin_user = next((u for u in users if u.user_name == admin_user_name), None)
            if bootstrap_first_user and admin_user is None:
                raise ConfigurationError(
                    f"Admin user {admin_user_name} is not in the list of cluster users"
                )

            connector = connector or DremioConnector()
            if bootstrap_first_user:
                await runner.attempt(
                    "first user",
                    admin_user_name,
                    lambda: connector.create_first_user(
                        target, admin_user.payload, admin_login.password
                    ),
                )
            api = await stack.enter_async_context(connector.session(target, admin_login))
            await runner.users(
                api,
                users,
                logins,
                exclude=admin_user_name if bootstrap_first_user else None,
            )
        else:
            api = target
            if logins:
                await runner.users(api, users, logins)

        await runner.sources(api, sources, source_credentials)
        await runner.forest(api, partition)
        await runner.layers(api, layers)

    report = runner.report
    logger.info(
        "Replay finished: %d created, %d failed, %d skipped",
        len(report.created),
        len(report.failed),
        len(report.skipped),
    )
    return report

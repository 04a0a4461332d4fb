"""Core domain models for cluster state.

A snapshot keeps every captured object as the raw JSON mapping returned by
the cluster, so it can be written back verbatim. The typed classes below are
views over those mappings: they expose what the replication engine needs
(paths, names, SQL text, source config) and keep the payload that is sent
back to the target cluster.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from dremioclone.core.errors import UnexpectedEntityError

JsonObject = Mapping[str, Any]


class EntityType(str, Enum):
    """Catalog entity kinds, as found in the `entityType` attribute."""

    HOME = "home"
    SPACE = "space"
    FOLDER = "folder"
    DATASET = "dataset"


@dataclass(frozen=True)
class CatalogEntity(ABC):
    """
    Base class of the catalog entity variants.

    Attributes:
        path: Ordered name segments identifying the entity.
        name: Display name (last path segment, or the space/home name).
        payload: Raw entity object, sent as-is to `create_entity`.
    """

    path: tuple[str, ...]
    name: str
    payload: JsonObject = field(repr=False, compare=False)

    @property
    @abstractmethod
    def entity_type(self) -> EntityType:
        """Kind of entity, one per concrete variant."""

    @property
    def display_name(self) -> str:
        """Name used in progress and error lines."""
        return path_to_string(self.path)

    @property
    def is_home_scoped(self) -> bool:
        """True when the entity lives in a personal home space (`@user`)."""
        return bool(self.path) and self.path[0].startswith("@")


@dataclass(frozen=True)
class Home(CatalogEntity):
    """A per-user home space. Implicit on every cluster, never replayed."""

    @property
    def entity_type(self) -> EntityType:
        return EntityType.HOME

    @property
    def display_name(self) -> str:
        return self.name


@dataclass(frozen=True)
class Space(CatalogEntity):
    """A top-level space."""

    @property
    def entity_type(self) -> EntityType:
        return EntityType.SPACE

    @property
    def display_name(self) -> str:
        return self.name


@dataclass(frozen=True)
class Folder(CatalogEntity):
    """A folder inside a space (or home)."""

    @property
    def entity_type(self) -> EntityType:
        return EntityType.FOLDER


@dataclass(frozen=True)
class Dataset(CatalogEntity):
    """A dataset. Virtual when `sql` is set, physical/promoted otherwise."""

    sql: str | None = None

    @property
    def entity_type(self) -> EntityType:
        return EntityType.DATASET

    @property
    def is_virtual(self) -> bool:
        return bool(self.sql)


@dataclass(frozen=True)
class ExistingUser:
    """A captured user. Carries identity fields only, never a password."""

    user_name: str
    payload: JsonObject = field(repr=False, compare=False)


@dataclass(frozen=True)
class Login:
    """A username/password pair supplied at replay time."""

    user_name: str
    password: str = field(repr=False)

    @classmethod
    def from_dict(cls, raw: JsonObject) -> Login:
        return cls(user_name=str(raw["userName"]), password=str(raw["password"]))

    def to_dict(self) -> dict[str, str]:
        return {"userName": self.user_name, "password": self.password}


@dataclass(frozen=True)
class Source:
    """A data source definition. `config` shape depends on `type`."""

    name: str
    type: str | None
    config: JsonObject
    payload: JsonObject = field(repr=False, compare=False)

    def with_config(self, config: JsonObject) -> Source:
        """Return a copy whose config (and payload config) is replaced."""
        payload = dict(self.payload)
        payload["config"] = dict(config)
        return Source(name=self.name, type=self.type, config=dict(config), payload=payload)


@dataclass(frozen=True)
class ClusterState:
    """
    Snapshot of a cluster: users, flat catalog list and sources.

    All three collections hold the raw objects exactly as captured.
    """

    users: tuple[JsonObject, ...] = ()
    catalog: tuple[JsonObject, ...] = ()
    sources: tuple[JsonObject, ...] = ()

    @classmethod
    def from_dict(cls, raw: JsonObject) -> ClusterState:
        """
        Build a state from the snapshot document shape.

        Raises:
            ValueError: If a collection is not a list of JSON objects.
        """
        return cls(
            users=_objects(raw, "users"),
            catalog=_objects(raw, "catalog"),
            sources=_objects(raw, "sources"),
        )

    def to_dict(self) -> dict[str, list[Any]]:
        return {
            "users": [dict(u) for u in self.users],
            "catalog": [dict(e) for e in self.catalog],
            "sources": [dict(s) for s in self.sources],
        }

    def catalog_entities(self) -> list[CatalogEntity]:
        return [parse_entity(e) for e in self.catalog]

    def existing_users(self) -> list[ExistingUser]:
        return [parse_user(u) for u in self.users]

    def source_list(self) -> list[Source]:
        return [parse_source(s) for s in self.sources]


def _objects(raw: JsonObject, key: str) -> tuple[JsonObject, ...]:
    items = raw.get(key) or ()
    if not isinstance(items, (list, tuple)):
        raise ValueError(f"'{key}' must be a list, got {type(items).__name__}")
    for index, item in enumerate(items):
        if not isinstance(item, Mapping):
            raise ValueError(f"{key}[{index}] must be an object, got {item!r}")
    return tuple(items)


def path_to_string(path: tuple[str, ...] | list[str]) -> str:
    """
    Render a path in dotted form.

    Segments that contain a dot are double-quoted so the rendering stays
    unambiguous, e.g. `("a", "b.c")` -> `a."b.c"`.
    """
    return ".".join(f'"{p}"' if "." in p else p for p in path)


def parse_entity(raw: JsonObject) -> CatalogEntity:
    """
    Turn a raw catalog object into its typed variant.

    Raises:
        UnexpectedEntityError: If `entityType` is missing or unknown.
    """
    raw_type = raw.get("entityType")
    try:
        entity_type = EntityType(raw_type)
    except ValueError as exc:
        raise UnexpectedEntityError(
            f"Unexpected catalog entity type: {raw_type!r}"
        ) from exc

    path = tuple(str(p) for p in raw.get("path") or ())
    name = str(raw.get("name") or (path[-1] if path else ""))

    if entity_type is EntityType.SPACE:
        return Space(path=path or (name,), name=name, payload=raw)
    if entity_type is EntityType.HOME:
        return Home(path=path or (name,), name=name, payload=raw)
    if entity_type is EntityType.FOLDER:
        return Folder(path=path, name=name, payload=raw)
    if entity_type is EntityType.DATASET:
        return Dataset(path=path, name=name, payload=raw, sql=raw.get("sql") or None)
    raise UnexpectedEntityError(f"Unexpected catalog entity type: {raw_type!r}")


def parse_user(raw: JsonObject) -> ExistingUser:
    """Read a captured user; accepts both `userName` and `name` keys."""
    user_name = raw.get("userName") or raw.get("name")
    if not user_name:
        raise ValueError("Captured user has no userName.")
    return ExistingUser(user_name=str(user_name), payload=raw)


def parse_source(raw: JsonObject) -> Source:
    name = raw.get("name")
    if not name:
        raise ValueError("Captured source has no name.")
    return Source(
        name=str(name),
        type=raw.get("type"),
        config=dict(raw.get("config") or {}),
        payload=raw,
    )

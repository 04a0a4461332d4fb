"""Dependency ordering of SQL-defined (virtual) datasets.

A virtual dataset can only be created once every view it selects from
exists. Each SQL dataset is given a depth:

    depth(x) = 0                                   if x has no dependencies
    depth(x) = max(depth(d) + 1 for d in deps(x))  otherwise

A dependency that is not a captured SQL dataset (a physical table, a
source-backed dataset, ...) is assumed to exist already and contributes 0.
A dataset that depends on an unreplayable dataset, directly or
transitively, or that sits on a dependency cycle, is blocked: it is left
out of replay and reported as skipped.

Datasets of equal depth form a layer. Layers are replayed in increasing
depth order; datasets within a layer are independent of each other.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Union

from dremioclone.core.models import Dataset, path_to_string

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Unresolved:
    """Depth not computed yet."""


@dataclass(frozen=True)
class Blocked:
    """Depth cannot be computed; the dataset is not replayed."""

    reason: str = "home space dataset"


@dataclass(frozen=True)
class ResolvedAt:
    """Resolved topological layer."""

    depth: int


Depth = Union[Unresolved, Blocked, ResolvedAt]


@dataclass
class SqlDatasetRecord:
    """A SQL dataset with the paths its SQL references and its resolved depth."""

    dependencies: tuple[tuple[str, ...], ...]
    entity: Dataset
    depth: Depth = field(default_factory=Unresolved)


def dataset_key(path: Iterable[str]) -> str:
    """Lookup key for a dataset path. Dataset paths resolve case-insensitively."""
    return path_to_string(tuple(path)).casefold()


def resolve_depths(records: Mapping[str, SqlDatasetRecord]) -> None:
    """Assign a depth to every record still Unresolved (in place)."""
    visiting: set[str] = set()

    def _resolve(key: str) -> Depth | None:
        record = records.get(key)
        if record is None:
            return None
        if not isinstance(record.depth, Unresolved):
            return record.depth
        if key in visiting:
            return Blocked(reason="dependency cycle")

        visiting.add(key)
        depth = 0
        for dep in record.dependencies:
            dep_depth = _resolve(dataset_key(dep))
            if isinstance(dep_depth, Blocked):
                record.depth = Blocked(
                    reason=f"depends on unresolvable dataset {path_to_string(dep)}"
                )
                logger.debug(
                    "Blocked dataset %s: %s",
                    record.entity.display_name,
                    record.depth.reason,
                )
                break
            if isinstance(dep_depth, ResolvedAt):
                depth = max(depth, dep_depth.depth + 1)
        else:
            record.depth = ResolvedAt(depth)
        visiting.discard(key)
        return record.depth

    for key in list(records):
        _resolve(key)


def dependency_layers(records: Mapping[str, SqlDatasetRecord]) -> list[list[Dataset]]:
    """
    Resolve depths and group the replayable SQL datasets by depth.

    Returns:
        Layers in increasing depth order, layer 0 first.
    """
    resolve_depths(records)
    by_depth: dict[int, list[Dataset]] = {}
    for record in records.values():
        if isinstance(record.depth, ResolvedAt):
            by_depth.setdefault(record.depth.depth, []).append(record.entity)
    return [by_depth[d] for d in sorted(by_depth)]


def blocked_datasets(records: Mapping[str, SqlDatasetRecord]) -> list[SqlDatasetRecord]:
    """Records that were resolved as Blocked."""
    return [r for r in records.values() if isinstance(r.depth, Blocked)]

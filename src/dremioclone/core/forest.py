"""Reconstruction of the catalog hierarchy from a flat entity list.

The catalog is captured as a flat list. Before replay it is split into:

- a forest of containers and non-SQL datasets, keyed by path segment, that is
  replayed top-down;
- SQL-defined datasets, which are ordered by their view dependencies instead
  (see `dremioclone.core.dependencies`);
- entities that cannot be replayed at all (home spaces and their content).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable

from dremioclone.core.dependencies import Blocked, SqlDatasetRecord, dataset_key
from dremioclone.core.errors import UnexpectedEntityError
from dremioclone.core.models import CatalogEntity, Dataset, Folder, Home, Space
from dremioclone.core.sql import extract_dependencies

logger = logging.getLogger(__name__)


@dataclass
class ForestNode:
    """
    One path segment of the catalog forest.

    `entity` is None for nodes that were only inferred from a descendant's
    path; such nodes are never created themselves.
    """

    entity: CatalogEntity | None = None
    children: dict[str, ForestNode] = field(default_factory=dict)

    def child(self, segment: str) -> ForestNode:
        """Return the child for `segment`, creating an empty node if needed."""
        node = self.children.get(segment)
        if node is None:
            node = ForestNode()
            self.children[segment] = node
        return node


@dataclass
class CatalogForest:
    """Rooted forest of catalog nodes; roots are spaces (or home spaces)."""

    roots: dict[str, ForestNode] = field(default_factory=dict)

    def insert(self, path: Iterable[str], entity: CatalogEntity) -> ForestNode:
        """Walk `path`, creating intermediate nodes, and attach `entity` at its end."""
        segments = list(path)
        if not segments:
            raise ValueError(f"Cannot place entity without a path: {entity!r}")
        node = self.roots.get(segments[0])
        if node is None:
            node = ForestNode()
            self.roots[segments[0]] = node
        for segment in segments[1:]:
            node = node.child(segment)
        node.entity = entity
        return node


@dataclass
class CatalogPartition:
    """Result of splitting the flat catalog for replay."""

    forest: CatalogForest = field(default_factory=CatalogForest)
    sql_datasets: dict[str, SqlDatasetRecord] = field(default_factory=dict)
    unreplayable: list[CatalogEntity] = field(default_factory=list)

    def replayable_roots(self) -> dict[str, ForestNode]:
        """Forest roots that are replayed; home-space roots are left out."""
        return {
            name: node
            for name, node in self.forest.roots.items()
            if not name.startswith("@")
        }


def partition_catalog(
    entities: Iterable[CatalogEntity],
    extract: Callable[[str], list[list[str]]] = extract_dependencies,
) -> CatalogPartition:
    """
    Split sanitized catalog entities into forest, SQL datasets and unreplayable.

    Args:
        entities: Typed catalog entities, in any order.
        extract: SQL dependency extractor (path lists from view SQL).

    Raises:
        UnexpectedEntityError: For an entity that is none of the known variants.
    """
    partition = CatalogPartition()

    for entity in entities:
        if isinstance(entity, Home):
            logger.debug("Skipping home space %s", entity.name)
            continue
        if isinstance(entity, Space):
            partition.forest.insert((entity.name,), entity)
            continue
        if isinstance(entity, Dataset):
            if entity.is_home_scoped:
                # home space datasets cannot be recreated
                partition.sql_datasets[dataset_key(entity.path)] = SqlDatasetRecord(
                    dependencies=(), entity=entity, depth=Blocked()
                )
                partition.unreplayable.append(entity)
                continue
            if entity.is_virtual:
                deps = tuple(tuple(p) for p in extract(entity.sql or ""))
                partition.sql_datasets[dataset_key(entity.path)] = SqlDatasetRecord(
                    dependencies=deps, entity=entity
                )
                continue
            partition.forest.insert(entity.path, entity)
            continue
        if isinstance(entity, Folder):
            if entity.is_home_scoped:
                partition.unreplayable.append(entity)
                continue
            partition.forest.insert(entity.path, entity)
            continue
        raise UnexpectedEntityError(f"Unexpected catalog entity: {entity!r}")

    logger.debug(
        "Partitioned catalog: %d roots, %d SQL datasets, %d unreplayable",
        len(partition.forest.roots),
        len(partition.sql_datasets),
        len(partition.unreplayable),
    )
    return partition

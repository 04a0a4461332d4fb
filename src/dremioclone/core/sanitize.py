"""Removal of server-assigned attributes from captured objects.

A snapshot is replayed as creation requests against another cluster, which
assigns its own identifiers and versions. Any identifier carried over from
the source cluster would collide with (or be rejected by) the target.
"""

from __future__ import annotations

from typing import Any

SERVER_ASSIGNED_FIELDS = frozenset(
    {"uid", "id", "tag", "version", "modifiedAt", "createdAt", "state"}
)


def expunge_server_fields(value: Any) -> Any:
    """
    Return a deep copy of `value` without server-assigned attributes.

    Every mapping at every nesting depth (lists included) loses the keys in
    SERVER_ASSIGNED_FIELDS. Primitive values are returned unchanged.
    """
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, (list, tuple)):
        return [expunge_server_fields(v) for v in value]
    if isinstance(value, dict) or hasattr(value, "items"):
        return {
            k: expunge_server_fields(v)
            for k, v in value.items()
            if k not in SERVER_ASSIGNED_FIELDS
        }
    return value

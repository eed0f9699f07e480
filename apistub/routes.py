"""Partition operations into route groups.

An operation belongs to the group named by the first segment of its path.
Paths whose first segment is a template parameter (or the root path) fall
back to the operation's first tag, then to the ``default`` group.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .naming import to_snake_case, unique_name
from .operations import OperationDescriptor

logger = logging.getLogger(__name__)

DEFAULT_GROUP = "default"

# Module names taken by the other generated artifacts
RESERVED_MODULES = {"types", "router", "__init__", "httpx", "annotations", "dispatch"}


@dataclass(frozen=True)
class RouteGroup:
    """Operations sharing a grouping key, rendered as one dispatcher module.

    ``prefix`` is set when at least one operation was grouped by its literal
    first path segment; ``fallback`` when at least one was grouped by tag and
    so cannot be found from the first segment alone.
    """

    key: str
    module: str
    operations: tuple[OperationDescriptor, ...]
    prefix: str | None = None
    fallback: bool = False


def path_segments(path: str) -> list[str]:
    """Split a path into segments, ignoring leading and trailing slashes."""
    stripped = path.strip("/")
    return stripped.split("/") if stripped else []


def is_parameter_segment(segment: str) -> bool:
    return segment.startswith("{") and segment.endswith("}")


def group_key(operation: OperationDescriptor) -> tuple[str, bool]:
    """Return (key, keyed_by_prefix) for an operation."""
    segments = path_segments(operation.path)
    if segments and segments[0] and not is_parameter_segment(segments[0]):
        return segments[0], True
    if operation.tags:
        return operation.tags[0], False
    return DEFAULT_GROUP, False


def group_operations(operations: list[OperationDescriptor]) -> list[RouteGroup]:
    """Group operations in order of first appearance."""
    members: dict[str, list[OperationDescriptor]] = {}
    by_prefix: dict[str, bool] = {}
    by_tag: dict[str, bool] = {}
    for operation in operations:
        key, keyed_by_prefix = group_key(operation)
        members.setdefault(key, []).append(operation)
        if keyed_by_prefix:
            by_prefix[key] = True
        else:
            by_tag[key] = True

    taken = set(RESERVED_MODULES)
    groups: list[RouteGroup] = []
    for key, ops in members.items():
        module = to_snake_case(key, fallback=DEFAULT_GROUP)
        if module in RESERVED_MODULES:
            module = f"{module}_routes"
        module = unique_name(module, taken)
        taken.add(module)
        groups.append(RouteGroup(
            key=key,
            module=module,
            operations=tuple(ops),
            prefix=key if by_prefix.get(key) else None,
            fallback=by_tag.get(key, False),
        ))
        logger.debug("Route group %s -> %s.py (%d operations)", key, module, len(ops))
    return groups

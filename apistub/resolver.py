"""Resolve $ref pointers inside one OpenAPI document.

Only intra-document pointers ("#/components/schemas/Pet") are supported.
The resolver keeps the chain of references currently being expanded so that
self-referential and mutually recursive schemas can be detected: resolving a
reference already on the chain returns a cyclic ResolvedRef instead of
failing, and the caller stops expanding there.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

from .errors import BrokenReferenceError, UnsupportedReferenceError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedRef:
    ref: str
    node: dict[str, Any]
    path: tuple[str, ...]
    cyclic: bool = False


def split_pointer(ref: str) -> list[str]:
    """Split an intra-document pointer into decoded segments."""
    if not isinstance(ref, str) or not ref.startswith("#"):
        raise UnsupportedReferenceError(str(ref))
    pointer = ref[1:]
    if not pointer:
        return []
    if not pointer.startswith("/"):
        raise BrokenReferenceError(ref, "pointer must start with '#/'")
    return [seg.replace("~1", "/").replace("~0", "~") for seg in pointer[1:].split("/")]


class ReferenceResolver:
    """Resolves references against the document it was created with."""

    def __init__(self, document: dict[str, Any]) -> None:
        self.document = document
        self._chain: list[str] = []
        self._cache: dict[str, dict[str, Any]] = {}

    @property
    def chain(self) -> tuple[str, ...]:
        return tuple(self._chain)

    def resolve(self, ref: str) -> ResolvedRef:
        """Resolve ``ref`` to its target node."""
        node = self._lookup(ref)
        return ResolvedRef(
            ref=ref,
            node=node,
            path=tuple(self._chain) + (ref,),
            cyclic=ref in self._chain,
        )

    @contextmanager
    def visiting(self, ref: str) -> Iterator[None]:
        """Mark ``ref`` as being expanded for the duration of the block."""
        self._chain.append(ref)
        try:
            yield
        finally:
            self._chain.pop()

    def resolve_node(self, node: Any) -> Any:
        """Follow $ref chains on a non-schema object (parameter, response, ...)."""
        seen: list[str] = []
        while isinstance(node, dict) and "$ref" in node:
            ref = node["$ref"]
            if ref in seen:
                raise BrokenReferenceError(ref, "reference loop: " + " -> ".join(seen + [ref]))
            seen.append(ref)
            node = self._lookup(ref)
        return node

    def _lookup(self, ref: str) -> dict[str, Any]:
        if ref in self._cache:
            return self._cache[ref]

        node: Any = self.document
        for segment in split_pointer(ref):
            if isinstance(node, dict):
                if segment not in node:
                    raise BrokenReferenceError(ref, f"no entry {segment!r}")
                node = node[segment]
            elif isinstance(node, list):
                try:
                    node = node[int(segment)]
                except (ValueError, IndexError) as exc:
                    raise BrokenReferenceError(ref, f"bad index {segment!r}") from exc
            else:
                raise BrokenReferenceError(ref, f"cannot descend into {segment!r}")

        if not isinstance(node, dict):
            raise BrokenReferenceError(ref, "target is not an object")
        logger.debug("Resolved %s", ref)
        self._cache[ref] = node
        return node

"""Build the named type table for one document.

Every schema under components/schemas becomes a NamedType keyed by its $ref
string and named after its declaration. Object types nested anywhere else are
hoisted into their own NamedType (records cannot be declared inline), named
from the enclosing declaration or operation plus the field path. Names get a
numeric suffix on collision. Declaration order is the order in which names
were handed out, which only depends on the document's own ordering.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field, replace
from functools import cached_property
from typing import Any

from .loader import get_schemas
from .naming import clean_text, to_pascal_case, unique_name
from .normalizer import SchemaNormalizer
from .resolver import ReferenceResolver, split_pointer
from .type_nodes import (
    ArrayType,
    CanonicalTypeNode,
    EnumType,
    ObjectType,
    ReferenceHandle,
    UnionType,
    UnknownType,
)

logger = logging.getLogger(__name__)

SCHEMA_PREFIX = "#/components/schemas/"

# Pointer segments that describe schema structure rather than naming it
_STRUCTURAL_SEGMENTS = {
    "components",
    "schemas",
    "definitions",
    "$defs",
    "properties",
    "items",
    "allOf",
    "oneOf",
    "anyOf",
    "additionalProperties",
}


@dataclass(frozen=True)
class NamedType:
    id: str
    node: CanonicalTypeNode
    key: str
    origin: str
    description: str = ""


@dataclass(frozen=True)
class TypeGraph:
    """Named types in declaration order plus the source-key index."""

    types: tuple[NamedType, ...]
    index: dict[str, str] = field(default_factory=dict)

    def __iter__(self) -> Iterator[NamedType]:
        return iter(self.types)

    def __len__(self) -> int:
        return len(self.types)

    @cached_property
    def by_id(self) -> dict[str, NamedType]:
        return {named.id: named for named in self.types}

    def get(self, type_id: str) -> NamedType | None:
        return self.by_id.get(type_id)

    def id_for(self, key: str) -> str | None:
        """Return the declaration id for a $ref string or position key."""
        return self.index.get(key)

    def dereference(self, node: CanonicalTypeNode | None) -> CanonicalTypeNode | None:
        """Follow handles to a concrete node; None for a handle cycle."""
        seen: set[str] = set()
        while isinstance(node, ReferenceHandle):
            if node.target in seen:
                return None
            seen.add(node.target)
            named = self.by_id.get(node.target)
            node = named.node if named else None
        return node


def schema_ref(name: str) -> str:
    """Return the $ref string of a components/schemas entry."""
    return SCHEMA_PREFIX + name.replace("~", "~0").replace("/", "~1")


def name_from_pointer(ref: str) -> str:
    """Derive a declaration base name from a reference string."""
    segments = [s for s in split_pointer(ref) if s not in _STRUCTURAL_SEGMENTS]
    if not segments:
        return "Model"
    return "".join(to_pascal_case(s, fallback="") for s in segments) or "Model"


class TypeGraphBuilder:
    """Collects named types while schemas are normalized."""

    def __init__(
        self,
        document: dict[str, Any],
        resolver: ReferenceResolver | None = None,
        reserved: Iterable[str] = (),
    ) -> None:
        self.document = document
        self.resolver = resolver or ReferenceResolver(document)
        self.normalizer = SchemaNormalizer(self.resolver, self.name_for_ref)
        self.index: dict[str, str] = {}
        self._taken: set[str] = set(reserved)
        self._order: list[str] = []
        self._keys: dict[str, str] = {}
        self._origins: dict[str, str] = {}
        self._descriptions: dict[str, str] = {}
        self._nodes: dict[str, CanonicalTypeNode] = {}
        self._by_source: dict[int, str] = {}

    def name_for_ref(self, ref: str) -> str:
        """Return (reserving on first use) the declaration id for ``ref``."""
        if ref in self.index:
            return self.index[ref]
        tail = ref[len(SCHEMA_PREFIX):] if ref.startswith(SCHEMA_PREFIX) else ""
        if tail and "/" not in tail:
            base = tail.replace("~1", "/").replace("~0", "~")
        else:
            base = name_from_pointer(ref)
        return self._reserve(ref, base, "schema")

    def add_components(self) -> None:
        """Register and normalize every components/schemas entry."""
        schemas = get_schemas(self.document)
        refs = [schema_ref(str(name)) for name in schemas]
        # Names first, so declaration names win over inline names
        for ref in refs:
            self.name_for_ref(ref)
        for ref, raw in zip(refs, schemas.values()):
            ident = self.index[ref]
            if isinstance(raw, dict):
                self._descriptions[ident] = clean_text(raw.get("description", ""))
            self.normalizer.normalize({"$ref": ref})
            definition = self.normalizer.definitions.get(ident)
            if isinstance(definition, ObjectType) and definition.source is not None:
                self._by_source.setdefault(definition.source, ident)
        self._finalize_pending()
        logger.debug("Registered %d component schemas", len(refs))

    def add_inline(self, schema: Any, name: str, key: str) -> CanonicalTypeNode:
        """Normalize an operation-level schema, hoisting nested records.

        A record at the top of ``schema`` is declared as ``name``.
        """
        node = self.normalizer.normalize(schema, context=name)
        result = self._hoist(node, name, key)
        self._finalize_pending()
        return result

    def add_envelope(self, name: str, node: CanonicalTypeNode, key: str, description: str = "") -> str:
        """Declare a synthesized type (parameter or response envelope)."""
        ident = self._reserve(key, name, "envelope")
        self._nodes[ident] = node
        self._descriptions[ident] = description
        return ident

    def build(self) -> TypeGraph:
        """Return the finished graph."""
        self._finalize_pending()
        types = tuple(
            NamedType(
                id=ident,
                node=self._nodes.get(ident, UnknownType()),
                key=self._keys[ident],
                origin=self._origins[ident],
                description=self._descriptions.get(ident, ""),
            )
            for ident in self._order
        )
        return TypeGraph(types=types, index=dict(self.index))

    def _reserve(self, key: str, base: str, origin: str) -> str:
        ident = unique_name(to_pascal_case(base), self._taken)
        self._taken.add(ident)
        self.index[key] = ident
        self._keys[ident] = key
        self._origins[ident] = origin
        self._order.append(ident)
        return ident

    def _finalize_pending(self) -> None:
        index = 0
        while index < len(self._order):
            ident = self._order[index]
            if ident not in self._nodes and ident in self.normalizer.definitions:
                definition = self.normalizer.definitions[ident]
                self._nodes[ident] = self._hoist_members(definition, ident, self._keys[ident])
                if not self._descriptions.get(ident) and isinstance(definition, ObjectType):
                    self._descriptions[ident] = definition.description
            index += 1

    def _hoist(self, node: CanonicalTypeNode, name: str, key: str) -> CanonicalTypeNode:
        """Replace a nested record with a handle to its own declaration."""
        if isinstance(node, ObjectType) and node.fields:
            if node.source is not None and node.source in self._by_source:
                return ReferenceHandle(self._by_source[node.source])
            ident = self._reserve(key, name, "inline")
            if node.source is not None:
                self._by_source[node.source] = ident
            self._descriptions[ident] = node.description
            self._nodes[ident] = self._hoist_members(node, ident, key)
            return ReferenceHandle(ident)
        return self._hoist_members(node, name, key)

    def _hoist_members(self, node: CanonicalTypeNode, name: str, key: str) -> CanonicalTypeNode:
        if isinstance(node, ObjectType):
            fields = tuple(
                replace(f, node=self._hoist(
                    f.node,
                    name + to_pascal_case(f.name, fallback="Field"),
                    f"{key}/properties/{f.name}",
                ))
                for f in node.fields
            )
            additional = None
            if node.additional is not None:
                additional = self._hoist(
                    node.additional, name + "Value", f"{key}/additionalProperties"
                )
            return ObjectType(fields, additional, node.description, node.source)
        if isinstance(node, ArrayType):
            return ArrayType(self._hoist(node.element, name + "Item", f"{key}/items"))
        if isinstance(node, UnionType):
            node = self.normalizer.settle(node)
            variants = tuple(
                self._hoist(variant, name + self._variant_suffix(node, variant, index),
                            f"{key}/oneOf/{index}")
                for index, variant in enumerate(node.variants)
            )
            return UnionType(variants, node.discriminator)
        return node

    def _variant_suffix(self, union: UnionType, variant: CanonicalTypeNode, index: int) -> str:
        if union.discriminator and isinstance(variant, ObjectType):
            field = variant.field_named(union.discriminator)
            resolved = self.normalizer.dereference(field.node) if field else None
            if isinstance(resolved, EnumType) and len(resolved.values) == 1:
                tag = to_pascal_case(str(resolved.values[0]), fallback="")
                if tag:
                    return tag
        return f"Option{index + 1}"

"""Canonical type nodes.

The normalized, reference-free shape every schema is reduced to before
emission. Nodes are frozen and compare structurally; the type graph decides
identity separately (see type_graph.NamedType).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

# OpenAPI primitive type keywords
PRIMITIVE_KINDS = ("string", "integer", "number", "boolean", "null")


@dataclass(frozen=True)
class Primitive:
    kind: str
    format: str | None = None


@dataclass(frozen=True)
class Field:
    name: str
    node: "CanonicalTypeNode"
    required: bool = False
    description: str = field(default="", compare=False)


@dataclass(frozen=True)
class ObjectType:
    """A record. ``additional`` is the open-map trailer, if any."""

    fields: tuple[Field, ...] = ()
    additional: "CanonicalTypeNode | None" = None
    description: str = field(default="", compare=False)
    # id() of the raw mapping this object came from, used to share one
    # declaration between places that reuse the same parsed mapping.
    source: int | None = field(default=None, compare=False)

    def field_named(self, name: str) -> Field | None:
        for f in self.fields:
            if f.name == name:
                return f
        return None


@dataclass(frozen=True)
class ArrayType:
    element: "CanonicalTypeNode"


@dataclass(frozen=True)
class UnionType:
    variants: tuple["CanonicalTypeNode", ...]
    discriminator: str | None = None

    @property
    def discriminated(self) -> bool:
        return self.discriminator is not None


@dataclass(frozen=True)
class EnumType:
    values: tuple[Any, ...]


@dataclass(frozen=True)
class ReferenceHandle:
    """Points at a NamedType by id instead of owning the node."""

    target: str


@dataclass(frozen=True)
class UnknownType:
    pass


CanonicalTypeNode = Union[
    Primitive, ObjectType, ArrayType, UnionType, EnumType, ReferenceHandle, UnknownType
]

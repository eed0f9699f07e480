"""Reduce raw OpenAPI schemas to canonical type nodes.

Rules, in precedence order:
- $ref             -> ReferenceHandle to the target's named type
- allOf            -> merged ObjectType (fields must agree)
- oneOf/anyOf      -> UnionType, discriminated when every member carries a
                      distinct single-valued enum field with the same name
- enum/const       -> EnumType
- array            -> ArrayType
- object           -> ObjectType (+ open-map trailer for additionalProperties)
- type + format    -> Primitive
- anything else    -> UnknownType

``nullable: true`` and ``type: [..., "null"]`` add a null variant.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import replace
from typing import Any

from .errors import IncompatibleMergeError, UnsupportedCompositionError
from .naming import clean_text
from .resolver import ReferenceResolver
from .type_nodes import (
    PRIMITIVE_KINDS,
    ArrayType,
    CanonicalTypeNode,
    EnumType,
    Field,
    ObjectType,
    Primitive,
    ReferenceHandle,
    UnionType,
    UnknownType,
)

logger = logging.getLogger(__name__)

# Keywords that give a schema a shape; a schema with none of them only
# annotates (description, examples, required, ...).
_SHAPE_KEYWORDS = {
    "$ref",
    "allOf",
    "oneOf",
    "anyOf",
    "enum",
    "const",
    "type",
    "properties",
    "items",
    "additionalProperties",
}

_SCALARS = (str, int, float, bool, type(None))

_MISSING = object()


def _is_annotation_only(schema: Any) -> bool:
    return isinstance(schema, dict) and not (_SHAPE_KEYWORDS & schema.keys())


def _value_key(value: Any) -> tuple[str, Any]:
    # True == 1 in Python; enum members of different JSON types stay distinct
    return (type(value).__name__, value)


class SchemaNormalizer:
    """Normalizes schemas of one document.

    ``name_for_ref`` maps a reference string to the id of the named type that
    will hold its definition. Definitions of referenced schemas are memoized
    in ``definitions`` by that id.
    """

    def __init__(self, resolver: ReferenceResolver, name_for_ref: Callable[[str], str]) -> None:
        self.resolver = resolver
        self.name_for_ref = name_for_ref
        self.definitions: dict[str, CanonicalTypeNode] = {}
        self._deferred: dict[tuple[CanonicalTypeNode, ...], str | None] = {}

    def normalize(self, schema: Any, context: str = "<inline>") -> CanonicalTypeNode:
        """Return the canonical node for ``schema``."""
        if not isinstance(schema, dict):
            return UnknownType()
        node = self._normalize(schema, context)
        if schema.get("nullable") is True:
            node = _with_null(node)
        return node

    def dereference(self, node: CanonicalTypeNode | None) -> CanonicalTypeNode | None:
        """Follow handles to a concrete node; None while a target is still in progress."""
        seen: set[str] = set()
        while isinstance(node, ReferenceHandle):
            if node.target in seen:
                return None
            seen.add(node.target)
            node = self.definitions.get(node.target)
        return node

    def _normalize(self, schema: dict[str, Any], context: str) -> CanonicalTypeNode:
        if "$ref" in schema:
            return self._normalize_ref(schema["$ref"])
        if "allOf" in schema:
            return self._normalize_all_of(schema, context)
        for key in ("oneOf", "anyOf"):
            if key in schema:
                return self._normalize_union(schema, schema[key], context)
        if "enum" in schema:
            return self._normalize_enum(schema["enum"])
        if "const" in schema:
            return self._normalize_enum([schema["const"]])

        schema_type = schema.get("type")
        if isinstance(schema_type, list):
            return self._normalize_type_list(schema, schema_type, context)
        if schema_type == "array" or (schema_type is None and "items" in schema):
            return ArrayType(self.normalize(schema.get("items"), f"{context}[]"))
        if schema_type == "object" or (
            schema_type is None and ("properties" in schema or "additionalProperties" in schema)
        ):
            return self._normalize_object(schema, context, source=id(schema))
        if schema_type in PRIMITIVE_KINDS:
            return Primitive(schema_type, schema.get("format"))

        logger.debug("Unrecognized schema shape in %s; using UnknownType", context)
        return UnknownType()

    def _normalize_ref(self, ref: str) -> ReferenceHandle:
        resolved = self.resolver.resolve(ref)
        target = self.name_for_ref(ref)
        if target in self.definitions or resolved.cyclic:
            return ReferenceHandle(target)
        with self.resolver.visiting(ref):
            self.definitions[target] = self.normalize(resolved.node, context=target)
        return ReferenceHandle(target)

    def _normalize_object(
        self, schema: dict[str, Any], context: str, source: int | None
    ) -> ObjectType:
        required = schema.get("required")
        required_names = set(required) if isinstance(required, list) else set()
        properties = schema.get("properties")
        fields: list[Field] = []
        if isinstance(properties, dict):
            for name, prop in properties.items():
                name = str(name)
                description = prop.get("description", "") if isinstance(prop, dict) else ""
                fields.append(Field(
                    name=name,
                    node=self.normalize(prop, f"{context}.{name}"),
                    required=name in required_names,
                    description=clean_text(description),
                ))

        additional = schema.get("additionalProperties")
        trailer: CanonicalTypeNode | None = None
        if additional is True:
            trailer = UnknownType()
        elif isinstance(additional, dict):
            trailer = self.normalize(additional, f"{context}.*")

        return ObjectType(
            fields=tuple(fields),
            additional=trailer,
            description=clean_text(schema.get("description", "")),
            source=source,
        )

    def _normalize_all_of(self, schema: dict[str, Any], context: str) -> CanonicalTypeNode:
        members = schema["allOf"]
        if not isinstance(members, list):
            raise UnsupportedCompositionError(context, "allOf must be a list")
        members = list(members)
        # Sibling properties act as one more member
        sibling = None
        if "properties" in schema or "additionalProperties" in schema:
            sibling = {k: schema[k] for k in ("properties", "additionalProperties") if k in schema}
            members.append(sibling)

        extra_required: list[str] = []
        if isinstance(schema.get("required"), list):
            extra_required.extend(schema["required"])
        shaped = []
        for member in members:
            if _is_annotation_only(member):
                if isinstance(member.get("required"), list):
                    extra_required.extend(member["required"])
            else:
                shaped.append(member)

        if len(shaped) == 1 and not extra_required:
            if shaped[0] is sibling:
                return self._normalize_object(sibling, context, source=id(schema))
            return self.normalize(shaped[0], context)

        fields: dict[str, Field] = {}
        additional: CanonicalTypeNode | None = None
        for index, member in enumerate(shaped):
            if member is sibling:
                canonical = self._normalize_object(member, context, source=None)
            else:
                canonical = self.normalize(member, context)
            resolved = self.dereference(canonical)
            if resolved is None:
                raise UnsupportedCompositionError(
                    context, f"allOf member {index} refers back to the schema being merged"
                )
            if not isinstance(resolved, ObjectType):
                raise UnsupportedCompositionError(
                    context, f"allOf member {index} is not an object schema"
                )
            for field in resolved.fields:
                existing = fields.get(field.name)
                if existing is None:
                    fields[field.name] = field
                    continue
                if existing.node != field.node:
                    raise IncompatibleMergeError(context, field.name)
                if field.required and not existing.required:
                    fields[field.name] = replace(existing, required=True)
            if additional is None:
                additional = resolved.additional

        for name in extra_required:
            if name in fields and not fields[name].required:
                fields[name] = replace(fields[name], required=True)

        return ObjectType(
            fields=tuple(fields.values()),
            additional=additional,
            description=clean_text(schema.get("description", "")),
            source=id(schema),
        )

    def _normalize_union(
        self, schema: dict[str, Any], members: Any, context: str
    ) -> CanonicalTypeNode:
        if not isinstance(members, list) or not members:
            return UnknownType()
        variants: list[CanonicalTypeNode] = []
        for index, member in enumerate(members):
            node = self.normalize(member, f"{context}|{index}")
            if node not in variants:
                variants.append(node)
        if len(variants) == 1:
            return variants[0]

        explicit = schema.get("discriminator")
        property_name = explicit.get("propertyName") if isinstance(explicit, dict) else None
        discriminator = self._find_discriminator(variants, property_name)
        if discriminator is None and any(self.dereference(v) is None for v in variants):
            # A variant refers back to this union; retry once it is defined
            self._deferred[tuple(variants)] = property_name
        return UnionType(tuple(variants), discriminator)

    def settle(self, union: UnionType) -> UnionType:
        """Infer the discriminator of a union whose variants were still in progress."""
        if union.discriminator is not None or union.variants not in self._deferred:
            return union
        explicit = self._deferred[union.variants]
        return UnionType(union.variants, self._find_discriminator(list(union.variants), explicit))

    def _find_discriminator(
        self, variants: list[CanonicalTypeNode], explicit: str | None
    ) -> str | None:
        objects = [self.dereference(v) for v in variants]
        if not all(isinstance(o, ObjectType) for o in objects):
            return None

        candidates = [explicit] if explicit else []
        candidates.extend(f.name for f in objects[0].fields if f.name not in candidates)
        for name in candidates:
            tags = []
            for obj in objects:
                field = obj.field_named(name)
                tag = self.single_value(field.node) if field else _MISSING
                if tag is _MISSING:
                    break
                tags.append(_value_key(tag))
            else:
                if len(set(tags)) == len(tags):
                    return name
        return None

    def single_value(self, node: CanonicalTypeNode) -> Any:
        """Return the only value of a one-member enum, else a sentinel."""
        resolved = self.dereference(node)
        if isinstance(resolved, EnumType) and len(resolved.values) == 1:
            return resolved.values[0]
        return _MISSING

    def _normalize_enum(self, values: Any) -> CanonicalTypeNode:
        if not isinstance(values, list):
            return UnknownType()
        seen: set[tuple[str, Any]] = set()
        unique = []
        for value in values:
            if not isinstance(value, _SCALARS):
                continue
            key = _value_key(value)
            if key in seen:
                continue
            seen.add(key)
            unique.append(value)
        if not unique:
            return UnknownType()
        return EnumType(tuple(unique))

    def _normalize_type_list(
        self, schema: dict[str, Any], types: list[Any], context: str
    ) -> CanonicalTypeNode:
        variants: list[CanonicalTypeNode] = []
        for schema_type in types:
            variant = dict(schema, type=schema_type)
            if schema_type == "object":
                node = self._normalize_object(variant, context, source=id(schema))
            else:
                node = self._normalize(variant, context)
            if node not in variants:
                variants.append(node)
        if not variants:
            return UnknownType()
        if len(variants) == 1:
            return variants[0]
        return UnionType(tuple(variants))


def _with_null(node: CanonicalTypeNode) -> CanonicalTypeNode:
    null = Primitive("null")
    if isinstance(node, UnknownType) or node == null:
        return node
    if isinstance(node, UnionType):
        if null in node.variants:
            return node
        return UnionType(node.variants + (null,), node.discriminator)
    return UnionType((node, null))

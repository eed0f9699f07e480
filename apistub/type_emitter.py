"""Render the type graph as a Python module of declarations.

Records become ``TypedDict`` classes, everything else a ``TypeAlias``.
References to other declarations are written as quoted forward references,
so declarations can refer to each other in any order and recursively.
"""

from __future__ import annotations

import keyword
from typing import Any

from .codegen import GeneratedArtifact, render
from .naming import camel_to_snake, clean_text, docstring_safe, sanitize_segment, unique_name
from .type_graph import NamedType, TypeGraph
from .type_nodes import (
    ArrayType,
    CanonicalTypeNode,
    EnumType,
    ObjectType,
    Primitive,
    ReferenceHandle,
    UnionType,
    UnknownType,
)

# Names imported by the generated module; declarations must not shadow them
RESERVED_TYPE_NAMES = {
    "Any",
    "Final",
    "Literal",
    "NotRequired",
    "TypeAlias",
    "TypedDict",
    "Union",
    "annotations",
}

_PRIMITIVES = {
    "string": "str",
    "integer": "int",
    "number": "float",
    "boolean": "bool",
    "null": "None",
}


def render_type(node: CanonicalTypeNode | None, quote_refs: bool = True) -> str:
    """Return the Python type expression for ``node``."""
    if node is None:
        return "None"
    if isinstance(node, Primitive):
        if node.kind == "string" and node.format == "binary":
            return "bytes"
        return _PRIMITIVES.get(node.kind, "Any")
    if isinstance(node, ReferenceHandle):
        return f'"{node.target}"' if quote_refs else node.target
    if isinstance(node, ArrayType):
        return f"list[{render_type(node.element, quote_refs)}]"
    if isinstance(node, EnumType):
        return "Literal[" + ", ".join(repr(v) for v in node.values) + "]"
    if isinstance(node, UnionType):
        return "Union[" + ", ".join(render_type(v, quote_refs) for v in node.variants) + "]"
    if isinstance(node, ObjectType):
        value = render_type(node.additional, quote_refs) if node.additional is not None else "Any"
        return f"dict[str, {value}]"
    if isinstance(node, UnknownType):
        return "Any"
    raise TypeError(f"Unsupported node: {node!r}")


def constant_prefix(type_id: str, taken: set[str]) -> str:
    """Return an UPPER_SNAKE prefix for module constants, distinct from ``taken``."""
    prefix = unique_name(camel_to_snake(type_id).upper(), taken)
    taken.add(prefix)
    return prefix


def _doc_lines(named: NamedType) -> list[str]:
    lines = []
    if named.description:
        lines.append(docstring_safe(named.description))
    if named.origin == "schema":
        lines.append(f"Source: {docstring_safe(named.key)}")
    node = named.node
    if isinstance(node, ObjectType) and node.fields and node.additional is not None:
        lines.append(f"Additional properties: {render_type(node.additional, quote_refs=False)}.")
    return lines


def _is_field_identifier(name: str) -> bool:
    # Class syntax would mangle a leading double underscore
    return name.isidentifier() and not keyword.iskeyword(name) and not name.startswith("__")


def _record(named: NamedType, node: ObjectType) -> dict[str, Any]:
    functional = not all(_is_field_identifier(f.name) for f in node.fields)
    fields = []
    for f in node.fields:
        annotation = render_type(f.node, quote_refs=functional)
        if not f.required:
            annotation = f"NotRequired[{annotation}]"
        fields.append({
            "name": f.name,
            "annotation": annotation,
            "comment": clean_text(f.description),
        })
    return {
        "kind": "record",
        "name": named.id,
        "functional": functional,
        "fields": fields,
        "doc": _doc_lines(named),
    }


def _tagged_union(
    named: NamedType, node: UnionType, graph: TypeGraph, constants: set[str]
) -> dict[str, Any]:
    variants = []
    for variant in node.variants:
        if not isinstance(variant, ReferenceHandle):
            continue
        resolved = graph.dereference(variant)
        if not isinstance(resolved, ObjectType):
            continue
        field = resolved.field_named(node.discriminator)
        tag_node = graph.dereference(field.node) if field else None
        if isinstance(tag_node, EnumType) and len(tag_node.values) == 1:
            variants.append((tag_node.values[0], variant.target))
    prefix = constant_prefix(named.id, constants)
    return {
        "kind": "union",
        "name": named.id,
        "annotation": render_type(node),
        "discriminator": node.discriminator,
        "discriminator_constant": f"{prefix}_DISCRIMINATOR",
        "variants_constant": f"{prefix}_VARIANTS",
        "variants": variants,
        "doc": _doc_lines(named) + [f"Tagged union discriminated by ``{node.discriminator}``."],
    }


def declaration(
    named: NamedType, graph: TypeGraph, constants: set[str] | None = None
) -> dict[str, Any]:
    """Build the template context for one declaration.

    ``constants`` collects the constant prefixes already issued in the module.
    """
    node = named.node
    if isinstance(node, ObjectType) and node.fields:
        return _record(named, node)
    if isinstance(node, UnionType) and node.discriminated:
        return _tagged_union(named, node, graph, constants if constants is not None else set())
    return {
        "kind": "alias",
        "name": named.id,
        "annotation": render_type(node),
        "doc": _doc_lines(named),
    }


def emit_types(
    graph: TypeGraph, title: str, version: str, path: str = "types.py"
) -> GeneratedArtifact:
    """Render every named type, in graph order, into one artifact."""
    constants: set[str] = set()
    declarations = [declaration(named, graph, constants) for named in graph]
    content = render("types.py.j2", {
        "title": docstring_safe(title),
        "version": docstring_safe(version),
        "declarations": declarations,
        "exports": [d["name"] for d in declarations],
    })
    return GeneratedArtifact(
        path=path,
        content=content,
        description=f"Type declarations ({len(declarations)} types)",
    )


def module_name(path: str) -> str:
    """Return the import name of a generated module path."""
    stem = path.rsplit("/", 1)[-1].removesuffix(".py")
    return sanitize_segment(stem) or "types"

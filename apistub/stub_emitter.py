"""Render route groups as dispatcher modules.

Each group module exposes ``ROUTES``, ``match(method, path)`` and
``dispatch(request, env)``; the aggregator module forwards a request to the
group named by the first path segment of its URL.
"""

from __future__ import annotations

import textwrap
from typing import Any

from .codegen import GeneratedArtifact, render
from .naming import docstring_safe
from .operations import OperationDescriptor
from .routes import RouteGroup, is_parameter_segment, path_segments
from .type_emitter import module_name, render_type


def placeholder_body(operation: OperationDescriptor) -> str:
    """Return the default handler body: a 501 response naming the operation."""
    return (
        "return httpx.Response(\n"
        "    501,\n"
        f'    json={{"error": "Not implemented", "operationId": {operation.operation_id!r}}},\n'
        ")"
    )


def _type_ref(node: Any) -> str:
    return render_type(node, quote_refs=False)


def _doc_lines(operation: OperationDescriptor) -> list[str]:
    lines = [f"{operation.method.upper()} {docstring_safe(operation.path)}"]
    for text in (operation.summary, operation.description):
        if text and docstring_safe(text) not in lines:
            lines.append(docstring_safe(text))
    if operation.deprecated:
        lines.append("Deprecated.")

    details = [f"Operation: {docstring_safe(operation.operation_id)}"]
    if operation.tags:
        details.append("Tags: " + ", ".join(docstring_safe(t) for t in operation.tags))
    if operation.parameters_type:
        details.append(f"Parameters: models.{operation.parameters_type}")
    for param in operation.parameters:
        flag = "required" if param.required else "optional"
        details.append(
            f"  {docstring_safe(param.name)} ({param.location}, {flag}): {_type_ref(param.node)}"
        )
    if operation.request_body is not None:
        flag = "required" if operation.request_body_required else "optional"
        details.append(f"Request body ({flag}): {_type_ref(operation.request_body)}")
    if operation.responses:
        details.append("Responses:")
        for status, node in operation.responses:
            body = _type_ref(node) if node is not None else "no content"
            details.append(f"  {docstring_safe(status)}: {body}")
    if operation.security:
        details.append("Security: " + ", ".join(docstring_safe(s) for s in operation.security))
    return lines + ["\n    ".join(details)]


def _route_specificity(operation: OperationDescriptor) -> tuple[int, ...]:
    # Literal segments sort before parameters at the same position
    return tuple(1 if is_parameter_segment(s) else 0 for s in path_segments(operation.path))


def _stub(operation: OperationDescriptor, body: str) -> dict[str, Any]:
    return {
        "handler": operation.handler,
        "method": operation.method.upper(),
        "segments": tuple(path_segments(operation.path)),
        "doc": "\n\n    ".join(_doc_lines(operation)),
        "body": textwrap.indent(body.strip("\n"), "    "),
    }


def emit_group(
    group: RouteGroup,
    title: str,
    version: str,
    types_path: str = "types.py",
    prefix: str = "",
    bodies: dict[str, str] | None = None,
) -> GeneratedArtifact:
    """Render one dispatcher module for ``group``."""
    bodies = bodies or {}
    stubs = [
        _stub(op, bodies.get(op.handler) or placeholder_body(op))
        for op in group.operations
    ]
    routes = [
        _stub(op, "")
        for op in sorted(group.operations, key=_route_specificity)
    ]
    content = render("group.py.j2", {
        "title": docstring_safe(title),
        "version": docstring_safe(version),
        "group": group,
        "group_label": docstring_safe(group.key),
        "types_module": module_name(types_path),
        "stubs": stubs,
        "routes": routes,
    })
    return GeneratedArtifact(
        path=f"{prefix}{group.module}.py",
        content=content,
        description=f"Handlers for route group {group.key!r} ({len(stubs)} operations)",
    )


def emit_router(
    groups: list[RouteGroup], title: str, version: str, prefix: str = ""
) -> GeneratedArtifact:
    """Render the aggregator that forwards requests to group dispatchers."""
    content = render("router.py.j2", {
        "title": docstring_safe(title),
        "version": docstring_safe(version),
        "groups": groups,
        "prefixed": [g for g in groups if g.prefix is not None],
        "fallbacks": [g for g in groups if g.fallback],
    })
    return GeneratedArtifact(
        path=f"{prefix}router.py",
        content=content,
        description=f"Request router over {len(groups)} route groups",
    )

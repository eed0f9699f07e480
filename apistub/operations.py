"""Collect operation descriptors from the document's paths.

Handles:
- operationId synthesis for operations that lack one
- path-level parameters merged with (and overridden by) operation parameters
- $ref'd parameters, request bodies and responses
- JSON media type selection for bodies
- handler name deduplication
- parameter and response envelope types
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from .loader import get_paths, get_security_schemes
from .naming import build_operation_id, clean_text, to_pascal_case, to_snake_case, unique_name
from .type_graph import TypeGraphBuilder
from .type_nodes import CanonicalTypeNode, Field, ObjectType, Primitive

logger = logging.getLogger(__name__)

# OpenAPI path item methods, in the order the specification lists them
HTTP_METHODS = ("get", "put", "post", "delete", "options", "head", "patch", "trace")

# Module-level names of a generated group module
RESERVED_HANDLER_NAMES = {
    "GROUP",
    "ROUTES",
    "Handler",
    "match",
    "dispatch",
    "httpx",
    "models",
    "annotations",
    "_segments",
    "_bind",
}


@dataclass(frozen=True)
class ParameterDescriptor:
    name: str
    location: str
    required: bool
    node: CanonicalTypeNode
    description: str = ""


@dataclass(frozen=True)
class OperationDescriptor:
    operation_id: str
    method: str
    path: str
    parameters: tuple[ParameterDescriptor, ...] = ()
    request_body: CanonicalTypeNode | None = None
    request_body_required: bool = False
    responses: tuple[tuple[str, CanonicalTypeNode | None], ...] = ()
    tags: tuple[str, ...] = ()
    summary: str = ""
    description: str = ""
    deprecated: bool = False
    security: tuple[str, ...] = ()
    handler: str = ""
    parameters_type: str | None = None
    responses_type: str | None = None

    @property
    def route(self) -> str:
        return f"{self.method.upper()} {self.path}"


def _pick_media(content: Any) -> dict[str, Any] | None:
    """Choose the JSON media type entry, falling back to the first one."""
    if not isinstance(content, dict) or not content:
        return None
    if "application/json" in content:
        return content["application/json"]
    for media_type, media in content.items():
        if "json" in str(media_type):
            return media
    return next(iter(content.values()))


def _merge_parameters(
    builder: TypeGraphBuilder, path_level: Any, operation_level: Any
) -> list[dict[str, Any]]:
    """Merge path-level and operation-level parameters keyed on (name, in)."""
    merged: dict[tuple[str, str], dict[str, Any]] = {}
    for raw in list(path_level or []) + list(operation_level or []):
        param = builder.resolver.resolve_node(raw)
        if not isinstance(param, dict) or "name" not in param:
            logger.debug("Skipping parameter without a name: %r", raw)
            continue
        merged[(str(param["name"]), param.get("in", "query"))] = param
    return list(merged.values())


def parse_parameters(
    builder: TypeGraphBuilder,
    path_item: dict[str, Any],
    operation: dict[str, Any],
    type_name: str,
    key: str,
) -> list[ParameterDescriptor]:
    """Parse all parameters for an operation."""
    params: list[ParameterDescriptor] = []
    for param in _merge_parameters(builder, path_item.get("parameters"), operation.get("parameters")):
        name = str(param["name"])
        location = param.get("in", "query")
        schema = param.get("schema")
        if schema is None:
            media = _pick_media(param.get("content"))
            schema = media.get("schema") if isinstance(media, dict) else None
        node = builder.add_inline(
            schema,
            type_name + to_pascal_case(name, fallback="Param"),
            f"{key}/parameters/{location}/{name}",
        )
        params.append(ParameterDescriptor(
            name=name,
            location=location,
            required=location == "path" or bool(param.get("required", False)),
            node=node,
            description=clean_text(param.get("description", "")),
        ))
    return params


def parse_request_body(
    builder: TypeGraphBuilder, operation: dict[str, Any], type_name: str, key: str
) -> tuple[CanonicalTypeNode | None, bool]:
    """Return the request body type and whether the body is required."""
    request_body = builder.resolver.resolve_node(operation.get("requestBody"))
    if not isinstance(request_body, dict):
        return None, False
    media = _pick_media(request_body.get("content"))
    if media is None:
        return None, False
    node = builder.add_inline(media.get("schema"), type_name + "Request", f"{key}/requestBody")
    return node, bool(request_body.get("required", False))


def parse_responses(
    builder: TypeGraphBuilder, operation: dict[str, Any], type_name: str, key: str
) -> list[tuple[str, CanonicalTypeNode | None]]:
    """Map each status code (or 'default') to its body type, None for no body."""
    responses = operation.get("responses") or {}
    result: list[tuple[str, CanonicalTypeNode | None]] = []
    for status, raw in responses.items():
        status = str(status)
        response = builder.resolver.resolve_node(raw)
        media = _pick_media(response.get("content")) if isinstance(response, dict) else None
        if media is None:
            result.append((status, None))
            continue
        suffix = "Default" if status == "default" else to_pascal_case(status)
        node = builder.add_inline(
            media.get("schema"),
            f"{type_name}{suffix}Response",
            f"{key}/responses/{status}",
        )
        result.append((status, node))
    return result


def describe_security(
    builder: TypeGraphBuilder, operation: dict[str, Any]
) -> tuple[str, ...]:
    """Return 'name (type)' labels for the operation's effective security."""
    requirements = operation.get("security", builder.document.get("security")) or []
    schemes = get_security_schemes(builder.document)
    labels: list[str] = []
    for requirement in requirements:
        if not isinstance(requirement, dict):
            continue
        for name in requirement:
            scheme = builder.resolver.resolve_node(schemes.get(name))
            label = str(name)
            if isinstance(scheme, dict) and scheme.get("type"):
                detail = scheme.get("scheme") or scheme.get("in") or ""
                label = f"{name} ({scheme['type']}{' ' + detail if detail else ''})"
            if label not in labels:
                labels.append(label)
    return tuple(labels)


def deduplicate_handler_names(names: list[tuple[str, str]]) -> list[str]:
    """Make handler names unique, first by HTTP method suffix, then by counter.

    ``names`` holds (handler, method) pairs in declaration order.
    """
    seen: set[str] = set(RESERVED_HANDLER_NAMES)
    first_pass = []
    for name, method in names:
        if name in seen:
            name = f"{name}_{method}"
        else:
            seen.add(name)
        first_pass.append(name)

    final: list[str] = []
    taken: set[str] = set(RESERVED_HANDLER_NAMES)
    for name in first_pass:
        name = unique_name(name, taken)
        taken.add(name)
        final.append(name)
    return final


def _unique_fields(fields) -> tuple[Field, ...]:
    by_name: dict[str, Field] = {}
    for field in fields:
        by_name.setdefault(field.name, field)
    return tuple(by_name.values())


def _iter_operations(document: dict[str, Any]):
    for path, path_item in get_paths(document).items():
        if not isinstance(path_item, dict):
            continue
        for method in HTTP_METHODS:
            operation = path_item.get(method)
            if isinstance(operation, dict):
                yield str(path), path_item, method, operation


def collect_operations(
    document: dict[str, Any], builder: TypeGraphBuilder
) -> list[OperationDescriptor]:
    """Build descriptors for every operation, in declaration order."""
    raw_ops = list(_iter_operations(document))
    operation_ids = [
        str(operation.get("operationId") or build_operation_id(method, path))
        for path, _, method, operation in raw_ops
    ]
    handlers = deduplicate_handler_names([
        (to_snake_case(operation_id), method)
        for operation_id, (_, _, method, _) in zip(operation_ids, raw_ops)
    ])

    operations: list[OperationDescriptor] = []
    for operation_id, handler, (path, path_item, method, operation) in zip(
        operation_ids, handlers, raw_ops
    ):
        type_name = to_pascal_case(operation_id, fallback="Operation")
        key = f"paths.{path}.{method}"
        params = parse_parameters(builder, path_item, operation, type_name, key)
        body, body_required = parse_request_body(builder, operation, type_name, key)
        responses = parse_responses(builder, operation, type_name, key)

        parameters_type = None
        if params:
            parameters_type = builder.add_envelope(
                type_name + "Parameters",
                ObjectType(_unique_fields(
                    Field(p.name, p.node, p.required, p.description) for p in params
                )),
                f"{key}/parameters",
                description=f"Parameters of {method.upper()} {path}.",
            )
        responses_type = None
        if responses:
            responses_type = builder.add_envelope(
                type_name + "Responses",
                ObjectType(tuple(
                    Field(status, node if node is not None else Primitive("null"))
                    for status, node in responses
                )),
                f"{key}/responses",
                description=f"Response bodies of {method.upper()} {path} by status code.",
            )

        tags = operation.get("tags") or []
        operations.append(OperationDescriptor(
            operation_id=operation_id,
            method=method,
            path=path,
            parameters=tuple(params),
            request_body=body,
            request_body_required=body_required,
            responses=tuple(responses),
            tags=tuple(str(t) for t in tags),
            summary=clean_text(operation.get("summary", "")),
            description=clean_text(operation.get("description", "")),
            deprecated=bool(operation.get("deprecated", False)),
            security=describe_security(builder, operation),
            handler=handler,
            parameters_type=parameters_type,
            responses_type=responses_type,
        ))
        logger.debug("Collected %s %s as %s", method.upper(), path, handler)
    return operations

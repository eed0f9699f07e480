"""Run the whole pipeline on a parsed document.

build_plan() resolves and normalizes everything up front; render() only
turns the finished plan into artifacts. A fatal error in build_plan() means
render() is never reached, so callers either get every artifact or none.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from .codegen import GeneratedArtifact
from .config import Settings
from .enhancer import StubEnhancer
from .loader import validate_document
from .operations import OperationDescriptor, collect_operations
from .resolver import ReferenceResolver
from .routes import RouteGroup, group_operations
from .stub_emitter import emit_group, emit_router
from .type_emitter import RESERVED_TYPE_NAMES, emit_types
from .type_graph import TypeGraph, TypeGraphBuilder

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationPlan:
    title: str
    version: str
    graph: TypeGraph
    operations: tuple[OperationDescriptor, ...]
    groups: tuple[RouteGroup, ...]


def build_plan(spec: dict[str, Any]) -> GenerationPlan:
    """Resolve, normalize and group everything in ``spec``."""
    validate_document(spec)
    resolver = ReferenceResolver(spec)
    builder = TypeGraphBuilder(spec, resolver, reserved=RESERVED_TYPE_NAMES)
    builder.add_components()
    operations = collect_operations(spec, builder)
    graph = builder.build()
    groups = group_operations(operations)
    logger.info(
        "Resolved %d types, %d operations in %d route groups",
        len(graph), len(operations), len(groups),
    )
    return GenerationPlan(
        title=str(spec["info"]["title"]),
        version=str(spec["info"]["version"]),
        graph=graph,
        operations=tuple(operations),
        groups=tuple(groups),
    )


def render(
    plan: GenerationPlan,
    settings: Settings | None = None,
    bodies: dict[str, str] | None = None,
) -> list[GeneratedArtifact]:
    """Render the type module, the router and one module per route group."""
    settings = settings or Settings()
    prefix = settings.normalized_prefix
    artifacts = [
        emit_types(plan.graph, plan.title, plan.version, path=settings.types_path),
        emit_router(list(plan.groups), plan.title, plan.version, prefix=prefix),
    ]
    for group in plan.groups:
        artifacts.append(emit_group(
            group,
            plan.title,
            plan.version,
            types_path=settings.types_path,
            prefix=prefix,
            bodies=bodies,
        ))
    return artifacts


def generate(spec: dict[str, Any], settings: Settings | None = None) -> list[GeneratedArtifact]:
    """Generate every artifact for ``spec`` with placeholder handler bodies."""
    return render(build_plan(spec), settings)


async def generate_enhanced(
    spec: dict[str, Any],
    settings: Settings,
    client: httpx.AsyncClient | None = None,
) -> list[GeneratedArtifact]:
    """Generate every artifact, asking the enhancer for handler bodies first."""
    plan = build_plan(spec)
    bodies = await StubEnhancer(settings, client).enhance_all(plan.operations)
    return render(plan, settings, bodies)

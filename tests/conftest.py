"""Shared fixtures for apistub tests.

``load_generated`` writes a list of artifacts into a fresh directory under
tmp_path and imports it as a package, so tests can call the generated
dispatchers directly.
"""

from __future__ import annotations

import importlib
import itertools
import sys
from collections.abc import Callable, Iterator
from pathlib import Path
from types import ModuleType, SimpleNamespace
from typing import Any

import pytest

from apistub.codegen import GeneratedArtifact, write_artifacts

_package_ids = itertools.count()


# ---------------------------------------------------------------------------
# Sample documents
# ---------------------------------------------------------------------------

@pytest.fixture
def chat_spec() -> dict[str, Any]:
    """A small chat API with a recursive schema and a tagged union."""
    return {
        "openapi": "3.0.3",
        "info": {"title": "Chat API", "version": "1.0.0"},
        "paths": {
            "/chat/completions": {
                "post": {
                    "operationId": "createCompletion",
                    "tags": ["chat"],
                    "summary": "Create a chat completion",
                    "requestBody": {
                        "required": True,
                        "content": {
                            "application/json": {
                                "schema": {"$ref": "#/components/schemas/CompletionRequest"},
                            },
                        },
                    },
                    "responses": {
                        "200": {
                            "description": "OK",
                            "content": {
                                "application/json": {
                                    "schema": {"$ref": "#/components/schemas/Message"},
                                },
                            },
                        },
                    },
                },
            },
            "/chat/threads/{threadId}": {
                "get": {
                    "operationId": "getThread",
                    "parameters": [
                        {"name": "threadId", "in": "path", "required": True,
                         "schema": {"type": "string"}},
                    ],
                    "responses": {
                        "200": {
                            "description": "OK",
                            "content": {
                                "application/json": {
                                    "schema": {"$ref": "#/components/schemas/Node"},
                                },
                            },
                        },
                        "404": {"description": "Not found"},
                    },
                },
            },
        },
        "components": {
            "schemas": {
                "CompletionRequest": {
                    "type": "object",
                    "required": ["messages"],
                    "properties": {
                        "model": {"type": "string"},
                        "messages": {
                            "type": "array",
                            "items": {"$ref": "#/components/schemas/Message"},
                        },
                    },
                },
                "Message": {
                    "oneOf": [
                        {"$ref": "#/components/schemas/TextMessage"},
                        {"$ref": "#/components/schemas/ImageMessage"},
                    ],
                },
                "TextMessage": {
                    "type": "object",
                    "required": ["kind", "text"],
                    "properties": {
                        "kind": {"type": "string", "enum": ["text"]},
                        "text": {"type": "string"},
                    },
                },
                "ImageMessage": {
                    "type": "object",
                    "required": ["kind", "url"],
                    "properties": {
                        "kind": {"type": "string", "enum": ["image"]},
                        "url": {"type": "string", "format": "uri"},
                    },
                },
                "Node": {
                    "type": "object",
                    "properties": {
                        "name": {"type": "string"},
                        "children": {
                            "type": "array",
                            "items": {"$ref": "#/components/schemas/Node"},
                        },
                    },
                },
            },
        },
    }


# ---------------------------------------------------------------------------
# Generated package loader
# ---------------------------------------------------------------------------

@pytest.fixture
def load_generated(tmp_path: Path) -> Iterator[Callable[..., SimpleNamespace]]:
    """Write artifacts to disk and import them as one package.

    Usage in tests::

        pkg = load_generated(generate(spec))
        response = pkg.router.dispatch(request)
    """
    loaded: list[str] = []

    def _load(artifacts: list[GeneratedArtifact]) -> SimpleNamespace:
        name = f"apistub_generated_{next(_package_ids)}"
        write_artifacts(artifacts, tmp_path / name)
        loaded.append(name)
        importlib.invalidate_caches()
        modules: dict[str, ModuleType] = {}
        for artifact in artifacts:
            dotted = artifact.path.removesuffix(".py").replace("/", ".")
            modules[dotted.rsplit(".", 1)[-1]] = importlib.import_module(f"{name}.{dotted}")
        return SimpleNamespace(name=name, **modules)

    sys.path.insert(0, str(tmp_path))
    try:
        yield _load
    finally:
        sys.path.remove(str(tmp_path))
        for name in loaded:
            for module in [m for m in sys.modules if m == name or m.startswith(name + ".")]:
                sys.modules.pop(module, None)

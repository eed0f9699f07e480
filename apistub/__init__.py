"""Generate typed request-handler stubs from OpenAPI documents.

``generate()`` turns a parsed document into ``types.py``, ``router.py`` and
one dispatcher module per route group; ``write_artifacts()`` puts them on
disk.
"""

from .codegen import GeneratedArtifact, write_artifacts
from .config import Settings
from .engine import GenerationPlan, build_plan, generate, generate_enhanced, render
from .errors import (
    BrokenReferenceError,
    GenerationError,
    IncompatibleMergeError,
    InvalidDocumentError,
    UnsupportedCompositionError,
    UnsupportedReferenceError,
)
from .loader import load_spec

__version__ = "0.1.0"

__all__ = [
    "BrokenReferenceError",
    "GeneratedArtifact",
    "GenerationError",
    "GenerationPlan",
    "IncompatibleMergeError",
    "InvalidDocumentError",
    "Settings",
    "UnsupportedCompositionError",
    "UnsupportedReferenceError",
    "build_plan",
    "generate",
    "generate_enhanced",
    "load_spec",
    "render",
    "write_artifacts",
]

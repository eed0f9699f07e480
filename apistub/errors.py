"""Fatal generation errors.

Every error aborts the whole run: no artifact is returned or written once
one of these is raised.
"""

from __future__ import annotations


class GenerationError(Exception):
    """Base generation error."""

    def __init__(self, message: str, code: str = "GENERATION_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(message)


class InvalidDocumentError(GenerationError):
    """The parsed document is not a usable OpenAPI document."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="INVALID_DOCUMENT")


class BrokenReferenceError(GenerationError):
    """A $ref pointer does not resolve inside the document."""

    def __init__(self, pointer: str, reason: str = "") -> None:
        self.pointer = pointer
        message = f"Broken reference: {pointer}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message, code="BROKEN_REFERENCE")


class UnsupportedReferenceError(GenerationError):
    """A $ref points outside the document (another file or a URL)."""

    def __init__(self, pointer: str) -> None:
        self.pointer = pointer
        super().__init__(
            f"Unsupported reference: {pointer} (only '#/...' pointers are supported)",
            code="UNSUPPORTED_REFERENCE",
        )


class IncompatibleMergeError(GenerationError):
    """Two allOf members declare the same field with different types."""

    def __init__(self, schema: str, field: str) -> None:
        self.schema = schema
        self.field = field
        super().__init__(
            f"Incompatible allOf merge in {schema}: field {field!r} has conflicting types",
            code="INCOMPATIBLE_MERGE",
        )


class UnsupportedCompositionError(GenerationError):
    """An allOf member is not an object schema."""

    def __init__(self, schema: str, detail: str) -> None:
        self.schema = schema
        super().__init__(
            f"Unsupported composition in {schema}: {detail}",
            code="UNSUPPORTED_COMPOSITION",
        )

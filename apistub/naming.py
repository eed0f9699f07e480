"""Identifier conventions for generated code.

Type declarations use PascalCase, handlers and group modules use snake_case.
Operations without an operationId get one from HTTP method + path:

  - GET collection      -> list_{plural}
  - GET collection/{id} -> get_{singular}
  - POST collection     -> create_{singular}
  - PUT collection/{id} -> update_{singular}
  - DELETE col/{id}     -> delete_{singular}

Examples:
  GET    /pets                  -> list_pets
  GET    /pets/{petId}          -> get_pet
  POST   /pets                  -> create_pet
  DELETE /pets/{petId}          -> delete_pet
  GET    /api/v1/stores/orders  -> list_stores_orders
  GET    /users/{name}/repos    -> get_users_repos
"""

from __future__ import annotations

import keyword
import re
from collections.abc import Iterable

# Standard HTTP method to verb mapping
_METHOD_VERBS: dict[str, str] = {
    "get": "list",
    "post": "create",
    "put": "update",
    "delete": "delete",
    "patch": "update",
}

_VERSION_SEGMENT = re.compile(r"^v\d+(\.\d+)*$")


def pluralize(word: str) -> str:
    """Return the plural form of a resource name."""
    if word.endswith("s"):
        return word
    if word.endswith("y") and word[-2:-1] not in ("a", "e", "i", "o", "u"):
        return word[:-1] + "ies"
    if word.endswith(("sh", "ch", "x", "z")):
        return word + "es"
    return word + "s"


def singularize(word: str) -> str:
    """Return the singular form of a resource name."""
    if word.endswith("ies"):
        return word[:-3] + "y"
    if word.endswith(("shes", "ches", "xes", "zes", "sses")):
        return word[:-2]
    if word.endswith("s") and not word.endswith("ss"):
        return word[:-1]
    return word


def camel_to_snake(name: str) -> str:
    """Convert camelCase or PascalCase to snake_case."""
    s1 = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", name)
    return re.sub(r"([a-z\d])([A-Z])", r"\1_\2", s1).lower()


def sanitize_segment(segment: str) -> str:
    """Sanitize a path segment for use in a Python identifier."""
    name = camel_to_snake(segment)
    name = re.sub(r"[.\-\s]", "_", name)
    name = re.sub(r"[^a-z0-9_]", "", name)
    name = re.sub(r"_+", "_", name)
    return name.strip("_")


def to_snake_case(name: str, fallback: str = "handler") -> str:
    """Return a valid snake_case Python identifier for ``name``."""
    result = sanitize_segment(name) or fallback
    if result[0].isdigit():
        result = f"_{result}"
    if keyword.iskeyword(result) or keyword.issoftkeyword(result):
        result += "_"
    return result


def to_pascal_case(name: str, fallback: str = "Model") -> str:
    """Return a valid PascalCase Python identifier for ``name``.

    Existing inner capitals are kept, so ``HTTPError`` and ``petId`` become
    ``HTTPError`` and ``PetId``.
    """
    parts = [p for p in re.split(r"[^0-9A-Za-z]+", name) if p]
    result = "".join(p[:1].upper() + p[1:] for p in parts) or fallback
    if result[0].isdigit():
        result = f"_{result}"
    if keyword.iskeyword(result):
        result += "_"
    return result


def unique_name(base: str, taken: Iterable[str]) -> str:
    """Return ``base``, or ``base`` with the lowest free numeric suffix."""
    taken = set(taken)
    if base not in taken:
        return base
    index = 2
    while f"{base}{index}" in taken:
        index += 1
    return f"{base}{index}"


def clean_text(text: str) -> str:
    """Strip HTML tags and collapse whitespace."""
    text = re.sub(r"<[^>]+>", "", text or "")
    return re.sub(r"\s+", " ", text).strip()


def docstring_safe(text: str) -> str:
    """Escape text so it can sit inside a triple-quoted docstring."""
    text = clean_text(text).replace("\\", "\\\\")
    if text.endswith('"'):
        text = text[:-1] + '\\"'
    return text.replace('"""', '\\"\\"\\"')


def _extract_path_parts(path: str) -> list[str]:
    """Extract meaningful path segments, stripping api/version prefixes and {params}."""
    parts = [p for p in path.split("/") if p]
    while parts and (parts[0].lower() == "api" or _VERSION_SEGMENT.match(parts[0].lower())):
        parts = parts[1:]
    return [p for p in parts if not p.startswith("{")]


def build_operation_id(method: str, path: str) -> str:
    """Build an operation id from HTTP method and path.

    Returns a name like 'list_pets' or 'get_pet'.
    """
    method_lower = method.lower()
    parts = _extract_path_parts(path)
    has_id = any(p.startswith("{") for p in path.split("/") if p)

    if method_lower == "get":
        verb = "get" if has_id else "list"
    else:
        verb = _METHOD_VERBS.get(method_lower, method_lower)

    clean_parts = [s for s in (sanitize_segment(p) for p in parts) if s]
    if not clean_parts:
        return f"{verb}_root"

    # Single-segment paths: standard CRUD
    if len(clean_parts) == 1:
        resource = clean_parts[0]
        if verb == "list":
            resource = pluralize(resource)
        elif has_id or verb == "create":
            resource = singularize(resource)
        return f"{verb}_{resource}"

    # Multi-segment paths: join with underscores
    return f"{verb}_{'_'.join(clean_parts)}"

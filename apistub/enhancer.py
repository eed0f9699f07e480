"""Optional AI-assisted handler bodies.

Asks an OpenAI-compatible chat endpoint for the body of one handler. Every
operation is enhanced independently: a failed call, an unusable answer or a
disabled configuration leaves that operation with its placeholder body and
never aborts generation.
"""

from __future__ import annotations

import ast
import asyncio
import logging
import re
import textwrap
from collections.abc import Iterable

import httpx

from .config import Settings
from .operations import OperationDescriptor
from .type_emitter import render_type

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a Python expert writing HTTP request handlers. "
    "Answer with Python statements only, no explanations."
)

_FENCE = re.compile(r"^```[a-zA-Z0-9_+-]*\s*\n(.*?)\n?```\s*$", re.DOTALL)


def build_prompt(operation: OperationDescriptor) -> str:
    """Describe one operation for the model."""
    params = "\n".join(
        f"- {p.name} ({p.location}, {'required' if p.required else 'optional'}): "
        f"{render_type(p.node, quote_refs=False)}"
        for p in operation.parameters
    ) or "- none"
    body = (
        render_type(operation.request_body, quote_refs=False)
        if operation.request_body is not None
        else "none"
    )
    responses = "\n".join(
        f"- {status}: {render_type(node, quote_refs=False) if node is not None else 'no content'}"
        for status, node in operation.responses
    ) or "- none"
    return f"""Write the body of this Python handler function:

def {operation.handler}(request: httpx.Request, env: Mapping[str, Any], params: dict[str, str]) -> httpx.Response:

Operation ID: {operation.operation_id}
Method: {operation.method.upper()}
Path: {operation.path}
Description: {operation.description or operation.summary or 'No description provided'}
Parameters:
{params}
Request body: {body}
Responses:
{responses}

Requirements:
- Path parameters are in `params`; read the query from `request.url.params`
  and the JSON body with `json.loads(request.content)` (import inside the body)
- `httpx` is already imported; return an `httpx.Response`
- Include proper error handling and TODO comments for business logic
- Return only the function body, without the `def` line"""


def extract_body(answer: str) -> str | None:
    """Return a usable function body from a model answer, or None."""
    text = answer.strip()
    fenced = _FENCE.match(text)
    if fenced:
        text = fenced.group(1)
    text = textwrap.dedent(text).strip("\n")
    if not text.strip():
        return None
    if text.lstrip().startswith(("def ", "async def ")):
        return None
    source = "def _handler(request, env, params):\n" + textwrap.indent(text, "    ")
    try:
        tree = ast.parse(source)
        compile(source, "<enhanced>", "exec")
    except (SyntaxError, ValueError):
        return None
    if _suspends(tree.body[0].body):
        return None
    return text


_NESTED_SCOPES = (ast.FunctionDef, ast.AsyncFunctionDef, ast.Lambda, ast.ClassDef)


def _suspends(statements: list[ast.stmt]) -> bool:
    """True when the handler itself would await or become a generator."""
    stack: list[ast.AST] = list(statements)
    while stack:
        node = stack.pop()
        if isinstance(node, (ast.Await, ast.Yield, ast.YieldFrom)):
            return True
        if not isinstance(node, _NESTED_SCOPES):
            stack.extend(ast.iter_child_nodes(node))
    return False


class StubEnhancer:
    """Fetches handler bodies for operations from a chat completion endpoint."""

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None) -> None:
        self.settings = settings
        self._client = client

    @property
    def enabled(self) -> bool:
        return self.settings.enhancement_enabled

    async def enhance(self, operation: OperationDescriptor, client: httpx.AsyncClient) -> str | None:
        """Return an enhanced body for ``operation``, or None to keep the placeholder."""
        try:
            response = await client.post(
                f"{self.settings.api_url.rstrip('/')}/chat/completions",
                headers={
                    "Authorization": f"Bearer {self.settings.api_key.get_secret_value()}",
                    "Content-Type": "application/json",
                },
                json={
                    "model": self.settings.model,
                    "messages": [
                        {"role": "system", "content": SYSTEM_PROMPT},
                        {"role": "user", "content": build_prompt(operation)},
                    ],
                    "max_tokens": self.settings.max_tokens,
                    "temperature": self.settings.temperature,
                },
                timeout=self.settings.enhance_timeout,
            )
            response.raise_for_status()
            content = response.json()["choices"][0]["message"]["content"]
        except (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError) as exc:
            logger.warning("Enhancement failed for %s: %s", operation.operation_id, exc)
            return None

        body = extract_body(content) if isinstance(content, str) else None
        if body is None:
            logger.warning("Enhancement for %s returned no usable body", operation.operation_id)
        return body

    async def enhance_all(self, operations: Iterable[OperationDescriptor]) -> dict[str, str]:
        """Enhance every operation concurrently; map handler name -> body."""
        operations = list(operations)
        if not self.enabled:
            logger.warning("No API key configured. Skipping AI enhancement.")
            return {}
        if not operations:
            return {}

        if self._client is not None:
            results = await self._gather(operations, self._client)
        else:
            async with httpx.AsyncClient() as client:
                results = await self._gather(operations, client)

        bodies = {
            op.handler: body
            for op, body in zip(operations, results)
            if body is not None
        }
        logger.info("Enhanced %d of %d handlers", len(bodies), len(operations))
        return bodies

    async def _gather(
        self, operations: list[OperationDescriptor], client: httpx.AsyncClient
    ) -> list[str | None]:
        return list(await asyncio.gather(*(self.enhance(op, client) for op in operations)))

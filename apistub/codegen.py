"""Render templates and write generated output.

Emitters build plain template contexts; this module turns them into
artifacts and, once a whole run has succeeded, writes them to disk.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import jinja2

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"


@dataclass(frozen=True)
class GeneratedArtifact:
    path: str
    content: str
    description: str


def _environment() -> jinja2.Environment:
    env = jinja2.Environment(
        loader=jinja2.FileSystemLoader(str(TEMPLATE_DIR)),
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
        undefined=jinja2.StrictUndefined,
        autoescape=False,
    )
    env.filters["pyrepr"] = repr
    return env


def render(template_name: str, context: dict[str, Any]) -> str:
    """Render one template with ``context``."""
    template = _environment().get_template(template_name)
    return template.render(**context)


def write_artifacts(artifacts: Iterable[GeneratedArtifact], output_dir: Path | str) -> list[Path]:
    """Write every artifact under ``output_dir``, creating directories as needed."""
    root = Path(output_dir)
    root.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    for artifact in artifacts:
        output_path = root / artifact.path
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(artifact.content, encoding="utf-8")
        logger.info("Generated %s - %s", artifact.path, artifact.description)
        written.append(output_path)
    return written

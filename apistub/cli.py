"""Command line interface entry point."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import click
from pydantic import ValidationError

from .codegen import write_artifacts
from .config import Settings
from .engine import build_plan, generate, generate_enhanced
from .errors import GenerationError
from .loader import load_spec


class CliError(Exception):
    """Custom CLI error."""


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="apistub")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log at DEBUG level.")
def cli(verbose: bool) -> None:
    """Generate typed request-handler stubs from an OpenAPI document."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command(name="generate")
@click.argument("spec_path", metavar="SPEC", type=click.Path(path_type=str))
@click.option(
    "--output",
    "output_dir",
    required=False,
    type=click.Path(path_type=str),
    help="Directory to write the generated modules to (default: APISTUB_OUTPUT_DIR)",
)
@click.option(
    "--enhance",
    is_flag=True,
    default=False,
    help="Ask the configured chat endpoint for handler bodies.",
)
def generate_command(spec_path: str, output_dir: str | None, enhance: bool) -> None:
    """Generate type declarations, the router and route group modules."""
    try:
        settings = Settings()
        spec = load_spec(spec_path)
        if enhance:
            artifacts = asyncio.run(generate_enhanced(spec, settings))
        else:
            artifacts = generate(spec, settings)
        target = Path(output_dir) if output_dir else settings.output_dir
        written = write_artifacts(artifacts, target)
    except (GenerationError, OSError, ValidationError) as exc:
        raise CliError(str(exc)) from exc
    for path in written:
        click.echo(str(path))


@cli.command(name="routes")
@click.argument("spec_path", metavar="SPEC", type=click.Path(path_type=str))
def routes_command(spec_path: str) -> None:
    """List route groups and the operations dispatched by each."""
    try:
        plan = build_plan(load_spec(spec_path))
    except GenerationError as exc:
        raise CliError(str(exc)) from exc
    for group in plan.groups:
        click.echo(f"{group.key} ({group.module}.py)")
        for op in group.operations:
            click.echo(f"  {op.method.upper()} {op.path} -> {op.handler}")


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for console_scripts wiring."""
    argv = argv if argv is not None else sys.argv[1:]
    try:
        cli.main(args=list(argv), prog_name="apistub", standalone_mode=False)
    except CliError as exc:
        click.echo(f"error: {exc}", err=True)
        return 1
    except click.ClickException as exc:
        exc.show()
        return exc.exit_code
    except click.Abort:
        click.echo("Aborted.", err=True)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())

# clipit/cli/identify.py
"""
CLI entrypoint for movie identification.

Thin adapter, no business logic:
- Parse arguments
- Invoke the core pipeline
- Write the JSON response
- Provide clear user feedback on stderr

Structured JSON logs from the pipeline go to stderr; stdout carries only the response.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import typer

from clipit.config.settings import get_settings
from clipit.identifier.api import not_found_payload
from clipit.identifier.errors import ClipItError, InputError
from clipit.identifier.runner import identify as run_pipeline
from clipit.identifier.schema import NotFoundResult


EXIT_FAILURE = 1
EXIT_INPUT_ERROR = 2
EXIT_NOT_FOUND = 3

app = typer.Typer(
    name="clipit",
    help="ClipIt: find the movie behind a YouTube clip",
    no_args_is_help=True,
)


@app.callback()
def main() -> None:
    """Identify movies from video clips."""


def write_payload(payload: Dict[str, Any], out: Optional[Path], pretty: bool) -> None:
    text = json.dumps(payload, ensure_ascii=False, indent=2 if pretty else None)
    if out is None:
        typer.echo(text)
        return
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(text + "\n", encoding="utf-8")
    typer.echo(f"Response written to: {out}", err=True)


@app.command()
def identify(
    url: str = typer.Argument(..., help="YouTube video URL (watch, youtu.be, embed or shorts link)"),
    out: Optional[Path] = typer.Option(None, "--out", "-o", help="Write the JSON response to this file"),
    pretty: bool = typer.Option(True, "--pretty/--compact", help="Indent the JSON response"),
) -> None:
    """
    Identify the movie a clip comes from and print the enriched result as JSON.
    """
    typer.echo(f"Identifying: {url}", err=True)

    try:
        outcome = run_pipeline(url, get_settings())
    except KeyboardInterrupt:
        typer.echo("\nInterrupted by user.", err=True)
        sys.exit(EXIT_FAILURE)
    except InputError as exc:
        typer.echo(typer.style(f"✗ {exc}", fg=typer.colors.RED, bold=True), err=True)
        sys.exit(EXIT_INPUT_ERROR)
    except ClipItError as exc:
        typer.echo(typer.style("✗ Identification failed", fg=typer.colors.RED, bold=True), err=True)
        typer.echo(f"Error: {exc}", err=True)
        sys.exit(EXIT_FAILURE)
    except Exception as exc:  # pylint: disable=broad-except
        typer.echo(typer.style("✗ Identification failed", fg=typer.colors.RED, bold=True), err=True)
        typer.echo(f"Error: {exc}", err=True)
        typer.echo("See structured JSON logs above for detailed diagnostics.", err=True)
        sys.exit(EXIT_FAILURE)

    if isinstance(outcome, NotFoundResult):
        typer.echo(typer.style(f"⚠ {outcome.error}", fg=typer.colors.YELLOW), err=True)
        write_payload(not_found_payload(outcome), out, pretty)
        sys.exit(EXIT_NOT_FOUND)

    best = outcome.matches[0]
    typer.echo(
        typer.style(
            f"✓ {best.movie.title} ({best.movie.year}), {best.confidence}% confidence",
            fg=typer.colors.GREEN,
            bold=True,
        ),
        err=True,
    )
    if len(outcome.matches) > 1:
        typer.echo(f"{len(outcome.matches) - 1} other candidate(s) resolved", err=True)
    write_payload(outcome.model_dump(mode="json", by_alias=True), out, pretty)


if __name__ == "__main__":
    app()

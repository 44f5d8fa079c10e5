from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from ferrolint import __version__
from ferrolint.config import ConfigError
from ferrolint.engine import tree_sitter
from ferrolint.engine.types import CheckSummary
from ferrolint.logging_utils import configure_logging
from ferrolint.reporters.json_reporter import render_json
from ferrolint.reporters.text import render_text

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="ferrolint: style lints for Rust sources.",
)
console = Console()
err_console = Console(stderr=True)
logger = logging.getLogger(__name__)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def _main(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Verbose logs (printed to stderr)."),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Reduce non-essential output."),
    ] = False,
) -> None:
    """ferrolint CLI."""

    if verbose and quiet:
        raise typer.BadParameter("Choose at most one: --verbose or --quiet.")
    configure_logging(verbose=verbose, quiet=quiet)
    ctx.obj = {"verbose": verbose, "quiet": quiet}


def _cli_settings(ctx: typer.Context) -> dict[str, bool]:
    obj = ctx.find_root().obj
    if not isinstance(obj, dict):
        return {"verbose": False, "quiet": False}
    return {"verbose": bool(obj.get("verbose", False)), "quiet": bool(obj.get("quiet", False))}


def _emit_output(fmt: str, *, summary: CheckSummary, project_root: Path) -> None:
    normalized = fmt.strip().lower()
    if normalized == "text":
        typer.echo(render_text(summary, project_root=project_root))
        return
    if normalized == "json":
        typer.echo(render_json(summary, project_root=project_root))
        return
    raise typer.BadParameter("Unsupported format. Use: text, json.")


@app.command()
def check(
    ctx: typer.Context,
    path: Annotated[
        Path,
        typer.Argument(
            exists=True,
            file_okay=True,
            dir_okay=True,
            resolve_path=True,
            help="Rust file or directory to check (default: current directory).",
        ),
    ] = Path("."),
    output_format: Annotated[
        str,
        typer.Option("--format", help="Output format: text, json.", show_default=True),
    ] = "text",
    fail: Annotated[
        bool,
        typer.Option("--fail/--no-fail", help="Exit with code 1 when findings are reported.", show_default=True),
    ] = True,
) -> None:
    """
    Lint Rust sources under PATH.
    """

    from ferrolint.scanner import check_target, prepare_target

    if output_format.strip().lower() not in {"text", "json"}:
        raise typer.BadParameter("Unsupported format. Use: text, json.")

    try:
        target = prepare_target(path)
        summary = check_target(target)
    except ConfigError as exc:
        err_console.print(f"Invalid configuration: {exc}")
        raise typer.Exit(code=2) from exc

    if summary.files_skipped and not tree_sitter.is_available() and not _cli_settings(ctx)["quiet"]:
        err_console.print(
            f"[yellow]Skipped {len(summary.files_skipped)} file(s):[/yellow] tree-sitter is not installed. "
            "Install `ferrolint\\[treesitter]`."
        )

    _emit_output(output_format, summary=summary, project_root=target.project_root)
    logger.debug("%d finding(s) across %d file(s)", len(summary.findings), summary.files_checked)

    if fail and summary.findings:
        raise typer.Exit(code=1)


@app.command()
def lints(
    output_format: Annotated[
        str,
        typer.Option("--format", help="Output format: terminal, json.", show_default=True),
    ] = "terminal",
) -> None:
    """
    List the available lints and what they catch.
    """

    from rich.table import Table

    from ferrolint.rules.registry import lint_metas

    rows = [
        {"name": meta.name, "summary": meta.summary, "explanation": meta.explanation}
        for meta in lint_metas()
    ]

    normalized = output_format.strip().lower()
    if normalized == "json":
        typer.echo(json.dumps(rows, indent=2, sort_keys=True))
        return
    if normalized != "terminal":
        raise typer.BadParameter("Unsupported format. Use: terminal, json.")

    table = Table(title="ferrolint lints")
    table.add_column("Lint", style="bold")
    table.add_column("Summary")
    for row in rows:
        table.add_row(row["name"], row["summary"])
    console.print(table)

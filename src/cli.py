"""CLI interface for til."""

import logging
import os
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from til.build import build_site, check_site
from til.config import load_config, merge_cli_overrides
from til.errors import BuildReport, TilError

app = typer.Typer(
    name="til",
    help="Render a Today I Learned log into a static site with an Atom feed.",
)

console = Console()

_LOG_LEVEL_ENV = "TIL_LOG_LEVEL"


def _configure_logging(verbose: bool) -> None:
    """Route log records through Rich, once per process."""
    root = logging.getLogger()
    level_name = "DEBUG" if verbose else os.getenv(_LOG_LEVEL_ENV, "WARNING").upper()
    root.setLevel(getattr(logging, level_name, logging.WARNING))
    if any(isinstance(handler, RichHandler) for handler in root.handlers):
        return
    handler = RichHandler(console=Console(stderr=True), show_path=False, markup=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(handler)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from til import __version__

        console.print(f"til {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Show debug logging."),
    ] = False,
) -> None:
    """til - render entries into pages, an index and a feed."""
    _configure_logging(verbose)


def _print_errors(report: BuildReport) -> None:
    for err in report.errors:
        colour = "yellow" if err.recoverable else "red"
        where = f"{err.source}: " if err.source else ""
        console.print(f"[{colour}]{err.stage}:[/{colour}] {escape(where + err.message)}")


@app.command()
def build(
    config_path: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Path to a .til.toml file."),
    ] = None,
    entries: Annotated[
        Optional[Path],
        typer.Option("--entries", "-e", help="Directory containing entry markdown files."),
    ] = None,
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Directory to write the site to."),
    ] = None,
    jobs: Annotated[
        Optional[int],
        typer.Option("--jobs", "-j", min=1, help="Render entry pages in parallel."),
    ] = None,
    strict: Annotated[
        bool,
        typer.Option("--strict", help="Exit non-zero if any entry was skipped."),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Only print errors."),
    ] = False,
) -> None:
    """Build the site: one page per entry, index.html and feed.xml."""
    config = merge_cli_overrides(
        load_config(config_path),
        entries_dir=entries,
        output_dir=output,
        jobs=jobs,
    )

    report = BuildReport()
    try:
        build_site(config, report)
    except TilError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(1)

    _print_errors(report)
    if not quiet:
        console.print(f"[green]{escape(report.summary_text())}[/green]")
        console.print(f"  Output: {config.build.output_dir}")

    if strict and report.error_count:
        raise typer.Exit(1)


@app.command()
def check(
    config_path: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Path to a .til.toml file."),
    ] = None,
    entries: Annotated[
        Optional[Path],
        typer.Option("--entries", "-e", help="Directory containing entry markdown files."),
    ] = None,
) -> None:
    """Validate entries (front-matter, permalinks, custom tags) without writing."""
    config = merge_cli_overrides(load_config(config_path), entries_dir=entries)
    report = check_site(config)

    _print_errors(report)
    count = report.items_processed.get("entries", 0)
    if report.error_count:
        console.print(f"[red]{report.error_count} problem(s) found in {config.build.entries_dir}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]{count} entries OK[/green]")


if __name__ == "__main__":
    app()

"""TraceQA CLI — Main Typer entry point.

Registers all subcommands and provides --version / --verbose global options.
"""

from __future__ import annotations

import typer
from rich.console import Console

from traceqa import __version__

TAGLINE = "Playwright traces, failure screenshots and one HTML report per run."

console = Console()

# ── Version callback ──────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print("TraceQA", style="bold cyan")
        console.print(f"  {TAGLINE}", style="dim")
        console.print(f"  v{__version__}\n", style="bold")
        raise typer.Exit()


# ── Main app ──────────────────────────────────────────────────────────────

app = typer.Typer(
    name="traceqa",
    help=f"TraceQA\n\n{TAGLINE}",
    rich_markup_mode="rich",
    no_args_is_help=True,
    add_completion=False,
)


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show TraceQA version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output.",
    ),
) -> None:
    """TraceQA -- scenario lifecycle, artifacts and reports for Playwright BDD suites."""
    if verbose:
        import logging

        logging.basicConfig(level=logging.DEBUG, format="%(name)s  %(message)s")


# ── Register subcommands ──────────────────────────────────────────────────

from traceqa.cli.install import install  # noqa: E402
from traceqa.cli.report import render, report  # noqa: E402

app.command(name="install", help="Install the Playwright browser for the configured browser type.")(install)
app.command(name="report", help="Show a recorded run in the terminal.")(report)
app.command(name="render", help="Rebuild the HTML report from a recorded run.")(render)

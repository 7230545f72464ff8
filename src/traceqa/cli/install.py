"""traceqa install — Install the Playwright browser the suite will run on.

Runs ``playwright install <engine>`` with a Rich progress spinner. The engine
follows PLAYWRIGHT_BrowserType unless --browsers is given.
"""

from __future__ import annotations

import subprocess
import sys

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from traceqa.config import TraceQAConfig
from traceqa.engine.session import UnsupportedBrowserKind, resolve_engine

console = Console()


def _engines(browsers: str | None) -> list[str]:
    if browsers:
        return [b.strip() for b in browsers.split(",") if b.strip()]
    return [resolve_engine(TraceQAConfig.load().browser_type)]


def install(
    browsers: str | None = typer.Option(
        None,
        "--browsers",
        "-b",
        help="Engines to install (comma-separated: chromium, firefox, webkit). "
             "Default: the engine for the configured browser type.",
    ),
    ci: bool = typer.Option(
        False,
        "--ci",
        help="Silent mode for CI environments (suppress interactive output).",
    ),
) -> None:
    """Install Playwright browser binaries."""
    try:
        engine_list = _engines(browsers)
    except UnsupportedBrowserKind as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(code=2)

    cmd = [sys.executable, "-m", "playwright", "install"] + engine_list

    try:
        if ci:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=600)
        else:
            with console.status(
                f"[bold blue]Installing {', '.join(engine_list)}...[/bold blue]",
                spinner="dots",
            ):
                result = subprocess.run(cmd, capture_output=True, text=True, timeout=600)
    except subprocess.TimeoutExpired:
        console.print(
            Panel(
                "[red]Installation timed out after 10 minutes.[/red]\n\nCheck your network connection and try again.",
                title="[red]Timeout[/red]",
                border_style="red",
            )
        )
        raise typer.Exit(code=3)
    except FileNotFoundError:
        console.print(
            Panel(
                "[red]Playwright is not installed.[/red]\n\nInstall it first:\n  pip install playwright",
                title="[red]Missing Dependency[/red]",
                border_style="red",
            )
        )
        raise typer.Exit(code=3)

    if result.returncode != 0:
        console.print(
            Panel(
                f"[red]Playwright install failed (exit code {result.returncode}).[/red]\n\n"
                f"{result.stderr.strip() if result.stderr else 'No error output.'}\n\n"
                "[dim]Try running manually:[/dim]\n"
                f"  {' '.join(cmd)}",
                title="[red]Installation Failed[/red]",
                border_style="red",
            )
        )
        raise typer.Exit(code=3)

    if not ci:
        console.print(
            Panel(
                f"[green]Successfully installed: {', '.join(engine_list)}[/green]",
                title="[bold green]Installation Complete[/bold green]",
                border_style="green",
            )
        )

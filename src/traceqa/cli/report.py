"""traceqa report / render — Inspect and re-render recorded runs.

Both commands read the JSON record file written next to the HTML report at
the end of a run (PlaywrightReport.json by default).
"""

from __future__ import annotations

import json
import webbrowser
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from traceqa.config import TraceQAConfig, TraceQAConfigError
from traceqa.engine.report_generator import ReportAggregator, RunInfo, ScenarioStatus
from traceqa.engine.steps import StepStatus

console = Console()

_STATUS_STYLE = {
    ScenarioStatus.PASSED: "[green]PASSED[/green]",
    ScenarioStatus.FAILED: "[red]FAILED[/red]",
    ScenarioStatus.PENDING: "[yellow]PENDING[/yellow]",
    ScenarioStatus.UNDEFINED: "[magenta]UNDEFINED[/magenta]",
}


def _default_results_path() -> Path:
    try:
        return TraceQAConfig.load().results_path
    except TraceQAConfigError as exc:
        console.print(f"[red]Config error:[/red] {exc}")
        raise typer.Exit(code=2)


def _load(results: Path | None) -> tuple[ReportAggregator, RunInfo, Path]:
    path = results or _default_results_path()
    if not path.is_file():
        console.print(
            Panel(
                f"[yellow]Results file not found:[/yellow] {path}\n\n"
                "Run the behave suite with the TraceQA hooks first.",
                title="[yellow]No Results[/yellow]",
                border_style="yellow",
            )
        )
        raise typer.Exit(code=1)
    try:
        aggregator, run = ReportAggregator.load_json(path)
    except ValueError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(code=1)
    return aggregator, run, path


def report(
    results: Path | None = typer.Argument(
        None,
        help="Results JSON to display (default: PlaywrightReport.json in the output directory).",
    ),
    failed_only: bool = typer.Option(
        False,
        "--failed",
        help="Only list failed scenarios.",
    ),
    as_json: bool = typer.Option(
        False,
        "--json",
        help="Print the summary and scenarios as JSON.",
    ),
) -> None:
    """Show a recorded run: summary counts and one line per scenario."""
    aggregator, run, _ = _load(results)
    reports = aggregator.reports
    if failed_only:
        reports = [r for r in reports if r.status is ScenarioStatus.FAILED]
    summary = aggregator.summary()

    if as_json:
        data = {
            "summary": summary.to_dict(),
            "scenarios": [r.to_dict() for r in reports],
        }
        typer.echo(json.dumps(data, indent=2, ensure_ascii=False))
        return

    console.print()
    console.print(
        Panel(
            f"Browser: [bold]{escape(run.browser_kind)}[/bold]\n"
            f"Total: {summary.total}  "
            f"[green]Passed: {summary.passed}[/green]  "
            f"[red]Failed: {summary.failed}[/red]  "
            f"[yellow]Pending: {summary.pending}[/yellow]  "
            f"[magenta]Undefined: {summary.undefined}[/magenta]\n"
            f"Success rate: [bold]{summary.success_rate}%[/bold]",
            title="[bold]TraceQA Run[/bold]",
            border_style="cyan",
        )
    )

    table = Table(border_style="cyan")
    table.add_column("#", justify="right")
    table.add_column("Feature")
    table.add_column("Scenario", style="bold")
    table.add_column("Status")
    table.add_column("Steps")
    table.add_column("Error")

    for number, r in enumerate(reports, start=1):
        passed_steps = sum(1 for s in r.steps if s.status is StepStatus.PASSED)
        error = r.error_message or "-"
        if len(error) > 80:
            error = error[:77] + "..."
        table.add_row(
            str(number),
            escape(r.feature_name or "-"),
            escape(r.scenario_name),
            _STATUS_STYLE.get(r.status, "[dim]UNKNOWN[/dim]"),
            f"{passed_steps}/{len(r.steps)}",
            escape(error),
        )

    console.print(table)
    console.print()


def render(
    results: Path | None = typer.Argument(
        None,
        help="Results JSON to render (default: PlaywrightReport.json in the output directory).",
    ),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="HTML file to write (default: PlaywrightReport.html next to the results file).",
    ),
    open_report: bool = typer.Option(
        False,
        "--open",
        help="Open the report in the default browser.",
    ),
) -> None:
    """Rebuild the HTML report from a results JSON file."""
    aggregator, run, path = _load(results)
    report_path = output or path.with_suffix(".html")
    aggregator.write(report_path, run)
    console.print(f"[green]Report written:[/green] {report_path} ({len(aggregator)} scenarios)")

    if open_report:
        webbrowser.open(f"file://{report_path.resolve()}")
        console.print(f"[dim]Opened: {report_path}[/dim]")

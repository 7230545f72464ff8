"""TraceQA Report Generator — per-scenario records and the aggregated HTML report.

ReportAggregator is the single collection point for ScenarioReport records
during a run. At run end it renders a self-contained HTML summary (Jinja2,
autoescaped) and a JSON copy of the records that `traceqa render` can turn
back into HTML later.
"""

from __future__ import annotations

import dataclasses
import datetime as dt
import enum
import json
import logging
import threading
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape

from traceqa.engine.artifacts import relative_to
from traceqa.engine.steps import StepOutcome, StepStatus
from traceqa.models import REPORT_TIME_FORMAT

logger = logging.getLogger("traceqa.engine.report_generator")

_TEMPLATES_DIR = Path(__file__).parent / "templates"


class ScenarioStatus(str, enum.Enum):
    PASSED = "Passed"
    FAILED = "Failed"
    PENDING = "Pending"
    UNDEFINED = "Undefined"
    UNKNOWN = "Unknown"


# Runner status names (behave's Status names, plus the usual aliases)
_RUNNER_STATUS = {
    "passed": ScenarioStatus.PASSED,
    "ok": ScenarioStatus.PASSED,
    "pending": ScenarioStatus.PENDING,
    "pending_warn": ScenarioStatus.PENDING,
    "undefined": ScenarioStatus.UNDEFINED,
    "undefined_step": ScenarioStatus.UNDEFINED,
    "failed": ScenarioStatus.FAILED,
    "error": ScenarioStatus.FAILED,
    "hook_error": ScenarioStatus.FAILED,
    "binding_error": ScenarioStatus.FAILED,
    "test_error": ScenarioStatus.FAILED,
}


def classify_scenario_status(raw_status: str | None, error: str | None = None) -> ScenarioStatus:
    """Final status of a scenario. A captured error always means Failed."""
    if error:
        return ScenarioStatus.FAILED
    return _RUNNER_STATUS.get((raw_status or "").strip().lower(), ScenarioStatus.UNKNOWN)


def success_rate(passed: int, total: int) -> int:
    """Percentage of passed scenarios, rounded half up; 0 for an empty run."""
    if total == 0:
        return 0
    return (passed * 200 + total) // (total * 2)


@dataclasses.dataclass
class ScenarioReport:
    """Report for one completed scenario."""

    scenario_name: str
    feature_name: str
    status: ScenarioStatus
    execution_time: dt.datetime
    browser_kind: str
    trace_file_path: Path | None
    screenshot_path: Path | None = None
    error_message: str | None = None
    steps: list[StepOutcome] = dataclasses.field(default_factory=list)
    missing_artifacts: list[str] = dataclasses.field(default_factory=list)

    def __post_init__(self) -> None:
        # Screenshots only belong to failed scenarios
        if self.status is not ScenarioStatus.FAILED:
            self.screenshot_path = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "scenario_name": self.scenario_name,
            "feature_name": self.feature_name,
            "status": self.status.value,
            "execution_time": self.execution_time.isoformat(),
            "browser_kind": self.browser_kind,
            "trace_file_path": str(self.trace_file_path) if self.trace_file_path else None,
            "screenshot_path": str(self.screenshot_path) if self.screenshot_path else None,
            "error_message": self.error_message,
            "steps": [s.to_dict() for s in self.steps],
            "missing_artifacts": list(self.missing_artifacts),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScenarioReport:
        trace = data.get("trace_file_path")
        screenshot = data.get("screenshot_path")
        return cls(
            scenario_name=data.get("scenario_name", ""),
            feature_name=data.get("feature_name", ""),
            status=ScenarioStatus(data.get("status", ScenarioStatus.UNKNOWN.value)),
            execution_time=dt.datetime.fromisoformat(data["execution_time"]),
            browser_kind=data.get("browser_kind", ""),
            trace_file_path=Path(trace) if trace else None,
            screenshot_path=Path(screenshot) if screenshot else None,
            error_message=data.get("error_message") or None,
            steps=[StepOutcome.from_dict(s) for s in data.get("steps", [])],
            missing_artifacts=list(data.get("missing_artifacts", [])),
        )


@dataclasses.dataclass
class RunInfo:
    """Run-level metadata shown in the report header."""

    browser_kind: str
    run_start: dt.datetime
    run_end: dt.datetime | None = None

    @classmethod
    def from_session(cls, session: Any) -> RunInfo:
        return cls(
            browser_kind=session.browser_kind,
            run_start=session.run_start,
            run_end=session.run_end,
        )

    @property
    def duration(self) -> dt.timedelta:
        if self.run_end is None:
            return dt.timedelta(0)
        return self.run_end - self.run_start


@dataclasses.dataclass
class RunSummary:
    total: int
    passed: int
    failed: int
    pending: int
    undefined: int

    @property
    def success_rate(self) -> int:
        return success_rate(self.passed, self.total)

    def to_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "passed": self.passed,
            "failed": self.failed,
            "pending": self.pending,
            "undefined": self.undefined,
            "success_rate": self.success_rate,
        }


# Presentation tables: status -> (css class, icon)
_SCENARIO_BADGES = {
    ScenarioStatus.PASSED: ("status-passed", "✓"),
    ScenarioStatus.FAILED: ("status-failed", "✗"),
    ScenarioStatus.PENDING: ("status-pending", "⏸"),
}
_DEFAULT_SCENARIO_BADGE = ("status-undefined", "?")

_STEP_BADGES = {
    StepStatus.PASSED: ("step-passed", "✓"),
    StepStatus.FAILED: ("step-failed", "✗"),
    StepStatus.PENDING: ("step-pending", "⏸"),
}


def format_duration(delta: dt.timedelta) -> str:
    """Format a run duration as ``HHh MMm SSs``."""
    seconds = max(int(delta.total_seconds()), 0)
    hours, remainder = divmod(seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02d}h {minutes:02d}m {seconds:02d}s"


class ReportAggregator:
    """Collects scenario reports for a run and renders the run report."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._reports: list[ScenarioReport] = []

        self._jinja_env = Environment(
            loader=FileSystemLoader(str(_TEMPLATES_DIR)),
            autoescape=select_autoescape(["html"]),
        )
        self._jinja_env.filters["report_time"] = _filter_report_time

    def record_scenario(self, report: ScenarioReport) -> None:
        """Append one scenario's report. Safe to call from any thread."""
        with self._lock:
            self._reports.append(report)
        logger.info("Recorded scenario '%s': %s", report.scenario_name, report.status.value)

    @property
    def reports(self) -> list[ScenarioReport]:
        with self._lock:
            return list(self._reports)

    def __len__(self) -> int:
        with self._lock:
            return len(self._reports)

    def summary(self, reports: list[ScenarioReport] | None = None) -> RunSummary:
        reports = self.reports if reports is None else reports
        statuses = [r.status for r in reports]
        return RunSummary(
            total=len(statuses),
            passed=statuses.count(ScenarioStatus.PASSED),
            failed=statuses.count(ScenarioStatus.FAILED),
            pending=statuses.count(ScenarioStatus.PENDING),
            undefined=statuses.count(ScenarioStatus.UNDEFINED),
        )

    # -- HTML -----------------------------------------------------------------

    def render(
        self,
        run: RunInfo,
        report_path: Path,
        reports: list[ScenarioReport] | None = None,
        generated_at: dt.datetime | None = None,
    ) -> str:
        """Render the HTML report.

        Args:
            run: Run metadata for the header.
            report_path: Where the report will live; artifact links are made
                relative to its directory.
            reports: Records to render; defaults to everything recorded.
            generated_at: Timestamp shown as the generation time.

        Returns:
            Complete HTML document as a string.
        """
        reports = self.reports if reports is None else reports
        template = self._jinja_env.get_template("report.html")
        return template.render(
            run=run,
            duration=format_duration(run.duration),
            generated_at=generated_at or dt.datetime.now(),
            summary=self.summary(reports),
            rows=[self._row(i, r, report_path) for i, r in enumerate(reports, start=1)],
        )

    def _row(self, number: int, report: ScenarioReport, report_path: Path) -> dict[str, Any]:
        status_class, status_icon = _SCENARIO_BADGES.get(report.status, _DEFAULT_SCENARIO_BADGE)
        steps = []
        for step in report.steps:
            step_class, step_icon = _STEP_BADGES[step.status]
            steps.append({
                "keyword": step.keyword.value,
                "text": step.text,
                "css": step_class,
                "icon": step_icon,
                "error": step.error_message,
            })
        return {
            "number": number,
            "feature": report.feature_name,
            "scenario": report.scenario_name,
            "status": report.status.value,
            "failed": report.status is ScenarioStatus.FAILED,
            "css": status_class,
            "icon": status_icon,
            "browser": report.browser_kind,
            "execution_time": report.execution_time,
            "trace_link": relative_to(report_path, report.trace_file_path),
            "screenshot_link": relative_to(report_path, report.screenshot_path),
            "error": report.error_message,
            "steps": steps,
            "missing": report.missing_artifacts,
        }

    def write(self, report_path: Path, run: RunInfo) -> Path:
        """Render the report and write it to ``report_path``."""
        html = self.render(run, report_path)
        report_path.parent.mkdir(parents=True, exist_ok=True)
        report_path.write_text(html, encoding="utf-8")
        logger.info("HTML report written to %s (%d scenarios)", report_path, len(self))
        return report_path

    # -- JSON -----------------------------------------------------------------

    def write_json(self, results_path: Path, run: RunInfo) -> Path:
        """Persist run metadata and every record as JSON."""
        reports = self.reports
        data = {
            "run": {
                "browser_kind": run.browser_kind,
                "run_start": run.run_start.isoformat(),
                "run_end": run.run_end.isoformat() if run.run_end else None,
            },
            "summary": self.summary(reports).to_dict(),
            "scenarios": [r.to_dict() for r in reports],
        }
        results_path.parent.mkdir(parents=True, exist_ok=True)
        results_path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        return results_path

    @classmethod
    def load_json(cls, results_path: Path) -> tuple[ReportAggregator, RunInfo]:
        """Rebuild an aggregator and its run metadata from ``write_json`` output.

        Raises:
            ValueError: The file is not a TraceQA results file.
        """
        try:
            data = json.loads(results_path.read_text(encoding="utf-8"))
            run_data = data["run"]
            run = RunInfo(
                browser_kind=run_data.get("browser_kind", ""),
                run_start=dt.datetime.fromisoformat(run_data["run_start"]),
                run_end=dt.datetime.fromisoformat(run_data["run_end"]) if run_data.get("run_end") else None,
            )
            aggregator = cls()
            for scenario in data.get("scenarios", []):
                aggregator.record_scenario(ScenarioReport.from_dict(scenario))
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
            raise ValueError(f"Not a TraceQA results file: {results_path} ({exc})") from exc
        return aggregator, run


# ── Jinja2 Custom Filters ───────────────────────────────────────────────────


def _filter_report_time(value: Any) -> str:
    """Format a datetime for display; empty for missing values."""
    if isinstance(value, dt.datetime):
        return value.strftime(REPORT_TIME_FORMAT)
    return ""

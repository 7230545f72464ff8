"""TraceQA Orchestrator — wires the lifecycle, step ledger, artifacts and report.

Exposes the callbacks a BDD runner needs: start/finish of the run, start/finish
of each scenario, and one call per observed step. Only start_run() may raise;
everything that goes wrong inside a scenario ends up in that scenario's report.
"""

from __future__ import annotations

import dataclasses
import datetime as dt
import logging
from pathlib import Path

from traceqa.config import TraceQAConfig
from traceqa.engine.artifacts import ArtifactManager
from traceqa.engine.protocols import BrowserDriver, PageHandle, ScenarioSource
from traceqa.engine.report_generator import (
    ReportAggregator,
    RunInfo,
    ScenarioReport,
    ScenarioStatus,
    classify_scenario_status,
)
from traceqa.engine.session import (
    RunSession,
    ScenarioArtifacts,
    ScenarioContext,
    SessionLifecycle,
)
from traceqa.engine.steps import DeclaredSteps, FeatureStepExtractor, StepOutcome, StepRecorder

logger = logging.getLogger("traceqa.engine.orchestrator")


@dataclasses.dataclass
class ScenarioHandle:
    """Everything the orchestrator tracks for one running scenario."""

    source: ScenarioSource
    declared: DeclaredSteps
    recorder: StepRecorder
    context: ScenarioContext | None = None
    setup_error: str | None = None  # Set when the browser context could not be opened
    report: ScenarioReport | None = None

    @property
    def page(self) -> PageHandle | None:
        return self.context.page if self.context is not None else None

    @property
    def finished(self) -> bool:
        return self.report is not None


class TraceOrchestrator:
    """Coordinates one run: browser session, per-scenario capture, final report."""

    def __init__(self, config: TraceQAConfig, driver: BrowserDriver | None = None) -> None:
        self._config = config
        self._lifecycle = SessionLifecycle(config, driver)
        self._artifacts = ArtifactManager(config.output_dir)
        self._extractor = FeatureStepExtractor()
        self._aggregator = ReportAggregator()
        self._session: RunSession | None = None

    @property
    def session(self) -> RunSession | None:
        return self._session

    @property
    def aggregator(self) -> ReportAggregator:
        return self._aggregator

    @property
    def artifacts(self) -> ArtifactManager:
        return self._artifacts

    # -- Run ------------------------------------------------------------------

    def start_run(self) -> RunSession:
        """Prepare artifact directories and launch the run's browser.

        Raises:
            UnsupportedBrowserKind, AuthenticationFailure: Run cannot start.
        """
        self._artifacts.ensure_directories()
        self._session = self._lifecycle.start_run()
        return self._session

    def finish_run(self) -> Path:
        """Release the browser, then write the HTML report and JSON records.

        Returns:
            Path of the HTML report.
        """
        session = self._require_session()
        self._lifecycle.end_run(session)

        run = RunInfo.from_session(session)
        self._aggregator.write_json(self._artifacts.results_path, run)
        report_path = self._aggregator.write(self._artifacts.report_path, run)
        summary = self._aggregator.summary()
        logger.info(
            "Run summary: %d total, %d passed, %d failed, %d pending, %d undefined (%d%%)",
            summary.total, summary.passed, summary.failed,
            summary.pending, summary.undefined, summary.success_rate,
        )
        return report_path

    # -- Scenario -------------------------------------------------------------

    def start_scenario(self, source: ScenarioSource) -> ScenarioHandle:
        """Read the declared steps and open the scenario's browser context.

        Failing to open the context does not raise: the scenario is reported
        as failed when it finishes.
        """
        session = self._require_session()
        declared = self._extractor.declared_steps(source.feature_text, source.title)
        if not declared.available:
            logger.warning(
                "Declared steps unavailable for '%s' (%s); reporting observed steps only",
                source.title, declared.reason,
            )

        handle = ScenarioHandle(source=source, declared=declared, recorder=StepRecorder())
        try:
            handle.context = self._lifecycle.start_scenario(session, source.title)
            handle.recorder = handle.context.recorder
        except Exception as exc:
            handle.setup_error = f"Browser context could not be opened: {exc}"
            logger.error("Scenario '%s': %s", source.title, handle.setup_error)
        return handle

    def observe_step(
        self,
        handle: ScenarioHandle,
        keyword: str,
        text: str,
        status: str,
        error: str | None = None,
    ) -> StepOutcome:
        return handle.recorder.record(keyword, text, status, error)

    def finish_scenario(
        self,
        handle: ScenarioHandle,
        raw_status: str | None,
        error: str | None = None,
    ) -> ScenarioReport:
        """Capture artifacts, dispose the context and record the scenario's report.

        Calling it again for a finished scenario returns the existing report.
        """
        if handle.report is not None:
            return handle.report

        session = self._require_session()
        error = error or handle.setup_error
        status = classify_scenario_status(raw_status, error)
        finished_at = dt.datetime.now()

        artifacts: ScenarioArtifacts | None = None
        if handle.context is not None:
            try:
                trace_path = self._artifacts.trace_path_for(
                    finished_at, session.browser_kind, handle.source.title, status.value,
                )
                screenshot_path = None
                if status is not ScenarioStatus.PASSED:
                    screenshot_path = self._artifacts.screenshot_path_for(
                        finished_at, session.browser_kind, handle.source.title,
                    )
                artifacts = self._lifecycle.end_scenario(
                    handle.context, status, trace_path, screenshot_path,
                )
            finally:
                self._lifecycle.abort_scenario(handle.context)

        steps = self._extractor.reconcile(handle.declared.steps, handle.recorder.steps)
        report = ScenarioReport(
            scenario_name=handle.source.title,
            feature_name=handle.source.feature_title,
            status=status,
            execution_time=finished_at,
            browser_kind=session.browser_kind,
            trace_file_path=artifacts.trace.path if artifacts else None,
            screenshot_path=artifacts.screenshot.path if artifacts and artifacts.screenshot else None,
            error_message=error,
            steps=steps,
            missing_artifacts=artifacts.missing if artifacts else ["trace"],
        )
        handle.report = report
        self._aggregator.record_scenario(report)
        return report

    def abort_scenario(self, handle: ScenarioHandle) -> None:
        """Dispose the scenario's context if it is still open. Captures nothing."""
        if handle.context is not None:
            self._lifecycle.abort_scenario(handle.context)

    def _require_session(self) -> RunSession:
        if self._session is None:
            raise RuntimeError("start_run() must be called before scenarios run")
        return self._session

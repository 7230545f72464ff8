"""TraceQA engine — scenario lifecycle, step ledger, artifacts and reporting.

- SessionLifecycle: one browser per run, one traced context per scenario
- StepRecorder / FeatureStepExtractor: observed and declared step ledgers
- ArtifactManager: trace/screenshot layout and report-relative links
- ReportAggregator: scenario records, HTML and JSON run reports
- TraceOrchestrator: the runner-facing callbacks tying it all together

The Playwright driver is imported lazily by SessionLifecycle so the engine can
be used with any BrowserDriver implementation.
"""

from traceqa.engine.artifacts import ArtifactManager, relative_to, sanitize_filename
from traceqa.engine.orchestrator import ScenarioHandle, TraceOrchestrator
from traceqa.engine.protocols import ScenarioSource
from traceqa.engine.report_generator import (
    ReportAggregator,
    RunInfo,
    RunSummary,
    ScenarioReport,
    ScenarioStatus,
    classify_scenario_status,
    success_rate,
)
from traceqa.engine.session import (
    AuthenticationFailure,
    RunSession,
    ScenarioContext,
    SessionLifecycle,
    TraceQAError,
    UnsupportedBrowserKind,
)
from traceqa.engine.steps import (
    DeclaredSteps,
    FeatureStepExtractor,
    StepKeyword,
    StepOutcome,
    StepRecorder,
    StepStatus,
)

__all__ = [
    "ArtifactManager",
    "AuthenticationFailure",
    "DeclaredSteps",
    "FeatureStepExtractor",
    "ReportAggregator",
    "RunInfo",
    "RunSession",
    "RunSummary",
    "ScenarioContext",
    "ScenarioHandle",
    "ScenarioReport",
    "ScenarioSource",
    "ScenarioStatus",
    "SessionLifecycle",
    "StepKeyword",
    "StepOutcome",
    "StepRecorder",
    "StepStatus",
    "TraceOrchestrator",
    "TraceQAError",
    "UnsupportedBrowserKind",
    "classify_scenario_status",
    "relative_to",
    "sanitize_filename",
    "success_rate",
]

"""behave integration for TraceQA.

Re-export these hooks from a project's ``features/environment.py``::

    from traceqa.behave_hooks import (
        after_all, after_scenario, after_step, before_all, before_scenario,
    )

Step implementations use ``context.page`` (a Playwright ``Page``). The
orchestrator is available as ``context.traceqa`` if an environment needs to
add its own behaviour around these hooks.

Config comes from ``traceqa.yaml`` plus the PLAYWRIGHT_* environment
variables; ``-D traceqa_config=path/to/file.yaml`` points at another file.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from behave.model import Scenario, Step
from behave.runner import Context

from traceqa.config import TraceQAConfig
from traceqa.engine.orchestrator import ScenarioHandle, TraceOrchestrator
from traceqa.engine.protocols import ScenarioSource
from traceqa.engine.steps import FeatureStepExtractor

logger = logging.getLogger("traceqa.behave_hooks")

# behave names outline rows "<title> -- @1.2 <examples name>"
_OUTLINE_SUFFIX = re.compile(r"\s+--\s+@.*$")

_ABORTED_MESSAGE = "Scenario aborted before completion"

__all__ = ["before_all", "before_scenario", "after_step", "after_scenario", "after_all"]


def scenario_title(scenario: Scenario) -> str:
    return _OUTLINE_SUFFIX.sub("", scenario.name or "")


def scenario_source(scenario: Scenario, extractor: FeatureStepExtractor | None = None) -> ScenarioSource:
    """Describe a behave scenario for the orchestrator."""
    extractor = extractor or FeatureStepExtractor()
    feature = getattr(scenario, "feature", None)
    return ScenarioSource(
        title=scenario_title(scenario),
        feature_title=getattr(feature, "name", "") or "",
        feature_text=extractor.load(getattr(feature, "filename", None)),
    )


def scenario_error(scenario: Scenario) -> str | None:
    """Error message of the first failed step, if any."""
    steps = getattr(scenario, "all_steps", None) or scenario.steps
    for step in steps:
        message = getattr(step, "error_message", None)
        if message and _status_name(step) in ("failed", "error", "hook_error"):
            return str(message).strip()
    return None


def _status_name(item: Scenario | Step) -> str:
    status = getattr(item, "status", None)
    return getattr(status, "name", str(status or "")).lower()


def before_all(context: Context) -> None:
    """Launch the run's browser and log in once."""
    userdata = getattr(context.config, "userdata", {}) or {}
    config_path = userdata.get("traceqa_config")
    config = TraceQAConfig.load(Path(config_path) if config_path else None)
    orchestrator = TraceOrchestrator(config)
    orchestrator.start_run()
    context.traceqa = orchestrator


def before_scenario(context: Context, scenario: Scenario) -> None:
    """Open the scenario's traced browser context and expose its page."""
    orchestrator: TraceOrchestrator = context.traceqa
    handle = orchestrator.start_scenario(scenario_source(scenario))
    context.traceqa_scenario = handle
    page = handle.page
    context.page = getattr(page, "raw", page)
    # Cleanups run even when behave aborts the scenario
    context.add_cleanup(_finish_if_aborted, orchestrator, handle)


def after_step(context: Context, step: Step) -> None:
    handle: ScenarioHandle = context.traceqa_scenario
    context.traceqa.observe_step(
        handle,
        keyword=step.keyword,
        text=step.name,
        status=_status_name(step),
        error=getattr(step, "error_message", None),
    )


def after_scenario(context: Context, scenario: Scenario) -> None:
    """Capture artifacts and record the scenario report."""
    handle: ScenarioHandle = context.traceqa_scenario
    context.traceqa.finish_scenario(
        handle,
        raw_status=_status_name(scenario),
        error=scenario_error(scenario),
    )


def after_all(context: Context) -> None:
    """Release the browser and write the run report."""
    orchestrator: TraceOrchestrator | None = getattr(context, "traceqa", None)
    if orchestrator is None:
        return
    report_path = orchestrator.finish_run()
    logger.info("TraceQA report: %s", report_path)


def _finish_if_aborted(orchestrator: TraceOrchestrator, handle: ScenarioHandle) -> None:
    if handle.finished:
        return
    logger.warning("Scenario '%s' ended without after_scenario; recording it as aborted", handle.source.title)
    try:
        orchestrator.finish_scenario(handle, raw_status="failed", error=_ABORTED_MESSAGE)
    finally:
        orchestrator.abort_scenario(handle)

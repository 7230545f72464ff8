"""TraceQA Session Lifecycle — browser, context and page lifetimes for a run.

One browser per run, launched by start_run() together with a single login
pass whose storage state every scenario context reuses. Each scenario gets its
own isolated context with tracing enabled; end_scenario() captures the failure
screenshot and trace best-effort and always disposes the context.
"""

from __future__ import annotations

import dataclasses
import datetime as dt
import logging
import threading
from pathlib import Path
from typing import Any

from traceqa.config import TraceQAConfig
from traceqa.engine.protocols import BrowserDriver, BrowserHandle, ContextHandle, PageHandle
from traceqa.engine.report_generator import ScenarioStatus
from traceqa.engine.steps import StepRecorder
from traceqa.models import BROWSER_ENGINES, FailureKind

logger = logging.getLogger("traceqa.engine.session")


class TraceQAError(Exception):
    """Base class for errors that abort a run."""

    failure: FailureKind | None = None


class UnsupportedBrowserKind(TraceQAError):
    """The configured browser type has no Playwright engine."""

    failure = FailureKind.UNSUPPORTED_BROWSER


class AuthenticationFailure(TraceQAError):
    """The login pass at run start failed or timed out."""

    failure = FailureKind.AUTHENTICATION


def resolve_engine(browser_type: str) -> str:
    """Map a configured browser name (Chrome, Edge, Firefox, Safari) to its engine."""
    try:
        return BROWSER_ENGINES[browser_type]
    except KeyError:
        raise UnsupportedBrowserKind(
            f"Unsupported browser type: {browser_type!r}\n\n"
            f"Browser type can be {', '.join(BROWSER_ENGINES)}"
        ) from None


@dataclasses.dataclass
class CaptureResult:
    """Outcome of writing one artifact. ``path`` is None when nothing was written."""

    path: Path | None
    failure: FailureKind | None = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.failure is None and self.path is not None

    @classmethod
    def failed(cls, message: str) -> CaptureResult:
        return cls(path=None, failure=FailureKind.ARTIFACT_CAPTURE, message=message)


@dataclasses.dataclass
class ScenarioArtifacts:
    trace: CaptureResult
    screenshot: CaptureResult | None = None  # None when no screenshot was needed

    @property
    def missing(self) -> list[str]:
        missing = []
        if not self.trace.ok:
            missing.append("trace")
        if self.screenshot is not None and not self.screenshot.ok:
            missing.append("screenshot")
        return missing


@dataclasses.dataclass
class RunSession:
    """Process-wide state for one run. Shared read-only by every scenario."""

    browser: BrowserHandle
    browser_kind: str
    engine: str
    auth_state_path: Path | None
    run_start: dt.datetime
    run_end: dt.datetime | None = None
    ended: bool = False
    _contexts: dict[int, ScenarioContext] = dataclasses.field(default_factory=dict, repr=False)
    _lock: threading.Lock = dataclasses.field(default_factory=threading.Lock, repr=False)

    def _track(self, scenario: ScenarioContext) -> None:
        with self._lock:
            self._contexts[id(scenario)] = scenario

    def _untrack(self, scenario: ScenarioContext) -> None:
        with self._lock:
            self._contexts.pop(id(scenario), None)

    @property
    def open_scenarios(self) -> list[ScenarioContext]:
        with self._lock:
            return list(self._contexts.values())


@dataclasses.dataclass
class ScenarioContext:
    """Per-scenario browser state. The context and page belong to this scenario only."""

    session: RunSession
    title: str
    context: ContextHandle
    page: PageHandle
    started_at: dt.datetime
    recorder: StepRecorder = dataclasses.field(default_factory=StepRecorder)
    closed: bool = False


class SessionLifecycle:
    """Creates and tears down browser state for a run and its scenarios."""

    def __init__(self, config: TraceQAConfig, driver: BrowserDriver | None = None) -> None:
        """
        Args:
            config: Effective configuration for the run.
            driver: Browser driver; defaults to the Playwright driver.
        """
        if driver is None:
            from traceqa.engine.playwright_driver import PlaywrightDriver

            driver = PlaywrightDriver()
        self._config = config
        self._driver = driver
        self._end_lock = threading.Lock()

    # -- Run ------------------------------------------------------------------

    def start_run(self) -> RunSession:
        """Launch the run's browser and persist an authenticated storage state.

        Raises:
            UnsupportedBrowserKind: The configured browser type is not known.
            AuthenticationFailure: The login pass failed.
        """
        cfg = self._config
        engine = resolve_engine(cfg.browser_type)
        run_start = dt.datetime.now()

        try:
            browser = self._driver.launch(engine, headless=cfg.headless, slow_mo=cfg.slow_mo)
        except Exception:
            self._release_driver()
            raise

        auth_state_path: Path | None = None
        if cfg.base_url:
            try:
                auth_state_path = self._authenticate(browser)
            except AuthenticationFailure:
                logger.error("Authentication against %s failed, aborting run", cfg.base_url)
                self._close_browser(browser)
                self._release_driver()
                raise
        else:
            logger.warning("No base URL configured; scenarios start without a stored login")

        logger.info(
            "Run started: browser=%s (%s), auth_state=%s",
            cfg.browser_type, engine, auth_state_path,
        )
        return RunSession(
            browser=browser,
            browser_kind=cfg.browser_type,
            engine=engine,
            auth_state_path=auth_state_path,
            run_start=run_start,
        )

    def _authenticate(self, browser: BrowserHandle) -> Path:
        cfg = self._config
        selectors = cfg.login_selectors
        auth_state_path = cfg.auth_state_path
        login_context = browser.new_context()
        try:
            page = login_context.new_page()
            page.goto(cfg.base_url, timeout=cfg.login_timeout_ms)
            page.fill(selectors["username"], cfg.username)
            page.fill(selectors["password"], cfg.password)
            page.click(selectors["submit"], delay=cfg.login_click_delay_ms)
            auth_state_path.parent.mkdir(parents=True, exist_ok=True)
            login_context.storage_state(auth_state_path)
        except Exception as exc:
            raise AuthenticationFailure(f"Login at {cfg.base_url} failed: {exc}") from exc
        finally:
            try:
                login_context.close()
            except Exception as exc:
                logger.warning("Failed to close login context: %s", exc)
        return auth_state_path

    def end_run(self, session: RunSession) -> None:
        """Close leftover contexts, the browser and the driver. Runs at most once."""
        with self._end_lock:
            if session.ended:
                logger.warning("end_run called twice; ignoring")
                return
            session.ended = True

        for scenario in session.open_scenarios:
            logger.warning("Scenario '%s' still open at run end, disposing its context", scenario.title)
            self.abort_scenario(scenario)

        self._close_browser(session.browser)
        self._release_driver()
        session.run_end = dt.datetime.now()
        logger.info("Run ended after %s", session.run_end - session.run_start)

    def _close_browser(self, browser: BrowserHandle) -> None:
        try:
            browser.close()
        except Exception as exc:
            logger.warning("Failed to close browser: %s", exc)

    def _release_driver(self) -> None:
        try:
            self._driver.close()
        except Exception as exc:
            logger.warning("Failed to stop browser driver: %s", exc)

    # -- Scenario -------------------------------------------------------------

    def start_scenario(self, session: RunSession, title: str) -> ScenarioContext:
        """Open an isolated, traced context and page seeded with the run's login state."""
        cfg = self._config
        context = session.browser.new_context(storage_state=session.auth_state_path)
        try:
            context.start_tracing(
                screenshots=cfg.tracing_screenshots,
                snapshots=cfg.tracing_snapshots,
            )
            page = context.new_page()
        except Exception:
            self._close_context(context, title)
            raise

        scenario = ScenarioContext(
            session=session,
            title=title,
            context=context,
            page=page,
            started_at=dt.datetime.now(),
        )
        session._track(scenario)
        logger.debug("Scenario '%s' started", title)
        return scenario

    def end_scenario(
        self,
        scenario: ScenarioContext,
        status: ScenarioStatus,
        trace_path: Path,
        screenshot_path: Path | None = None,
    ) -> ScenarioArtifacts:
        """Capture artifacts, then dispose the context whatever happened.

        A screenshot is taken first when the scenario did not pass and a
        screenshot path is given. Capture failures are logged and returned,
        never raised.
        """
        if scenario.closed:
            logger.warning("Scenario '%s' already closed; no artifacts captured", scenario.title)
            return ScenarioArtifacts(trace=CaptureResult.failed("context already closed"))

        try:
            screenshot: CaptureResult | None = None
            if status is not ScenarioStatus.PASSED and screenshot_path is not None:
                screenshot = self._capture(
                    "screenshot", scenario.title, screenshot_path, scenario.page.screenshot,
                )
            trace = self._capture(
                "trace", scenario.title, trace_path, scenario.context.stop_tracing,
            )
        finally:
            self.abort_scenario(scenario)

        return ScenarioArtifacts(trace=trace, screenshot=screenshot)

    def abort_scenario(self, scenario: ScenarioContext) -> None:
        """Dispose the scenario's context without capturing anything. Idempotent."""
        if scenario.closed:
            return
        scenario.closed = True
        self._close_context(scenario.context, scenario.title)
        scenario.session._untrack(scenario)

    def _capture(self, kind: str, title: str, path: Path, write: Any) -> CaptureResult:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            write(path)
        except Exception as exc:
            logger.warning("Failed to save %s for scenario '%s': %s", kind, title, exc)
            return CaptureResult.failed(f"{kind} capture failed: {exc}")
        return CaptureResult(path=path)

    def _close_context(self, context: ContextHandle, title: str) -> None:
        try:
            context.close()
        except Exception as exc:
            logger.warning("Failed to close context for scenario '%s': %s", title, exc)

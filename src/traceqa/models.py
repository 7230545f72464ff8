"""Centralized defaults, environment names and status vocabularies."""

import enum

# Environment variables recognized by TraceQAConfig.from_env()
ENV_VARS = {
    "headless": "PLAYWRIGHT_Headless",
    "slow_mo": "PLAYWRIGHT_SlowMo",
    "tracing_screenshots": "PLAYWRIGHT_Tracing_Screenshots",
    "tracing_snapshots": "PLAYWRIGHT_Tracing_Snapshots",
    "browser_type": "PLAYWRIGHT_BrowserType",
    "base_url": "PLAYWRIGHT_BaseUrl",
    "username": "PLAYWRIGHT_Username",
    "password": "PLAYWRIGHT_Password",
    "output_dir": "TRACEQA_OUTPUT_DIR",
}

# Configured browser name -> Playwright engine
BROWSER_ENGINES = {
    "Chrome": "chromium",
    "Edge": "chromium",
    "Firefox": "firefox",
    "Safari": "webkit",
}

DEFAULT_BROWSER_TYPE = "Chrome"
DEFAULT_SLOW_MO_MS = 1000

# Artifact layout, relative to the output directory
TRACES_DIRNAME = "PlaywrightTraces"
SCREENSHOTS_DIRNAME = "PlaywrightScreenshots"
REPORT_FILENAME = "PlaywrightReport.html"
RESULTS_FILENAME = "PlaywrightReport.json"
AUTH_STATE_FILENAME = "auth.json"
CONFIG_FILENAME = "traceqa.yaml"

# Login pass
LOGIN_TIMEOUT_MS = 40_000
LOGIN_CLICK_DELAY_MS = 5_000
LOGIN_SELECTORS = {
    "username": '[data-test="username"]',
    "password": '[data-test="password"]',
    "submit": '[data-test="login-button"]',
}

REPORT_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"
ARTIFACT_STAMP_FORMAT = "%Y%m%d-%H%M%S-%f"


class FailureKind(str, enum.Enum):
    """Every failure the harness distinguishes.

    Only UNSUPPORTED_BROWSER and AUTHENTICATION abort a run; the rest are
    carried into the affected scenario's report.
    """

    UNSUPPORTED_BROWSER = "unsupported_browser"
    AUTHENTICATION = "authentication"
    ARTIFACT_CAPTURE = "artifact_capture"
    FEATURE_FILE_UNAVAILABLE = "feature_file_unavailable"
    SCENARIO_EXECUTION = "scenario_execution"

"""Unit tests for traceqa.models — browser engines, environment names and layout constants."""

from __future__ import annotations

from traceqa.models import (
    ARTIFACT_STAMP_FORMAT,
    BROWSER_ENGINES,
    DEFAULT_BROWSER_TYPE,
    ENV_VARS,
    LOGIN_SELECTORS,
    REPORT_FILENAME,
    RESULTS_FILENAME,
    FailureKind,
)


# ---------------------------------------------------------------------------
# 1. Browser engines
# ---------------------------------------------------------------------------

class TestBrowserEngines:
    """Every supported browser name should map onto a Playwright engine."""

    def test_chromium_class(self):
        assert BROWSER_ENGINES["Chrome"] == "chromium"
        assert BROWSER_ENGINES["Edge"] == "chromium"

    def test_firefox_and_webkit(self):
        assert BROWSER_ENGINES["Firefox"] == "firefox"
        assert BROWSER_ENGINES["Safari"] == "webkit"

    def test_only_playwright_engines(self):
        assert set(BROWSER_ENGINES.values()) == {"chromium", "firefox", "webkit"}

    def test_default_browser_is_supported(self):
        assert DEFAULT_BROWSER_TYPE in BROWSER_ENGINES


# ---------------------------------------------------------------------------
# 2. Environment and layout names
# ---------------------------------------------------------------------------

class TestNames:
    def test_playwright_env_prefix(self):
        for key, name in ENV_VARS.items():
            if key != "output_dir":
                assert name.startswith("PLAYWRIGHT_"), key

    def test_env_names_are_unique(self):
        assert len(set(ENV_VARS.values())) == len(ENV_VARS)

    def test_results_file_sits_beside_report(self):
        assert REPORT_FILENAME.rsplit(".", 1)[0] == RESULTS_FILENAME.rsplit(".", 1)[0]

    def test_stamp_format_has_sub_second_precision(self):
        assert "%f" in ARTIFACT_STAMP_FORMAT

    def test_login_selectors_cover_the_form(self):
        assert set(LOGIN_SELECTORS) == {"username", "password", "submit"}


# ---------------------------------------------------------------------------
# 3. Failure kinds
# ---------------------------------------------------------------------------

class TestFailureKind:
    def test_values_are_strings(self):
        for kind in FailureKind:
            assert isinstance(kind.value, str)
            assert kind == kind.value

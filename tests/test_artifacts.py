"""Unit tests for traceqa.engine.artifacts — filename sanitizing, report-relative links, layout."""

from __future__ import annotations

import datetime as dt
from pathlib import Path

import pytest

from traceqa.engine.artifacts import ArtifactManager, relative_to, sanitize_filename

_RUN = dt.datetime(2024, 3, 5, 14, 7, 9, 123456)


# ---------------------------------------------------------------------------
# 1. sanitize_filename()
# ---------------------------------------------------------------------------

class TestSanitizeFilename:
    def test_clean_name_unchanged(self):
        assert sanitize_filename("Successful login") == "Successful login"

    @pytest.mark.parametrize("raw", [
        'Login: admin*user?',
        'a<b>c"d/e\\f|g',
        "tab\there",
        "ends with dots...",
        "Checkout: step 2 of 3.",
    ])
    def test_output_has_no_invalid_characters(self, raw):
        cleaned = sanitize_filename(raw)
        assert not any(ch in cleaned for ch in '<>:"/\\|?*\t')
        assert not cleaned.endswith(".")

    def test_runs_collapse_to_one_underscore(self):
        assert sanitize_filename("Login: admin*?user") == "Login_ admin_user"

    def test_trailing_invalid_characters_are_dropped(self):
        assert sanitize_filename("what?") == "what"

    @pytest.mark.parametrize("raw", ["Login: admin*user?", "a..", "x/y/z", "plain"])
    def test_idempotent(self, raw):
        once = sanitize_filename(raw)
        assert sanitize_filename(once) == once

    @pytest.mark.parametrize("raw", ["", "???", "..."])
    def test_empty_result_gets_placeholder(self, raw):
        assert sanitize_filename(raw) == "unnamed"


# ---------------------------------------------------------------------------
# 2. relative_to()
# ---------------------------------------------------------------------------

class TestRelativeTo:
    def test_artifact_below_report_directory(self):
        assert relative_to("/out/report.html", "/out/traces/a.zip") == "traces/a.zip"

    def test_artifact_in_sibling_directory(self):
        assert relative_to("/out/reports/report.html", "/out/traces/a.zip") == "../traces/a.zip"

    def test_relative_report_resolves_against_working_directory(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        trace = tmp_path / "PlaywrightTraces" / "a.zip"
        assert relative_to("PlaywrightReport.html", trace) == "PlaywrightTraces/a.zip"

    def test_relative_artifact_resolves_against_working_directory(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        report = tmp_path / "site" / "index.html"
        assert relative_to(report, "PlaywrightTraces/a.zip") == "../PlaywrightTraces/a.zip"

    def test_missing_artifact_gives_empty_link(self):
        assert relative_to("/out/report.html", None) == ""

    def test_link_survives_moving_the_tree(self, tmp_path: Path):
        first = relative_to(tmp_path / "a" / "r.html", tmp_path / "a" / "t" / "x.zip")
        moved = relative_to(tmp_path / "b" / "r.html", tmp_path / "b" / "t" / "x.zip")
        assert first == moved == "t/x.zip"


# ---------------------------------------------------------------------------
# 3. ArtifactManager
# ---------------------------------------------------------------------------

class TestArtifactManager:
    def test_layout(self, tmp_path: Path):
        manager = ArtifactManager(tmp_path)
        assert manager.traces_dir == tmp_path / "PlaywrightTraces"
        assert manager.screenshots_dir == tmp_path / "PlaywrightScreenshots"
        assert manager.report_path == tmp_path / "PlaywrightReport.html"
        assert manager.results_path == tmp_path / "PlaywrightReport.json"

    def test_ensure_directories_is_repeatable(self, tmp_path: Path):
        manager = ArtifactManager(tmp_path / "out")
        manager.ensure_directories()
        manager.ensure_directories()
        assert manager.traces_dir.is_dir()
        assert manager.screenshots_dir.is_dir()

    def test_trace_path(self, tmp_path: Path):
        path = ArtifactManager(tmp_path).trace_path_for(_RUN, "Chrome", "Login: admin?", "Failed")
        assert path == tmp_path / "PlaywrightTraces" / "20240305-140709-123456_Chrome_Login_ admin_Failed.zip"

    def test_screenshot_path(self, tmp_path: Path):
        path = ArtifactManager(tmp_path).screenshot_path_for(_RUN, "Firefox", "Checkout")
        assert path == tmp_path / "PlaywrightScreenshots" / "20240305-140709-123456_Firefox_Checkout.png"

    def test_paths_are_deterministic(self, tmp_path: Path):
        manager = ArtifactManager(tmp_path)
        assert manager.trace_path_for(_RUN, "Chrome", "A", "Passed") == \
            manager.trace_path_for(_RUN, "Chrome", "A", "Passed")

    def test_link_is_relative_to_report(self, tmp_path: Path):
        manager = ArtifactManager(tmp_path)
        trace = manager.trace_path_for(_RUN, "Chrome", "A", "Passed")
        assert manager.link(trace) == f"PlaywrightTraces/{trace.name}"

    def test_long_title_keeps_filename_under_limit(self, tmp_path: Path):
        manager = ArtifactManager(tmp_path)
        title = "Checkout with a very long scenario title " * 20
        trace = manager.trace_path_for(_RUN, "Chrome", title, "Failed")
        shot = manager.screenshot_path_for(_RUN, "Chrome", title)
        assert len(trace.name.encode("utf-8")) <= 255
        assert len(shot.name.encode("utf-8")) <= 255
        assert trace.name.endswith("_Failed.zip")

    def test_long_multibyte_title_is_not_split_mid_character(self, tmp_path: Path):
        trace = ArtifactManager(tmp_path).trace_path_for(_RUN, "Chrome", "ログイン" * 100, "Passed")
        title = trace.name.split("_")[2]
        assert len(title.encode("utf-8")) <= 150
        assert set(title) <= set("ログイン")

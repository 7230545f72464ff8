"""Unit tests for traceqa.engine.playwright_driver — the adapters over Playwright's sync API."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

from traceqa.engine.playwright_driver import (
    PlaywrightBrowser,
    PlaywrightContext,
    PlaywrightDriver,
    PlaywrightPage,
)
from traceqa.engine.protocols import BrowserDriver, BrowserHandle, ContextHandle, PageHandle


class TestAdapters:
    def test_adapters_satisfy_protocols(self):
        assert isinstance(PlaywrightPage(MagicMock()), PageHandle)
        assert isinstance(PlaywrightContext(MagicMock()), ContextHandle)
        assert isinstance(PlaywrightBrowser(MagicMock()), BrowserHandle)
        assert isinstance(PlaywrightDriver(), BrowserDriver)

    def test_page_calls(self):
        raw = MagicMock()
        page = PlaywrightPage(raw)
        page.goto("https://example.test", timeout=40_000)
        page.fill("#user", "alice")
        page.click("#go", delay=5_000)
        page.screenshot(Path("/tmp/shot.png"))

        raw.goto.assert_called_once_with("https://example.test", timeout=40_000)
        raw.locator.return_value.fill.assert_called_once_with("alice")
        raw.locator.return_value.click.assert_any_call(delay=5_000)
        raw.screenshot.assert_called_once_with(path="/tmp/shot.png")

    def test_context_tracing(self):
        raw = MagicMock()
        context = PlaywrightContext(raw)
        context.start_tracing(screenshots=True, snapshots=False)
        context.stop_tracing(Path("/tmp/trace.zip"))
        context.storage_state(Path("/tmp/auth.json"))

        raw.tracing.start.assert_called_once_with(screenshots=True, snapshots=False)
        raw.tracing.stop.assert_called_once_with(path="/tmp/trace.zip")
        raw.storage_state.assert_called_once_with(path="/tmp/auth.json")

    def test_new_page_wraps_raw_page(self):
        raw = MagicMock()
        page = PlaywrightContext(raw).new_page()
        assert page.raw is raw.new_page.return_value

    def test_browser_context_with_and_without_state(self):
        raw = MagicMock()
        browser = PlaywrightBrowser(raw)
        browser.new_context()
        browser.new_context(storage_state=Path("/tmp/auth.json"))
        assert raw.new_context.call_args_list[0].kwargs == {}
        assert raw.new_context.call_args_list[1].kwargs == {"storage_state": "/tmp/auth.json"}


class TestDriver:
    def test_starts_once_and_stops_on_close(self):
        playwright = MagicMock()
        with patch("playwright.sync_api.sync_playwright") as sync_playwright:
            sync_playwright.return_value.start.return_value = playwright
            driver = PlaywrightDriver()
            browser = driver.launch("firefox", headless=True, slow_mo=0)
            driver.launch("firefox", headless=True, slow_mo=0)
            driver.close()
            driver.close()

        assert sync_playwright.return_value.start.call_count == 1
        playwright.firefox.launch.assert_called_with(headless=True, slow_mo=0)
        assert browser.raw is playwright.firefox.launch.return_value
        playwright.stop.assert_called_once_with()

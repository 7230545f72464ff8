"""Playwright implementation of the BrowserDriver protocol.

Wraps ``playwright.sync_api``. Sync Playwright objects are bound to the thread
that started the driver; scenarios that run on other threads need their own
driver instance.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger("traceqa.engine.playwright_driver")


class PlaywrightPage:
    def __init__(self, page: Any) -> None:
        self.raw = page

    def goto(self, url: str, timeout: float) -> None:
        self.raw.goto(url, timeout=timeout)

    def fill(self, selector: str, value: str) -> None:
        locator = self.raw.locator(selector)
        locator.click()
        locator.fill(value)

    def click(self, selector: str, delay: float = 0) -> None:
        self.raw.locator(selector).click(delay=delay)

    def screenshot(self, path: Path) -> None:
        self.raw.screenshot(path=str(path))


class PlaywrightContext:
    def __init__(self, context: Any) -> None:
        self.raw = context

    def new_page(self) -> PlaywrightPage:
        return PlaywrightPage(self.raw.new_page())

    def start_tracing(self, screenshots: bool, snapshots: bool) -> None:
        self.raw.tracing.start(screenshots=screenshots, snapshots=snapshots)

    def stop_tracing(self, path: Path) -> None:
        self.raw.tracing.stop(path=str(path))

    def storage_state(self, path: Path) -> None:
        self.raw.storage_state(path=str(path))

    def close(self) -> None:
        self.raw.close()


class PlaywrightBrowser:
    def __init__(self, browser: Any) -> None:
        self.raw = browser

    def new_context(self, storage_state: Path | None = None) -> PlaywrightContext:
        if storage_state is not None:
            return PlaywrightContext(self.raw.new_context(storage_state=str(storage_state)))
        return PlaywrightContext(self.raw.new_context())

    def close(self) -> None:
        self.raw.close()


class PlaywrightDriver:
    """Starts Playwright lazily on the first launch() and stops it on close()."""

    def __init__(self) -> None:
        self._playwright: Any = None

    def launch(self, engine: str, headless: bool, slow_mo: int) -> PlaywrightBrowser:
        from playwright.sync_api import sync_playwright

        if self._playwright is None:
            self._playwright = sync_playwright().start()
        browser_type = getattr(self._playwright, engine)
        logger.info("Launching %s (headless=%s, slow_mo=%dms)", engine, headless, slow_mo)
        return PlaywrightBrowser(browser_type.launch(headless=headless, slow_mo=slow_mo))

    def close(self) -> None:
        if self._playwright is not None:
            self._playwright.stop()
            self._playwright = None

"""Shared fixtures for TraceQA unit tests.

The fake driver stands in for Playwright: every handle records what was done
to it in a shared ``events`` list, and failures can be switched on per test
through the driver's ``fail_*`` flags.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from traceqa.config import TraceQAConfig


# ---------------------------------------------------------------------------
# Fake browser handles
# ---------------------------------------------------------------------------

class FakePage:
    def __init__(self, driver: FakeDriver, name: str) -> None:
        self._driver = driver
        self.name = name

    def goto(self, url: str, timeout: float) -> None:
        self._driver.events.append(("goto", url, timeout))
        if self._driver.fail_login:
            raise TimeoutError(f"Timeout {timeout}ms exceeded navigating to {url}")

    def fill(self, selector: str, value: str) -> None:
        self._driver.events.append(("fill", selector, value))

    def click(self, selector: str, delay: float = 0) -> None:
        self._driver.events.append(("click", selector, delay))

    def screenshot(self, path: Path) -> None:
        self._driver.events.append(("screenshot", self.name, Path(path).name))
        if self._driver.fail_screenshot:
            raise RuntimeError("Target page has been closed")
        Path(path).write_bytes(b"\x89PNG fake")


class FakeContext:
    def __init__(self, driver: FakeDriver, name: str, storage_state: Path | None) -> None:
        self._driver = driver
        self.name = name
        self.storage_state_path = storage_state
        self.tracing: dict[str, bool] | None = None
        self.closed = False

    def new_page(self) -> FakePage:
        self._driver.events.append(("new_page", self.name))
        if self._driver.fail_new_page:
            raise RuntimeError("Browser has been closed")
        return FakePage(self._driver, self.name)

    def start_tracing(self, screenshots: bool, snapshots: bool) -> None:
        self.tracing = {"screenshots": screenshots, "snapshots": snapshots}
        self._driver.events.append(("start_tracing", self.name))

    def stop_tracing(self, path: Path) -> None:
        self._driver.events.append(("stop_tracing", self.name, Path(path).name))
        if self._driver.fail_trace:
            raise RuntimeError("Tracing has not been started")
        Path(path).write_bytes(b"PK fake trace")

    def storage_state(self, path: Path) -> None:
        self._driver.events.append(("storage_state", self.name))
        Path(path).write_text('{"cookies": [], "origins": []}', encoding="utf-8")

    def close(self) -> None:
        self._driver.events.append(("close_context", self.name))
        self.closed = True


class FakeBrowser:
    def __init__(self, driver: FakeDriver, engine: str) -> None:
        self._driver = driver
        self.engine = engine
        self.contexts: list[FakeContext] = []
        self.closed = False

    def new_context(self, storage_state: Path | None = None) -> FakeContext:
        if self._driver.fail_new_context:
            raise RuntimeError("Browser has been closed")
        context = FakeContext(self._driver, f"ctx{len(self.contexts)}", storage_state)
        self.contexts.append(context)
        self._driver.events.append(("new_context", context.name))
        return context

    def close(self) -> None:
        self._driver.events.append(("close_browser",))
        self.closed = True


class FakeDriver:
    def __init__(self) -> None:
        self.events: list[tuple] = []
        self.launches: list[dict] = []
        self.browser: FakeBrowser | None = None
        self.closed = 0
        self.fail_launch = False
        self.fail_login = False
        self.fail_new_context = False
        self.fail_new_page = False
        self.fail_screenshot = False
        self.fail_trace = False

    def launch(self, engine: str, headless: bool, slow_mo: int) -> FakeBrowser:
        self.launches.append({"engine": engine, "headless": headless, "slow_mo": slow_mo})
        if self.fail_launch:
            raise RuntimeError("Executable doesn't exist")
        self.browser = FakeBrowser(self, engine)
        return self.browser

    def close(self) -> None:
        self.closed += 1
        self.events.append(("close_driver",))

    def contexts(self) -> list[FakeContext]:
        return self.browser.contexts if self.browser else []


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def fake_driver() -> FakeDriver:
    return FakeDriver()


@pytest.fixture
def config(tmp_path: Path) -> TraceQAConfig:
    """Chrome config writing into tmp_path, with no login."""
    return TraceQAConfig(output_dir=tmp_path / "out", slow_mo=0)


@pytest.fixture
def auth_config(tmp_path: Path) -> TraceQAConfig:
    """Config with a base URL and credentials, so the run logs in first."""
    return TraceQAConfig(
        output_dir=tmp_path / "out",
        slow_mo=0,
        base_url="https://app.example.test/login",
        username="qa-user",
        password="s3cret",
    )


@pytest.fixture
def sample_feature_text() -> str:
    """Feature source with a background, a rule and a doc string."""
    return '''\
@smoke
Feature: Account access
  # Login and dashboard checks

  Background:
    Given the application is running

  Scenario: Successful login
    Given user is on login page
    When user submits credentials
    Then dashboard is shown

  Scenario: Successful login with remember me
    Given user is on login page
    And the remember me box is ticked
    When user submits credentials
    Then dashboard is shown

  Scenario: Login message
    Given user is on login page
    Then the banner reads
      """
      Given this is not a step
      """
    And the page title is "Welcome"

  Rule: Lockout

    Background:
      Given the account has 2 failed attempts

    Scenario Outline: Locked account
      When user submits <password>
      Then the account is locked

      Examples:
        | password |
        | wrong    |
'''

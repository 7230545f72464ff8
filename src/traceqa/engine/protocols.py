"""Collaborator contracts for the harness.

The lifecycle engine only talks to the browser through these protocols, so
the Playwright adapter can be swapped for fakes in tests. ``ScenarioSource``
is what a BDD runner hands over when a scenario starts.
"""

from __future__ import annotations

import dataclasses
from pathlib import Path
from typing import Protocol, runtime_checkable


@dataclasses.dataclass(frozen=True)
class ScenarioSource:
    """What the scenario runner knows about the scenario about to execute."""

    title: str
    feature_title: str = ""
    feature_text: str | None = None  # Raw .feature source, None if it could not be read


@runtime_checkable
class PageHandle(Protocol):
    def goto(self, url: str, timeout: float) -> None: ...

    def fill(self, selector: str, value: str) -> None: ...

    def click(self, selector: str, delay: float = 0) -> None: ...

    def screenshot(self, path: Path) -> None: ...


@runtime_checkable
class ContextHandle(Protocol):
    def new_page(self) -> PageHandle: ...

    def start_tracing(self, screenshots: bool, snapshots: bool) -> None: ...

    def stop_tracing(self, path: Path) -> None: ...

    def storage_state(self, path: Path) -> None: ...

    def close(self) -> None: ...


@runtime_checkable
class BrowserHandle(Protocol):
    def new_context(self, storage_state: Path | None = None) -> ContextHandle: ...

    def close(self) -> None: ...


@runtime_checkable
class BrowserDriver(Protocol):
    """Launches browsers for one run and owns the automation engine."""

    def launch(self, engine: str, headless: bool, slow_mo: int) -> BrowserHandle: ...

    def close(self) -> None: ...

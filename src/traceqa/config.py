"""TraceQA configuration management."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from traceqa.models import (
    AUTH_STATE_FILENAME,
    CONFIG_FILENAME,
    DEFAULT_BROWSER_TYPE,
    DEFAULT_SLOW_MO_MS,
    ENV_VARS,
    LOGIN_CLICK_DELAY_MS,
    LOGIN_SELECTORS,
    LOGIN_TIMEOUT_MS,
    REPORT_FILENAME,
    RESULTS_FILENAME,
    SCREENSHOTS_DIRNAME,
    TRACES_DIRNAME,
)


class TraceQAConfigError(Exception):
    """Raised when configuration is invalid or missing."""

    pass


@dataclass
class TraceQAConfig:
    """Configuration for a TraceQA run."""

    # Browser
    headless: bool = True
    slow_mo: int = DEFAULT_SLOW_MO_MS
    browser_type: str = DEFAULT_BROWSER_TYPE

    # Tracing
    tracing_screenshots: bool = True
    tracing_snapshots: bool = True

    # Authentication
    base_url: str = ""
    username: str = ""
    # repr=False keeps the password out of logs and tracebacks
    password: str = field(default="", repr=False)
    login_timeout_ms: int = LOGIN_TIMEOUT_MS
    login_click_delay_ms: int = LOGIN_CLICK_DELAY_MS
    login_selectors: dict[str, str] = field(default_factory=lambda: dict(LOGIN_SELECTORS))

    # Paths
    output_dir: Path = field(default_factory=Path.cwd)

    @property
    def traces_dir(self) -> Path:
        return self.output_dir / TRACES_DIRNAME

    @property
    def screenshots_dir(self) -> Path:
        return self.output_dir / SCREENSHOTS_DIRNAME

    @property
    def report_path(self) -> Path:
        return self.output_dir / REPORT_FILENAME

    @property
    def results_path(self) -> Path:
        return self.output_dir / RESULTS_FILENAME

    @property
    def auth_state_path(self) -> Path:
        return self.output_dir / AUTH_STATE_FILENAME

    @classmethod
    def load(
        cls,
        config_path: Path | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> TraceQAConfig:
        """Build the effective config: YAML file (if any), then environment overrides.

        Without an explicit path, ``traceqa.yaml`` in the working directory is
        used when it exists.
        """
        if config_path is None:
            candidate = Path.cwd() / CONFIG_FILENAME
            config_path = candidate if candidate.exists() else None
        config = cls.from_file(config_path) if config_path is not None else cls()
        config.apply_env(os.environ if environ is None else environ)
        return config

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> TraceQAConfig:
        """Load config from PLAYWRIGHT_* environment variables only."""
        config = cls()
        config.apply_env(os.environ if environ is None else environ)
        return config

    @classmethod
    def from_file(cls, config_path: Path) -> TraceQAConfig:
        """Load config from a YAML file."""
        if not config_path.exists():
            raise TraceQAConfigError(f"Config file not found: {config_path}")
        with open(config_path) as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as exc:
                raise TraceQAConfigError(f"Invalid YAML in {config_path}: {exc}") from exc
        if not isinstance(data, dict):
            raise TraceQAConfigError(f"Config file must contain a mapping: {config_path}")
        return cls._from_dict(data, config_path.parent)

    @classmethod
    def _from_dict(cls, data: dict[str, Any], base_dir: Path) -> TraceQAConfig:
        """Create config from a dictionary."""
        config = cls()
        config.output_dir = base_dir

        if "output_dir" in data:
            config.output_dir = base_dir / data["output_dir"]
        if "headless" in data:
            config.headless = bool(data["headless"])
        if "slow_mo" in data:
            config.slow_mo = int(data["slow_mo"])
        if "browser_type" in data:
            config.browser_type = str(data["browser_type"])
        if "tracing" in data:
            tracing = data["tracing"]
            if isinstance(tracing, dict):
                config.tracing_screenshots = bool(tracing.get("screenshots", True))
                config.tracing_snapshots = bool(tracing.get("snapshots", True))
        if "base_url" in data:
            config.base_url = str(data["base_url"])
        if "login" in data:
            login = data["login"]
            if not isinstance(login, dict):
                raise TraceQAConfigError("'login' must be a mapping")
            config.username = str(login.get("username", config.username))
            config.password = str(login.get("password", config.password))
            config.login_timeout_ms = int(login.get("timeout_ms", config.login_timeout_ms))
            config.login_click_delay_ms = int(login.get("click_delay_ms", config.login_click_delay_ms))
            selectors = login.get("selectors", {})
            if isinstance(selectors, dict):
                config.login_selectors.update({k: str(v) for k, v in selectors.items()})

        return config

    def apply_env(self, environ: Mapping[str, str]) -> None:
        """Override fields from environment variables that are present.

        Values that do not parse keep the current setting.
        """
        self.headless = _parse_bool(environ.get(ENV_VARS["headless"]), self.headless)
        self.slow_mo = _parse_int(environ.get(ENV_VARS["slow_mo"]), self.slow_mo)
        self.tracing_screenshots = _parse_bool(
            environ.get(ENV_VARS["tracing_screenshots"]), self.tracing_screenshots
        )
        self.tracing_snapshots = _parse_bool(
            environ.get(ENV_VARS["tracing_snapshots"]), self.tracing_snapshots
        )
        for name in ("browser_type", "base_url", "username", "password"):
            value = environ.get(ENV_VARS[name])
            if value is not None:
                setattr(self, name, value)
        output_dir = environ.get(ENV_VARS["output_dir"])
        if output_dir:
            self.output_dir = Path(output_dir)


def _parse_bool(raw: str | None, default: bool) -> bool:
    if raw is None:
        return default
    value = raw.strip().lower()
    if value == "true":
        return True
    if value == "false":
        return False
    return default


def _parse_int(raw: str | None, default: int) -> int:
    if raw is None:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default

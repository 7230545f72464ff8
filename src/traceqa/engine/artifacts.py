"""Artifact layout and naming for traces, screenshots and the run report."""

from __future__ import annotations

import datetime as dt
import logging
import os
import re
from pathlib import Path, PurePath

from traceqa.models import (
    ARTIFACT_STAMP_FORMAT,
    REPORT_FILENAME,
    RESULTS_FILENAME,
    SCREENSHOTS_DIRNAME,
    TRACES_DIRNAME,
)

logger = logging.getLogger("traceqa.engine.artifacts")

# Characters rejected by at least one mainstream filesystem, plus control characters
_INVALID_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]+')

_EMPTY_NAME = "unnamed"

# Scenario titles are capped so stamp, browser, title and status stay under
# the 255-byte filename limit of common filesystems.
_MAX_TITLE_BYTES = 150


def sanitize_filename(name: str, max_bytes: int | None = None) -> str:
    """Replace runs of invalid characters with ``_`` and strip trailing dots.

    With ``max_bytes`` the result is cut to at most that many UTF-8 bytes,
    never splitting a character. Idempotent: sanitizing a sanitized name
    returns it unchanged.
    """
    pieces = [p for p in _INVALID_FILENAME_CHARS.split(name) if p]
    cleaned = "_".join(pieces)
    if max_bytes is not None:
        cleaned = cleaned.encode("utf-8")[:max_bytes].decode("utf-8", errors="ignore")
    cleaned = cleaned.rstrip(".")
    return cleaned or _EMPTY_NAME


def relative_to(report_path: Path | str, artifact_path: Path | str | None) -> str:
    """Link to ``artifact_path`` relative to the directory holding the report.

    Relative paths are taken against the working directory first. Returns a
    POSIX-style path so the link works in a browser on any host. Falls back
    to the bare filename when the paths sit on different drives.
    """
    if not artifact_path:
        return ""
    artifact = Path(artifact_path).absolute()
    report = Path(report_path).absolute()
    if artifact.anchor != report.anchor:
        return artifact.name
    try:
        relative = os.path.relpath(artifact, start=report.parent)
    except ValueError:
        return artifact.name
    return PurePath(relative).as_posix()


class ArtifactManager:
    """Owns the on-disk layout of one run's artifacts.

    All artifacts live under ``output_dir``: traces and screenshots in their
    own subdirectories, the HTML report and its JSON record file at the top.
    """

    def __init__(self, output_dir: Path) -> None:
        self.output_dir = Path(output_dir)
        self.traces_dir = self.output_dir / TRACES_DIRNAME
        self.screenshots_dir = self.output_dir / SCREENSHOTS_DIRNAME
        self.report_path = self.output_dir / REPORT_FILENAME
        self.results_path = self.output_dir / RESULTS_FILENAME

    def ensure_directories(self) -> None:
        self.traces_dir.mkdir(parents=True, exist_ok=True)
        self.screenshots_dir.mkdir(parents=True, exist_ok=True)
        logger.debug("Artifact directories ready under %s", self.output_dir)

    def trace_path_for(
        self,
        run_timestamp: dt.datetime,
        browser_kind: str,
        scenario_title: str,
        status: str,
    ) -> Path:
        filename = "_".join([
            run_timestamp.strftime(ARTIFACT_STAMP_FORMAT),
            sanitize_filename(browser_kind),
            sanitize_filename(scenario_title, max_bytes=_MAX_TITLE_BYTES),
            sanitize_filename(status),
        ])
        return self.traces_dir / f"{filename}.zip"

    def screenshot_path_for(
        self,
        run_timestamp: dt.datetime,
        browser_kind: str,
        scenario_title: str,
    ) -> Path:
        filename = "_".join([
            run_timestamp.strftime(ARTIFACT_STAMP_FORMAT),
            sanitize_filename(browser_kind),
            sanitize_filename(scenario_title, max_bytes=_MAX_TITLE_BYTES),
        ])
        return self.screenshots_dir / f"{filename}.png"

    def link(self, artifact_path: Path | str | None) -> str:
        """Report-relative link for an artifact of this run."""
        return relative_to(self.report_path, artifact_path)

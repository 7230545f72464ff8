"""Step ledger: observed step outcomes and declared Gherkin steps.

StepRecorder collects steps as the runner reports them. FeatureStepExtractor
reads the scenario's declared steps from the feature source and reconciles the
two, so a scenario that stops half-way still reports every step, with the
ones that never ran marked Pending.
"""

from __future__ import annotations

import dataclasses
import enum
import logging
import re
import threading
from pathlib import Path

from traceqa.models import FailureKind

logger = logging.getLogger("traceqa.engine.steps")


class StepKeyword(str, enum.Enum):
    GIVEN = "Given"
    WHEN = "When"
    THEN = "Then"
    AND = "And"
    BUT = "But"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, raw: str | None) -> StepKeyword:
        value = (raw or "").strip().capitalize()
        for keyword in cls:
            if keyword.value == value:
                return keyword
        return cls.UNKNOWN


class StepStatus(str, enum.Enum):
    PASSED = "Passed"
    FAILED = "Failed"
    PENDING = "Pending"

    @classmethod
    def from_runner(cls, raw: str | None) -> StepStatus:
        """Map a runner status name (behave's Status names, or ours) onto a step status."""
        value = (raw or "").strip().lower()
        if value == "passed":
            return cls.PASSED
        if value in ("failed", "error", "hook_error"):
            return cls.FAILED
        return cls.PENDING


@dataclasses.dataclass(frozen=True)
class StepOutcome:
    """One executed or declared step."""

    keyword: StepKeyword
    text: str
    status: StepStatus
    error_message: str | None = None

    def __post_init__(self) -> None:
        if self.error_message and self.status is not StepStatus.FAILED:
            raise ValueError(
                f"error_message is only allowed on failed steps (status={self.status.value})"
            )

    def to_dict(self) -> dict[str, str | None]:
        return {
            "keyword": self.keyword.value,
            "text": self.text,
            "status": self.status.value,
            "error_message": self.error_message,
        }

    @classmethod
    def from_dict(cls, data: dict) -> StepOutcome:
        return cls(
            keyword=StepKeyword.parse(data.get("keyword")),
            text=data.get("text", ""),
            status=StepStatus(data.get("status", StepStatus.PENDING.value)),
            error_message=data.get("error_message") or None,
        )


class StepRecorder:
    """Accumulates one scenario's observed steps in observation order."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._steps: list[StepOutcome] = []

    def record(
        self,
        keyword: str | StepKeyword,
        text: str,
        status: str | StepStatus,
        error: str | None = None,
    ) -> StepOutcome:
        if not isinstance(keyword, StepKeyword):
            keyword = StepKeyword.parse(keyword)
        if not isinstance(status, StepStatus):
            status = StepStatus.from_runner(status)
        error_message = (error or "").strip() or None
        if status is not StepStatus.FAILED:
            error_message = None

        outcome = StepOutcome(keyword=keyword, text=text.strip(), status=status, error_message=error_message)
        with self._lock:
            self._steps.append(outcome)
        logger.debug("Step %s %s -> %s", keyword.value, outcome.text, status.value)
        return outcome

    @property
    def steps(self) -> list[StepOutcome]:
        with self._lock:
            return list(self._steps)

    def __len__(self) -> int:
        with self._lock:
            return len(self._steps)


@dataclasses.dataclass
class DeclaredSteps:
    """Steps declared for a scenario in its feature source.

    ``available`` is False when the source or the scenario block could not be
    found; reconciliation then falls back to the observed steps alone.
    """

    steps: list[StepOutcome]
    available: bool = True
    failure: FailureKind | None = None
    reason: str = ""

    @classmethod
    def unavailable(cls, reason: str) -> DeclaredSteps:
        return cls(steps=[], available=False, failure=FailureKind.FEATURE_FILE_UNAVAILABLE, reason=reason)


_STEP_PREFIXES = [(f"{k.value} ", k) for k in StepKeyword if k is not StepKeyword.UNKNOWN]
_STEP_PREFIXES.append(("* ", StepKeyword.UNKNOWN))

_SCENARIO_HEADERS = ("Scenario Outline:", "Scenario Template:", "Scenario:", "Example:")
_DOC_STRING_FENCES = ('"""', "```")


def parse_step_line(line: str) -> StepOutcome | None:
    """Parse a trimmed feature line into a Pending step, or None if it is not a step."""
    for prefix, keyword in _STEP_PREFIXES:
        if line.startswith(prefix):
            return StepOutcome(keyword=keyword, text=line[len(prefix):].strip(), status=StepStatus.PENDING)
    return None


def _header(line: str) -> tuple[str, str] | None:
    """Classify a block header line as (kind, title)."""
    for prefix in _SCENARIO_HEADERS:
        if line.startswith(prefix):
            return "scenario", line[len(prefix):].strip()
    for prefix, kind in (("Feature:", "feature"), ("Rule:", "rule"), ("Background:", "background")):
        if line.startswith(prefix):
            return kind, line[len(prefix):].strip()
    return None


def _normalize(text: str) -> str:
    return " ".join(text.split())


# Scenario Outline placeholder, e.g. <user name>
_PLACEHOLDER = re.compile(r"<([^<>]+)>")


def _step_pattern(text: str) -> tuple[re.Pattern[str] | None, list[str]]:
    """Compile a declared step with placeholders into a pattern; (None, []) without any."""
    names: list[str] = []
    parts: list[str] = []
    pos = 0
    for m in _PLACEHOLDER.finditer(text):
        parts.append(re.escape(text[pos:m.start()]))
        parts.append(f"(?P<p{len(names)}>.+?)")
        names.append(m.group(1))
        pos = m.end()
    if not names:
        return None, []
    parts.append(re.escape(text[pos:]))
    return re.compile("".join(parts)), names


def _outline_title_matches(title: str, wanted: str) -> bool:
    pattern, _ = _step_pattern(_normalize(title))
    return pattern is not None and pattern.fullmatch(wanted) is not None


class FeatureStepExtractor:
    """Extracts declared steps from feature source and merges them with observed ones."""

    def load(self, feature_path: Path | str | None) -> str | None:
        """Read a feature file, or return None if it is missing or unreadable."""
        if not feature_path:
            return None
        path = Path(feature_path)
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Feature file unavailable: %s (%s)", path, exc)
            return None

    def declared_steps(self, feature_text: str | None, scenario_title: str) -> DeclaredSteps:
        """Collect the steps declared for ``scenario_title``, backgrounds first.

        The scenario block is the one whose header title equals the scenario
        title; when none does, the first header containing it is used, then
        the first outline header whose placeholders can produce it.
        """
        if feature_text is None:
            return DeclaredSteps.unavailable("feature source not available")

        wanted = _normalize(scenario_title)
        steps = self._scan(feature_text, lambda title: _normalize(title) == wanted)
        if steps is None and wanted:
            steps = self._scan(feature_text, lambda title: wanted in _normalize(title))
        if steps is None and wanted:
            steps = self._scan(feature_text, lambda title: _outline_title_matches(title, wanted))
        if steps is None:
            return DeclaredSteps.unavailable(f"scenario '{scenario_title}' not found in feature source")
        return DeclaredSteps(steps=steps)

    def _scan(self, feature_text: str, matches) -> list[StepOutcome] | None:
        feature_background: list[StepOutcome] = []
        rule_background: list[StepOutcome] = []
        scenario_steps: list[StepOutcome] | None = None
        in_rule = False
        section: str | None = None
        fence: str | None = None

        for raw in feature_text.splitlines():
            line = raw.strip()

            if fence is not None:
                if line.startswith(fence):
                    fence = None
                continue
            if line.startswith(_DOC_STRING_FENCES):
                fence = line[:3]
                continue
            if not line or line.startswith(("#", "@", "|")):
                continue

            header = _header(line)
            if header is not None:
                if section == "target":
                    break
                kind, title = header
                if kind == "feature":
                    section = None
                elif kind == "rule":
                    in_rule = True
                    rule_background = []
                    section = None
                elif kind == "background":
                    section = "rule_background" if in_rule else "feature_background"
                elif matches(title):
                    section = "target"
                    scenario_steps = []
                else:
                    section = "other"
                continue

            step = parse_step_line(line)
            if step is None:
                continue
            if section == "feature_background":
                feature_background.append(step)
            elif section == "rule_background":
                rule_background.append(step)
            elif section == "target" and scenario_steps is not None:
                scenario_steps.append(step)

        if scenario_steps is None:
            return None
        return feature_background + rule_background + scenario_steps

    def reconcile(self, declared: list[StepOutcome], observed: list[StepOutcome]) -> list[StepOutcome]:
        """Merge declared and observed steps into one ordered ledger.

        Each declared step is replaced, in place, by the first unconsumed
        observed step with the same text; the rest become Pending. Outline
        placeholders (``<name>``) match any text, and the values they bound
        are filled into the Pending steps that use them. Observed steps that
        match nothing are appended in observation order.
        """
        consumed = [False] * len(observed)
        observed_keys = [_normalize(step.text) for step in observed]
        matches: list[int | None] = []
        bindings: dict[str, str] = {}

        for step in declared:
            key = _normalize(step.text)
            pattern, names = _step_pattern(key)
            match = None
            for i, other in enumerate(observed_keys):
                if consumed[i]:
                    continue
                if pattern is None:
                    if other == key:
                        match = i
                        break
                    continue
                found = pattern.fullmatch(other)
                if found is not None:
                    match = i
                    for n, name in enumerate(names):
                        bindings.setdefault(name, found.group(f"p{n}"))
                    break
            if match is not None:
                consumed[match] = True
            matches.append(match)

        merged: list[StepOutcome] = []
        for step, match in zip(declared, matches):
            if match is not None:
                merged.append(observed[match])
                continue
            text = _PLACEHOLDER.sub(lambda m: bindings.get(m.group(1), m.group(0)), step.text)
            if step.status is StepStatus.PENDING and text == step.text:
                merged.append(step)
            else:
                merged.append(dataclasses.replace(step, text=text, status=StepStatus.PENDING, error_message=None))

        merged.extend(step for i, step in enumerate(observed) if not consumed[i])
        return merged

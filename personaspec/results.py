"""Session records and the persisted results artifact.

The artifact is a single JSON document per persona session. Keys are camelCase
to stay compatible with artifacts written by earlier PersonaSpec releases
(``duration`` is milliseconds, ``base64`` holds the encoded screenshot or an
empty string).
"""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Sequence

from .errors import ArtifactIOError, InputError


OBSERVATION_TYPES = ("success", "note", "confusion", "frustration")
OBSERVATION_SEVERITIES = ("positive", "minor", "moderate", "critical")

EXPECTED_SHAPE_HINT = (
    "Expected a PersonaSpec results file (the *-observations.json written by "
    "ObservationCollector.persist()) with 'persona', 'session', 'tasks', "
    "'observations' and 'screenshots' keys."
)


@dataclass(frozen=True)
class Observation:
    type: str
    description: str
    location: str
    timestamp: str
    severity: str | None = None
    recommendation: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "type": self.type,
            "description": self.description,
            "location": self.location,
            "timestamp": self.timestamp,
        }
        if self.severity is not None:
            payload["severity"] = self.severity
        if self.recommendation is not None:
            payload["recommendation"] = self.recommendation
        return payload


@dataclass(frozen=True)
class Screenshot:
    name: str
    context: str
    url: str
    page_title: str
    filepath: str
    encoded_image: str
    timestamp: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "context": self.context,
            "url": self.url,
            "pageTitle": self.page_title,
            "filepath": self.filepath,
            "base64": self.encoded_image,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class TaskResult:
    name: str
    success: bool
    duration_ms: int
    notes: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "success": self.success,
            "duration": self.duration_ms,
            "notes": self.notes,
        }


@dataclass
class SessionMetrics:
    start_time: str
    end_time: str | None = None
    pages_visited: int = 0
    click_count: int = 0
    search_count: int = 0
    back_nav_count: int = 0
    console_errors: list[str] = field(default_factory=list)
    screenshots_captured: int | None = None
    viewports_tested: list[str] = field(default_factory=list)

    def copy(self) -> "SessionMetrics":
        return SessionMetrics(
            start_time=self.start_time,
            end_time=self.end_time,
            pages_visited=self.pages_visited,
            click_count=self.click_count,
            search_count=self.search_count,
            back_nav_count=self.back_nav_count,
            console_errors=list(self.console_errors),
            screenshots_captured=self.screenshots_captured,
            viewports_tested=list(self.viewports_tested),
        )

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "startTime": self.start_time,
            "pagesVisited": self.pages_visited,
            "clickCount": self.click_count,
            "searchCount": self.search_count,
            "backNavCount": self.back_nav_count,
            "consoleErrors": list(self.console_errors),
        }
        if self.end_time is not None:
            payload["endTime"] = self.end_time
        if self.viewports_tested:
            payload["viewportsTested"] = list(self.viewports_tested)
        if self.screenshots_captured is not None:
            payload["screenshotsCaptured"] = self.screenshots_captured
        return payload


@dataclass(frozen=True)
class TestSummary:
    __test__ = False

    overall_score: str | None = None
    strengths: tuple[str, ...] = ()
    areas_for_improvement: tuple[str, ...] = ()
    critical_issues: int = 0
    moderate_issues: int = 0
    minor_issues: int = 0

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "strengths": list(self.strengths),
            "areasForImprovement": list(self.areas_for_improvement),
            "criticalIssues": self.critical_issues,
            "moderateIssues": self.moderate_issues,
            "minorIssues": self.minor_issues,
        }
        if self.overall_score is not None:
            payload["overallScore"] = self.overall_score
        return payload


@dataclass
class PersonaTestResults:
    persona: str
    background: str
    goals: list[str]
    behaviors: list[str]
    session: SessionMetrics
    tasks: list[TaskResult] = field(default_factory=list)
    observations: list[Observation] = field(default_factory=list)
    screenshots: list[Screenshot] = field(default_factory=list)
    summary: TestSummary | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "persona": self.persona,
            "background": self.background,
            "goals": list(self.goals),
            "behaviors": list(self.behaviors),
            "session": self.session.to_dict(),
            "tasks": [task.to_dict() for task in self.tasks],
            "observations": [obs.to_dict() for obs in self.observations],
            "screenshots": [shot.to_dict() for shot in self.screenshots],
        }
        if self.summary is not None:
            payload["summary"] = self.summary.to_dict()
        return payload

    @classmethod
    def from_dict(
        cls,
        payload: Mapping[str, Any],
        *,
        require: Sequence[str] = ("persona",),
    ) -> "PersonaTestResults":
        if not isinstance(payload, Mapping):
            raise InputError("Invalid PersonaSpec results file format", hint=EXPECTED_SHAPE_HINT)
        for key in require:
            value = payload.get(key)
            if key == "persona":
                if not isinstance(value, str) or not value.strip():
                    raise InputError("Invalid PersonaSpec results file format: missing 'persona'", hint=EXPECTED_SHAPE_HINT)
            elif not isinstance(value, list):
                raise InputError(
                    f"Invalid PersonaSpec results file format: missing '{key}' list",
                    hint=EXPECTED_SHAPE_HINT,
                )
        summary_raw = payload.get("summary")
        return cls(
            persona=_str(payload.get("persona")),
            background=_str(payload.get("background")),
            goals=_str_list(payload.get("goals")),
            behaviors=_str_list(payload.get("behaviors")),
            session=_parse_session(_dict(payload.get("session"))),
            tasks=[_parse_task(item) for item in _dict_items(payload.get("tasks"))],
            observations=[_parse_observation(item) for item in _dict_items(payload.get("observations"))],
            screenshots=[_parse_screenshot(item) for item in _dict_items(payload.get("screenshots"))],
            summary=_parse_summary(summary_raw) if isinstance(summary_raw, Mapping) else None,
        )


def load_results(path: str | Path, *, require: Sequence[str] = ("persona",)) -> PersonaTestResults:
    results_path = Path(path)
    try:
        raw = results_path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ArtifactIOError(f"File not found: {results_path}", path=results_path) from exc
    except UnicodeDecodeError as exc:
        raise InputError(f"Results file {results_path} is not valid UTF-8 JSON", hint=EXPECTED_SHAPE_HINT) from exc
    except OSError as exc:
        raise ArtifactIOError(f"Error reading results file {results_path}: {exc}", path=results_path) from exc
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise InputError(f"Invalid JSON in {results_path}", hint=EXPECTED_SHAPE_HINT) from exc
    return PersonaTestResults.from_dict(payload, require=require)


def _str(value: Any, default: str = "") -> str:
    return value if isinstance(value, str) else default


def _int(value: Any, default: int = 0) -> int:
    if isinstance(value, bool):
        return int(value)
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _dict(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item is not None]


def _dict_items(value: Any) -> list[Mapping[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, Mapping)]


def _parse_session(raw: Mapping[str, Any]) -> SessionMetrics:
    captured = raw.get("screenshotsCaptured")
    end_time = raw.get("endTime")
    return SessionMetrics(
        start_time=_str(raw.get("startTime")),
        end_time=end_time if isinstance(end_time, str) else None,
        pages_visited=_int(raw.get("pagesVisited")),
        click_count=_int(raw.get("clickCount")),
        search_count=_int(raw.get("searchCount")),
        back_nav_count=_int(raw.get("backNavCount")),
        console_errors=_str_list(raw.get("consoleErrors")),
        screenshots_captured=_int(captured) if captured is not None else None,
        viewports_tested=_str_list(raw.get("viewportsTested")),
    )


def _parse_task(raw: Mapping[str, Any]) -> TaskResult:
    return TaskResult(
        name=_str(raw.get("name")),
        success=bool(raw.get("success")),
        duration_ms=_int(raw.get("duration")),
        notes=_str(raw.get("notes")),
    )


def _parse_observation(raw: Mapping[str, Any]) -> Observation:
    severity = raw.get("severity")
    recommendation = raw.get("recommendation")
    return Observation(
        type=_str(raw.get("type"), "note"),
        description=_str(raw.get("description")),
        location=_str(raw.get("location")),
        timestamp=_str(raw.get("timestamp")),
        severity=severity if isinstance(severity, str) else None,
        recommendation=recommendation if isinstance(recommendation, str) else None,
    )


def _parse_screenshot(raw: Mapping[str, Any]) -> Screenshot:
    return Screenshot(
        name=_str(raw.get("name")),
        context=_str(raw.get("context")),
        url=_str(raw.get("url")),
        page_title=_str(raw.get("pageTitle")),
        filepath=_str(raw.get("filepath")),
        encoded_image=_str(raw.get("base64")),
        timestamp=_str(raw.get("timestamp")),
    )


def _parse_summary(raw: Mapping[str, Any]) -> TestSummary:
    score = raw.get("overallScore")
    return TestSummary(
        overall_score=score if isinstance(score, str) else None,
        strengths=tuple(_str_list(raw.get("strengths"))),
        areas_for_improvement=tuple(_str_list(raw.get("areasForImprovement"))),
        critical_issues=_int(raw.get("criticalIssues")),
        moderate_issues=_int(raw.get("moderateIssues")),
        minor_issues=_int(raw.get("minorIssues")),
    )


def screenshot_image_bytes(shot: Screenshot, *, read_file: bool = False) -> bytes | None:
    """Decoded image bytes for a screenshot entry.

    Falls back to the file at ``filepath`` when ``read_file`` is set and the
    entry was captured without embedding.
    """

    if shot.encoded_image:
        try:
            return base64.b64decode(shot.encoded_image, validate=True)
        except (binascii.Error, ValueError):
            return None
    if read_file and shot.filepath:
        try:
            return Path(shot.filepath).read_bytes()
        except OSError:
            return None
    return None
